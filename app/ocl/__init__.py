import logging

from flask import Flask, g, request
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException

from app.ocl.config import load_config
from app.ocl.db import init_db, teardown_db_session
from app.ocl.errors import AppError
from app.ocl.routes import bp as routes_bp
from app.ocl.auth import bp as auth_bp, load_current_user
from app.ocl.modules.cold_calling.admin import bp as cold_calling_bp
from app.ocl.modules.news.admin import bp as news_bp
from app.ocl.modules.newsletter.admin import bp as newsletter_bp
from app.ocl.utils import fail

_HTTP_MESSAGES = {
    401: "Authentication required",
    403: "Forbidden",
    404: "Not found",
    405: "Method not allowed",
    413: "File too large",
    429: "Too many requests",
}


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    app.json.sort_keys = False

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    def _dispose_engine_on_fork() -> None:
        import os
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    if app.config.get("STORAGE_BACKEND") == "s3":
        missing_s3 = [
            key
            for key in ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY")
            if not app.config.get(key)
        ]
        if missing_s3:
            app.logger.error("STORAGE CONFIG ERROR: Missing required S3 env vars: %s", ", ".join(missing_s3))

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(cold_calling_bp, url_prefix="/api/cold-calling")
    app.register_blueprint(news_bp, url_prefix="/api/ocl-news")
    app.register_blueprint(newsletter_bp, url_prefix="/api/news-email")

    app.before_request(load_current_user)
    app.teardown_appcontext(teardown_db_session)

    def _rollback() -> None:
        s = getattr(g, "db_session", None)
        if s is not None:
            s.rollback()

    @app.errorhandler(AppError)
    def _app_error(e: AppError):
        _rollback()
        if e.status_code >= 500:
            app.logger.error("%s (request_id=%s): %s", type(e).__name__, getattr(g, "request_id", None), e.message)
            return fail(type(e).public_message, e.status_code)
        return fail(e.message, e.status_code)

    @app.errorhandler(HTTPException)
    def _http_error(e: HTTPException):
        if e.code == 403:
            missing = getattr(g, "missing_permission", None)
            if missing:
                app.logger.warning("Forbidden: missing_permission=%s request_id=%s", missing, getattr(g, "request_id", None))
        code = e.code or 500
        return fail(_HTTP_MESSAGES.get(code, e.name), code)

    @app.errorhandler(Exception)
    def _unhandled(e: Exception):
        _rollback()
        app.logger.exception("Unhandled 500 (request_id=%s path=%s)", getattr(g, "request_id", None), request.path)
        return fail("Internal server error", 500)

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
