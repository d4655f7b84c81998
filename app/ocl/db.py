from __future__ import annotations

from contextlib import contextmanager
from collections.abc import Generator

from flask import Flask, g
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker


def build_engine(db_url: str) -> Engine:
    """Engine for the API and CLI scripts alike (Postgres in production, SQLite locally)."""
    kwargs: dict[str, object] = {"future": True, "pool_pre_ping": True}
    if db_url.startswith("postgres"):
        kwargs.update(pool_recycle=1800, pool_size=5, max_overflow=10, pool_timeout=30)
    engine = create_engine(db_url, **kwargs)

    if engine.dialect.name == "sqlite":
        # SQLite ignores ON DELETE clauses unless asked per connection.
        # pysqlite's own transaction handling lets a SAVEPOINT issued outside
        # a transaction commit on RELEASE, so BEGIN is emitted explicitly.
        @event.listens_for(engine, "connect")
        def _sqlite_connect(dbapi_connection, connection_record):  # type: ignore[no-redef]
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _sqlite_begin(conn):  # type: ignore[no-redef]
            conn.exec_driver_sql("BEGIN")

    return engine


def make_sessionmaker(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, class_=Session, autoflush=False, expire_on_commit=False, future=True)


def init_db(app: Flask) -> None:
    engine = build_engine(app.config["DATABASE_URL"])
    app.extensions["sqlalchemy_engine"] = engine
    app.extensions["sqlalchemy_sessionmaker"] = make_sessionmaker(engine)
    app.logger.debug("DB engine ready (dialect=%s)", engine.dialect.name)


def db_session(app: Flask | None = None) -> Session:
    """
    Request-scoped session, created on first use and closed at teardown.
    """
    s: Session | None = getattr(g, "db_session", None)
    if s is not None:
        return s
    if app is None:
        from flask import current_app

        app = current_app
    g.db_session = app.extensions["sqlalchemy_sessionmaker"]()
    return g.db_session


def teardown_db_session(exc: BaseException | None) -> None:
    s: Session | None = getattr(g, "db_session", None)
    if s is None:
        return
    if exc is not None:
        s.rollback()
    s.close()
    g.db_session = None


@contextmanager
def session_scope(app: Flask) -> Generator[Session, None, None]:
    """
    Session outside a request (tests, shell): commits on success, rolls back on error.
    """
    s: Session = app.extensions["sqlalchemy_sessionmaker"]()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
