from flask import Blueprint, abort, current_app, send_file

from app.ocl.modules.news.images import ALLOWED_EXTENSIONS, storage_key
from app.ocl.storage import storage_from_config

bp = Blueprint("routes", __name__)

_MIME_BY_EXTENSION = {
    ".jpeg": "image/jpeg",
    ".jpg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


@bp.get("/")
def index():
    return {"success": True, "data": {"service": "ocl-backoffice"}}


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for k8s/DO probes. No DB access, minimal overhead.
    """
    return "ok", 200


@bp.get("/uploads/news-images/<image_key>")
def news_image(image_key: str):
    ext = "." + image_key.rsplit(".", 1)[-1].lower() if "." in image_key else ""
    if "/" in image_key or ext not in ALLOWED_EXTENSIONS:
        abort(404)
    storage = storage_from_config(current_app.config)
    try:
        fobj = storage.open(storage_key(image_key))
    except FileNotFoundError:
        abort(404)
    return send_file(fobj, mimetype=_MIME_BY_EXTENSION[ext], max_age=3600)
