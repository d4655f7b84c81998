from __future__ import annotations

from typing import Any

from flask import Blueprint, current_app, g, request

from app.ocl.db import db_session
from app.ocl.modules.news.images import ImageUpload
from app.ocl.modules.news.service import (
    create_post,
    delete_post,
    discard_image,
    get_featured,
    get_post,
    list_categories,
    list_news,
    read_by_id,
    read_by_slug,
    update_post,
)
from app.ocl.rbac import NEWS_MANAGE, current_user_has_permission, require_permission
from app.ocl.storage import storage_from_config
from app.ocl.utils import ok, parse_int_arg

bp = Blueprint("news", __name__)


def _optional_flag(raw: str | None) -> bool | None:
    value = (raw or "").strip().lower()
    if value == "true":
        return True
    if value == "false":
        return False
    return None


def _payload() -> dict[str, Any]:
    if request.is_json:
        return request.get_json(silent=True) or {}
    payload: dict[str, Any] = {}
    for key in request.form.keys():
        values = request.form.getlist(key)
        payload[key] = values if key == "tags" and len(values) > 1 else values[0]
    return payload


def _image() -> ImageUpload | None:
    f = request.files.get("image")
    if not f or not f.filename:
        return None
    return ImageUpload(
        filename=f.filename,
        content_type=(f.mimetype or "application/octet-stream").strip(),
        data=f.read(),
    )


# ---------- Public reads ----------
@bp.get("")
def news_list():
    s = db_session()
    page = list_news(
        s,
        is_admin=current_user_has_permission(NEWS_MANAGE),
        page=parse_int_arg(request.args.get("page"), name="page", default=1),
        limit=parse_int_arg(request.args.get("limit"), name="limit", default=10, maximum=100),
        category=(request.args.get("category") or "").strip() or None,
        featured=_optional_flag(request.args.get("featured")),
        published=_optional_flag(request.args.get("published")),
    )
    return ok([p.to_dict() for p in page.items], pagination=page.pagination())


@bp.get("/featured")
def news_featured():
    s = db_session()
    limit = parse_int_arg(request.args.get("limit"), name="limit", default=5, maximum=100)
    return ok([p.to_dict() for p in get_featured(s, limit)])


@bp.get("/categories/list")
def news_categories():
    s = db_session()
    return ok(list_categories(s))


@bp.get("/<int:post_id>")
def news_detail(post_id: int):
    s = db_session()
    post = read_by_id(s, post_id)
    s.commit()
    return ok(post.to_dict())


@bp.get("/slug/<slug>")
def news_by_slug(slug: str):
    s = db_session()
    post = read_by_slug(s, slug)
    s.commit()
    return ok(post.to_dict())


# ---------- Admin writes ----------
@bp.post("")
@require_permission(NEWS_MANAGE)
def news_create():
    s = db_session()
    post = create_post(s, _payload(), g.current_user, _image())
    s.commit()
    return ok(post.to_dict(), 201, message="News post created successfully")


@bp.put("/<int:post_id>")
@require_permission(NEWS_MANAGE)
def news_update(post_id: int):
    s = db_session()
    post = get_post(s, post_id)
    stale_key = update_post(s, post, _payload(), g.current_user, _image())
    s.commit()
    discard_image(storage_from_config(current_app.config), stale_key)
    return ok(post.to_dict(), message="News post updated successfully")


@bp.delete("/<int:post_id>")
@require_permission(NEWS_MANAGE)
def news_delete(post_id: int):
    s = db_session()
    post = get_post(s, post_id)
    stale_key = delete_post(s, post, g.current_user)
    s.commit()
    discard_image(storage_from_config(current_app.config), stale_key)
    return ok(message="News post deleted successfully")
