from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from app.ocl.audit import record_event
from app.ocl.errors import ConflictError, NotFoundError, ValidationError
from app.ocl.modules.news import images
from app.ocl.modules.news.images import ImageUpload
from app.ocl.modules.news.models import (
    DEFAULT_AUTHOR,
    DEFAULT_CATEGORY,
    EXCERPT_MAX_LENGTH,
    LABEL_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    NewsPost,
)
from app.ocl.utils import parse_bool, parse_tags

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.ocl.models import User
    from app.ocl.storage import Storage

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({"title", "excerpt", "content", "category", "author", "published", "featured", "tags"})
REQUIRED_FIELDS = ("title", "excerpt", "content")
FALLBACK_SLUG = "news"


def slugify(title: str) -> str:
    """Lower-case, collapse non-alphanumeric runs to "-", trim hyphens."""
    slug = re.sub(r"[^a-z0-9]+", "-", (title or "").lower())
    return slug.strip("-")


def unique_slug(s: "Session", base: str, *, exclude_id: int | None = None) -> str:
    """
    Return `base`, or `base-N` when another post already owns `base`.

    N starts at the number of existing slugs matching `base(-\\d+)?` and
    advances past any suffix already taken.
    """
    base = base or FALLBACK_SLUG
    q = s.query(NewsPost.slug).filter(or_(NewsPost.slug == base, NewsPost.slug.like(f"{base}-%")))
    if exclude_id is not None:
        q = q.filter(NewsPost.id != exclude_id)
    pattern = re.compile(rf"{re.escape(base)}(-\d+)?")
    taken = {slug for (slug,) in q.all() if slug and pattern.fullmatch(slug)}
    if base not in taken:
        return base
    n = len(taken)
    while f"{base}-{n}" in taken:
        n += 1
    return f"{base}-{n}"


def _storage(storage: "Storage | None") -> "Storage":
    if storage is not None:
        return storage
    from flask import current_app
    from app.ocl.storage import storage_from_config

    return storage_from_config(current_app.config)


def _clean_text(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value.strip()


def validate_news_payload(payload: dict[str, Any], *, partial: bool) -> dict[str, Any]:
    """
    Normalize a create/update payload into model attributes.

    For updates (`partial=True`) only supplied keys are returned; blank
    category/author values are ignored.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be an object")
    unknown = sorted(set(payload) - EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown field: {', '.join(unknown)}")

    out: dict[str, Any] = {}
    if not partial:
        missing = [k for k in REQUIRED_FIELDS if not _clean_text(payload, k)]
        if missing:
            raise ValidationError("Title, excerpt, and content are required")

    for key in REQUIRED_FIELDS:
        if key in payload:
            value = _clean_text(payload, key)
            if not value:
                raise ValidationError(f"{key.capitalize()} cannot be empty")
            out[key] = value
    if "title" in out and len(out["title"]) > TITLE_MAX_LENGTH:
        raise ValidationError(f"Title cannot be longer than {TITLE_MAX_LENGTH} characters")
    if "excerpt" in out and len(out["excerpt"]) > EXCERPT_MAX_LENGTH:
        raise ValidationError(f"Excerpt cannot be longer than {EXCERPT_MAX_LENGTH} characters")

    for key, default in (("category", DEFAULT_CATEGORY), ("author", DEFAULT_AUTHOR)):
        value = _clean_text(payload, key)
        if len(value) > LABEL_MAX_LENGTH:
            raise ValidationError(f"{key.capitalize()} cannot be longer than {LABEL_MAX_LENGTH} characters")
        if value:
            out[key] = value
        elif not partial:
            out[key] = default

    for key in ("published", "featured"):
        if key in payload:
            out[key] = parse_bool(payload[key])
        elif not partial:
            out[key] = False

    if "tags" in payload:
        out["tags"] = parse_tags(payload["tags"])
    elif not partial:
        out["tags"] = []
    return out


@dataclass
class NewsPage:
    items: list[NewsPost]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def pagination(self) -> dict[str, int]:
        return {"page": self.page, "limit": self.limit, "total": self.total, "pages": self.pages}


def _feed_order():
    return (NewsPost.published_at.desc().nulls_last(), NewsPost.created_at.desc(), NewsPost.id.desc())


def list_news(
    s: "Session",
    *,
    is_admin: bool,
    page: int = 1,
    limit: int = 10,
    category: str | None = None,
    featured: bool | None = None,
    published: bool | None = None,
) -> NewsPage:
    """Paginated feed; callers without news rights only ever see published posts."""
    q = s.query(NewsPost)
    if not is_admin:
        published = True
    if published is not None:
        q = q.filter(NewsPost.published == published)
    if category:
        q = q.filter(NewsPost.category == category)
    if featured is not None:
        q = q.filter(NewsPost.featured == featured)

    total = q.count()
    items = q.order_by(*_feed_order()).offset((page - 1) * limit).limit(limit).all()
    return NewsPage(items=items, total=total, page=page, limit=limit)


def get_featured(s: "Session", limit: int = 5) -> list[NewsPost]:
    return (
        s.query(NewsPost)
        .filter(NewsPost.published.is_(True), NewsPost.featured.is_(True))
        .order_by(*_feed_order())
        .limit(limit)
        .all()
    )


def list_categories(s: "Session") -> list[str]:
    rows = s.query(NewsPost.category).filter(NewsPost.published.is_(True)).distinct().all()
    return sorted(c for (c,) in rows if c)


def get_post(s: "Session", post_id: int) -> NewsPost:
    post = s.get(NewsPost, post_id)
    if not post:
        raise NotFoundError("News post not found")
    return post


def record_view(s: "Session", post: NewsPost) -> NewsPost:
    # Increment in SQL so concurrent readers do not lose counts.
    s.query(NewsPost).filter(NewsPost.id == post.id).update(
        {NewsPost.views: NewsPost.views + 1}, synchronize_session=False
    )
    s.flush()
    s.refresh(post)
    return post


def read_by_id(s: "Session", post_id: int) -> NewsPost:
    return record_view(s, get_post(s, post_id))


def read_by_slug(s: "Session", slug: str) -> NewsPost:
    post = (
        s.query(NewsPost)
        .filter(NewsPost.slug == slug, NewsPost.published.is_(True))
        .one_or_none()
    )
    if not post:
        raise NotFoundError("News post not found")
    return record_view(s, post)


def _store_image(storage: "Storage", upload: ImageUpload) -> str:
    images.validate_image(upload)
    key = images.new_image_key(upload.extension)
    storage.put_bytes(images.storage_key(key), upload.data, content_type=upload.content_type)
    return key


def discard_image(storage: "Storage", image_key: str) -> None:
    """Best-effort removal; a failure is logged and never propagates."""
    if not image_key:
        return
    try:
        storage.delete(images.storage_key(image_key))
    except Exception as e:
        logger.warning("news: could not delete image %s: %s", image_key, e)


def _flush_or_conflict(s: "Session", storage: "Storage", new_key: str | None) -> None:
    try:
        s.flush()
    except IntegrityError as e:
        s.rollback()
        if new_key:
            discard_image(storage, new_key)
        logger.warning("news: unique constraint violated: %s", e.orig)
        raise ConflictError("A news post with this title already exists") from e


def create_post(
    s: "Session",
    payload: dict[str, Any],
    user: "User",
    image: ImageUpload | None = None,
    *,
    storage: "Storage | None" = None,
) -> NewsPost:
    fields = validate_news_payload(payload, partial=False)
    store = _storage(storage)

    now = datetime.utcnow()
    post = NewsPost(
        author_id=user.id if user else None,
        slug=unique_slug(s, slugify(fields["title"])),
        published_at=now if fields["published"] else None,
        views=0,
        created_at=now,
        updated_at=now,
        **fields,
    )
    new_key = None
    if image is not None:
        new_key = _store_image(store, image)
        post.image = images.public_url(new_key)
        post.image_key = new_key

    s.add(post)
    _flush_or_conflict(s, store, new_key)

    record_event(
        s,
        actor=user,
        action="news.create",
        entity_type="NewsPost",
        entity_id=str(post.id),
        metadata={"slug": post.slug, "published": post.published, "image_key": post.image_key or None},
    )
    logger.info("news: created post id=%s slug=%s published=%s", post.id, post.slug, post.published)
    return post


def update_post(
    s: "Session",
    post: NewsPost,
    payload: dict[str, Any],
    user: "User",
    image: ImageUpload | None = None,
    *,
    storage: "Storage | None" = None,
) -> str:
    """
    Partial update. The slug never changes once set; published_at is stamped once.

    Returns the image key a new upload replaced ("" when none). The old file
    stays in storage until the caller has committed and passes it to
    `discard_image`.
    """
    fields = validate_news_payload(payload, partial=True)
    store = _storage(storage)

    changes: dict[str, Any] = {}
    for attr, value in fields.items():
        old = getattr(post, attr)
        if old != value:
            changes[attr] = {"old": old, "new": value}
            setattr(post, attr, value)

    if post.published and post.published_at is None:
        post.published_at = datetime.utcnow()
    if not post.slug:
        post.slug = unique_slug(s, slugify(post.title), exclude_id=post.id)

    new_key = None
    stale_key = ""
    if image is not None:
        new_key = _store_image(store, image)
        stale_key = post.image_key or ""
        post.image = images.public_url(new_key)
        post.image_key = new_key
        changes["image_key"] = {"old": stale_key or None, "new": new_key}

    post.updated_at = datetime.utcnow()
    _flush_or_conflict(s, store, new_key)

    record_event(
        s,
        actor=user,
        action="news.update",
        entity_type="NewsPost",
        entity_id=str(post.id),
        metadata={"changes": changes},
    )
    return stale_key


def delete_post(s: "Session", post: NewsPost, user: "User") -> str:
    """Delete the row; returns its image key for the caller to discard after commit."""
    post_id, image_key = post.id, post.image_key or ""
    record_event(
        s,
        actor=user,
        action="news.delete",
        entity_type="NewsPost",
        entity_id=str(post.id),
        metadata={"slug": post.slug, "title": post.title},
    )
    s.delete(post)
    s.flush()
    logger.info("news: deleted post id=%s", post_id)
    return image_key
