from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import IntegrityError

from app.ocl.audit import record_event
from app.ocl.errors import NotFoundError, ValidationError
from app.ocl.modules.newsletter.models import NewsEmail

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
EMAIL_MAX_LENGTH = 320

SUBSCRIBED = "subscribed"
ALREADY_SUBSCRIBED = "already_subscribed"
RESUBSCRIBED = "resubscribed"


@dataclass(frozen=True)
class SubscribeResult:
    outcome: str
    subscription: NewsEmail | None


def normalize_email(raw: Any) -> str:
    if raw is None:
        raise ValidationError("Email is required")
    if not isinstance(raw, str):
        raise ValidationError("Please enter a valid email address")
    email = raw.strip().lower()
    if not email:
        raise ValidationError("Email is required")
    if len(email) > EMAIL_MAX_LENGTH or not EMAIL_RE.match(email):
        raise ValidationError("Please enter a valid email address")
    return email


def find_by_email(s: "Session", email: str) -> NewsEmail | None:
    return s.query(NewsEmail).filter(NewsEmail.email == email).one_or_none()


def subscribe(s: "Session", raw_email: Any) -> SubscribeResult:
    email = normalize_email(raw_email)
    existing = find_by_email(s, email)
    now = datetime.utcnow()

    if existing:
        if existing.is_active:
            return SubscribeResult(ALREADY_SUBSCRIBED, existing)
        existing.is_active = True
        existing.subscribed_at = now
        existing.updated_at = now
        record_event(s, actor=None, action="newsletter.subscribe", entity_type="NewsEmail",
                     entity_id=str(existing.id), metadata={"resubscribed": True})
        return SubscribeResult(RESUBSCRIBED, existing)

    sub = NewsEmail(email=email, subscribed_at=now, is_active=True, created_at=now, updated_at=now)
    s.add(sub)
    try:
        s.flush()
    except IntegrityError:
        # Lost a race with a concurrent subscribe of the same address.
        s.rollback()
        logger.info("newsletter: duplicate subscribe for %s", email)
        return SubscribeResult(ALREADY_SUBSCRIBED, None)

    record_event(s, actor=None, action="newsletter.subscribe", entity_type="NewsEmail", entity_id=str(sub.id))
    return SubscribeResult(SUBSCRIBED, sub)


def unsubscribe(s: "Session", raw_email: Any) -> NewsEmail:
    email = normalize_email(raw_email)
    sub = find_by_email(s, email)
    if not sub:
        raise NotFoundError("Email is not subscribed")
    if sub.is_active:
        sub.is_active = False
        sub.updated_at = datetime.utcnow()
        record_event(s, actor=None, action="newsletter.unsubscribe", entity_type="NewsEmail", entity_id=str(sub.id))
    return sub


def list_subscribers(s: "Session", *, active_only: bool = False) -> list[NewsEmail]:
    q = s.query(NewsEmail)
    if active_only:
        q = q.filter(NewsEmail.is_active.is_(True))
    return q.order_by(NewsEmail.created_at.desc(), NewsEmail.id.desc()).all()
