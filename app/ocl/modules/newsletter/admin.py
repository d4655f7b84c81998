from __future__ import annotations

from flask import Blueprint, request

from app.ocl.db import db_session
from app.ocl.modules.newsletter.service import (
    ALREADY_SUBSCRIBED,
    RESUBSCRIBED,
    list_subscribers,
    subscribe,
    unsubscribe,
)
from app.ocl.rbac import NEWSLETTER_VIEW, require_permission
from app.ocl.utils import ok, parse_bool

bp = Blueprint("newsletter", __name__)


def _email_from_body():
    body = request.get_json(silent=True)
    if isinstance(body, dict):
        return body.get("email")
    return request.form.get("email")


@bp.post("/subscribe")
def newsletter_subscribe():
    s = db_session()
    result = subscribe(s, _email_from_body())
    s.commit()
    if result.outcome == ALREADY_SUBSCRIBED:
        return ok(message="You are already subscribed to our newsletter", alreadySubscribed=True)
    if result.outcome == RESUBSCRIBED:
        return ok(message="Welcome back! You have been resubscribed to our newsletter")
    sub = result.subscription
    return ok(
        {"email": sub.email, "subscribedAt": sub.to_dict()["subscribedAt"]},
        201,
        message="Thank you for subscribing to our newsletter!",
    )


@bp.post("/unsubscribe")
def newsletter_unsubscribe():
    s = db_session()
    unsubscribe(s, _email_from_body())
    s.commit()
    return ok(message="You have been unsubscribed from our newsletter")


@bp.get("/list")
@require_permission(NEWSLETTER_VIEW)
def newsletter_list():
    s = db_session()
    subs = list_subscribers(s, active_only=parse_bool(request.args.get("active")))
    return ok([sub.to_dict() for sub in subs], total=len(subs))
