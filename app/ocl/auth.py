from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, abort, current_app, g, request
from werkzeug.security import check_password_hash

from app.ocl.audit import record_event
from app.ocl.db import db_session
from app.ocl.models import User
from app.ocl.security import JWTError, bearer_token, create_access_token, decode_token
from app.ocl.utils import fail, ok

bp = Blueprint("auth", __name__)
_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds


def _check_rate_limit(ip: str) -> bool:
    cutoff = datetime.utcnow() - timedelta(seconds=_LOGIN_RATE_WINDOW)
    recent = [t for t in _login_attempts.get(ip, ()) if t > cutoff]
    if recent:
        _login_attempts[ip] = recent
    else:
        # idle clients do not keep a slot
        _login_attempts.pop(ip, None)
    return len(recent) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(datetime.utcnow())


def load_current_user() -> None:
    """
    Resolves g.current_user from the Bearer token (None when absent or invalid).
    Also assigns a per-request request_id for audit/log correlation.
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    g.current_user = None
    if request.path.startswith(("/health", "/healthz", "/uploads/")):
        return

    token = bearer_token(request.headers.get("Authorization"))
    if not token:
        return
    try:
        payload = decode_token(token)
        user_id = int(payload.get("sub") or 0)
    except (JWTError, ValueError) as e:
        current_app.logger.info("Rejected bearer token (request_id=%s): %s", g.request_id, e)
        return

    user = db_session().get(User, user_id)
    if user and user.is_active:
        g.current_user = user


@bp.post("/login")
def login_post():
    body = request.get_json(silent=True) or {}
    email = str(body.get("email") or "").strip().lower()
    password = str(body.get("password") or "")
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        return fail("Too many login attempts. Please wait 5 minutes.", 429)
    _record_attempt(ip)

    s = db_session()
    user = s.query(User).filter(User.email == email).one_or_none()
    if not user or not user.is_active or not check_password_hash(user.password_hash, password):
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            entity_id=email,
            reason="Invalid credentials",
            metadata={"email": email},
        )
        s.commit()
        return fail("Invalid credentials", 401)

    _login_attempts.pop(ip, None)
    record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.id))
    s.commit()
    return ok({"token": create_access_token(user.id), "user": user.to_dict()})


@bp.get("/me")
def me():
    user = getattr(g, "current_user", None)
    if not user:
        abort(401)
    return ok(user.to_dict())
