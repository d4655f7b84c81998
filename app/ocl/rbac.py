from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import abort, g

from app.ocl.models import User

COLD_CALLING_MANAGE = "cold_calling.manage"
NEWS_MANAGE = "news.manage"
NEWSLETTER_VIEW = "newsletter.view"

# role key -> (display name, permission keys)
ROLE_PERMISSIONS: dict[str, tuple[str, tuple[str, ...]]] = {
    "admin": ("Administrator", (COLD_CALLING_MANAGE, NEWS_MANAGE, NEWSLETTER_VIEW)),
    "office_admin": ("Office Administrator", (COLD_CALLING_MANAGE,)),
}

PERMISSION_NAMES: dict[str, str] = {
    COLD_CALLING_MANAGE: "Cold calling: manage rows",
    NEWS_MANAGE: "News: create, edit, delete",
    NEWSLETTER_VIEW: "Newsletter: view subscribers",
}


def user_has_permission(user: User | None, permission_key: str) -> bool:
    if not user or not user.is_active:
        return False
    for role in user.roles:
        for perm in role.permissions:
            if perm.key == permission_key:
                return True
    return False


def current_user_has_permission(permission_key: str) -> bool:
    return user_has_permission(getattr(g, "current_user", None), permission_key)


def require_permission(permission_key: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: User | None = getattr(g, "current_user", None)
            # No (valid) token -> 401
            if not user or not user.is_active:
                abort(401)
            # Authenticated but unauthorized -> 403
            if not user_has_permission(user, permission_key):
                g.missing_permission = permission_key
                abort(403)
            return fn(*args, **kwargs)

        return wrapped

    return decorator
