from __future__ import annotations

from datetime import datetime
from typing import Any

from flask import jsonify

from app.ocl.errors import ValidationError

_TRUE_VALUES = ("true", "1", "yes", "on")


def ok(data: Any = None, status: int = 200, **extra: Any):
    """Build the success envelope: {"success": true, "data": ..., **extra}."""
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    body.update(extra)
    return jsonify(body), status


def fail(message: str, status: int):
    return jsonify({"success": False, "error": message}), status


def isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def parse_bool(value: Any) -> bool:
    """Form fields arrive as strings ("true"/"false"); JSON as real booleans."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _TRUE_VALUES


def parse_int_arg(raw: str | None, *, name: str, default: int, minimum: int = 1, maximum: int | None = None) -> int:
    if raw is None or not str(raw).strip():
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise ValidationError(f"{name} must be an integer")
    if value < minimum:
        raise ValidationError(f"{name} must be at least {minimum}")
    if maximum is not None and value > maximum:
        value = maximum
    return value


def parse_tags(raw: Any) -> list[str]:
    """Accept a list of tags or a comma-separated string; drop blanks."""
    if raw is None:
        return []
    items = raw if isinstance(raw, (list, tuple)) else str(raw).split(",")
    return [str(t).strip() for t in items if str(t).strip()]
