from __future__ import annotations

from flask import Blueprint, g, request

from app.ocl.db import db_session
from app.ocl.errors import ValidationError
from app.ocl.modules.cold_calling.service import (
    bulk_update_rows,
    create_row,
    delete_row,
    delete_tab,
    get_row,
    list_rows,
    list_tabs,
    normalize_tab_name,
    update_row,
)
from app.ocl.rbac import COLD_CALLING_MANAGE, require_permission
from app.ocl.utils import ok

bp = Blueprint("cold_calling", __name__)


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


@bp.get("")
@require_permission(COLD_CALLING_MANAGE)
def tabs_list():
    s = db_session()
    return ok(list_tabs(s))


@bp.get("/<tab_name>")
@require_permission(COLD_CALLING_MANAGE)
def rows_list(tab_name: str):
    s = db_session()
    rows = list_rows(s, normalize_tab_name(tab_name))
    return ok([r.to_dict() for r in rows])


@bp.post("")
@require_permission(COLD_CALLING_MANAGE)
def row_create():
    s = db_session()
    row = create_row(s, _json_body(), g.current_user)
    s.commit()
    return ok(row.to_dict(), 201)


@bp.put("/<int:row_id>")
@require_permission(COLD_CALLING_MANAGE)
def row_update(row_id: int):
    s = db_session()
    row = get_row(s, row_id)
    update_row(s, row, _json_body(), g.current_user)
    s.commit()
    return ok(row.to_dict())


@bp.put("/bulk/<tab_name>")
@require_permission(COLD_CALLING_MANAGE)
def rows_bulk_update(tab_name: str):
    s = db_session()
    body = _json_body()
    result = bulk_update_rows(s, normalize_tab_name(tab_name), body.get("rows"), g.current_user)
    s.commit()
    message = f"Updated {result.updated} rows" + (f", {result.failed} failed" if result.failed else "")
    return ok(result.to_dict(), message=message)


@bp.delete("/<int:row_id>")
@require_permission(COLD_CALLING_MANAGE)
def row_delete(row_id: int):
    s = db_session()
    row = get_row(s, row_id)
    delete_row(s, row, g.current_user)
    s.commit()
    return ok(message="Row deleted successfully")


@bp.delete("/tab/<tab_name>")
@require_permission(COLD_CALLING_MANAGE)
def tab_delete(tab_name: str):
    s = db_session()
    deleted = delete_tab(s, normalize_tab_name(tab_name), g.current_user)
    s.commit()
    return ok({"deletedCount": deleted}, message=f"Deleted {deleted} rows")
