from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from app.ocl.audit import record_event
from app.ocl.errors import AppError, NotFoundError, ValidationError
from app.ocl.modules.cold_calling.models import ColdCallingRow

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.ocl.models import User

logger = logging.getLogger(__name__)

# API field -> model attribute, for the free-form spreadsheet columns
TEXT_FIELDS: dict[str, str] = {
    "concernName": "concern_name",
    "companyName": "company_name",
    "destination": "destination",
    "phone1": "phone1",
    "phone2": "phone2",
    "sujata": "sujata",
    "followUpDate": "follow_up_date",
    "rating": "rating",
    "backgroundColor": "background_color",
}
ENUM_FIELDS: dict[str, tuple[str, tuple[str, ...]]] = {
    "broadcast": ("broadcast", ("YES", "NO", "")),
    "status": ("status", ("done", "pending", "notWorking", "")),
}
# Server-managed; echoed back by clients that PUT whole rows, so accepted and ignored.
READ_ONLY_FIELDS = frozenset({"id", "createdAt", "updatedAt"})

# row_number is a 32-bit INTEGER column
ROW_NUMBER_MIN = -(2**31)
ROW_NUMBER_MAX = 2**31 - 1


def _max_length(attr: str) -> int | None:
    return getattr(ColdCallingRow.__table__.c[attr].type, "length", None)


def normalize_tab_name(raw: Any) -> str:
    if raw is None:
        return ""
    if not isinstance(raw, str):
        raise ValidationError("Tab name must be a string")
    name = raw.strip()
    limit = _max_length("tab_name")
    if limit and len(name) > limit:
        raise ValidationError(f"Tab name cannot be longer than {limit} characters")
    return name


def _text_value(name: str, value: Any, attr: str) -> str:
    if value is None:
        return ""
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValidationError(f"{name} must be a string")
    text = str(value).strip()
    limit = _max_length(attr)
    if limit and len(text) > limit:
        raise ValidationError(f"{name} cannot be longer than {limit} characters")
    return text


def _row_number_value(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValidationError("rowNumber must be an integer")
    try:
        number = int(value)
    except ValueError:
        raise ValidationError("rowNumber must be an integer")
    if not ROW_NUMBER_MIN <= number <= ROW_NUMBER_MAX:
        raise ValidationError("rowNumber is out of range")
    return number


def parse_row_fields(payload: dict[str, Any], *, allow_row_number: bool) -> dict[str, Any]:
    """
    Map an API payload onto model attributes.

    Unknown keys are rejected rather than passed through.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Row payload must be an object")
    out: dict[str, Any] = {}
    for key, value in payload.items():
        if key in READ_ONLY_FIELDS:
            continue
        if key in TEXT_FIELDS:
            out[TEXT_FIELDS[key]] = _text_value(key, value, TEXT_FIELDS[key])
        elif key in ENUM_FIELDS:
            attr, allowed = ENUM_FIELDS[key]
            v = _text_value(key, value, attr)
            if v not in allowed:
                shown = ", ".join(a for a in allowed if a)
                raise ValidationError(f"Invalid {key}. Must be one of: {shown} or empty")
            out[attr] = v
        elif key == "rowNumber" and allow_row_number:
            out["row_number"] = _row_number_value(value)
        else:
            raise ValidationError(f"Unknown field: {key}")
    return out


def list_tabs(s: "Session") -> list[dict[str, Any]]:
    """Every tab that currently holds rows, with its row count."""
    rows = (
        s.query(ColdCallingRow.tab_name, func.count(ColdCallingRow.id))
        .group_by(ColdCallingRow.tab_name)
        .order_by(ColdCallingRow.tab_name.asc())
        .all()
    )
    return [{"tabName": tab_name, "count": count} for tab_name, count in rows]


def list_rows(s: "Session", tab_name: str) -> list[ColdCallingRow]:
    return (
        s.query(ColdCallingRow)
        .filter(ColdCallingRow.tab_name == tab_name)
        .order_by(ColdCallingRow.row_number.asc(), ColdCallingRow.created_at.asc(), ColdCallingRow.id.asc())
        .all()
    )


def next_row_number(s: "Session", tab_name: str) -> int:
    # Read-then-write: concurrent creates may share a rowNumber (ties sort by created_at, id).
    current = s.query(func.max(ColdCallingRow.row_number)).filter(ColdCallingRow.tab_name == tab_name).scalar()
    return (current or 0) + 1


def get_row(s: "Session", row_id: int) -> ColdCallingRow:
    row = s.get(ColdCallingRow, row_id)
    if not row:
        raise NotFoundError("Row not found")
    return row


def create_row(s: "Session", payload: dict[str, Any], user: "User | None") -> ColdCallingRow:
    if not isinstance(payload, dict):
        raise ValidationError("Row payload must be an object")
    data = dict(payload)
    tab_name = normalize_tab_name(data.pop("tabName", None))
    if not tab_name:
        raise ValidationError("Tab name is required")
    # rowNumber is store-assigned on create
    data.pop("rowNumber", None)
    fields = parse_row_fields(data, allow_row_number=False)

    now = datetime.utcnow()
    row = ColdCallingRow(
        tab_name=tab_name,
        row_number=next_row_number(s, tab_name),
        created_at=now,
        updated_at=now,
        **fields,
    )
    s.add(row)
    s.flush()

    record_event(
        s,
        actor=user,
        action="cold_calling.create",
        entity_type="ColdCallingRow",
        entity_id=str(row.id),
        metadata={"tab_name": tab_name, "row_number": row.row_number},
    )
    logger.info("cold_calling: created row id=%s tab=%s row_number=%s", row.id, tab_name, row.row_number)
    return row


def _apply_fields(row: ColdCallingRow, fields: dict[str, Any]) -> dict[str, Any]:
    changes = {}
    for attr, value in fields.items():
        old = getattr(row, attr)
        if old != value:
            changes[attr] = {"old": old, "new": value}
            setattr(row, attr, value)
    row.updated_at = datetime.utcnow()
    return changes


def _check_tab(row: ColdCallingRow, payload: dict[str, Any]) -> None:
    if "tabName" in payload and normalize_tab_name(payload["tabName"]) != row.tab_name:
        raise ValidationError("Rows cannot be moved between tabs")


def update_row(s: "Session", row: ColdCallingRow, payload: dict[str, Any], user: "User | None") -> ColdCallingRow:
    """Apply only the supplied fields; updated_at is always rewritten."""
    if not isinstance(payload, dict):
        raise ValidationError("Row payload must be an object")
    _check_tab(row, payload)
    fields = parse_row_fields({k: v for k, v in payload.items() if k != "tabName"}, allow_row_number=True)
    changes = _apply_fields(row, fields)
    s.flush()

    if changes:
        record_event(
            s,
            actor=user,
            action="cold_calling.update",
            entity_type="ColdCallingRow",
            entity_id=str(row.id),
            metadata={"tab_name": row.tab_name, "changes": changes},
        )
    return row


@dataclass
class BulkItemResult:
    id: Any
    success: bool
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "success": self.success}
        if self.error:
            out["error"] = self.error
        return out


@dataclass
class BulkUpdateResult:
    """Per-row outcomes of a bulk update; there is no all-or-nothing guarantee."""

    tab_name: str
    results: list[BulkItemResult] = field(default_factory=list)

    @property
    def updated(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tabName": self.tab_name,
            "updated": self.updated,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.results],
        }


def _bulk_row_id(item: Any) -> int:
    if not isinstance(item, dict) or item.get("id") is None:
        raise ValidationError("Each row needs an id")
    raw = item["id"]
    if isinstance(raw, bool):
        raise ValidationError("Row id must be an integer")
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError("Row id must be an integer")


def bulk_update_rows(s: "Session", tab_name: str, rows: Any, user: "User | None") -> BulkUpdateResult:
    """
    Apply `[{id, ...fields}]` to rows of `tab_name`, one savepoint per row.

    A failing row is reported and skipped; rows before and after it still apply.
    """
    if not isinstance(rows, list):
        raise ValidationError("Rows must be an array")
    result = BulkUpdateResult(tab_name=tab_name)

    for item in rows:
        raw_id = item.get("id") if isinstance(item, dict) else None
        try:
            row_id = _bulk_row_id(item)
            row = s.get(ColdCallingRow, row_id)
            if not row or row.tab_name != tab_name:
                raise NotFoundError("Row not found")
            _check_tab(row, item)
            fields = parse_row_fields({k: v for k, v in item.items() if k != "tabName"}, allow_row_number=True)
            with s.begin_nested():
                _apply_fields(row, fields)
                s.flush()
        except AppError as e:
            result.results.append(BulkItemResult(id=raw_id, success=False, error=e.message))
        except SQLAlchemyError as e:
            logger.warning("cold_calling: bulk update failed for row id=%s: %s", raw_id, e)
            result.results.append(BulkItemResult(id=raw_id, success=False, error="Failed to update row"))
        except Exception:
            logger.exception("cold_calling: unexpected error in bulk update for row id=%s", raw_id)
            result.results.append(BulkItemResult(id=raw_id, success=False, error="Failed to update row"))
        else:
            result.results.append(BulkItemResult(id=row_id, success=True))

    record_event(
        s,
        actor=user,
        action="cold_calling.bulk_update",
        entity_type="ColdCallingTab",
        entity_id=tab_name,
        metadata={"updated": result.updated, "failed": result.failed},
    )
    if result.failed:
        logger.warning("cold_calling: bulk update tab=%s updated=%s failed=%s", tab_name, result.updated, result.failed)
    return result


def delete_row(s: "Session", row: ColdCallingRow, user: "User | None") -> None:
    record_event(
        s,
        actor=user,
        action="cold_calling.delete",
        entity_type="ColdCallingRow",
        entity_id=str(row.id),
        metadata={"tab_name": row.tab_name, "company_name": row.company_name},
    )
    s.delete(row)
    s.flush()


def delete_tab(s: "Session", tab_name: str, user: "User | None") -> int:
    deleted = (
        s.query(ColdCallingRow)
        .filter(ColdCallingRow.tab_name == tab_name)
        .delete(synchronize_session=False)
    )
    record_event(
        s,
        actor=user,
        action="cold_calling.delete_tab",
        entity_type="ColdCallingTab",
        entity_id=tab_name,
        metadata={"deleted_count": deleted},
    )
    logger.info("cold_calling: deleted tab=%s rows=%s", tab_name, deleted)
    return deleted
