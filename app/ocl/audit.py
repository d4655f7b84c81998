import json
from typing import Any

from flask import g, has_request_context, request
from sqlalchemy.orm import Session

from app.ocl.models import AuditEvent, User


def _request_origin(request_id: str | None) -> tuple[str | None, str | None]:
    if not has_request_context():
        return request_id, None
    return request_id or getattr(g, "request_id", None), request.remote_addr


def record_event(
    s: Session,
    *,
    actor: User | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditEvent:
    """
    Append an audit event to the caller's transaction; it commits or rolls
    back together with the write it describes.
    """
    rid, client_ip = _request_origin(request_id)
    ev = AuditEvent(
        request_id=rid,
        actor_user_id=actor.id if actor else None,
        actor_user_email=actor.email if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
        # datetimes in change sets
        metadata_json=json.dumps(metadata, sort_keys=True, default=str) if metadata else None,
        client_ip=client_ip,
    )
    s.add(ev)
    return ev


def events_for(s: Session, entity_type: str, entity_id: str) -> list[AuditEvent]:
    """History of one entity, oldest first."""
    return (
        s.query(AuditEvent)
        .filter(AuditEvent.entity_type == entity_type, AuditEvent.entity_id == entity_id)
        .order_by(AuditEvent.created_at.asc(), AuditEvent.id.asc())
        .all()
    )
