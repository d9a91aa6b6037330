from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from casedesk.app.domain.access_policy import Actor
from casedesk.app.domain.errors import CaseValidationError
from casedesk.app.models import AuditLog, Case

SNAPSHOT_FIELDS = (
    "full_name",
    "phone_number",
    "case_number",
    "status",
    "assigned_lawyer_id",
    "court",
    "notes",
    "appointment_date",
    "created_by",
)


def snapshot_case(case: Case) -> Dict[str, Any]:
    state: Dict[str, Any] = {}
    for field in SNAPSHOT_FIELDS:
        value = getattr(case, field)
        state[field] = value.isoformat() if isinstance(value, datetime) else value
    return state


def log_case_event(
    db: Session,
    *,
    case_id: str,
    event_type: str,
    actor: Actor,
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    row = AuditLog(
        case_id=case_id,
        event_type=event_type,
        actor_id=actor.id,
        actor_role=actor.role,
        before_state=before,
        after_state=after,
    )
    db.add(row)
    db.flush()
    return row


def _encode_cursor(created_at: datetime, audit_id: str) -> str:
    return f"{created_at.isoformat()}|{audit_id}"


def _decode_cursor(cursor: str) -> Tuple[datetime, str]:
    try:
        created_at_raw, audit_id = cursor.split("|", 1)
        return datetime.fromisoformat(created_at_raw), audit_id
    except ValueError as exc:
        raise CaseValidationError("invalid cursor") from exc


def list_case_events(
    db: Session,
    case_id: str,
    limit: int = 100,
    cursor: Optional[str] = None,
    event_type: Optional[str] = None,
) -> Dict[str, Any]:
    """Newest-first audit rows for one case, keyset paginated by (created_at, id)."""
    query = select(AuditLog).where(AuditLog.case_id == case_id)
    if event_type:
        query = query.where(AuditLog.event_type == event_type)
    if cursor:
        cursor_created_at, cursor_id = _decode_cursor(cursor)
        query = query.where(
            or_(
                AuditLog.created_at < cursor_created_at,
                and_(AuditLog.created_at == cursor_created_at, AuditLog.id < cursor_id),
            )
        )

    rows = (
        db.execute(
            query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit + 1)
        )
        .scalars()
        .all()
    )

    next_cursor = None
    if len(rows) > limit:
        last = rows[limit - 1]
        next_cursor = _encode_cursor(last.created_at, last.id)
        rows = rows[:limit]

    items = [
        {
            "id": row.id,
            "case_id": row.case_id,
            "event_type": row.event_type,
            "actor_id": row.actor_id,
            "actor_role": row.actor_role,
            "before_state": row.before_state,
            "after_state": row.after_state,
            "created_at": row.created_at,
        }
        for row in rows
    ]

    return {"items": items, "next_cursor": next_cursor}
