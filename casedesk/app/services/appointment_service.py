"""
Appointments: court dates and client meetings booked against a case.

An appointment belongs to the user who booked it. Managers and super admins
can read everyone's appointments but only the owner edits or removes one.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from casedesk.app.domain import access_policy
from casedesk.app.domain.access_policy import Actor
from casedesk.app.domain.contracts import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    CalendarRange,
    parse_contract,
)
from casedesk.app.domain.errors import AccessDeniedError, CaseValidationError, NotFoundError
from casedesk.app.models import Appointment, utcnow
from casedesk.app.services import case_service

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK = timedelta(days=30)


def _now() -> datetime:
    return utcnow().replace(tzinfo=None)


def _effective_status(date: datetime, status: Optional[str]) -> str:
    # an upcoming appointment whose date has passed is stored as expired
    status = status or "upcoming"
    if status == "upcoming" and date < _now():
        return "expired"
    return status


def _require_appointment(db: Session, appointment_id: str, actor: Actor) -> Appointment:
    appointment = db.get(Appointment, appointment_id)
    if not appointment or not access_policy.can_view_appointment(actor.role, actor.id, appointment):
        raise NotFoundError("appointment")
    return appointment


def _require_owner(db: Session, appointment_id: str, actor: Actor) -> Appointment:
    appointment = _require_appointment(db, appointment_id, actor)
    if not access_policy.can_modify_appointment(actor.id, appointment):
        raise AccessDeniedError("you can only change your own appointments")
    return appointment


def create_appointment(
    db: Session,
    data: Union[AppointmentCreate, Mapping[str, Any]],
    actor: Actor,
) -> Appointment:
    payload = parse_contract(AppointmentCreate, data)
    case = case_service.get_case(db, payload.case_id, actor)
    appointment = Appointment(
        case_id=case.id,
        user_id=actor.id,
        title=payload.title,
        description=payload.description,
        location=payload.location,
        appointment_with=payload.appointment_with,
        status=_effective_status(payload.date, payload.status),
        date=payload.date,
    )
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    logger.info("Created appointment_id=%s case_id=%s by user_id=%s", appointment.id, case.id, actor.id)
    return appointment


def get_appointment(db: Session, appointment_id: str, actor: Actor) -> Appointment:
    return _require_appointment(db, appointment_id, actor)


def list_appointments(
    db: Session,
    filters: Union[AppointmentFilters, Mapping[str, Any], None],
    actor: Actor,
) -> List[Appointment]:
    """
    Appointments from start_date (default: 30 days ago) onwards, oldest first.

    Lawyers only see their own; managers and super admins see everyone's.
    """
    parsed = parse_contract(AppointmentFilters, filters)
    start = parsed.start_date or (_now() - DEFAULT_LOOKBACK)
    stmt = select(Appointment).where(Appointment.date >= start)
    if parsed.end_date:
        stmt = stmt.where(Appointment.date <= parsed.end_date)
    if parsed.status:
        stmt = stmt.where(Appointment.status == parsed.status)
    if parsed.appointment_with:
        stmt = stmt.where(Appointment.appointment_with == parsed.appointment_with)
    if parsed.case_id:
        stmt = stmt.where(Appointment.case_id == parsed.case_id)
    if not access_policy.is_elevated(actor.role):
        stmt = stmt.where(Appointment.user_id == actor.id)
    stmt = stmt.order_by(Appointment.date.asc(), Appointment.id.asc())
    return list(db.execute(stmt).scalars().all())


def list_by_status(db: Session, status: str, actor: Actor) -> List[Appointment]:
    return list_appointments(db, {"status": status}, actor)


def calendar(
    db: Session,
    data: Union[CalendarRange, Mapping[str, Any]],
    actor: Actor,
) -> Dict[str, List[Appointment]]:
    """The caller's own appointments in [start_date, end_date], keyed by ISO date."""
    window = parse_contract(CalendarRange, data)
    if window.end_date < window.start_date:
        raise CaseValidationError("end_date must not be before start_date")
    rows = (
        db.execute(
            select(Appointment)
            .where(
                Appointment.user_id == actor.id,
                Appointment.date >= window.start_date,
                Appointment.date <= window.end_date,
            )
            .order_by(Appointment.date.asc(), Appointment.id.asc())
        )
        .scalars()
        .all()
    )
    grouped: Dict[str, List[Appointment]] = {}
    for appointment in rows:
        grouped.setdefault(appointment.date.date().isoformat(), []).append(appointment)
    return grouped


def update_appointment(
    db: Session,
    appointment_id: str,
    data: Union[AppointmentUpdate, Mapping[str, Any]],
    actor: Actor,
) -> Appointment:
    changes = parse_contract(AppointmentUpdate, data).model_dump(exclude_unset=True)
    appointment = _require_owner(db, appointment_id, actor)

    for key in ("title", "appointment_with"):
        if changes.get(key):
            setattr(appointment, key, changes[key])
    for key in ("description", "location"):
        if key in changes:
            setattr(appointment, key, changes[key])
    if changes.get("case_id"):
        appointment.case_id = case_service.get_case(db, changes["case_id"], actor).id

    status = changes.get("status")
    if changes.get("date"):
        appointment.date = changes["date"]
        status = _effective_status(appointment.date, status)
    if status:
        appointment.status = status

    db.commit()
    db.refresh(appointment)
    return appointment


def update_status(
    db: Session,
    appointment_id: str,
    data: Union[AppointmentStatusUpdate, Mapping[str, Any]],
    actor: Actor,
) -> Appointment:
    payload = parse_contract(AppointmentStatusUpdate, data)
    appointment = _require_owner(db, appointment_id, actor)
    appointment.status = payload.status
    db.commit()
    db.refresh(appointment)
    return appointment


def delete_appointment(db: Session, appointment_id: str, actor: Actor) -> None:
    appointment = _require_owner(db, appointment_id, actor)
    db.delete(appointment)
    db.commit()
    logger.info("Deleted appointment_id=%s by user_id=%s", appointment_id, actor.id)
