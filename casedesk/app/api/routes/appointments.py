from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from casedesk.app.api.deps import get_actor
from casedesk.app.api.schemas import AppointmentOut
from casedesk.app.db import get_db
from casedesk.app.domain.access_policy import Actor
from casedesk.app.domain.contracts import AppointmentCreate, AppointmentStatusUpdate, AppointmentUpdate
from casedesk.app.services import appointment_service

router = APIRouter(prefix="/api/appointments", tags=["appointments"])


@router.post("", response_model=AppointmentOut, status_code=201)
def create_appointment(
    payload: AppointmentCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return appointment_service.create_appointment(db, payload, actor)


@router.get("", response_model=List[AppointmentOut])
def list_appointments(
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    status: Optional[str] = Query(default=None),
    appointment_with: Optional[str] = Query(default=None),
    case_id: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    filters = {
        "start_date": start_date,
        "end_date": end_date,
        "status": status,
        "appointment_with": appointment_with,
        "case_id": case_id,
    }
    return appointment_service.list_appointments(db, filters, actor)


@router.get("/calendar", response_model=Dict[str, List[AppointmentOut]])
def calendar(
    start_date: datetime = Query(...),
    end_date: datetime = Query(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return appointment_service.calendar(db, {"start_date": start_date, "end_date": end_date}, actor)


@router.get("/status/{status}", response_model=List[AppointmentOut])
def list_by_status(status: str, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return appointment_service.list_by_status(db, status, actor)


@router.get("/{appointment_id}", response_model=AppointmentOut)
def get_appointment(appointment_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return appointment_service.get_appointment(db, appointment_id, actor)


@router.patch("/{appointment_id}", response_model=AppointmentOut)
def update_appointment(
    appointment_id: str,
    payload: AppointmentUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return appointment_service.update_appointment(db, appointment_id, payload, actor)


@router.patch("/{appointment_id}/status", response_model=AppointmentOut)
def update_appointment_status(
    appointment_id: str,
    payload: AppointmentStatusUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return appointment_service.update_status(db, appointment_id, payload, actor)


@router.delete("/{appointment_id}", status_code=204)
def delete_appointment(appointment_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    appointment_service.delete_appointment(db, appointment_id, actor)
    return Response(status_code=204)
