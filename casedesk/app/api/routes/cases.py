from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from casedesk.app.api.deps import get_actor, pagination_params
from casedesk.app.api.schemas import AuditPageOut, CaseDetailOut, CasePageOut, CaseStatisticsOut
from casedesk.app.db import get_db
from casedesk.app.domain.access_policy import Actor
from casedesk.app.domain.contracts import CaseCreate, CasePatch
from casedesk.app.services import case_service

router = APIRouter(prefix="/api/cases", tags=["cases"])


class CaseNumberCheckOut(BaseModel):
    case_number: str
    exists: bool


def _filters(
    status: Optional[str] = Query(default=None),
    assigned_lawyer_id: Optional[str] = Query(default=None),
    lawyer: Optional[str] = Query(default=None),
    case_number: Optional[str] = Query(default=None),
    start_date: Optional[datetime] = Query(default=None),
) -> dict:
    return {
        "status": status,
        "assigned_lawyer_id": assigned_lawyer_id,
        "lawyer": lawyer,
        "case_number": case_number,
        "start_date": start_date,
    }


@router.post("", response_model=CaseDetailOut, status_code=201)
def create_case(
    payload: CaseCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return case_service.create_case(db, payload, actor)


@router.get("", response_model=CasePageOut)
def list_cases(
    filters: dict = Depends(_filters),
    pagination: dict = Depends(pagination_params),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return case_service.list_cases(db, filters, pagination, actor)


@router.get("/search", response_model=CasePageOut)
def search_cases(
    q: Optional[str] = Query(default=None, max_length=100),
    filters: dict = Depends(_filters),
    pagination: dict = Depends(pagination_params),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return case_service.search_cases(db, q, filters, pagination, actor)


@router.get("/statistics", response_model=CaseStatisticsOut)
def get_statistics(db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return case_service.get_statistics(db, actor)


@router.get("/status/{status}", response_model=CasePageOut)
def list_cases_by_status(
    status: str,
    pagination: dict = Depends(pagination_params),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return case_service.list_cases_by_status(db, status, pagination, actor)


@router.get("/lawyer/{lawyer_id}", response_model=CasePageOut)
def list_cases_by_lawyer(
    lawyer_id: str,
    pagination: dict = Depends(pagination_params),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return case_service.list_cases_by_lawyer(db, lawyer_id, pagination, actor)


@router.get("/check-case-number/{case_number}", response_model=CaseNumberCheckOut)
def check_case_number(
    case_number: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return CaseNumberCheckOut(case_number=case_number, exists=case_service.check_case_number(db, case_number))


@router.get("/{case_id}", response_model=CaseDetailOut)
def get_case(case_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return case_service.get_case(db, case_id, actor)


@router.get("/{case_id}/history", response_model=AuditPageOut)
def get_case_history(
    case_id: str,
    limit: int = Query(default=50, ge=1, le=200),
    cursor: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return case_service.case_history(db, case_id, actor, limit=limit, cursor=cursor)


@router.patch("/{case_id}", response_model=CaseDetailOut)
def update_case(
    case_id: str,
    payload: CasePatch,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return case_service.update_case(db, case_id, payload, actor)


@router.delete("/{case_id}", status_code=204)
def delete_case(case_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    case_service.delete_case(db, case_id, actor)
    return Response(status_code=204)
