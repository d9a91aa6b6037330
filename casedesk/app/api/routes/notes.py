from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from casedesk.app.api.deps import get_actor, pagination_params
from casedesk.app.api.schemas import NoteOut, NotePageOut
from casedesk.app.db import get_db
from casedesk.app.domain.access_policy import Actor
from casedesk.app.domain.contracts import NoteCreate, NoteUpdate
from casedesk.app.services import note_service

router = APIRouter(prefix="/api", tags=["notes"])


@router.post("/cases/{case_id}/notes", response_model=NoteOut, status_code=201)
def create_note(
    case_id: str,
    payload: NoteCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return note_service.create_note(db, case_id, payload, actor)


@router.get("/cases/{case_id}/notes", response_model=NotePageOut)
def list_notes(
    case_id: str,
    search: Optional[str] = Query(default=None, max_length=100),
    pagination: Dict[str, Any] = Depends(pagination_params),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return note_service.list_notes(db, case_id, pagination, actor, search=search)


@router.get("/notes", response_model=NotePageOut)
def list_all_notes(
    search: Optional[str] = Query(default=None, max_length=100),
    pagination: Dict[str, Any] = Depends(pagination_params),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return note_service.list_all_notes(db, pagination, actor, search=search)


@router.get("/notes/{note_id}", response_model=NoteOut)
def get_note(note_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return note_service.get_note(db, note_id, actor)


@router.patch("/notes/{note_id}", response_model=NoteOut)
def update_note(
    note_id: str,
    payload: NoteUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return note_service.update_note(db, note_id, payload, actor)


@router.delete("/notes/{note_id}", status_code=204)
def delete_note(note_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    note_service.delete_note(db, note_id, actor)
    return Response(status_code=204)
