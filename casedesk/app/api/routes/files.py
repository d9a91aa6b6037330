from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from casedesk.app.api.deps import get_actor, pagination_params
from casedesk.app.api.schemas import FileOut, FilePageOut
from casedesk.app.db import get_db
from casedesk.app.domain.access_policy import Actor
from casedesk.app.domain.contracts import FileCreate, FileUpdate
from casedesk.app.services import file_service

router = APIRouter(prefix="/api", tags=["files"])


class MimeTypeCountOut(BaseModel):
    mime_type: Optional[str] = None
    count: int


class FileStatisticsOut(BaseModel):
    total_files: int
    by_type: List[MimeTypeCountOut]
    total_size: int


@router.post("/folders/{folder_id}/files", response_model=FileOut, status_code=201)
def register_file(
    folder_id: str,
    payload: FileCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return file_service.register_file(db, folder_id, payload, actor)


@router.get("/folders/{folder_id}/files", response_model=FilePageOut)
def list_files(
    folder_id: str,
    pagination: Dict[str, Any] = Depends(pagination_params),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return file_service.list_files(db, folder_id, pagination, actor)


@router.get("/folders/{folder_id}/files/search", response_model=FilePageOut)
def search_files(
    folder_id: str,
    q: Optional[str] = Query(default=None, max_length=100),
    pagination: Dict[str, Any] = Depends(pagination_params),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return file_service.search_files(db, folder_id, q or "", pagination, actor)


@router.get("/folders/{folder_id}/files/statistics", response_model=FileStatisticsOut)
def file_statistics(folder_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return file_service.file_statistics(db, folder_id, actor)


@router.get("/files/{file_id}", response_model=FileOut)
def get_file(file_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return file_service.get_file(db, file_id, actor)


@router.patch("/files/{file_id}", response_model=FileOut)
def update_file(
    file_id: str,
    payload: FileUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return file_service.update_file(db, file_id, payload, actor)


@router.delete("/files/{file_id}", status_code=204)
def delete_file(file_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    file_service.delete_file(db, file_id, actor)
    return Response(status_code=204)
