from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from casedesk.app.api.deps import get_actor, pagination_params
from casedesk.app.api.schemas import FolderDetailOut, FolderOut, FolderPageOut
from casedesk.app.db import get_db
from casedesk.app.domain.access_policy import Actor
from casedesk.app.domain.contracts import FolderCreate, FolderUpdate
from casedesk.app.services import folder_service

router = APIRouter(prefix="/api", tags=["folders"])


class FolderTypeCountOut(BaseModel):
    type: str
    count: int


class FolderFileCountOut(BaseModel):
    id: str
    name: str
    type: str
    file_count: int


class FolderStatisticsOut(BaseModel):
    total: int
    by_type: List[FolderTypeCountOut]
    folders: List[FolderFileCountOut]


@router.post("/cases/{case_id}/folders", response_model=FolderOut, status_code=201)
def create_folder(
    case_id: str,
    payload: FolderCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return folder_service.create_folder(db, case_id, payload, actor)


@router.get("/cases/{case_id}/folders", response_model=FolderPageOut)
def list_folders(
    case_id: str,
    pagination: Dict[str, Any] = Depends(pagination_params),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return folder_service.list_folders(db, case_id, pagination, actor)


@router.get("/cases/{case_id}/folders/search", response_model=FolderPageOut)
def search_folders(
    case_id: str,
    q: Optional[str] = Query(default=None, max_length=100),
    pagination: Dict[str, Any] = Depends(pagination_params),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return folder_service.search_folders(db, case_id, q or "", pagination, actor)


@router.get("/cases/{case_id}/folders/statistics", response_model=FolderStatisticsOut)
def folder_statistics(case_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return folder_service.folder_statistics(db, case_id, actor)


@router.get("/folders/{folder_id}", response_model=FolderDetailOut)
def get_folder(folder_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return folder_service.get_folder(db, folder_id, actor)


@router.patch("/folders/{folder_id}", response_model=FolderOut)
def update_folder(
    folder_id: str,
    payload: FolderUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return folder_service.update_folder(db, folder_id, payload, actor)


@router.delete("/folders/{folder_id}", status_code=204)
def delete_folder(folder_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    folder_service.delete_folder(db, folder_id, actor)
    return Response(status_code=204)
