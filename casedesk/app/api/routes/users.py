from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from casedesk.app.api.deps import get_actor, get_current_user
from casedesk.app.api.schemas import UserOut
from casedesk.app.db import get_db
from casedesk.app.domain.access_policy import Actor
from casedesk.app.domain.contracts import UserCreate, UserStatusUpdate
from casedesk.app.models import User
from casedesk.app.services import user_service

router = APIRouter(prefix="/api", tags=["users"])


@router.get("/me", response_model=UserOut)
def get_me(user: User = Depends(get_current_user)):
    return user


@router.post("/users", response_model=UserOut, status_code=201)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return user_service.create_user(db, payload, actor)


@router.get("/users", response_model=List[UserOut])
def list_users(
    role: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return user_service.list_users(db, actor, role=role)


@router.get("/users/lawyers", response_model=List[UserOut])
def list_lawyers(db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return user_service.list_lawyers(db)


@router.patch("/users/{user_id}/status", response_model=UserOut)
def set_user_status(
    user_id: str,
    payload: UserStatusUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    return user_service.set_user_status(db, user_id, payload, actor)
