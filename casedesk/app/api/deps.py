# casedesk/app/api/deps.py
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from casedesk.app.db import get_db
from casedesk.app.domain.access_policy import Actor
from casedesk.app.models import User
from casedesk.app.services import user_service


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> User:
    """
    Pilot auth dependency.

    Reads identity from headers:
      - X-User-Id    (preferred)
      - X-User-Email (fallback)

    NOTE:
    - Users are never auto-provisioned: a role has to be assigned by a super
      admin first, so unknown identities get 401.
    - Token issuance and verification live in front of this service.
    """
    user_id = (request.headers.get("X-User-Id") or "").strip()
    email = (request.headers.get("X-User-Email") or "").strip()
    if not user_id and not email:
        raise HTTPException(status_code=401, detail="Missing X-User-Id or X-User-Email header")

    user = db.get(User, user_id) if user_id else user_service.find_by_email(db, email)
    if not user:
        raise HTTPException(status_code=401, detail="Unknown user")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="User is inactive")
    return user


def get_actor(user: User = Depends(get_current_user)) -> Actor:
    return Actor(id=user.id, role=user.role)


def pagination_params(
    page: int = Query(default=1),
    limit: int = Query(default=10),
    sort_by: Optional[str] = Query(default=None),
    sort_order: Optional[str] = Query(default=None),
) -> Dict[str, Any]:
    # bounds are checked by the Pagination contract so errors share one shape
    return {"page": page, "limit": limit, "sort_by": sort_by, "sort_order": sort_order}
