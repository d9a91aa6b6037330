from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from casedesk.app.domain import access_policy
from casedesk.app.domain.access_policy import LAWYER, SUPER_ADMIN, Actor
from casedesk.app.domain.contracts import UserCreate, UserStatusUpdate, parse_contract
from casedesk.app.domain.errors import AccessDeniedError, CaseValidationError, NotFoundError
from casedesk.app.models import User

logger = logging.getLogger(__name__)


def find_by_email(db: Session, email: str) -> Optional[User]:
    normalized = (email or "").strip().lower()
    if not normalized:
        return None
    return db.execute(select(User).where(User.email == normalized)).scalars().first()


def create_user(db: Session, data: Union[UserCreate, Mapping[str, Any]], actor: Actor) -> User:
    if not access_policy.can_manage_users(actor.role):
        raise AccessDeniedError("only super admins can create users")
    payload = parse_contract(UserCreate, data)
    if find_by_email(db, payload.email):
        raise CaseValidationError(f"a user with email '{payload.email}' already exists")

    user = User(
        email=payload.email,
        name=payload.name or payload.email.split("@")[0],
        role=payload.role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created user_id=%s role=%s by user_id=%s", user.id, user.role, actor.id)
    return user


def list_users(db: Session, actor: Actor, *, role: Optional[str] = None) -> List[User]:
    if not access_policy.is_elevated(actor.role):
        raise AccessDeniedError("only managers and super admins can list users")
    stmt = select(User).order_by(User.created_at.asc(), User.id.asc())
    if role:
        stmt = stmt.where(User.role == access_policy.normalize_role(role))
    return list(db.execute(stmt).scalars().all())


def set_user_status(
    db: Session,
    user_id: str,
    data: Union[UserStatusUpdate, Mapping[str, Any]],
    actor: Actor,
) -> User:
    payload = parse_contract(UserStatusUpdate, data)
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("user")
    denial = access_policy.can_change_user_status(actor.role, actor.id, user, payload.is_active)
    if denial:
        raise AccessDeniedError(denial.reason)

    user.is_active = payload.is_active
    db.commit()
    db.refresh(user)
    logger.info("Set user_id=%s is_active=%s by user_id=%s", user.id, user.is_active, actor.id)
    return user


def list_lawyers(db: Session) -> List[User]:
    """Active lawyers, the candidates for case assignment."""
    return list(
        db.execute(
            select(User)
            .where(User.role == LAWYER, User.is_active.is_(True))
            .order_by(User.name.asc(), User.id.asc())
        )
        .scalars()
        .all()
    )


def seed_super_admin(db: Session, email: str, name: Optional[str] = None) -> User:
    """Create the first super admin if no user has that email yet. Safe to rerun."""
    existing = find_by_email(db, email)
    if existing:
        return existing
    normalized = email.strip().lower()
    user = User(email=normalized, name=name or normalized.split("@")[0], role=SUPER_ADMIN)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Seeded super admin user_id=%s", user.id)
    return user
