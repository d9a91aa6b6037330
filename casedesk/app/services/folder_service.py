from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Union

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from casedesk.app.domain import access_policy
from casedesk.app.domain.access_policy import Actor
from casedesk.app.domain.contracts import FolderCreate, FolderUpdate, Pagination, parse_contract
from casedesk.app.domain.errors import FolderRuleError, NotFoundError
from casedesk.app.models import CaseFile, Folder
from casedesk.app.services import case_service
from casedesk.app.services.pagination import LIKE_ESCAPE, contains_pattern, paginate

logger = logging.getLogger(__name__)

DEFAULT_FOLDER_TYPE = "default"
CUSTOM_FOLDER_TYPE = "custom"

SORT_COLUMNS = {
    "name": Folder.name,
    "type": Folder.type,
    "created_at": Folder.created_at,
    "updated_at": Folder.updated_at,
}


def require_folder(db: Session, folder_id: str, actor: Actor) -> Folder:
    """Load a folder the actor may see through its case; anything else is NotFound."""
    folder = db.get(Folder, folder_id)
    if not folder:
        raise NotFoundError("folder")
    scope = access_policy.can_list_scope(actor.role, actor.id)
    if not scope.allows(folder.case.assigned_lawyer_id):
        raise NotFoundError("folder")
    return folder


def _name_taken(db: Session, case_id: str, name: str, *, exclude_id: Optional[str] = None) -> bool:
    stmt = select(Folder.id).where(Folder.case_id == case_id, Folder.name == name)
    if exclude_id:
        stmt = stmt.where(Folder.id != exclude_id)
    return db.execute(stmt.limit(1)).first() is not None


def _flush_folder(db: Session, name: str) -> None:
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise FolderRuleError(f"a folder named '{name}' already exists for this case") from exc


def create_folder(
    db: Session,
    case_id: str,
    data: Union[FolderCreate, Mapping[str, Any]],
    actor: Actor,
) -> Folder:
    payload = parse_contract(FolderCreate, data)
    case = case_service.get_case(db, case_id, actor)
    if _name_taken(db, case.id, payload.name):
        raise FolderRuleError(f"a folder named '{payload.name}' already exists for this case")

    folder = Folder(
        case_id=case.id,
        name=payload.name,
        description=payload.description,
        type=CUSTOM_FOLDER_TYPE,
    )
    db.add(folder)
    _flush_folder(db, payload.name)
    db.commit()
    db.refresh(folder)
    return folder


def get_folder(db: Session, folder_id: str, actor: Actor) -> Folder:
    return require_folder(db, folder_id, actor)


def list_folders(db: Session, case_id: str, pagination, actor: Actor) -> Dict[str, Any]:
    case = case_service.get_case(db, case_id, actor)
    stmt = select(Folder).where(Folder.case_id == case.id)
    return paginate(
        db,
        stmt,
        parse_contract(Pagination, pagination),
        sort_columns=SORT_COLUMNS,
        default_sort="name",
        default_order="asc",
        tiebreak=Folder.id,
    )


def search_folders(db: Session, case_id: str, term: str, pagination, actor: Actor) -> Dict[str, Any]:
    case = case_service.get_case(db, case_id, actor)
    like = contains_pattern((term or "").strip())
    stmt = select(Folder).where(
        Folder.case_id == case.id,
        or_(
            Folder.name.ilike(like, escape=LIKE_ESCAPE),
            Folder.description.ilike(like, escape=LIKE_ESCAPE),
        ),
    )
    return paginate(
        db,
        stmt,
        parse_contract(Pagination, pagination),
        sort_columns=SORT_COLUMNS,
        default_sort="name",
        default_order="asc",
        tiebreak=Folder.id,
    )


def update_folder(
    db: Session,
    folder_id: str,
    data: Union[FolderUpdate, Mapping[str, Any]],
    actor: Actor,
) -> Folder:
    changes = parse_contract(FolderUpdate, data).model_dump(exclude_unset=True)
    folder = require_folder(db, folder_id, actor)

    new_name = changes.get("name")
    if new_name and new_name != folder.name:
        if folder.type == DEFAULT_FOLDER_TYPE:
            raise FolderRuleError("default folders cannot be renamed")
        if _name_taken(db, folder.case_id, new_name, exclude_id=folder.id):
            raise FolderRuleError(f"a folder named '{new_name}' already exists for this case")
        folder.name = new_name
    if "description" in changes:
        folder.description = changes["description"]

    _flush_folder(db, folder.name)
    db.commit()
    db.refresh(folder)
    return folder


def count_files(db: Session, folder_id: str) -> int:
    return int(
        db.execute(select(func.count(CaseFile.id)).where(CaseFile.folder_id == folder_id)).scalar_one() or 0
    )


def delete_folder(db: Session, folder_id: str, actor: Actor) -> None:
    folder = require_folder(db, folder_id, actor)
    if folder.type == DEFAULT_FOLDER_TYPE:
        raise FolderRuleError("default folders cannot be deleted")
    if count_files(db, folder.id):
        raise FolderRuleError("cannot delete a folder that contains files")

    db.delete(folder)
    try:
        db.commit()
    except IntegrityError as exc:
        # a file landed after the count; the files.folder_id FK refuses the delete
        db.rollback()
        raise FolderRuleError("cannot delete a folder that contains files") from exc
    logger.info("Deleted folder_id=%s by user_id=%s", folder_id, actor.id)


def folder_statistics(db: Session, case_id: str, actor: Actor) -> Dict[str, Any]:
    case = case_service.get_case(db, case_id, actor)
    type_rows = db.execute(
        select(Folder.type, func.count(Folder.id))
        .where(Folder.case_id == case.id)
        .group_by(Folder.type)
        .order_by(Folder.type.asc())
    ).all()
    folder_rows = db.execute(
        select(Folder.id, Folder.name, Folder.type, func.count(CaseFile.id))
        .outerjoin(CaseFile, CaseFile.folder_id == Folder.id)
        .where(Folder.case_id == case.id)
        .group_by(Folder.id, Folder.name, Folder.type)
        .order_by(Folder.name.asc())
    ).all()
    return {
        "total": len(folder_rows),
        "by_type": [{"type": folder_type, "count": int(count)} for folder_type, count in type_rows],
        "folders": [
            {"id": folder_id, "name": name, "type": folder_type, "file_count": int(count)}
            for folder_id, name, folder_type, count in folder_rows
        ],
    }
