from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Union

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from casedesk.app.domain import access_policy
from casedesk.app.domain.access_policy import Actor
from casedesk.app.domain.contracts import FileCreate, FileUpdate, Pagination, parse_contract
from casedesk.app.domain.errors import NotFoundError
from casedesk.app.models import CaseFile
from casedesk.app.services.folder_service import require_folder
from casedesk.app.services.pagination import LIKE_ESCAPE, contains_pattern, paginate

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "uploaded_at": CaseFile.uploaded_at,
    "updated_at": CaseFile.updated_at,
    "file_name": CaseFile.file_name,
    "file_size": CaseFile.file_size,
}


def _require_file(db: Session, file_id: str, actor: Actor) -> CaseFile:
    row = db.get(CaseFile, file_id)
    if not row:
        raise NotFoundError("file")
    scope = access_policy.can_list_scope(actor.role, actor.id)
    if not scope.allows(row.folder.case.assigned_lawyer_id):
        raise NotFoundError("file")
    return row


def register_file(
    db: Session,
    folder_id: str,
    data: Union[FileCreate, Mapping[str, Any]],
    actor: Actor,
) -> CaseFile:
    """Record an already stored document under a folder."""
    payload = parse_contract(FileCreate, data)
    folder = require_folder(db, folder_id, actor)
    row = CaseFile(
        case_id=folder.case_id,
        folder_id=folder.id,
        file_name=payload.file_name,
        file_path=payload.file_path,
        description=payload.description,
        file_size=payload.file_size,
        mime_type=payload.mime_type,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Registered file_id=%s in folder_id=%s", row.id, folder.id)
    return row


def list_files(db: Session, folder_id: str, pagination, actor: Actor) -> Dict[str, Any]:
    folder = require_folder(db, folder_id, actor)
    return paginate(
        db,
        select(CaseFile).where(CaseFile.folder_id == folder.id),
        parse_contract(Pagination, pagination),
        sort_columns=SORT_COLUMNS,
        default_sort="uploaded_at",
        default_order="desc",
        tiebreak=CaseFile.id,
    )


def search_files(db: Session, folder_id: str, term: str, pagination, actor: Actor) -> Dict[str, Any]:
    folder = require_folder(db, folder_id, actor)
    like = contains_pattern((term or "").strip())
    stmt = select(CaseFile).where(
        CaseFile.folder_id == folder.id,
        or_(
            CaseFile.file_name.ilike(like, escape=LIKE_ESCAPE),
            CaseFile.description.ilike(like, escape=LIKE_ESCAPE),
        ),
    )
    return paginate(
        db,
        stmt,
        parse_contract(Pagination, pagination),
        sort_columns=SORT_COLUMNS,
        default_sort="uploaded_at",
        default_order="desc",
        tiebreak=CaseFile.id,
    )


def file_statistics(db: Session, folder_id: str, actor: Actor) -> Dict[str, Any]:
    """
    File totals for one folder.

    by_type groups on mime_type (None for files recorded without one);
    total_size is 0 for an empty folder.
    """
    folder = require_folder(db, folder_id, actor)
    rows = db.execute(
        select(CaseFile.mime_type, func.count(CaseFile.id))
        .where(CaseFile.folder_id == folder.id)
        .group_by(CaseFile.mime_type)
        .order_by(func.count(CaseFile.id).desc(), CaseFile.mime_type.asc())
    ).all()
    total_size = db.execute(
        select(func.coalesce(func.sum(CaseFile.file_size), 0)).where(CaseFile.folder_id == folder.id)
    ).scalar_one()
    return {
        "total_files": sum(int(count) for _, count in rows),
        "by_type": [{"mime_type": mime_type, "count": int(count)} for mime_type, count in rows],
        "total_size": int(total_size or 0),
    }


def get_file(db: Session, file_id: str, actor: Actor) -> CaseFile:
    return _require_file(db, file_id, actor)


def update_file(
    db: Session,
    file_id: str,
    data: Union[FileUpdate, Mapping[str, Any]],
    actor: Actor,
) -> CaseFile:
    changes = parse_contract(FileUpdate, data).model_dump(exclude_unset=True)
    row = _require_file(db, file_id, actor)
    if changes.get("file_name"):
        row.file_name = changes["file_name"]
    if "description" in changes:
        row.description = changes["description"]
    db.commit()
    db.refresh(row)
    return row


def delete_file(db: Session, file_id: str, actor: Actor) -> None:
    # Only the record goes; removing the stored bytes is the storage layer's job.
    row = _require_file(db, file_id, actor)
    db.delete(row)
    db.commit()
