from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Union

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from casedesk.app.domain import access_policy
from casedesk.app.domain.access_policy import Actor
from casedesk.app.domain.contracts import NoteCreate, NoteUpdate, Pagination, parse_contract
from casedesk.app.domain.errors import NotFoundError
from casedesk.app.models import Case, Note
from casedesk.app.services import case_service
from casedesk.app.services.case_repository import apply_scope
from casedesk.app.services.pagination import LIKE_ESCAPE, contains_pattern, paginate

SORT_COLUMNS = {
    "created_at": Note.created_at,
    "updated_at": Note.updated_at,
    "title": Note.title,
}


def _require_note(db: Session, note_id: str, actor: Actor) -> Note:
    note = db.get(Note, note_id)
    if not note:
        raise NotFoundError("note")
    scope = access_policy.can_list_scope(actor.role, actor.id)
    if not scope.allows(note.case.assigned_lawyer_id):
        raise NotFoundError("note")
    return note


def _search(stmt, search: Optional[str]):
    if search and search.strip():
        like = contains_pattern(search.strip())
        stmt = stmt.where(
            or_(Note.title.ilike(like, escape=LIKE_ESCAPE), Note.content.ilike(like, escape=LIKE_ESCAPE))
        )
    return stmt


def create_note(db: Session, case_id: str, data: Union[NoteCreate, Mapping[str, Any]], actor: Actor) -> Note:
    payload = parse_contract(NoteCreate, data)
    case = case_service.get_case(db, case_id, actor)
    note = Note(case_id=case.id, title=payload.title, content=payload.content)
    db.add(note)
    db.commit()
    db.refresh(note)
    return note


def list_notes(
    db: Session,
    case_id: str,
    pagination,
    actor: Actor,
    *,
    search: Optional[str] = None,
) -> Dict[str, Any]:
    case = case_service.get_case(db, case_id, actor)
    stmt = _search(select(Note).where(Note.case_id == case.id), search)
    return paginate(
        db,
        stmt,
        parse_contract(Pagination, pagination),
        sort_columns=SORT_COLUMNS,
        default_sort="created_at",
        default_order="desc",
        tiebreak=Note.id,
    )


def list_all_notes(db: Session, pagination, actor: Actor, *, search: Optional[str] = None) -> Dict[str, Any]:
    """Notes across every case the actor can see."""
    scope = access_policy.can_list_scope(actor.role, actor.id)
    stmt = apply_scope(select(Note).join(Case, Note.case_id == Case.id), scope)
    return paginate(
        db,
        _search(stmt, search),
        parse_contract(Pagination, pagination),
        sort_columns=SORT_COLUMNS,
        default_sort="created_at",
        default_order="desc",
        tiebreak=Note.id,
    )


def get_note(db: Session, note_id: str, actor: Actor) -> Note:
    return _require_note(db, note_id, actor)


def update_note(db: Session, note_id: str, data: Union[NoteUpdate, Mapping[str, Any]], actor: Actor) -> Note:
    changes = parse_contract(NoteUpdate, data).model_dump(exclude_unset=True, exclude_none=True)
    note = _require_note(db, note_id, actor)
    for key, value in changes.items():
        setattr(note, key, value)
    db.commit()
    db.refresh(note)
    return note


def delete_note(db: Session, note_id: str, actor: Actor) -> None:
    note = _require_note(db, note_id, actor)
    db.delete(note)
    db.commit()
