from __future__ import annotations

import secrets
import string
import time
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import delete, false, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from casedesk.app.domain.access_policy import CaseScope
from casedesk.app.domain.contracts import CaseCreate, CaseFilters, Pagination
from casedesk.app.domain.errors import CaseValidationError, DuplicateCaseNumberError, NotFoundError
from casedesk.app.models import Case, User
from casedesk.app.services.pagination import LIKE_ESCAPE, contains_pattern, paginate

BASE36_ALPHABET = string.digits + string.ascii_lowercase
TEMP_SUFFIX_LENGTH = 8
RECENT_CASES_LIMIT = 5

UPDATABLE_FIELDS = {
    "full_name",
    "phone_number",
    "case_number",
    "status",
    "assigned_lawyer_id",
    "court",
    "notes",
    "appointment_date",
}

SORT_COLUMNS = {
    "created_at": Case.created_at,
    "updated_at": Case.updated_at,
    "full_name": Case.full_name,
    "case_number": Case.case_number,
    "status": Case.status,
    "court": Case.court,
    "appointment_date": Case.appointment_date,
}


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(BASE36_ALPHABET[rem])
    return "".join(reversed(digits))


def generate_temp_case_number(*, now_ms: Optional[int] = None) -> str:
    """Placeholder case number: TEMP-<base36 ms timestamp>-<random base36>, upper-cased."""
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    suffix = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(TEMP_SUFFIX_LENGTH))
    return f"TEMP-{_to_base36(now_ms)}-{suffix}".upper()


def apply_scope(stmt, scope: CaseScope):
    if scope.unrestricted:
        return stmt
    if scope.lawyer_id is None:
        return stmt.where(false())
    return stmt.where(Case.assigned_lawyer_id == scope.lawyer_id)


def _is_case_number_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower()
    return "case_number" in message


def _flush(db: Session, case_number: str) -> None:
    # The unique constraint is the real guard; pre-checks only give a nicer error.
    try:
        db.flush()
    except IntegrityError as exc:
        if _is_case_number_violation(exc):
            raise DuplicateCaseNumberError(case_number) from exc
        raise


def case_number_exists(db: Session, case_number: str, *, exclude_id: Optional[str] = None) -> bool:
    stmt = select(Case.id).where(Case.case_number == case_number)
    if exclude_id:
        stmt = stmt.where(Case.id != exclude_id)
    return db.execute(stmt.limit(1)).first() is not None


def create(db: Session, data: CaseCreate, *, created_by: str) -> Case:
    """Insert a case row in the caller's transaction. Folders are not created here."""
    if data.case_number:
        if case_number_exists(db, data.case_number):
            raise DuplicateCaseNumberError(data.case_number)
        case_number = data.case_number
    else:
        case_number = generate_temp_case_number()

    case = Case(
        full_name=data.full_name,
        phone_number=data.phone_number,
        case_number=case_number,
        status=data.status,
        assigned_lawyer_id=data.assigned_lawyer_id,
        court=data.court,
        notes=data.notes,
        appointment_date=data.appointment_date,
        created_by=created_by,
    )
    db.add(case)
    _flush(db, case_number)
    return case


def find_by_id(db: Session, case_id: str, scope: CaseScope) -> Case:
    # Out-of-scope and missing ids look the same to the caller.
    stmt = apply_scope(select(Case).where(Case.id == case_id), scope)
    case = db.execute(stmt).scalars().first()
    if not case:
        raise NotFoundError("case")
    return case


def _apply_filters(stmt, filters: CaseFilters, lawyer):
    if filters.status:
        stmt = stmt.where(Case.status == filters.status)
    if filters.assigned_lawyer_id:
        stmt = stmt.where(Case.assigned_lawyer_id == filters.assigned_lawyer_id)
    if filters.lawyer:
        stmt = stmt.where(lawyer.name.ilike(contains_pattern(filters.lawyer), escape=LIKE_ESCAPE))
    if filters.case_number:
        stmt = stmt.where(Case.case_number.ilike(contains_pattern(filters.case_number), escape=LIKE_ESCAPE))
    if filters.start_date:
        stmt = stmt.where(Case.created_at >= filters.start_date)
    if filters.search:
        like = contains_pattern(filters.search)
        stmt = stmt.where(
            or_(
                Case.full_name.ilike(like, escape=LIKE_ESCAPE),
                Case.case_number.ilike(like, escape=LIKE_ESCAPE),
                lawyer.name.ilike(like, escape=LIKE_ESCAPE),
            )
        )
    return stmt


def list_cases(db: Session, scope: CaseScope, filters: CaseFilters, pagination: Pagination) -> Dict[str, Any]:
    lawyer = aliased(User)
    stmt = select(Case).outerjoin(lawyer, Case.assigned_lawyer_id == lawyer.id)
    stmt = apply_scope(stmt, scope)
    stmt = _apply_filters(stmt, filters, lawyer)
    return paginate(
        db,
        stmt,
        pagination,
        sort_columns=SORT_COLUMNS,
        default_sort="created_at",
        default_order="desc",
        tiebreak=Case.id,
    )


def update(db: Session, case_id: str, changes: Mapping[str, Any], scope: CaseScope) -> Case:
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise CaseValidationError(f"fields cannot be updated: {', '.join(sorted(unknown))}")

    case = find_by_id(db, case_id, scope)
    new_number = changes.get("case_number")
    if new_number and new_number != case.case_number:
        if case_number_exists(db, new_number, exclude_id=case.id):
            raise DuplicateCaseNumberError(new_number)

    for key, value in changes.items():
        setattr(case, key, value)
    _flush(db, new_number or case.case_number)
    return case


def delete_case(db: Session, case_id: str) -> None:
    # Folders, files and notes go with the case through ON DELETE CASCADE.
    result = db.execute(delete(Case).where(Case.id == case_id))
    if not result.rowcount:
        raise NotFoundError("case")


def statistics(db: Session, scope: CaseScope) -> Dict[str, Any]:
    total = int(db.execute(apply_scope(select(func.count(Case.id)), scope)).scalar_one() or 0)

    status_rows = db.execute(
        apply_scope(select(Case.status, func.count(Case.id)), scope)
        .group_by(Case.status)
        .order_by(Case.status.asc())
    ).all()

    lawyer_rows = db.execute(
        apply_scope(
            select(Case.assigned_lawyer_id, User.name, func.count(Case.id))
            .join(User, Case.assigned_lawyer_id == User.id),
            scope,
        )
        .group_by(Case.assigned_lawyer_id, User.name)
        .order_by(func.count(Case.id).desc(), Case.assigned_lawyer_id.asc())
    ).all()

    recent: List[Case] = (
        db.execute(
            apply_scope(select(Case), scope)
            .order_by(Case.created_at.desc(), Case.id.desc())
            .limit(RECENT_CASES_LIMIT)
        )
        .scalars()
        .all()
    )

    return {
        "total": total,
        "by_status": [{"status": status, "count": int(count)} for status, count in status_rows],
        "by_lawyer": [
            {"assigned_lawyer_id": lawyer_id, "lawyer_name": name, "count": int(count)}
            for lawyer_id, name, count in lawyer_rows
        ],
        "recent": [
            {
                "id": row.id,
                "full_name": row.full_name,
                "case_number": row.case_number,
                "status": row.status,
                "created_at": row.created_at,
            }
            for row in recent
        ],
    }
