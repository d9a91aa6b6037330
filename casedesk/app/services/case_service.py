"""
Case workflows: the layer the HTTP routes call.

Each operation runs validate -> authorize/scope -> execute -> (provision on
create) and owns its transaction: it commits on success and rolls back on
any failure, so a caller never sees half-written state.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Union

from sqlalchemy.orm import Session

from casedesk.app.domain import access_policy
from casedesk.app.domain.access_policy import Actor, LAWYER
from casedesk.app.domain.contracts import CaseCreate, CaseFilters, CasePatch, Pagination, parse_contract
from casedesk.app.domain.errors import (
    AccessDeniedError,
    CaseValidationError,
    ProvisioningFailedError,
)
from casedesk.app.models import Case, User
from casedesk.app.services import audit_service, case_repository, folder_provisioner

logger = logging.getLogger(__name__)

CaseInput = Union[CaseCreate, Mapping[str, Any]]
PatchInput = Union[CasePatch, Mapping[str, Any]]


def _require_lawyer(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if not user or not user.is_active or access_policy.normalize_role(user.role) != LAWYER:
        raise CaseValidationError(f"assigned lawyer '{user_id}' is not an active lawyer")
    return user


def create_case(db: Session, data: CaseInput, actor: Actor) -> Case:
    """
    Create a case together with its default folders.

    Any authenticated role may create. The case insert and the folder inserts
    share one transaction; if provisioning fails the transaction is rolled back
    and no case row survives.
    """
    payload = parse_contract(CaseCreate, data)
    if payload.assigned_lawyer_id:
        _require_lawyer(db, payload.assigned_lawyer_id)

    try:
        case = case_repository.create(db, payload, created_by=actor.id)
        folder_provisioner.provision_defaults(db, case.id)
        audit_service.log_case_event(
            db,
            case_id=case.id,
            event_type="case.created",
            actor=actor,
            after=audit_service.snapshot_case(case),
        )
        db.commit()
    except ProvisioningFailedError as exc:
        logger.warning("Default folder provisioning failed, rolling back case insert: %s", exc)
        try:
            db.rollback()
        except Exception as rollback_error:
            logger.exception("Rollback after provisioning failure also failed")
            raise ProvisioningFailedError(exc.message, compensation_error=rollback_error) from exc
        raise
    except Exception:
        db.rollback()
        raise

    db.refresh(case)
    logger.info("Created case_id=%s case_number=%s by user_id=%s", case.id, case.case_number, actor.id)
    return case


def get_case(db: Session, case_id: str, actor: Actor) -> Case:
    scope = access_policy.can_list_scope(actor.role, actor.id)
    case = case_repository.find_by_id(db, case_id, scope)
    if not access_policy.can_view_case(actor.role, actor.id, case):
        raise AccessDeniedError("access denied to this case")
    return case


def list_cases(
    db: Session,
    filters: Union[CaseFilters, Mapping[str, Any], None],
    pagination: Union[Pagination, Mapping[str, Any], None],
    actor: Actor,
) -> Dict[str, Any]:
    parsed_filters = parse_contract(CaseFilters, filters)
    parsed_pagination = parse_contract(Pagination, pagination)
    scope = access_policy.can_list_scope(actor.role, actor.id)
    return case_repository.list_cases(db, scope, parsed_filters, parsed_pagination)


def search_cases(
    db: Session,
    query: Optional[str],
    filters: Union[CaseFilters, Mapping[str, Any], None],
    pagination: Union[Pagination, Mapping[str, Any], None],
    actor: Actor,
) -> Dict[str, Any]:
    parsed_filters = parse_contract(CaseFilters, filters)
    if query is not None:
        parsed_filters = parse_contract(CaseFilters, {**parsed_filters.model_dump(), "search": query})
    return list_cases(db, parsed_filters, pagination, actor)


def list_cases_by_status(db: Session, status: str, pagination, actor: Actor) -> Dict[str, Any]:
    return list_cases(db, {"status": status}, pagination, actor)


def list_cases_by_lawyer(db: Session, lawyer_id: str, pagination, actor: Actor) -> Dict[str, Any]:
    return list_cases(db, {"assigned_lawyer_id": lawyer_id}, pagination, actor)


def update_case(db: Session, case_id: str, patch: PatchInput, actor: Actor) -> Case:
    changes = parse_contract(CasePatch, patch).changes()
    scope = access_policy.can_list_scope(actor.role, actor.id)
    case = case_repository.find_by_id(db, case_id, scope)

    denial = access_policy.can_update_case(actor.role, actor.id, case, changes)
    if denial:
        logger.warning("Denied update of case_id=%s for user_id=%s: %s", case_id, actor.id, denial.reason)
        raise AccessDeniedError(denial.reason)

    if changes.get("assigned_lawyer_id") and changes["assigned_lawyer_id"] != case.assigned_lawyer_id:
        _require_lawyer(db, changes["assigned_lawyer_id"])

    before = audit_service.snapshot_case(case)
    try:
        case = case_repository.update(db, case_id, changes, scope)
        audit_service.log_case_event(
            db,
            case_id=case.id,
            event_type="case.updated",
            actor=actor,
            before=before,
            after=audit_service.snapshot_case(case),
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(case)
    return case


def delete_case(db: Session, case_id: str, actor: Actor) -> None:
    if not access_policy.can_delete_case(actor.role):
        logger.warning("Denied delete of case_id=%s for user_id=%s role=%s", case_id, actor.id, actor.role)
        raise AccessDeniedError("only managers and super admins can delete cases")

    case = case_repository.find_by_id(db, case_id, access_policy.UNRESTRICTED)
    before = audit_service.snapshot_case(case)
    try:
        audit_service.log_case_event(db, case_id=case_id, event_type="case.deleted", actor=actor, before=before)
        case_repository.delete_case(db, case_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Deleted case_id=%s by user_id=%s", case_id, actor.id)


def get_statistics(db: Session, actor: Actor) -> Dict[str, Any]:
    scope = access_policy.can_list_scope(actor.role, actor.id)
    return case_repository.statistics(db, scope)


def check_case_number(db: Session, case_number: str) -> bool:
    return case_repository.case_number_exists(db, case_number.strip())


def case_history(db: Session, case_id: str, actor: Actor, *, limit: int = 100, cursor: Optional[str] = None) -> Dict[str, Any]:
    get_case(db, case_id, actor)
    return audit_service.list_case_events(db, case_id, limit=limit, cursor=cursor)
