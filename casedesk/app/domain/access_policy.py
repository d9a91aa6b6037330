"""
Role-based access decisions for cases.

Every authorization check in the services goes through these functions. They
are pure: no store access, no exceptions. Denials come back as values and the
caller decides how to surface them.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

LAWYER = "LAWYER"
MANAGER = "MANAGER"
SUPER_ADMIN = "SUPER_ADMIN"

ROLES = {LAWYER, MANAGER, SUPER_ADMIN}
ELEVATED_ROLES = {MANAGER, SUPER_ADMIN}


@dataclass(frozen=True)
class Actor:
    id: str
    role: str


@dataclass(frozen=True)
class CaseScope:
    """
    Which cases a caller may see.

    unrestricted=True matches every case. Otherwise only cases whose
    assigned_lawyer_id equals lawyer_id match; lawyer_id=None matches nothing.
    """

    unrestricted: bool = False
    lawyer_id: Optional[str] = None

    def allows(self, assigned_lawyer_id: Optional[str]) -> bool:
        if self.unrestricted:
            return True
        return self.lawyer_id is not None and assigned_lawyer_id == self.lawyer_id


UNRESTRICTED = CaseScope(unrestricted=True)
NOTHING = CaseScope()


@dataclass(frozen=True)
class Denial:
    reason: str


def normalize_role(role: Optional[str]) -> str:
    return (role or "").strip().upper()


def is_elevated(role: Optional[str]) -> bool:
    return normalize_role(role) in ELEVATED_ROLES


def can_view_case(role: Optional[str], caller_id: str, case: Any) -> bool:
    if is_elevated(role):
        return True
    if normalize_role(role) == LAWYER:
        return case.assigned_lawyer_id is not None and case.assigned_lawyer_id == caller_id
    return False


def can_list_scope(role: Optional[str], caller_id: str) -> CaseScope:
    if is_elevated(role):
        return UNRESTRICTED
    if normalize_role(role) == LAWYER:
        return CaseScope(lawyer_id=caller_id)
    return NOTHING


def can_update_case(
    role: Optional[str],
    caller_id: str,
    case: Any,
    patch: Mapping[str, Any],
) -> Optional[Denial]:
    """Return None when the update is allowed, a Denial otherwise.

    patch holds only the fields the caller actually sent, so a key that is
    present with value None means "clear it".
    """
    if not can_view_case(role, caller_id, case):
        return Denial("access denied")
    if normalize_role(role) == LAWYER and "assigned_lawyer_id" in patch:
        if patch["assigned_lawyer_id"] != case.assigned_lawyer_id:
            return Denial("lawyers cannot change the assigned lawyer")
    return None


def can_delete_case(role: Optional[str]) -> bool:
    return is_elevated(role)


def can_manage_users(role: Optional[str]) -> bool:
    return normalize_role(role) == SUPER_ADMIN


def can_change_user_status(role: Optional[str], caller_id: str, target: Any, is_active: bool) -> Optional[Denial]:
    """Super admins may toggle anyone but cannot deactivate themselves; managers only toggle lawyers."""
    role = normalize_role(role)
    if role == SUPER_ADMIN:
        if target.id == caller_id and not is_active:
            return Denial("super admins cannot deactivate themselves")
        return None
    if role == MANAGER:
        if normalize_role(target.role) != LAWYER:
            return Denial("managers can only change the status of lawyers")
        return None
    return Denial("only managers and super admins can change user status")


def can_view_appointment(role: Optional[str], caller_id: str, appointment: Any) -> bool:
    return appointment.user_id == caller_id or is_elevated(role)


def can_modify_appointment(caller_id: str, appointment: Any) -> bool:
    """Only the user who booked an appointment edits or removes it."""
    return appointment.user_id == caller_id
