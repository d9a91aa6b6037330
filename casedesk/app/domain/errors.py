from __future__ import annotations

from typing import Optional


class CaseDeskError(Exception):
    """Base for errors the HTTP layer turns into a status code."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CaseValidationError(CaseDeskError):
    """Raised for malformed input, before the store is touched."""

    status_code = 400
    code = "validation_error"


class NotFoundError(CaseDeskError):
    status_code = 404
    code = "not_found"

    def __init__(self, resource: str = "resource"):
        super().__init__(f"{resource} not found")
        self.resource = resource


class AccessDeniedError(CaseDeskError):
    status_code = 403
    code = "access_denied"

    def __init__(self, reason: str = "access denied"):
        super().__init__(reason)
        self.reason = reason


class DuplicateCaseNumberError(CaseDeskError):
    status_code = 409
    code = "duplicate_case_number"

    def __init__(self, case_number: str):
        super().__init__(f"case number '{case_number}' already exists")
        self.case_number = case_number


class ProvisioningFailedError(CaseDeskError):
    """
    Raised when default folder creation fails for a new case.

    compensation_error is set when undoing the case insert failed as well;
    both failures are then visible to the caller.
    """

    status_code = 500
    code = "provisioning_failed"

    def __init__(self, message: str, *, compensation_error: Optional[BaseException] = None):
        if compensation_error is not None:
            message = f"{message}; compensation failed: {compensation_error}"
        super().__init__(message)
        self.compensation_error = compensation_error


class FolderRuleError(CaseDeskError):
    """Raised when a folder operation breaks a folder invariant."""

    status_code = 400
    code = "folder_rule"
