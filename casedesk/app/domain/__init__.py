"""Domain contracts, access policy and error types."""

from casedesk.app.domain.access_policy import Actor, CaseScope, Denial  # noqa: F401
from casedesk.app.domain.contracts import (  # noqa: F401
    CaseCreate,
    CaseFilters,
    CasePatch,
    Pagination,
)
from casedesk.app.domain.errors import (  # noqa: F401
    AccessDeniedError,
    CaseDeskError,
    CaseValidationError,
    DuplicateCaseNumberError,
    FolderRuleError,
    NotFoundError,
    ProvisioningFailedError,
)
