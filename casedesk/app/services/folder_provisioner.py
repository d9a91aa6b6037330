from __future__ import annotations

import logging
from typing import Any, Dict, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from casedesk.app.domain.errors import ProvisioningFailedError
from casedesk.app.folder_templates import DEFAULT_FOLDERS
from casedesk.app.models import Folder

logger = logging.getLogger(__name__)


def _insert_folder(db: Session, case_id: str, template: Dict[str, Any]) -> Folder:
    folder = Folder(
        case_id=case_id,
        name=template["name"],
        description=template["description"],
        type=template["type"],
    )
    db.add(folder)
    db.flush()
    return folder


def provision_defaults(db: Session, case_id: str) -> List[Folder]:
    """
    Create the default folder set for a case inside the caller's transaction.

    Nothing is committed here. On any store error the caller gets a
    ProvisioningFailedError and is expected to roll the whole case back.
    """
    created: List[Folder] = []
    for template in DEFAULT_FOLDERS:
        try:
            created.append(_insert_folder(db, case_id, template))
        except SQLAlchemyError as exc:
            raise ProvisioningFailedError(
                f"could not create default folder '{template['name']}' for case {case_id}"
            ) from exc
    logger.info("Provisioned %d default folders for case_id=%s", len(created), case_id)
    return created
