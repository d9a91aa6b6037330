import logging
from typing import Optional

from casedesk.app.api.config import seed_admin_email
from casedesk.app.db import SessionLocal
from casedesk.app.models import User
from casedesk.app.services.user_service import seed_super_admin

logger = logging.getLogger(__name__)


def seed_from_env() -> Optional[User]:
    email = seed_admin_email()
    if not email:
        logger.info("CASEDESK_SEED_ADMIN_EMAIL not set; skipping admin seed")
        return None
    db = SessionLocal()
    try:
        return seed_super_admin(db, email)
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    seed_from_env()
