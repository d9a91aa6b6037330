from __future__ import annotations

import os
from typing import Optional


def seed_on_startup() -> bool:
    return os.getenv("CASEDESK_SEED_ON_STARTUP") == "1"


def seed_admin_email() -> Optional[str]:
    email = (os.getenv("CASEDESK_SEED_ADMIN_EMAIL") or "").strip().lower()
    return email or None
