"""Seed the permission catalog, an admin and a sample employee.

Usage (from backend/):
    python -m scripts.seed
    SEED_ADMIN_PASSWORD=... python scripts/seed.py
"""

import logging
import os
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from inventory_admin.auth import repo  # noqa: E402
from inventory_admin.auth.models import ROLE_ADMIN, ROLE_EMPLOYEE  # noqa: E402
from inventory_admin.auth.permissions import PRODUCT_EDIT, PRODUCT_VIEW  # noqa: E402
from inventory_admin.auth.security import hash_password  # noqa: E402
from inventory_admin.db.init_db import init_db  # noqa: E402
from inventory_admin.db.session import session_scope  # noqa: E402

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("seed")

SEED_USERS = [
    {
        "email": os.getenv("SEED_ADMIN_EMAIL", "admin@example.com"),
        "password": os.getenv("SEED_ADMIN_PASSWORD", "Admin@123"),
        "name": "Administrator",
        "role": ROLE_ADMIN,
        "permission_codes": [],
    },
    {
        "email": "employee@example.com",
        "password": os.getenv("SEED_EMPLOYEE_PASSWORD", "Employee@123"),
        "name": "Sample Employee",
        "role": ROLE_EMPLOYEE,
        "permission_codes": [PRODUCT_VIEW, PRODUCT_EDIT],
    },
]


def main() -> int:
    init_db()
    with session_scope() as db:
        catalog = repo.ensure_permission_catalog(db)
        logger.info("Permission catalog: %s", [p.code for p in catalog])

        for entry in SEED_USERS:
            if repo.get_user_by_email(db, entry["email"]):
                logger.info("User %s already exists, skipping", entry["email"])
                continue
            user = repo.create_user(
                db,
                email=entry["email"],
                password_hash=hash_password(entry["password"]),
                name=entry["name"],
                role=entry["role"],
                permission_codes=entry["permission_codes"],
            )
            logger.info("Created %s user %s (id=%s)", user.role, user.email, user.id)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
