"""Delete revoked and expired refresh-token rows.

Safe to run at any time; refresh validity never depends on these rows being
gone.
"""

import logging
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from inventory_admin.auth.ledger import RefreshTokenLedger  # noqa: E402
from inventory_admin.db.session import session_scope  # noqa: E402

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("purge_refresh_tokens")


def main() -> int:
    with session_scope() as db:
        removed = RefreshTokenLedger(db).purge_stale()
    logger.info("Removed %s stale refresh token rows", removed)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
