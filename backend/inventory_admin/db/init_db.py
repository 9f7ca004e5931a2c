import logging

from inventory_admin.db.base import Base
from inventory_admin.db.session import engine
import inventory_admin.auth.models  # noqa

logger = logging.getLogger(__name__)


def init_db():
    # Alembic owns production schema changes; this only fills in missing tables.
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured: %s", sorted(Base.metadata.tables))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
