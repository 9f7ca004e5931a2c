import os
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import create_engine, pool

# backend/alembic/env.py -> parents[1] == backend/
sys.path.append(str(Path(__file__).resolve().parents[1]))

# Registers users, permissions, user_permissions and refresh_tokens on Base.metadata.
import inventory_admin.auth.models  # noqa: F401, E402
from inventory_admin.db.base import Base  # noqa: E402

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def database_url() -> str:
    # Same variable the app reads; alembic.ini is only the local fallback.
    return os.getenv("DATABASE_URL") or config.get_main_option("sqlalchemy.url")


def _configure_kwargs(url: str) -> dict:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        # sqlite cannot ALTER most constraints in place
        "render_as_batch": url.startswith("sqlite"),
    }


def run_migrations_offline() -> None:
    url = database_url()
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_kwargs(url),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = database_url()
    engine = create_engine(url, poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, **_configure_kwargs(url))
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
