import os
import sys
from logging.config import fileConfig

from sqlalchemy import create_engine
from sqlalchemy import pool

# --- add project root to sys.path (so "ledger_service.*" imports work)
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from alembic import context

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

from ledger_service.db_base import Base

# Ensure all models are registered on Base.metadata for autogenerate
from ledger_service.repositories.sql_ledger_store import AccountRow, TransactionRow  # noqa: F401

target_metadata = Base.metadata


def _database_url() -> str:
    url = os.getenv("LEDGER_DATABASE_URL", "").strip() or config.get_main_option("sqlalchemy.url")
    if not url:
        raise RuntimeError("LEDGER_DATABASE_URL is required to run migrations.")
    return url


def run_migrations_offline() -> None:
    """Emit the migration SQL without connecting to a database."""
    context.configure(
        url=_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(_database_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
