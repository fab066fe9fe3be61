from __future__ import annotations

from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from ledger_service.settings import get_settings


def _default_sqlite_url() -> str:
    # fallback dev: backend/data/ledger.db
    settings = get_settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    db_path = settings.data_dir / "ledger.db"
    return f"sqlite:///{db_path.as_posix()}"


def get_database_url() -> str:
    return get_settings().database_url or _default_sqlite_url()


def make_engine(url: str, *, timeout_seconds: float = 10.0) -> Engine:
    connect_args: dict[str, object] = {}
    kwargs: dict[str, object] = {}
    if url.startswith("sqlite"):
        # sqlite needs check_same_thread for FastAPI sync access;
        # timeout bounds the wait on the database write lock
        connect_args = {"check_same_thread": False, "timeout": timeout_seconds}
    else:
        kwargs["pool_timeout"] = timeout_seconds
        kwargs["pool_pre_ping"] = True

    return create_engine(url, future=True, connect_args=connect_args, **kwargs)


@lru_cache
def get_engine() -> Engine:
    return make_engine(get_database_url(), timeout_seconds=get_settings().store_timeout_seconds)


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    return sessionmaker(bind=get_engine(), autoflush=False, autocommit=False, future=True)


def new_session() -> Session:
    return get_session_factory()()


def init_db(engine: Engine | None = None) -> None:
    # import here to avoid circular imports
    from ledger_service.repositories.sql_ledger_store import AccountRow, TransactionRow  # noqa: F401
    from ledger_service.db_base import Base

    Base.metadata.create_all(engine or get_engine())
