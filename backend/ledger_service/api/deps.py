from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import Depends

from ledger_service.repositories.in_memory_ledger_store import InMemoryLedgerStore
from ledger_service.repositories.ledger_store import LedgerStore
from ledger_service.services.account_manager import AccountManager
from ledger_service.services.summary_service import SummaryService
from ledger_service.services.transaction_processor import TransactionProcessor
from ledger_service.settings import Settings, get_settings

logger = logging.getLogger(__name__)


@lru_cache
def get_store() -> LedgerStore:
    # If LEDGER_DATABASE_URL is set -> SQL store (Postgres/SQLite)
    settings = get_settings()
    if settings.uses_sql:
        from ledger_service.repositories.sql_ledger_store import SqlLedgerStore

        return SqlLedgerStore()

    logger.warning("LEDGER_DATABASE_URL not set: using the in-memory ledger store (data is lost on restart)")
    return InMemoryLedgerStore(lock_timeout=settings.store_timeout_seconds)


def get_account_manager(store: LedgerStore = Depends(get_store)) -> AccountManager:
    return AccountManager(store)


def get_processor(
    store: LedgerStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> TransactionProcessor:
    return TransactionProcessor(store, max_retries=settings.max_retries)


def get_summary_service(store: LedgerStore = Depends(get_store)) -> SummaryService:
    return SummaryService(store)
