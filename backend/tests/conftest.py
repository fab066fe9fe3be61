import pytest
from fastapi.testclient import TestClient

from ledger_service.api.deps import get_store
from ledger_service.api.main import app
from ledger_service.repositories.in_memory_ledger_store import InMemoryLedgerStore
from ledger_service.services.account_manager import AccountManager
from ledger_service.services.transaction_processor import TransactionProcessor


@pytest.fixture
def store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore(lock_timeout=5.0)


@pytest.fixture
def manager(store) -> AccountManager:
    return AccountManager(store)


@pytest.fixture
def processor(store) -> TransactionProcessor:
    return TransactionProcessor(store, max_retries=5)


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
