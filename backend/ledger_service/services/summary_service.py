from __future__ import annotations

from ledger_service.engine.transaction_summary import TransactionSummary, compute_summary
from ledger_service.repositories.ledger_store import LedgerStore, TransactionWindow


class SummaryService:
    """Summaries are recomputed from the log on every call; nothing is cached."""

    def __init__(self, store: LedgerStore) -> None:
        self._store = store

    def get_summary(self, account_number: str, window: TransactionWindow | None = None) -> TransactionSummary:
        # list_transactions raises NotFound for unknown accounts
        txs = self._store.list_transactions(account_number.strip(), window)
        return compute_summary(txs)
