from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Sequence

from ledger_service.domain.transaction import Transaction, TransactionStatus, TransactionType
from ledger_service.repositories.ledger_store import TransactionWindow

SortBy = Literal["timestamp", "amount", "type"]
SortDir = Literal["asc", "desc"]


@dataclass(frozen=True)
class TransactionQuery:
    window: TransactionWindow | None = None
    types: set[TransactionType] | None = None
    statuses: set[TransactionStatus] | None = None
    q: str | None = None  # contains on description / reference (case-insensitive)
    sort_by: SortBy = "timestamp"
    sort_dir: SortDir = "desc"


def apply_transaction_query(txs: Sequence[Transaction], q: TransactionQuery) -> list[Transaction]:
    out = list(txs)

    # -------- filters --------
    if q.window is not None:
        out = [t for t in out if q.window.contains(t.timestamp)]

    if q.types is not None:
        out = [t for t in out if t.transaction_type in q.types]

    if q.statuses is not None:
        out = [t for t in out if t.status in q.statuses]

    if q.q is not None and q.q.strip():
        needle = q.q.strip().casefold()
        out = [
            t for t in out
            if needle in (t.description or "").casefold() or needle in t.reference.casefold()
        ]

    # -------- deterministic sort --------
    reverse = (q.sort_dir == "desc")

    # primary key by sort_by, then commit order as tie-breaker
    if q.sort_by == "amount":
        key = lambda t: (t.amount.amount, t.sequence)
    elif q.sort_by == "type":
        key = lambda t: (t.transaction_type.value, t.sequence)
    else:
        key = lambda t: (t.timestamp, t.sequence)

    out.sort(key=key, reverse=reverse)
    return out
