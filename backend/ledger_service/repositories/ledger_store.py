from __future__ import annotations

from dataclasses import dataclass
import datetime as dt
from typing import Optional, Protocol, Sequence

from ledger_service.domain.account import Account, AccountStatus
from ledger_service.domain.money import Money
from ledger_service.domain.transaction import Transaction


class StoreSignal(Exception):
    """
    Store-level outcomes the services react to.
    They are never returned to API callers as-is.
    """


class AccountConflict(StoreSignal):
    def __init__(self, field: str, value: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"account {field} '{value}' already exists")


class StaleBalance(StoreSignal):
    def __init__(self, account_number: str, expected: Money, actual: Money) -> None:
        self.account_number = account_number
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"stale balance for account '{account_number}': expected {expected}, found {actual}"
        )


class DuplicateReference(StoreSignal):
    def __init__(self, reference: str) -> None:
        self.reference = reference
        super().__init__(f"transaction reference '{reference}' already committed")


@dataclass(frozen=True)
class TransactionWindow:
    start: dt.datetime | None = None  # inclusive
    end: dt.datetime | None = None  # inclusive

    def __post_init__(self) -> None:
        for name in ("start", "end"):
            value = getattr(self, name)
            if value is not None and value.tzinfo is None:
                object.__setattr__(self, name, value.replace(tzinfo=dt.timezone.utc))
        if self.start is not None and self.end is not None and self.start > self.end:
            raise ValueError("window start must be <= end")

    def contains(self, ts: dt.datetime) -> bool:
        if self.start is not None and ts < self.start:
            return False
        if self.end is not None and ts > self.end:
            return False
        return True


def apply_window(txs: Sequence[Transaction], window: TransactionWindow | None) -> list[Transaction]:
    if window is None:
        return list(txs)
    return [t for t in txs if window.contains(t.timestamp)]


class LedgerStore(Protocol):
    def get_account(self, account_number: str) -> Account:
        """Raise NotFound if unknown."""
        ...

    def get_account_by_id(self, account_id: str) -> Account:
        """Raise NotFound if unknown."""
        ...

    def list_accounts(self, status: Optional[AccountStatus] = None) -> list[Account]:
        ...

    def find_account_by_email(self, email: str) -> Account | None:
        ...

    def find_account_by_reference(self, reference: str) -> Account | None:
        ...

    def put_account(self, account: Account) -> None:
        """Raise AccountConflict if number, email or creation reference exists."""
        ...

    def append_transaction(
        self,
        account_number: str,
        tx: Transaction,
        expected_prior_balance: Money,
        *,
        require_active: bool = True,
    ) -> tuple[Account, Transaction]:
        """
        Compare-and-swap commit: only if the stored balance still equals
        expected_prior_balance (and the account is ACTIVE when required),
        set balance := tx.balance_after and append tx with the next sequence.
        Raise StaleBalance otherwise, DuplicateReference if tx.reference exists.
        """
        ...

    def list_transactions(
        self, account_number: str, window: TransactionWindow | None = None
    ) -> list[Transaction]:
        """Commit order (sequence ascending)."""
        ...

    def find_transaction(self, reference: str) -> Transaction | None:
        ...

    def set_status(self, account_number: str, status: AccountStatus) -> Account:
        ...
