from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
import datetime as dt
import threading
from typing import Iterator, Optional

from ledger_service.domain.account import Account, AccountStatus
from ledger_service.domain.errors import NotFound, Timeout
from ledger_service.domain.money import Money
from ledger_service.domain.transaction import Transaction
from ledger_service.repositories.ledger_store import (
    AccountConflict,
    DuplicateReference,
    StaleBalance,
    TransactionWindow,
    apply_window,
)


@dataclass
class _AccountSlot:
    account: Account
    log: list[Transaction] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock)


@dataclass
class InMemoryLedgerStore:
    """
    In-memory ledger.
    - one lock per account: writers on different accounts never contend
    - a registry lock guards the indexes (numbers, ids, emails, references)
    - every read returns immutable domain objects or fresh lists
    """
    lock_timeout: float = 10.0
    _slots: dict[str, _AccountSlot] = field(default_factory=dict)
    _ids: dict[str, str] = field(default_factory=dict)
    _emails: dict[str, str] = field(default_factory=dict)
    _account_refs: dict[str, str] = field(default_factory=dict)
    _tx_refs: dict[str, Transaction] = field(default_factory=dict)
    _registry: threading.Lock = field(default_factory=threading.Lock)

    @contextmanager
    def _hold(self, lock: threading.Lock) -> Iterator[None]:
        if not lock.acquire(timeout=self.lock_timeout):
            raise Timeout(f"ledger store lock not acquired within {self.lock_timeout}s")
        try:
            yield
        finally:
            lock.release()

    def _slot(self, account_number: str) -> _AccountSlot:
        slot = self._slots.get(account_number)
        if slot is None:
            raise NotFound("Account not found")
        return slot

    # -------- accounts --------

    def get_account(self, account_number: str) -> Account:
        return self._slot(account_number).account

    def get_account_by_id(self, account_id: str) -> Account:
        number = self._ids.get(account_id)
        if number is None:
            raise NotFound("Account not found")
        return self.get_account(number)

    def list_accounts(self, status: Optional[AccountStatus] = None) -> list[Account]:
        with self._hold(self._registry):
            accounts = [s.account for s in self._slots.values()]
        if status is not None:
            accounts = [a for a in accounts if a.status == status]
        return sorted(accounts, key=lambda a: (a.created_at, a.account_number))

    def find_account_by_email(self, email: str) -> Account | None:
        number = self._emails.get(email.strip().lower())
        return self._slots[number].account if number is not None else None

    def find_account_by_reference(self, reference: str) -> Account | None:
        number = self._account_refs.get(reference)
        return self._slots[number].account if number is not None else None

    def put_account(self, account: Account) -> None:
        with self._hold(self._registry):
            if account.account_number in self._slots:
                raise AccountConflict("number", account.account_number)
            if account.email in self._emails:
                raise AccountConflict("email", account.email)
            if account.creation_reference and account.creation_reference in self._account_refs:
                raise AccountConflict("reference", account.creation_reference)
            if account.id in self._ids:
                raise AccountConflict("id", account.id)

            self._slots[account.account_number] = _AccountSlot(account=account)
            self._ids[account.id] = account.account_number
            self._emails[account.email] = account.account_number
            if account.creation_reference:
                self._account_refs[account.creation_reference] = account.account_number

    def set_status(self, account_number: str, status: AccountStatus) -> Account:
        slot = self._slot(account_number)
        with self._hold(slot.lock):
            slot.account = slot.account.with_status(status, at=dt.datetime.now(dt.timezone.utc))
            return slot.account

    # -------- transactions --------

    def append_transaction(
        self,
        account_number: str,
        tx: Transaction,
        expected_prior_balance: Money,
        *,
        require_active: bool = True,
    ) -> tuple[Account, Transaction]:
        slot = self._slot(account_number)
        with self._hold(slot.lock):
            current = slot.account
            if current.balance != expected_prior_balance or (require_active and not current.is_active):
                raise StaleBalance(account_number, expected_prior_balance, current.balance)

            with self._hold(self._registry):
                if tx.reference in self._tx_refs:
                    raise DuplicateReference(tx.reference)
                committed = tx.committed_as(len(slot.log) + 1, self._commit_time(slot))
                self._tx_refs[committed.reference] = committed

            slot.log.append(committed)
            slot.account = current.with_balance(committed.balance_after, at=committed.timestamp)
            return slot.account, committed

    @staticmethod
    def _commit_time(slot: _AccountSlot) -> dt.datetime:
        # commit timestamps never go backwards within one account
        now = dt.datetime.now(dt.timezone.utc)
        if slot.log and slot.log[-1].timestamp > now:
            return slot.log[-1].timestamp
        return now

    def list_transactions(
        self, account_number: str, window: TransactionWindow | None = None
    ) -> list[Transaction]:
        slot = self._slot(account_number)
        return apply_window(list(slot.log), window)

    def find_transaction(self, reference: str) -> Transaction | None:
        return self._tx_refs.get(reference)
