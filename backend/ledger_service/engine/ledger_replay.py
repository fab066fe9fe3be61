from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from ledger_service.domain.account import Account
from ledger_service.domain.money import Money
from ledger_service.domain.transaction import Transaction


@dataclass(frozen=True)
class TransactionWithBalance:
    transaction: Transaction
    replayed_balance: Decimal

    @property
    def matches_snapshot(self) -> bool:
        return self.replayed_balance == self.transaction.balance_after.amount


@dataclass(frozen=True)
class LedgerCheck:
    account_number: str
    stored_balance: Decimal
    replayed_balance: Decimal
    snapshot_mismatches: list[Transaction]
    negative_after: list[Transaction]

    @property
    def ok(self) -> bool:
        return (
            self.stored_balance == self.replayed_balance
            and not self.snapshot_mismatches
            and not self.negative_after
        )


def _sorted_transactions(transactions: Iterable[Transaction]) -> list[Transaction]:
    return sorted(transactions, key=lambda t: (t.sequence, t.timestamp))


def replay_ledger(
    transactions: list[Transaction],
    *,
    opening_balance: Money,
) -> list[TransactionWithBalance]:
    if not transactions:
        return []

    txs = _sorted_transactions(transactions)

    expected_account = txs[0].account_number
    for t in txs:
        if t.account_number != expected_account:
            raise ValueError("mixed account_number in replay_ledger")

    balance = opening_balance.amount
    out: list[TransactionWithBalance] = []
    for t in txs:
        balance = balance + t.delta
        out.append(TransactionWithBalance(transaction=t, replayed_balance=balance))

    return out


def verify_ledger(account: Account, transactions: list[Transaction]) -> LedgerCheck:
    """Replay the log from the opening balance and compare with what is stored."""
    replayed = replay_ledger(transactions, opening_balance=account.opening_balance)
    final = replayed[-1].replayed_balance if replayed else account.opening_balance.amount

    return LedgerCheck(
        account_number=account.account_number,
        stored_balance=account.balance.amount,
        replayed_balance=final,
        snapshot_mismatches=[r.transaction for r in replayed if not r.matches_snapshot],
        negative_after=[r.transaction for r in replayed if r.replayed_balance < 0],
    )
