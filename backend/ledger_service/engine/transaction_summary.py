from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from ledger_service.domain.money import ZERO, quantize_money
from ledger_service.domain.transaction import Transaction, TransactionStatus


@dataclass(frozen=True)
class TransactionSummary:
    total_deposits: Decimal
    total_withdrawals: Decimal
    net_balance: Decimal
    total_transactions: int


def compute_summary(transactions: Iterable[Transaction]) -> TransactionSummary:
    """
    Fold over committed records:
    - deposits = DEPOSIT + TRANSFER_IN amounts
    - withdrawals = WITHDRAWAL + TRANSFER_OUT amounts
    FAILED records carry no balance effect and are not counted.
    Reversal records count like any other record of their type, so a
    reversed pair nets to zero.
    """
    deposits = ZERO
    withdrawals = ZERO
    count = 0

    for t in transactions:
        if t.status == TransactionStatus.FAILED:
            continue
        count += 1
        if t.transaction_type.is_credit:
            deposits += t.amount.amount
        else:
            withdrawals += t.amount.amount

    deposits = quantize_money(deposits)
    withdrawals = quantize_money(withdrawals)
    return TransactionSummary(
        total_deposits=deposits,
        total_withdrawals=withdrawals,
        net_balance=deposits - withdrawals,
        total_transactions=count,
    )
