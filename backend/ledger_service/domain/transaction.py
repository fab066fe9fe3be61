from __future__ import annotations

from dataclasses import dataclass, replace
import datetime as dt
from decimal import Decimal
from enum import Enum
import random
import time
from typing import Optional
from uuid import UUID, uuid4

from ledger_service.domain.money import Money

REFERENCE_MAX_LEN = 64
# caller tokens leave room for the "-OUT" / "-IN" / "-REV" suffixes
CLIENT_REFERENCE_MAX_LEN = 48
TRANSFER_OUT_SUFFIX = "-OUT"
TRANSFER_IN_SUFFIX = "-IN"
REVERSAL_SUFFIX = "-REV"
# derived references (transfer legs, reversals) end with one of these
RESERVED_SUFFIXES = (TRANSFER_OUT_SUFFIX, TRANSFER_IN_SUFFIX, REVERSAL_SUFFIX)


class TransactionType(str, Enum):
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    TRANSFER_IN = "TRANSFER_IN"
    TRANSFER_OUT = "TRANSFER_OUT"

    @property
    def is_credit(self) -> bool:
        return self in (TransactionType.DEPOSIT, TransactionType.TRANSFER_IN)

    @property
    def is_debit(self) -> bool:
        return not self.is_credit

    def inverse(self) -> "TransactionType":
        return _INVERSE[self]


_INVERSE = {
    TransactionType.DEPOSIT: TransactionType.WITHDRAWAL,
    TransactionType.WITHDRAWAL: TransactionType.DEPOSIT,
    TransactionType.TRANSFER_IN: TransactionType.TRANSFER_OUT,
    TransactionType.TRANSFER_OUT: TransactionType.TRANSFER_IN,
}

DEFAULT_DESCRIPTIONS = {
    TransactionType.DEPOSIT: "Deposit to account",
    TransactionType.WITHDRAWAL: "Withdrawal from account",
    TransactionType.TRANSFER_IN: "Transfer received",
    TransactionType.TRANSFER_OUT: "Transfer sent",
}


class TransactionStatus(str, Enum):
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REVERSED = "REVERSED"


def generate_reference() -> str:
    # TXN + epoch millis + 3 random digits
    return f"TXN{int(time.time() * 1000)}{random.randint(0, 999):03d}"


def normalize_reference(reference: Optional[str]) -> Optional[str]:
    """None/blank -> None; otherwise stripped, bounded token."""
    if reference is None:
        return None
    if not isinstance(reference, str):
        raise ValueError("reference must be a string")
    ref = reference.strip()
    if not ref:
        return None
    if len(ref) > REFERENCE_MAX_LEN:
        raise ValueError(f"reference must be at most {REFERENCE_MAX_LEN} characters")
    return ref


def client_reference(reference: Optional[str]) -> Optional[str]:
    """
    Caller-supplied token: bounded so the derived suffixes still fit, and
    never ending with a reserved suffix, so it cannot collide with a
    transfer leg or a reversal.
    """
    ref = normalize_reference(reference)
    if ref is None:
        return None
    if len(ref) > CLIENT_REFERENCE_MAX_LEN:
        raise ValueError(f"reference must be at most {CLIENT_REFERENCE_MAX_LEN} characters")
    if ref.upper().endswith(RESERVED_SUFFIXES):
        raise ValueError(f"reference must not end with {', '.join(RESERVED_SUFFIXES)}")
    return ref


@dataclass(frozen=True)
class Transaction:
    id: UUID
    account_number: str
    sequence: int
    transaction_type: TransactionType
    amount: Money
    balance_after: Money
    description: Optional[str]
    status: TransactionStatus
    reference: str
    timestamp: dt.datetime
    counterparty_account_number: Optional[str] = None
    reverses_reference: Optional[str] = None

    @staticmethod
    def create(
        *,
        account_number: str,
        transaction_type: TransactionType,
        amount: Money,
        balance_after: Money,
        description: Optional[str] = None,
        status: TransactionStatus = TransactionStatus.COMPLETED,
        reference: Optional[str] = None,
        sequence: int = 0,
        counterparty_account_number: Optional[str] = None,
        reverses_reference: Optional[str] = None,
        id: Optional[UUID] = None,
        timestamp: Optional[dt.datetime] = None,
    ) -> "Transaction":
        """
        sequence=0 means "not committed yet": the store assigns the real
        per-account sequence on append.
        """
        if not isinstance(account_number, str) or account_number.strip() == "":
            raise ValueError("account_number cannot be empty")

        if not isinstance(transaction_type, TransactionType):
            raise ValueError("transaction_type must be a TransactionType")

        if not isinstance(amount, Money):
            raise ValueError("amount must be Money")
        if amount.is_zero():
            raise ValueError("Transaction amount cannot be zero")

        if not isinstance(balance_after, Money):
            raise ValueError("balance_after must be Money")

        if not isinstance(status, TransactionStatus):
            raise ValueError("status must be a TransactionStatus")

        if not isinstance(sequence, int) or sequence < 0:
            raise ValueError("sequence must be an integer >= 0")

        if description is None:
            norm_description = DEFAULT_DESCRIPTIONS[transaction_type]
        else:
            if not isinstance(description, str):
                raise ValueError("description must be a string")
            norm_description = description.strip() or DEFAULT_DESCRIPTIONS[transaction_type]

        final_reference = normalize_reference(reference) or generate_reference()

        if timestamp is None:
            final_timestamp = dt.datetime.now(dt.timezone.utc)
        else:
            if not isinstance(timestamp, dt.datetime):
                raise ValueError("timestamp must be a datetime")
            if timestamp.tzinfo is None:
                raise ValueError("timestamp must be timezone-aware (UTC recommended)")
            final_timestamp = timestamp.astimezone(dt.timezone.utc)

        return Transaction(
            id=id or uuid4(),
            account_number=account_number.strip(),
            sequence=sequence,
            transaction_type=transaction_type,
            amount=amount,
            balance_after=balance_after,
            description=norm_description,
            status=status,
            reference=final_reference,
            timestamp=final_timestamp,
            counterparty_account_number=counterparty_account_number,
            reverses_reference=reverses_reference,
        )

    @property
    def delta(self) -> Decimal:
        """Signed effect of this record on the account balance."""
        if self.status == TransactionStatus.FAILED:
            return Decimal("0.00")
        if self.transaction_type.is_credit:
            return self.amount.amount
        return -self.amount.amount

    @property
    def is_reversal(self) -> bool:
        return self.reverses_reference is not None

    @property
    def reversal_reference(self) -> str:
        return f"{self.reference}{REVERSAL_SUFFIX}"

    def is_reversal_of(self, original: "Transaction") -> bool:
        return (
            self.reverses_reference == original.reference
            and self.account_number == original.account_number
        )

    def committed_as(self, sequence: int, timestamp: dt.datetime) -> "Transaction":
        """Copy stamped by the store at commit time."""
        return replace(self, sequence=sequence, timestamp=timestamp)
