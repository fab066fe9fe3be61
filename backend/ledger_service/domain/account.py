from __future__ import annotations

from dataclasses import dataclass, replace
import datetime as dt
from enum import Enum
import re
from typing import TYPE_CHECKING, Optional
from uuid import uuid4

from ledger_service.domain.money import Money

if TYPE_CHECKING:
    from ledger_service.domain.transaction import Transaction


ACCOUNT_NUMBER_RE = re.compile(r"^[0-9]{10}$")
EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+\-]+@[A-Za-z0-9\-]+(\.[A-Za-z0-9\-]+)*\.[A-Za-z]{2,}$")

HOLDER_NAME_MIN = 2
HOLDER_NAME_MAX = 100


class AccountType(str, Enum):
    SAVINGS = "SAVINGS"
    CHECKING = "CHECKING"


class AccountStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"
    FROZEN = "FROZEN"


def _utc(value: dt.datetime, field: str) -> dt.datetime:
    if not isinstance(value, dt.datetime):
        raise ValueError(f"account.{field} must be a datetime")
    if value.tzinfo is None:
        raise ValueError(f"account.{field} must be timezone-aware (UTC recommended)")
    return value.astimezone(dt.timezone.utc)


@dataclass(frozen=True, slots=True)
class Account:
    """
    Domain account.
    - balance: current balance, never negative (no overdraft)
    - opening_balance: balance supplied at creation; the transaction log
      explains everything between opening_balance and balance
    """
    id: str
    account_number: str
    holder_name: str
    email: str
    opening_balance: Money
    balance: Money
    account_type: AccountType
    status: AccountStatus
    created_at: dt.datetime
    updated_at: dt.datetime
    creation_reference: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.id or not self.id.strip():
            raise ValueError("account.id must be non-empty")
        if not isinstance(self.account_number, str) or not ACCOUNT_NUMBER_RE.match(self.account_number):
            raise ValueError("Account number must be 10 digits")
        if not isinstance(self.holder_name, str) or not self.holder_name.strip():
            raise ValueError("Account holder name is required")
        if not HOLDER_NAME_MIN <= len(self.holder_name.strip()) <= HOLDER_NAME_MAX:
            raise ValueError(f"Name must be between {HOLDER_NAME_MIN} and {HOLDER_NAME_MAX} characters")
        if not isinstance(self.email, str) or not EMAIL_RE.match(self.email):
            raise ValueError("Invalid email format")
        if not isinstance(self.opening_balance, Money):
            raise ValueError("account.opening_balance must be Money")
        if not isinstance(self.balance, Money):
            raise ValueError("account.balance must be Money")
        if not isinstance(self.account_type, AccountType):
            raise ValueError("Account type must be SAVINGS or CHECKING")
        if not isinstance(self.status, AccountStatus):
            raise ValueError("account.status must be an AccountStatus")

        object.__setattr__(self, "created_at", _utc(self.created_at, "created_at"))
        object.__setattr__(self, "updated_at", _utc(self.updated_at, "updated_at"))

    @staticmethod
    def open(
        *,
        account_number: str,
        holder_name: str,
        email: str,
        opening_balance: Money,
        account_type: AccountType,
        creation_reference: Optional[str] = None,
        id: Optional[str] = None,
        now: Optional[dt.datetime] = None,
    ) -> "Account":
        ts = now or dt.datetime.now(dt.timezone.utc)
        return Account(
            id=id or str(uuid4()),
            account_number=account_number.strip() if isinstance(account_number, str) else account_number,
            holder_name=holder_name.strip() if isinstance(holder_name, str) else holder_name,
            email=email.strip().lower() if isinstance(email, str) else email,
            opening_balance=opening_balance,
            balance=opening_balance,
            account_type=account_type,
            status=AccountStatus.ACTIVE,
            created_at=ts,
            updated_at=ts,
            creation_reference=creation_reference,
        )

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE

    def with_balance(self, balance: Money, at: dt.datetime) -> "Account":
        return replace(self, balance=balance, updated_at=at)

    def with_status(self, status: AccountStatus, at: dt.datetime) -> "Account":
        return replace(self, status=status, updated_at=at)

    def as_created(self) -> "Account":
        """The account exactly as it was returned by its creation request."""
        return replace(
            self,
            balance=self.opening_balance,
            status=AccountStatus.ACTIVE,
            updated_at=self.created_at,
        )

    def as_of(self, tx: "Transaction") -> "Account":
        """The account as it was right after `tx` committed."""
        return replace(self, balance=tx.balance_after, updated_at=tx.timestamp)
