from __future__ import annotations

from contextlib import contextmanager
import datetime as dt
from decimal import Decimal
import logging
from typing import Iterator, Optional
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint, func, select, update
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Mapped, Session, mapped_column, sessionmaker

from ledger_service.db_base import Base
from ledger_service.domain.account import Account, AccountStatus, AccountType
from ledger_service.domain.errors import NotFound, Timeout, Unavailable
from ledger_service.domain.money import Money
from ledger_service.domain.transaction import Transaction, TransactionStatus, TransactionType
from ledger_service.repositories.ledger_store import (
    AccountConflict,
    DuplicateReference,
    StaleBalance,
    TransactionWindow,
    apply_window,
)

logger = logging.getLogger(__name__)


class AccountRow(Base):
    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    account_number: Mapped[str] = mapped_column(String(10), unique=True, index=True, nullable=False)
    holder_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    opening_balance: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)
    balance: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)
    account_type: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), index=True, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    creation_reference: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)


class TransactionRow(Base):
    __tablename__ = "transactions"

    __table_args__ = (
        UniqueConstraint("account_number", "sequence", name="uq_transactions_account_sequence"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    account_number: Mapped[str] = mapped_column(
        String(10),
        ForeignKey("accounts.account_number", ondelete="RESTRICT"),
        index=True,
        nullable=False,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    transaction_type: Mapped[str] = mapped_column(String(16), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    reference: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    timestamp: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), index=True, nullable=False)
    counterparty_account_number: Mapped[str | None] = mapped_column(String(10), nullable=True)
    reverses_reference: Mapped[str | None] = mapped_column(String(64), index=True, nullable=True)


class SqlLedgerStore:
    """
    SQL implementation of the LedgerStore protocol (SQLite / PostgreSQL).
    - append_transaction is a conditional UPDATE on (account_number, balance[, status])
      followed by the INSERT, in one database transaction
    - driver timeouts surface as Timeout, connectivity failures as Unavailable
    """

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        if session_factory is None:
            from ledger_service.db import get_session_factory, init_db

            init_db()
            session_factory = get_session_factory()
        self._sessions = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with self._sessions() as s:
                yield s
        except sa_exc.TimeoutError as exc:
            logger.error("ledger store timed out: %s", exc)
            raise Timeout() from exc
        except (sa_exc.OperationalError, sa_exc.InterfaceError) as exc:
            logger.error("ledger store unavailable: %s", exc)
            raise Unavailable() from exc

    # -------- accounts --------

    def get_account(self, account_number: str) -> Account:
        with self._session() as s:
            row = s.execute(
                select(AccountRow).where(AccountRow.account_number == account_number)
            ).scalar_one_or_none()
            if row is None:
                raise NotFound("Account not found")
            return self._account_to_domain(row)

    def get_account_by_id(self, account_id: str) -> Account:
        with self._session() as s:
            row = s.get(AccountRow, account_id)
            if row is None:
                raise NotFound("Account not found")
            return self._account_to_domain(row)

    def list_accounts(self, status: Optional[AccountStatus] = None) -> list[Account]:
        with self._session() as s:
            stmt = select(AccountRow).order_by(AccountRow.created_at.asc(), AccountRow.account_number.asc())
            if status is not None:
                stmt = stmt.where(AccountRow.status == status.value)
            rows = s.execute(stmt).scalars().all()
            return [self._account_to_domain(r) for r in rows]

    def find_account_by_email(self, email: str) -> Account | None:
        with self._session() as s:
            row = s.execute(
                select(AccountRow).where(AccountRow.email == email.strip().lower())
            ).scalar_one_or_none()
            return self._account_to_domain(row) if row else None

    def find_account_by_reference(self, reference: str) -> Account | None:
        with self._session() as s:
            row = s.execute(
                select(AccountRow).where(AccountRow.creation_reference == reference)
            ).scalar_one_or_none()
            return self._account_to_domain(row) if row else None

    def put_account(self, account: Account) -> None:
        with self._session() as s:
            s.add(self._account_to_row(account))
            try:
                s.commit()
            except sa_exc.IntegrityError as exc:
                s.rollback()
                raise self._which_conflict(s, account) from exc

    def set_status(self, account_number: str, status: AccountStatus) -> Account:
        with self._session() as s:
            row = s.execute(
                select(AccountRow).where(AccountRow.account_number == account_number)
            ).scalar_one_or_none()
            if row is None:
                raise NotFound("Account not found")
            row.status = status.value
            row.updated_at = dt.datetime.now(dt.timezone.utc)
            s.commit()
            s.refresh(row)
            return self._account_to_domain(row)

    # -------- transactions --------

    def append_transaction(
        self,
        account_number: str,
        tx: Transaction,
        expected_prior_balance: Money,
        *,
        require_active: bool = True,
    ) -> tuple[Account, Transaction]:
        with self._session() as s:
            if self._reference_exists(s, tx.reference):
                raise DuplicateReference(tx.reference)

            now = dt.datetime.now(dt.timezone.utc)
            stmt = (
                update(AccountRow)
                .where(AccountRow.account_number == account_number)
                .where(AccountRow.balance == expected_prior_balance.amount)
                .values(balance=tx.balance_after.amount, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if require_active:
                stmt = stmt.where(AccountRow.status == AccountStatus.ACTIVE.value)

            result = s.execute(stmt)
            if result.rowcount != 1:
                s.rollback()
                current = s.execute(
                    select(AccountRow).where(AccountRow.account_number == account_number)
                ).scalar_one_or_none()
                if current is None:
                    raise NotFound("Account not found")
                raise StaleBalance(
                    account_number,
                    expected_prior_balance,
                    Money(amount=current.balance),
                )

            # the conditional UPDATE holds the account row: sequence and clock are ours
            max_seq, latest = s.execute(
                select(func.max(TransactionRow.sequence), func.max(TransactionRow.timestamp))
                .where(TransactionRow.account_number == account_number)
            ).one()
            committed_at = self._commit_time(now, latest)
            if committed_at != now:
                s.execute(
                    update(AccountRow)
                    .where(AccountRow.account_number == account_number)
                    .values(updated_at=committed_at)
                    .execution_options(synchronize_session=False)
                )
            committed = tx.committed_as(int(max_seq or 0) + 1, committed_at)
            s.add(self._tx_to_row(committed))

            try:
                s.commit()
            except sa_exc.IntegrityError as exc:
                s.rollback()
                if self._reference_exists(s, tx.reference):
                    raise DuplicateReference(tx.reference) from exc
                current = s.execute(
                    select(AccountRow).where(AccountRow.account_number == account_number)
                ).scalar_one()
                raise StaleBalance(account_number, expected_prior_balance, Money(amount=current.balance)) from exc

            row = s.execute(
                select(AccountRow).where(AccountRow.account_number == account_number)
            ).scalar_one()
            return self._account_to_domain(row), committed

    def list_transactions(
        self, account_number: str, window: TransactionWindow | None = None
    ) -> list[Transaction]:
        with self._session() as s:
            exists = s.execute(
                select(AccountRow.id).where(AccountRow.account_number == account_number)
            ).scalar_one_or_none()
            if exists is None:
                raise NotFound("Account not found")

            rows = s.execute(
                select(TransactionRow)
                .where(TransactionRow.account_number == account_number)
                .order_by(TransactionRow.sequence.asc())
            ).scalars().all()
            return apply_window([self._tx_to_domain(r) for r in rows], window)

    def find_transaction(self, reference: str) -> Transaction | None:
        with self._session() as s:
            row = s.execute(
                select(TransactionRow).where(TransactionRow.reference == reference)
            ).scalar_one_or_none()
            return self._tx_to_domain(row) if row else None

    # -------- helpers --------

    @staticmethod
    def _reference_exists(s: Session, reference: str) -> bool:
        found = s.execute(
            select(TransactionRow.id).where(TransactionRow.reference == reference)
        ).scalar_one_or_none()
        return found is not None

    @staticmethod
    def _which_conflict(s: Session, account: Account) -> AccountConflict:
        checks = [
            ("number", AccountRow.account_number, account.account_number),
            ("email", AccountRow.email, account.email),
            ("reference", AccountRow.creation_reference, account.creation_reference),
        ]
        for field, column, value in checks:
            if value is None:
                continue
            hit = s.execute(select(AccountRow.id).where(column == value)).scalar_one_or_none()
            if hit is not None:
                return AccountConflict(field, value)
        return AccountConflict("id", account.id)

    @classmethod
    def _commit_time(cls, now: dt.datetime, latest: Optional[dt.datetime]) -> dt.datetime:
        # commit timestamps never go backwards within one account
        if latest is not None and cls._utc(latest) > now:
            return cls._utc(latest)
        return now

    @staticmethod
    def _utc(value: dt.datetime) -> dt.datetime:
        # SQLite drops tzinfo; everything is stored in UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.timezone.utc)
        return value.astimezone(dt.timezone.utc)

    @staticmethod
    def _account_to_row(account: Account) -> AccountRow:
        return AccountRow(
            id=account.id,
            account_number=account.account_number,
            holder_name=account.holder_name,
            email=account.email,
            opening_balance=account.opening_balance.amount,
            balance=account.balance.amount,
            account_type=account.account_type.value,
            status=account.status.value,
            created_at=account.created_at,
            updated_at=account.updated_at,
            creation_reference=account.creation_reference,
        )

    @classmethod
    def _account_to_domain(cls, row: AccountRow) -> Account:
        return Account(
            id=row.id,
            account_number=row.account_number,
            holder_name=row.holder_name,
            email=row.email,
            opening_balance=Money(amount=Decimal(str(row.opening_balance))),
            balance=Money(amount=Decimal(str(row.balance))),
            account_type=AccountType(row.account_type),
            status=AccountStatus(row.status),
            created_at=cls._utc(row.created_at),
            updated_at=cls._utc(row.updated_at),
            creation_reference=row.creation_reference,
        )

    @staticmethod
    def _tx_to_row(tx: Transaction) -> TransactionRow:
        return TransactionRow(
            id=str(tx.id),
            account_number=tx.account_number,
            sequence=tx.sequence,
            transaction_type=tx.transaction_type.value,
            amount=tx.amount.amount,
            balance_after=tx.balance_after.amount,
            description=tx.description,
            status=tx.status.value,
            reference=tx.reference,
            timestamp=tx.timestamp,
            counterparty_account_number=tx.counterparty_account_number,
            reverses_reference=tx.reverses_reference,
        )

    @classmethod
    def _tx_to_domain(cls, row: TransactionRow) -> Transaction:
        return Transaction(
            id=UUID(row.id),
            account_number=row.account_number,
            sequence=row.sequence,
            transaction_type=TransactionType(row.transaction_type),
            amount=Money(amount=Decimal(str(row.amount))),
            balance_after=Money(amount=Decimal(str(row.balance_after))),
            description=row.description,
            status=TransactionStatus(row.status),
            reference=row.reference,
            timestamp=cls._utc(row.timestamp),
            counterparty_account_number=row.counterparty_account_number,
            reverses_reference=row.reverses_reference,
        )
