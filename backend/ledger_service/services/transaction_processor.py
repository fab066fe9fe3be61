from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
import logging
from typing import Optional

from ledger_service.domain.account import Account
from ledger_service.domain.errors import (
    AccountNotActive,
    ConcurrencyConflict,
    InsufficientFunds,
    InvalidAmount,
    InvalidInput,
    LedgerError,
    NotFound,
    TransferFailed,
)
from ledger_service.domain.money import Money
from ledger_service.domain.transaction import (
    TRANSFER_IN_SUFFIX,
    TRANSFER_OUT_SUFFIX,
    Transaction,
    TransactionStatus,
    TransactionType,
    client_reference,
    generate_reference,
)
from ledger_service.repositories.ledger_store import DuplicateReference, LedgerStore, StaleBalance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransactionResult:
    account: Account
    transaction: Transaction


@dataclass(frozen=True)
class TransferResult:
    source: Account
    target: Account
    debit: Transaction
    credit: Transaction


def parse_amount(amount: str | Decimal | Money) -> Money:
    """Strictly positive, finite, two decimals. Raise InvalidAmount otherwise."""
    if isinstance(amount, Money):
        money = amount
    else:
        try:
            money = Money.from_str(amount)
        except (TypeError, ValueError) as exc:
            raise InvalidAmount(f"Invalid amount: {amount!r}") from exc
    if money.is_zero():
        raise InvalidAmount()
    return money


def _client_reference(reference: Optional[str]) -> Optional[str]:
    try:
        return client_reference(reference)
    except ValueError as exc:
        raise InvalidInput(str(exc)) from exc


def _describe(exc: Exception) -> str:
    return exc.message if isinstance(exc, LedgerError) else str(exc)


class TransactionProcessor:
    """
    Turns a transaction request into a committed ledger entry or a rejection.

    Every mutation goes through `_commit`: read the account, compute the new
    balance, then compare-and-swap it in the store against the balance that
    was read. A concurrent writer makes the swap fail (StaleBalance) and the
    whole read-compute-swap cycle is retried, at most `max_retries` times.
    """

    def __init__(self, store: LedgerStore, *, max_retries: int = 5) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        self._store = store
        self._max_retries = max_retries

    # -------- single-account transactions --------

    def process_transaction(
        self,
        account_number: str,
        transaction_type: TransactionType | str,
        amount: str | Decimal | Money,
        *,
        description: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> TransactionResult:
        money = parse_amount(amount)
        try:
            kind = (
                transaction_type
                if isinstance(transaction_type, TransactionType)
                else TransactionType(str(transaction_type).strip().upper())
            )
        except ValueError as exc:
            raise InvalidInput("Invalid transaction type") from exc

        return self._commit(
            account_number=(account_number or "").strip(),
            transaction_type=kind,
            amount=money,
            description=description,
            reference=_client_reference(reference),
        )

    def deposit(self, account_number: str, amount: str | Decimal | Money, **kwargs) -> TransactionResult:
        return self.process_transaction(account_number, TransactionType.DEPOSIT, amount, **kwargs)

    def withdraw(self, account_number: str, amount: str | Decimal | Money, **kwargs) -> TransactionResult:
        return self.process_transaction(account_number, TransactionType.WITHDRAWAL, amount, **kwargs)

    # -------- transfers --------

    def transfer(
        self,
        source_account_number: str,
        target_account_number: str,
        amount: str | Decimal | Money,
        *,
        description: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> TransferResult:
        """
        Two linked legs: TRANSFER_OUT on the source, then TRANSFER_IN on the
        target. No store primitive spans two accounts, so a failure of the
        second leg is compensated by reversing the first one.
        """
        money = parse_amount(amount)
        source = (source_account_number or "").strip()
        target = (target_account_number or "").strip()
        if source == target:
            raise InvalidInput("Cannot transfer to same account")

        base_ref = _client_reference(reference) or generate_reference()

        target_account = self._store.get_account(target)
        if not target_account.is_active:
            raise AccountNotActive(f"Target account {target} is not active")

        debit = self._commit(
            account_number=source,
            transaction_type=TransactionType.TRANSFER_OUT,
            amount=money,
            description=description or f"Transfer to {target}",
            reference=base_ref + TRANSFER_OUT_SUFFIX,
            counterparty=target,
        )

        try:
            credit = self._commit(
                account_number=target,
                transaction_type=TransactionType.TRANSFER_IN,
                amount=money,
                description=description or f"Transfer from {source}",
                reference=base_ref + TRANSFER_IN_SUFFIX,
                counterparty=source,
            )
        except Exception as exc:
            # the debit is committed: whatever stopped the credit, undo it
            logger.warning(
                "Transfer %s: credit leg on %s failed (%s), reversing debit %s",
                base_ref, target, type(exc).__name__, debit.transaction.reference,
            )
            self._compensate(debit.transaction, cause=exc)
            raise TransferFailed(f"Transfer failed: {_describe(exc)}. Source account was not charged") from exc

        logger.info("Transfer %s: %s -> %s amount %s", base_ref, source, target, money)
        return TransferResult(
            source=debit.account,
            target=credit.account,
            debit=debit.transaction,
            credit=credit.transaction,
        )

    def _compensate(self, original: Transaction, *, cause: Exception) -> None:
        try:
            self.reverse_transaction(
                original.reference,
                description=f"Reversal of {original.reference}",
                allow_inactive=True,
            )
        except Exception as exc:
            logger.critical(
                "Transfer compensation FAILED for %s on account %s: %s (credit leg error: %s)",
                original.reference, original.account_number, _describe(exc), _describe(cause),
            )
            raise TransferFailed(
                f"Transfer failed and could not be reversed automatically (reference {original.reference})"
            ) from exc

    # -------- reversals --------

    def reverse_transaction(
        self,
        reference: str,
        *,
        description: Optional[str] = None,
        allow_inactive: bool = False,
    ) -> TransactionResult:
        """
        Commit the compensating record for `reference`. Idempotent: reversing
        twice returns the existing reversal.
        """
        original = self._store.find_transaction((reference or "").strip())
        if original is None:
            raise NotFound("Transaction not found")
        if original.is_reversal:
            raise InvalidInput("A reversal cannot be reversed")
        if original.status != TransactionStatus.COMPLETED:
            raise InvalidInput("Only completed transactions can be reversed")

        existing = self._existing_reversal(original)
        if existing is not None:
            return existing

        try:
            return self._commit(
                account_number=original.account_number,
                transaction_type=original.transaction_type.inverse(),
                amount=original.amount,
                description=description or f"Reversal of {original.reference}",
                reference=original.reversal_reference,
                counterparty=original.counterparty_account_number,
                status=TransactionStatus.REVERSED,
                reverses=original.reference,
                require_active=not allow_inactive,
            )
        except DuplicateReference:
            # a concurrent reversal won the race
            existing = self._existing_reversal(original)
            if existing is None:
                raise
            return existing

    def _existing_reversal(self, original: Transaction) -> Optional[TransactionResult]:
        found = self._store.find_transaction(original.reversal_reference)
        if found is None:
            return None
        if not found.is_reversal_of(original):
            raise InvalidInput(
                f"Reversal reference {original.reversal_reference} is already used by another transaction"
            )
        account = self._store.get_account(found.account_number)
        return TransactionResult(account=account.as_of(found), transaction=found)

    # -------- optimistic commit loop --------

    def _commit(
        self,
        *,
        account_number: str,
        transaction_type: TransactionType,
        amount: Money,
        description: Optional[str],
        reference: Optional[str],
        counterparty: Optional[str] = None,
        status: TransactionStatus = TransactionStatus.COMPLETED,
        reverses: Optional[str] = None,
        require_active: bool = True,
    ) -> TransactionResult:
        for attempt in range(1, self._max_retries + 1):
            account = self._store.get_account(account_number)
            prior = account.balance

            if transaction_type.is_credit:
                new_amount = prior.amount + amount.amount
            else:
                new_amount = prior.amount - amount.amount
                if new_amount < 0:
                    raise InsufficientFunds()

            if require_active and not account.is_active:
                raise AccountNotActive(f"Account {account_number} is {account.status.value}")

            tx = Transaction.create(
                account_number=account_number,
                transaction_type=transaction_type,
                amount=amount,
                balance_after=Money(amount=new_amount),
                description=description,
                status=status,
                reference=reference,
                counterparty_account_number=counterparty,
                reverses_reference=reverses,
            )

            try:
                updated, committed = self._store.append_transaction(
                    account_number, tx, prior, require_active=require_active
                )
            except StaleBalance as exc:
                logger.warning(
                    "Stale balance on %s (attempt %d/%d): %s",
                    account_number, attempt, self._max_retries, exc,
                )
                continue

            logger.info(
                "Committed %s %s on %s: %s -> %s (ref %s)",
                committed.transaction_type.value, committed.amount, account_number,
                prior, committed.balance_after, committed.reference,
            )
            return TransactionResult(account=updated, transaction=committed)

        raise ConcurrencyConflict(
            f"Account {account_number} was modified concurrently {self._max_retries} times, please retry"
        )
