from __future__ import annotations

import logging
from typing import Callable, Optional, TypeVar

from ledger_service.domain.account import Account
from ledger_service.domain.errors import ConcurrencyConflict, DuplicateAccount, InvalidInput, TransferFailed
from ledger_service.domain.transaction import (
    TRANSFER_IN_SUFFIX,
    TRANSFER_OUT_SUFFIX,
    Transaction,
    TransactionType,
    client_reference,
)
from ledger_service.repositories.ledger_store import DuplicateReference, LedgerStore
from ledger_service.services.account_manager import AccountManager
from ledger_service.services.transaction_processor import TransactionResult, TransferResult

logger = logging.getLogger(__name__)

R = TypeVar("R")


def resolve_reference(header: Optional[str], body: Optional[str] = None) -> Optional[str]:
    """Body `reference` wins over the Idempotency-Key header."""
    try:
        return client_reference(body) or client_reference(header)
    except ValueError as exc:
        raise InvalidInput(str(exc)) from exc


def run_once(
    reference: Optional[str],
    lookup: Callable[[str], Optional[R]],
    action: Callable[[], R],
) -> R:
    """
    Look the reference up before acting; a hit is returned as the original
    result and the action is not applied again. A concurrent duplicate that
    got past the lookup is rejected by the store and answered the same way.
    """
    if reference is not None:
        prior = lookup(reference)
        if prior is not None:
            logger.warning("Idempotent replay of reference %s", reference)
            return prior

    try:
        return action()
    except (DuplicateReference, DuplicateAccount) as exc:
        if reference is None:
            if isinstance(exc, DuplicateReference):
                raise ConcurrencyConflict() from exc
            raise
        prior = lookup(reference)
        if prior is None:
            if isinstance(exc, DuplicateReference):
                raise ConcurrencyConflict() from exc
            raise
        logger.warning("Concurrent replay of reference %s resolved to the original result", reference)
        return prior


def account_lookup(manager: AccountManager) -> Callable[[str], Optional[Account]]:
    def _lookup(reference: str) -> Optional[Account]:
        account = manager.find_by_reference(reference)
        return account.as_created() if account is not None else None

    return _lookup


def transaction_lookup(
    store: LedgerStore, account_number: str, transaction_type: TransactionType
) -> Callable[[str], Optional[TransactionResult]]:
    def _lookup(reference: str) -> Optional[TransactionResult]:
        tx = store.find_transaction(reference)
        if tx is None:
            return None
        if tx.account_number != account_number.strip():
            raise InvalidInput("Reference already used for another account")
        if tx.transaction_type != transaction_type or tx.is_reversal:
            raise InvalidInput("Reference already used for another transaction")
        account = store.get_account(tx.account_number)
        return TransactionResult(account=account.as_of(tx), transaction=tx)

    return _lookup


def _is_credit_leg(credit: Transaction, debit: Transaction) -> bool:
    return (
        credit.transaction_type == TransactionType.TRANSFER_IN
        and not credit.is_reversal
        and credit.counterparty_account_number == debit.account_number
        and debit.counterparty_account_number == credit.account_number
        and credit.amount == debit.amount
    )


def transfer_lookup(store: LedgerStore, source_account_number: str) -> Callable[[str], Optional[TransferResult]]:
    def _lookup(reference: str) -> Optional[TransferResult]:
        debit = store.find_transaction(reference + TRANSFER_OUT_SUFFIX)
        if debit is None:
            return None
        if debit.account_number != source_account_number.strip():
            raise InvalidInput("Reference already used for another account")
        if debit.transaction_type != TransactionType.TRANSFER_OUT or debit.is_reversal:
            raise InvalidInput("Reference already used for another transaction")

        credit = store.find_transaction(reference + TRANSFER_IN_SUFFIX)
        if credit is not None and _is_credit_leg(credit, debit):
            source = store.get_account(debit.account_number)
            target = store.get_account(credit.account_number)
            return TransferResult(
                source=source.as_of(debit),
                target=target.as_of(credit),
                debit=debit,
                credit=credit,
            )

        reversal = store.find_transaction(debit.reversal_reference)
        if reversal is not None and reversal.is_reversal_of(debit):
            raise TransferFailed("Transfer failed. Source account was not charged")
        if credit is None:
            raise ConcurrencyConflict("Transfer with this reference is still in progress")
        # the credit reference is held by a record that is not this transfer's leg
        raise TransferFailed(f"Transfer failed: reference {credit.reference} is used by another transaction")

    return _lookup
