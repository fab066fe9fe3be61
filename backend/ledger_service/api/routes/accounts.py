from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, Query

from ledger_service.api.deps import get_account_manager, get_processor, get_store
from ledger_service.api.idempotency import (
    account_lookup,
    resolve_reference,
    run_once,
    transaction_lookup,
    transfer_lookup,
)
from ledger_service.api.mappers.ledger_mapper import account_to_response, transfer_to_response
from ledger_service.api.schemas.accounts import AccountCreateRequest, AccountResponse, AccountStatusUpdateRequest
from ledger_service.api.schemas.envelope import ApiResponse, ok
from ledger_service.api.schemas.transactions import TransactionRequest, TransferRequest, TransferResponse
from ledger_service.domain.account import AccountStatus
from ledger_service.domain.errors import InvalidInput
from ledger_service.domain.transaction import Transaction, TransactionType
from ledger_service.repositories.ledger_store import LedgerStore
from ledger_service.services.account_manager import AccountManager
from ledger_service.services.transaction_processor import TransactionProcessor

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/accounts", tags=["accounts"])

# deposit / withdraw / generic submission all go through
# TransactionProcessor.process_transaction
_GENERIC_TYPES = {TransactionType.DEPOSIT, TransactionType.WITHDRAWAL}


def _deposit_message(tx: Transaction) -> str:
    return f"Deposited ${tx.amount} successfully. Reference: {tx.reference}"


def _withdraw_message(tx: Transaction) -> str:
    return f"Withdrew ${tx.amount} successfully. Reference: {tx.reference}"


def _generic_message(tx: Transaction) -> str:
    return f"{tx.transaction_type.value} of ${tx.amount} completed successfully. Reference: {tx.reference}"


@router.get("", response_model=ApiResponse[list[AccountResponse]])
def list_accounts(manager: AccountManager = Depends(get_account_manager)):
    accounts = manager.list_accounts()
    return ok([account_to_response(a) for a in accounts], "Accounts retrieved successfully")


@router.get("/status/{status}", response_model=ApiResponse[list[AccountResponse]])
def list_accounts_by_status(status: str, manager: AccountManager = Depends(get_account_manager)):
    try:
        wanted = AccountStatus(status.strip().upper())
    except ValueError:
        raise InvalidInput("Status must be ACTIVE, FROZEN or CLOSED")
    accounts = manager.list_accounts(status=wanted)
    return ok([account_to_response(a) for a in accounts], "Accounts retrieved successfully")


@router.get("/number/{account_number}", response_model=ApiResponse[AccountResponse])
def get_account_by_number(account_number: str, manager: AccountManager = Depends(get_account_manager)):
    return ok(account_to_response(manager.get_by_number(account_number)), "Account found")


@router.get("/{account_id}", response_model=ApiResponse[AccountResponse])
def get_account(account_id: str, manager: AccountManager = Depends(get_account_manager)):
    return ok(account_to_response(manager.get_account(account_id)), "Account found")


@router.post("", status_code=201, response_model=ApiResponse[AccountResponse])
def create_account(
    req: AccountCreateRequest,
    manager: AccountManager = Depends(get_account_manager),
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
):
    reference = resolve_reference(idempotency_key, req.reference)
    logger.info("Creating new account: %s", req.account_number)

    account = run_once(
        reference,
        account_lookup(manager),
        lambda: manager.create_account(
            account_number=req.account_number,
            holder_name=req.account_holder_name,
            email=req.email,
            initial_balance=req.balance,
            account_type=req.account_type,
            reference=reference,
        ),
    )
    return ok(account_to_response(account), "Account created successfully")


@router.post("/{account_number}/deposit", response_model=ApiResponse[AccountResponse])
def deposit(
    account_number: str,
    amount: str = Query(..., examples=["50.00"]),
    processor: TransactionProcessor = Depends(get_processor),
    store: LedgerStore = Depends(get_store),
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
):
    reference = resolve_reference(idempotency_key)
    logger.info("Depositing %s to account: %s", amount, account_number)
    result = run_once(
        reference,
        transaction_lookup(store, account_number, TransactionType.DEPOSIT),
        lambda: processor.process_transaction(
            account_number, TransactionType.DEPOSIT, amount, reference=reference
        ),
    )
    return ok(account_to_response(result.account), _deposit_message(result.transaction))


@router.post("/{account_number}/withdraw", response_model=ApiResponse[AccountResponse])
def withdraw(
    account_number: str,
    amount: str = Query(..., examples=["50.00"]),
    processor: TransactionProcessor = Depends(get_processor),
    store: LedgerStore = Depends(get_store),
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
):
    reference = resolve_reference(idempotency_key)
    logger.info("Withdrawing %s from account: %s", amount, account_number)
    result = run_once(
        reference,
        transaction_lookup(store, account_number, TransactionType.WITHDRAWAL),
        lambda: processor.process_transaction(
            account_number, TransactionType.WITHDRAWAL, amount, reference=reference
        ),
    )
    return ok(account_to_response(result.account), _withdraw_message(result.transaction))


@router.post("/transactions", response_model=ApiResponse[AccountResponse])
def process_transaction(
    req: TransactionRequest,
    processor: TransactionProcessor = Depends(get_processor),
    store: LedgerStore = Depends(get_store),
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
):
    try:
        kind = TransactionType(req.transaction_type.strip().upper())
    except ValueError:
        raise InvalidInput("Invalid transaction type")
    if kind not in _GENERIC_TYPES:
        raise InvalidInput("Invalid transaction type")

    reference = resolve_reference(idempotency_key, req.reference)
    logger.info("Processing transaction: %s %s on %s", kind.value, req.amount, req.account_number)
    result = run_once(
        reference,
        transaction_lookup(store, req.account_number, kind),
        lambda: processor.process_transaction(
            req.account_number, kind, req.amount, description=req.description, reference=reference
        ),
    )
    return ok(account_to_response(result.account), _generic_message(result.transaction))


@router.post("/transfers", response_model=ApiResponse[TransferResponse])
def transfer(
    req: TransferRequest,
    processor: TransactionProcessor = Depends(get_processor),
    store: LedgerStore = Depends(get_store),
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
):
    reference = resolve_reference(idempotency_key, req.reference)
    logger.info(
        "Transferring %s from %s to %s", req.amount, req.source_account_number, req.target_account_number
    )
    result = run_once(
        reference,
        transfer_lookup(store, req.source_account_number),
        lambda: processor.transfer(
            req.source_account_number,
            req.target_account_number,
            req.amount,
            description=req.description,
            reference=reference,
        ),
    )
    return ok(
        transfer_to_response(result),
        f"Transferred ${result.debit.amount} successfully. Reference: {result.debit.reference}",
    )


@router.patch("/{account_number}/status", response_model=ApiResponse[AccountResponse])
def update_status(
    account_number: str,
    req: AccountStatusUpdateRequest,
    manager: AccountManager = Depends(get_account_manager),
):
    account = manager.set_status(account_number, req.status)
    return ok(account_to_response(account), f"Account status is {account.status.value}")


@router.delete("/{account_id}", response_model=ApiResponse[AccountResponse])
def close_account(account_id: str, manager: AccountManager = Depends(get_account_manager)):
    # accounts are never physically deleted
    logger.info("Closing account: %s", account_id)
    account = manager.close_account(account_id)
    return ok(account_to_response(account), "Account closed successfully")
