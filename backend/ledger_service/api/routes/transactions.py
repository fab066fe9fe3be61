from __future__ import annotations

import datetime as dt
import logging

from fastapi import APIRouter, Depends, Query

from ledger_service.api.deps import get_processor, get_store, get_summary_service
from ledger_service.api.mappers.ledger_mapper import account_to_response, summary_to_response, tx_to_response
from ledger_service.api.schemas.accounts import AccountResponse
from ledger_service.api.schemas.envelope import ApiResponse, ok
from ledger_service.api.schemas.transactions import TransactionResponse, TransactionSummaryResponse
from ledger_service.domain.errors import InvalidInput, NotFound
from ledger_service.domain.transaction import TransactionType
from ledger_service.repositories.ledger_store import LedgerStore, TransactionWindow
from ledger_service.services.summary_service import SummaryService
from ledger_service.services.transaction_processor import TransactionProcessor
from ledger_service.services.transaction_query_service import TransactionQuery, apply_transaction_query

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/transactions", tags=["transactions"])


def _window(date_from: dt.datetime | None, date_to: dt.datetime | None) -> TransactionWindow | None:
    if date_from is None and date_to is None:
        return None
    try:
        return TransactionWindow(start=date_from, end=date_to)
    except ValueError as e:
        raise InvalidInput(str(e))


@router.get("/account/{account_number}", response_model=ApiResponse[list[TransactionResponse]])
def get_account_transactions(
    account_number: str,
    date_from: dt.datetime | None = Query(default=None, alias="from"),
    date_to: dt.datetime | None = Query(default=None, alias="to"),
    sort_by: str = Query(default="timestamp", pattern="^(timestamp|amount|type)$"),
    sort_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    store: LedgerStore = Depends(get_store),
):
    logger.info("Fetching transactions for account: %s", account_number)
    txs = store.list_transactions(account_number.strip())

    query = TransactionQuery(
        window=_window(date_from, date_to),
        sort_by=sort_by,    # type: ignore[arg-type]
        sort_dir=sort_dir,  # type: ignore[arg-type]
    )
    txs = apply_transaction_query(txs, query)
    return ok([tx_to_response(t) for t in txs], "Transactions retrieved successfully")


@router.get("/account/{account_number}/type/{transaction_type}", response_model=ApiResponse[list[TransactionResponse]])
def get_transactions_by_type(
    account_number: str,
    transaction_type: str,
    store: LedgerStore = Depends(get_store),
):
    try:
        kind = TransactionType(transaction_type.strip().upper())
    except ValueError:
        raise InvalidInput("Invalid transaction type")

    logger.info("Fetching %s transactions for account: %s", kind.value, account_number)
    txs = apply_transaction_query(store.list_transactions(account_number.strip()), TransactionQuery(types={kind}))
    return ok([tx_to_response(t) for t in txs], f"{kind.value} transactions retrieved successfully")


@router.get("/account/{account_number}/summary", response_model=ApiResponse[TransactionSummaryResponse])
def get_transaction_summary(
    account_number: str,
    date_from: dt.datetime | None = Query(default=None, alias="from"),
    date_to: dt.datetime | None = Query(default=None, alias="to"),
    summaries: SummaryService = Depends(get_summary_service),
):
    logger.info("Fetching transaction summary for account: %s", account_number)
    summary = summaries.get_summary(account_number, _window(date_from, date_to))
    return ok(summary_to_response(summary), "Summary retrieved successfully")


@router.get("/reference/{reference}", response_model=ApiResponse[TransactionResponse])
def get_transaction_by_reference(reference: str, store: LedgerStore = Depends(get_store)):
    tx = store.find_transaction(reference.strip())
    if tx is None:
        raise NotFound("Transaction not found")
    return ok(tx_to_response(tx), "Transaction found")


@router.post("/reference/{reference}/reverse", response_model=ApiResponse[AccountResponse])
def reverse_transaction(reference: str, processor: TransactionProcessor = Depends(get_processor)):
    # idempotent by construction: the reversal reference is derived from the original
    logger.info("Reversing transaction: %s", reference)
    result = processor.reverse_transaction(reference)
    return ok(
        account_to_response(result.account),
        f"Transaction {reference.strip()} reversed. Reference: {result.transaction.reference}",
    )
