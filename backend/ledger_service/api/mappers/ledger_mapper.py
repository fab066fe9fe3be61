from __future__ import annotations

from ledger_service.api.schemas.accounts import AccountResponse
from ledger_service.api.schemas.transactions import (
    TransactionResponse,
    TransactionSummaryResponse,
    TransferResponse,
)
from ledger_service.domain.account import Account
from ledger_service.domain.transaction import Transaction
from ledger_service.engine.transaction_summary import TransactionSummary
from ledger_service.services.transaction_processor import TransferResult


def account_to_response(acc: Account) -> AccountResponse:
    return AccountResponse(
        id=acc.id,
        account_number=acc.account_number,
        account_holder_name=acc.holder_name,
        email=acc.email,
        balance=str(acc.balance),
        account_type=acc.account_type.value,
        status=acc.status.value,
        created_at=acc.created_at,
        updated_at=acc.updated_at,
    )


def tx_to_response(tx: Transaction) -> TransactionResponse:
    return TransactionResponse(
        id=str(tx.id),
        account_number=tx.account_number,
        sequence=tx.sequence,
        transaction_type=tx.transaction_type.value,
        amount=str(tx.amount),
        balance_after=str(tx.balance_after),
        description=tx.description,
        status=tx.status.value,
        reference=tx.reference,
        timestamp=tx.timestamp,
        counterparty_account_number=tx.counterparty_account_number,
        reverses_reference=tx.reverses_reference,
    )


def transfer_to_response(result: TransferResult) -> TransferResponse:
    return TransferResponse(
        source=account_to_response(result.source),
        target=account_to_response(result.target),
        debit=tx_to_response(result.debit),
        credit=tx_to_response(result.credit),
    )


def summary_to_response(summary: TransactionSummary) -> TransactionSummaryResponse:
    return TransactionSummaryResponse(
        total_deposits=f"{summary.total_deposits:.2f}",
        total_withdrawals=f"{summary.total_withdrawals:.2f}",
        net_balance=f"{summary.net_balance:.2f}",
        total_transactions=summary.total_transactions,
    )
