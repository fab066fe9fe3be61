from __future__ import annotations

import datetime as dt
from decimal import Decimal

from pydantic import Field

from ledger_service.api.schemas.accounts import AccountResponse, CamelModel


class TransactionRequest(CamelModel):
    account_number: str = Field(min_length=1)
    transaction_type: str = Field(min_length=1, examples=["DEPOSIT", "WITHDRAWAL"])
    amount: Decimal | str = Field(..., examples=["50.00"])
    description: str | None = None
    reference: str | None = Field(default=None, description="Idempotency token")


class TransferRequest(CamelModel):
    source_account_number: str = Field(min_length=1)
    target_account_number: str = Field(min_length=1)
    amount: Decimal | str = Field(..., examples=["25.00"])
    description: str | None = None
    reference: str | None = Field(default=None, description="Idempotency token")


class TransactionResponse(CamelModel):
    id: str
    account_number: str
    sequence: int
    transaction_type: str
    amount: str
    balance_after: str
    description: str | None
    status: str
    reference: str
    timestamp: dt.datetime
    counterparty_account_number: str | None = None
    reverses_reference: str | None = None


class TransferResponse(CamelModel):
    source: AccountResponse
    target: AccountResponse
    debit: TransactionResponse
    credit: TransactionResponse


class TransactionSummaryResponse(CamelModel):
    total_deposits: str
    total_withdrawals: str
    net_balance: str
    total_transactions: int
