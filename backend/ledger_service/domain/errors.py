from __future__ import annotations


class LedgerError(Exception):
    """
    Base of every error the ledger reports to its callers.
    - kind: stable name of the error class (InvalidInput, NotFound, ...)
    - http_status: status the API maps it to
    - retryable: True when the same request may succeed if sent again
    """
    kind = "LedgerError"
    http_status = 500
    retryable = False
    default_message = "Ledger error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(LedgerError):
    kind = "InvalidInput"
    http_status = 400
    default_message = "Invalid input"


class InvalidAmount(LedgerError):
    kind = "InvalidAmount"
    http_status = 400
    default_message = "Amount must be greater than 0"


class InsufficientFunds(LedgerError):
    kind = "InsufficientFunds"
    http_status = 400
    default_message = "Insufficient funds"


class DuplicateAccount(LedgerError):
    kind = "DuplicateAccount"
    http_status = 409
    default_message = "Account number already exists"


class AccountNotActive(LedgerError):
    kind = "AccountNotActive"
    http_status = 409
    default_message = "Account is not active"


class ConcurrencyConflict(LedgerError):
    kind = "ConcurrencyConflict"
    http_status = 409
    retryable = True
    default_message = "Account was modified concurrently, please retry"


class TransferFailed(LedgerError):
    kind = "TransferFailed"
    http_status = 409
    default_message = "Transfer failed"


class NotFound(LedgerError):
    kind = "NotFound"
    http_status = 404
    default_message = "Not found"


class Timeout(LedgerError):
    kind = "Timeout"
    http_status = 504
    default_message = "Ledger store timed out"


class Unavailable(LedgerError):
    kind = "Unavailable"
    http_status = 503
    retryable = True
    default_message = "Ledger store unavailable"
