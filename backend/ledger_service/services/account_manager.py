from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from ledger_service.domain.account import Account, AccountStatus, AccountType
from ledger_service.domain.errors import DuplicateAccount, InvalidInput, NotFound
from ledger_service.domain.money import Money
from ledger_service.domain.transaction import CLIENT_REFERENCE_MAX_LEN, normalize_reference
from ledger_service.repositories.ledger_store import AccountConflict, LedgerStore

logger = logging.getLogger(__name__)

_CONFLICT_MESSAGES = {
    "number": "Account number already exists",
    "email": "Email already registered",
    "reference": "Account creation reference already used",
    "id": "Account id already exists",
}

# ACTIVE <-> FROZEN, anything -> CLOSED, CLOSED is terminal
_ALLOWED_STATUS_CHANGES = {
    AccountStatus.ACTIVE: {AccountStatus.FROZEN, AccountStatus.CLOSED},
    AccountStatus.FROZEN: {AccountStatus.ACTIVE, AccountStatus.CLOSED},
    AccountStatus.CLOSED: set(),
}


class AccountManager:
    def __init__(self, store: LedgerStore) -> None:
        self._store = store

    def create_account(
        self,
        *,
        account_number: str,
        holder_name: str,
        email: str,
        initial_balance: str | Decimal,
        account_type: AccountType | str,
        reference: Optional[str] = None,
    ) -> Account:
        try:
            opening = Money.from_str(initial_balance)
        except (TypeError, ValueError) as exc:
            message = "Balance cannot be negative" if "negative" in str(exc) else f"Invalid initial balance: {exc}"
            raise InvalidInput(message) from exc

        try:
            kind = account_type if isinstance(account_type, AccountType) else AccountType(str(account_type).strip())
        except ValueError as exc:
            raise InvalidInput("Account type must be SAVINGS or CHECKING") from exc

        try:
            ref = normalize_reference(reference)
            if ref is not None and len(ref) > CLIENT_REFERENCE_MAX_LEN:
                raise ValueError(f"reference must be at most {CLIENT_REFERENCE_MAX_LEN} characters")
            account = Account.open(
                account_number=account_number,
                holder_name=holder_name,
                email=email,
                opening_balance=opening,
                account_type=kind,
                creation_reference=ref,
            )
        except ValueError as exc:
            raise InvalidInput(str(exc)) from exc

        if self._store.find_account_by_email(account.email) is not None:
            raise DuplicateAccount(_CONFLICT_MESSAGES["email"])

        try:
            self._store.put_account(account)
        except AccountConflict as exc:
            raise DuplicateAccount(_CONFLICT_MESSAGES.get(exc.field)) from exc

        logger.info("Created account %s (%s) with opening balance %s", account.account_number, kind.value, opening)
        return account

    def get_account(self, identifier_or_number: str) -> Account:
        """System id first, then account number."""
        key = (identifier_or_number or "").strip()
        if not key:
            raise NotFound("Account not found")
        try:
            return self._store.get_account_by_id(key)
        except NotFound:
            return self._store.get_account(key)

    def get_by_number(self, account_number: str) -> Account:
        return self._store.get_account((account_number or "").strip())

    def find_by_reference(self, reference: str) -> Account | None:
        return self._store.find_account_by_reference(reference)

    def list_accounts(self, status: Optional[AccountStatus] = None) -> list[Account]:
        return self._store.list_accounts(status=status)

    def set_status(self, account_number: str, status: AccountStatus | str) -> Account:
        try:
            target = status if isinstance(status, AccountStatus) else AccountStatus(str(status).strip().upper())
        except ValueError as exc:
            raise InvalidInput("Status must be ACTIVE, FROZEN or CLOSED") from exc

        account = self.get_by_number(account_number)
        if target == account.status:
            return account
        if target not in _ALLOWED_STATUS_CHANGES[account.status]:
            raise InvalidInput(f"Cannot change status from {account.status.value} to {target.value}")

        updated = self._store.set_status(account.account_number, target)
        logger.info("Account %s status %s -> %s", account.account_number, account.status.value, target.value)
        return updated

    def close_account(self, identifier_or_number: str) -> Account:
        account = self.get_account(identifier_or_number)
        return self.set_status(account.account_number, AccountStatus.CLOSED)
