import datetime as dt
import pytest
from decimal import Decimal

from ledger_service.domain.account import Account, AccountStatus, AccountType
from ledger_service.domain.money import Money
from ledger_service.domain.transaction import Transaction, TransactionType


def _open(**overrides) -> Account:
    kwargs = dict(
        account_number="1234567890",
        holder_name=" John Doe ",
        email=" John@Test.com ",
        opening_balance=Money.from_str("1000.00"),
        account_type=AccountType.SAVINGS,
    )
    kwargs.update(overrides)
    return Account.open(**kwargs)


def test_open_normalizes_and_starts_active():
    acc = _open()
    assert acc.holder_name == "John Doe"
    assert acc.email == "john@test.com"
    assert acc.status == AccountStatus.ACTIVE
    assert acc.balance == acc.opening_balance
    assert acc.created_at == acc.updated_at
    assert acc.created_at.tzinfo is not None
    assert acc.id


@pytest.mark.parametrize("number", ["123", "12345678901", "12345abcde", ""])
def test_account_number_must_be_ten_digits(number):
    with pytest.raises(ValueError, match="10 digits"):
        _open(account_number=number)


@pytest.mark.parametrize("email", ["john", "john@", "@test.com", "john@test", "jo hn@test.com"])
def test_email_must_be_valid(email):
    with pytest.raises(ValueError, match="email"):
        _open(email=email)


@pytest.mark.parametrize("name", ["", "   ", "J", "x" * 101])
def test_holder_name_bounds(name):
    with pytest.raises(ValueError):
        _open(holder_name=name)


def test_naive_timestamps_rejected():
    with pytest.raises(ValueError):
        _open(now=dt.datetime(2026, 1, 1))


def test_as_of_transaction_uses_snapshot():
    acc = _open()
    ts = dt.datetime(2026, 1, 2, tzinfo=dt.timezone.utc)
    tx = Transaction.create(
        account_number=acc.account_number,
        transaction_type=TransactionType.DEPOSIT,
        amount=Money.from_str("5"),
        balance_after=Money.from_str("1005"),
        timestamp=ts,
    )
    later = acc.with_balance(Money.from_str("2000"), at=ts + dt.timedelta(days=1))

    snap = later.as_of(tx)
    assert snap.balance.amount == Decimal("1005.00")
    assert snap.updated_at == ts


def test_as_created_restores_opening_state():
    acc = _open()
    changed = acc.with_balance(Money.from_str("1"), at=acc.created_at + dt.timedelta(hours=1))
    changed = changed.with_status(AccountStatus.FROZEN, at=changed.updated_at)

    assert changed.as_created() == acc
