import pytest
from decimal import Decimal

from ledger_service.domain.account import AccountStatus, AccountType
from ledger_service.domain.errors import DuplicateAccount, InvalidInput, NotFound


def _create(manager, number="1234567890", email="john@test.com", balance="1000.00", **kwargs):
    return manager.create_account(
        account_number=number,
        holder_name=kwargs.pop("holder_name", "John Doe"),
        email=email,
        initial_balance=balance,
        account_type=kwargs.pop("account_type", "SAVINGS"),
        **kwargs,
    )


def test_create_account_success(manager):
    acc = _create(manager)

    assert acc.account_number == "1234567890"
    assert acc.holder_name == "John Doe"
    assert acc.balance.amount == Decimal("1000.00")
    assert acc.account_type == AccountType.SAVINGS
    assert acc.status == AccountStatus.ACTIVE
    assert manager.get_by_number("1234567890") == acc


def test_create_account_duplicate_number(manager):
    _create(manager)
    with pytest.raises(DuplicateAccount, match="Account number already exists"):
        _create(manager, email="other@test.com")


def test_create_account_duplicate_email_is_case_insensitive(manager):
    _create(manager)
    with pytest.raises(DuplicateAccount, match="Email already registered"):
        _create(manager, number="1234567891", email="JOHN@test.com")


def test_create_account_negative_balance(manager):
    with pytest.raises(InvalidInput, match="Balance cannot be negative"):
        _create(manager, balance="-100")


@pytest.mark.parametrize(
    "overrides,message",
    [
        (dict(number="12345"), "10 digits"),
        (dict(email="not-an-email"), "Invalid email format"),
        (dict(holder_name="J"), "between 2 and 100"),
        (dict(account_type="BROKERAGE"), "SAVINGS or CHECKING"),
        (dict(balance="abc"), "Invalid initial balance"),
        (dict(reference="r" * 49), "at most 48"),
    ],
)
def test_create_account_validation(manager, overrides, message):
    with pytest.raises(InvalidInput, match=message):
        _create(manager, **overrides)


def test_failed_creation_leaves_store_untouched(manager):
    with pytest.raises(InvalidInput):
        _create(manager, email="bad")
    assert manager.list_accounts() == []


def test_get_account_by_id_or_number(manager):
    acc = _create(manager)
    assert manager.get_account(acc.id) == acc
    assert manager.get_account("1234567890") == acc
    with pytest.raises(NotFound):
        manager.get_account("0000000000")
    with pytest.raises(NotFound):
        manager.get_account("   ")


def test_find_by_reference(manager):
    acc = _create(manager, reference="open-1")
    assert manager.find_by_reference("open-1") == acc
    assert manager.find_by_reference("open-2") is None


def test_status_transitions(manager):
    _create(manager)

    assert manager.set_status("1234567890", "frozen").status == AccountStatus.FROZEN
    assert manager.set_status("1234567890", AccountStatus.ACTIVE).status == AccountStatus.ACTIVE
    # no-op
    assert manager.set_status("1234567890", AccountStatus.ACTIVE).status == AccountStatus.ACTIVE

    closed = manager.close_account("1234567890")
    assert closed.status == AccountStatus.CLOSED
    with pytest.raises(InvalidInput, match="Cannot change status"):
        manager.set_status("1234567890", AccountStatus.ACTIVE)

    with pytest.raises(InvalidInput):
        manager.set_status("1234567890", "DORMANT")


def test_list_accounts_filters_by_status(manager):
    _create(manager, number="1000000001", email="a@test.com")
    _create(manager, number="1000000002", email="b@test.com")
    manager.close_account("1000000002")

    assert len(manager.list_accounts()) == 2
    assert [a.account_number for a in manager.list_accounts(AccountStatus.ACTIVE)] == ["1000000001"]
    # closed accounts are kept, never deleted
    assert manager.get_by_number("1000000002").status == AccountStatus.CLOSED
