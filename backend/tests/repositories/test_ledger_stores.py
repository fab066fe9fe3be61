import datetime as dt
import pytest
from decimal import Decimal
from sqlalchemy.orm import sessionmaker

from ledger_service.db import init_db, make_engine
from ledger_service.domain.account import Account, AccountStatus, AccountType
from ledger_service.domain.errors import NotFound
from ledger_service.domain.money import Money
from ledger_service.domain.transaction import Transaction, TransactionType
from ledger_service.repositories.in_memory_ledger_store import InMemoryLedgerStore
from ledger_service.repositories.ledger_store import (
    AccountConflict,
    DuplicateReference,
    StaleBalance,
    TransactionWindow,
)
from ledger_service.repositories.sql_ledger_store import SqlLedgerStore


def m(s: str) -> Money:
    return Money.from_str(s)


@pytest.fixture(params=["memory", "sql"])
def ledger_store(request, tmp_path):
    if request.param == "memory":
        yield InMemoryLedgerStore(lock_timeout=1.0)
        return
    engine = make_engine(f"sqlite:///{(tmp_path / 'ledger.db').as_posix()}")
    init_db(engine)
    yield SqlLedgerStore(sessionmaker(bind=engine, autoflush=False, future=True))
    engine.dispose()


def make_account(number: str = "1000000001", balance: str = "100", **kwargs) -> Account:
    return Account.open(
        account_number=number,
        holder_name=kwargs.get("holder_name", "John Doe"),
        email=kwargs.get("email", f"u{number}@test.com"),
        opening_balance=m(balance),
        account_type=AccountType.SAVINGS,
        creation_reference=kwargs.get("creation_reference"),
    )


def make_tx(number: str, kind: TransactionType, amount: str, after: str, reference: str | None = None) -> Transaction:
    return Transaction.create(
        account_number=number,
        transaction_type=kind,
        amount=m(amount),
        balance_after=m(after),
        reference=reference,
    )


def test_put_and_get_account(ledger_store):
    acc = make_account(creation_reference="create-1")
    ledger_store.put_account(acc)

    by_number = ledger_store.get_account("1000000001")
    by_id = ledger_store.get_account_by_id(acc.id)
    assert by_number.id == by_id.id == acc.id
    assert by_number.balance == m("100")
    assert by_number.status == AccountStatus.ACTIVE
    assert ledger_store.find_account_by_email("U1000000001@test.com").id == acc.id
    assert ledger_store.find_account_by_reference("create-1").id == acc.id
    assert ledger_store.find_account_by_reference("other") is None


def test_unknown_account_raises_not_found(ledger_store):
    with pytest.raises(NotFound):
        ledger_store.get_account("9999999999")
    with pytest.raises(NotFound):
        ledger_store.get_account_by_id("nope")
    with pytest.raises(NotFound):
        ledger_store.list_transactions("9999999999")


@pytest.mark.parametrize(
    "second,field",
    [
        (dict(number="1000000001", email="other@test.com"), "number"),
        (dict(number="1000000002", email="u1000000001@test.com"), "email"),
        (dict(number="1000000002", email="other@test.com", creation_reference="ref-1"), "reference"),
    ],
)
def test_put_account_conflicts(ledger_store, second, field):
    ledger_store.put_account(make_account(creation_reference="ref-1"))

    second = dict(second)
    number = second.pop("number")
    with pytest.raises(AccountConflict) as ei:
        ledger_store.put_account(make_account(number, **second))
    assert ei.value.field == field


def test_append_is_compare_and_swap(ledger_store):
    ledger_store.put_account(make_account())

    updated, committed = ledger_store.append_transaction(
        "1000000001", make_tx("1000000001", TransactionType.DEPOSIT, "50", "150"), m("100")
    )
    assert updated.balance == m("150")
    assert committed.sequence == 1
    assert committed.timestamp.tzinfo is not None

    # expected prior balance no longer current
    with pytest.raises(StaleBalance) as ei:
        ledger_store.append_transaction(
            "1000000001", make_tx("1000000001", TransactionType.DEPOSIT, "10", "110"), m("100")
        )
    assert ei.value.actual == m("150")

    assert ledger_store.get_account("1000000001").balance == m("150")
    assert [t.sequence for t in ledger_store.list_transactions("1000000001")] == [1]


def test_append_duplicate_reference(ledger_store):
    ledger_store.put_account(make_account())
    ledger_store.append_transaction(
        "1000000001", make_tx("1000000001", TransactionType.DEPOSIT, "50", "150", reference="k1"), m("100")
    )

    with pytest.raises(DuplicateReference):
        ledger_store.append_transaction(
            "1000000001", make_tx("1000000001", TransactionType.DEPOSIT, "50", "200", reference="k1"), m("150")
        )
    assert ledger_store.get_account("1000000001").balance == m("150")
    assert ledger_store.find_transaction("k1").balance_after == m("150")


def test_append_requires_active_unless_told_otherwise(ledger_store):
    ledger_store.put_account(make_account())
    frozen = ledger_store.set_status("1000000001", AccountStatus.FROZEN)
    assert frozen.status == AccountStatus.FROZEN

    with pytest.raises(StaleBalance):
        ledger_store.append_transaction(
            "1000000001", make_tx("1000000001", TransactionType.DEPOSIT, "1", "101"), m("100")
        )

    updated, _ = ledger_store.append_transaction(
        "1000000001",
        make_tx("1000000001", TransactionType.DEPOSIT, "1", "101"),
        m("100"),
        require_active=False,
    )
    assert updated.balance == m("101")
    assert updated.status == AccountStatus.FROZEN


def test_list_transactions_commit_order_and_window(ledger_store):
    ledger_store.put_account(make_account())
    balance = Decimal("100")
    for amount in ("10", "20", "30"):
        after = balance + Decimal(amount)
        ledger_store.append_transaction(
            "1000000001",
            make_tx("1000000001", TransactionType.DEPOSIT, amount, str(after)),
            m(str(balance)),
        )
        balance = after

    txs = ledger_store.list_transactions("1000000001")
    assert [t.sequence for t in txs] == [1, 2, 3]
    assert [t.amount for t in txs] == [m("10"), m("20"), m("30")]

    future = dt.datetime.now(dt.timezone.utc) + dt.timedelta(days=1)
    assert ledger_store.list_transactions("1000000001", TransactionWindow(start=future)) == []
    assert len(ledger_store.list_transactions("1000000001", TransactionWindow(end=future))) == 3


def test_list_accounts_by_status(ledger_store):
    ledger_store.put_account(make_account("1000000001"))
    ledger_store.put_account(make_account("1000000002"))
    ledger_store.set_status("1000000002", AccountStatus.CLOSED)

    assert {a.account_number for a in ledger_store.list_accounts()} == {"1000000001", "1000000002"}
    closed = ledger_store.list_accounts(status=AccountStatus.CLOSED)
    assert [a.account_number for a in closed] == ["1000000002"]


def test_window_rejects_inverted_range():
    with pytest.raises(ValueError):
        TransactionWindow(
            start=dt.datetime(2026, 2, 1, tzinfo=dt.timezone.utc),
            end=dt.datetime(2026, 1, 1, tzinfo=dt.timezone.utc),
        )


def test_window_treats_naive_bounds_as_utc():
    w = TransactionWindow(start=dt.datetime(2026, 1, 1))
    assert w.start.tzinfo == dt.timezone.utc
