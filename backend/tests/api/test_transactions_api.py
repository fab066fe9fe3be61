def _setup(client):
    client.post(
        "/accounts",
        json={
            "accountNumber": "1000000001",
            "accountHolderName": "John Doe",
            "email": "john@test.com",
            "balance": "100.00",
            "accountType": "CHECKING",
        },
    )
    client.post("/accounts/1000000001/deposit", params={"amount": "50.00"}, headers={"Idempotency-Key": "dep-1"})
    client.post("/accounts/1000000001/withdraw", params={"amount": "20.00"}, headers={"Idempotency-Key": "wd-1"})


def test_list_transactions_newest_first(client):
    _setup(client)

    r = client.get("/transactions/account/1000000001")
    assert r.status_code == 200, r.text
    items = r.json()["data"]
    assert [t["reference"] for t in items] == ["wd-1", "dep-1"]
    assert [t["sequence"] for t in items] == [2, 1]
    assert items[0]["transactionType"] == "WITHDRAWAL"
    assert items[0]["amount"] == "20.00"
    assert items[0]["balanceAfter"] == "130.00"
    assert items[0]["status"] == "COMPLETED"

    asc = client.get("/transactions/account/1000000001", params={"sort_dir": "asc"}).json()["data"]
    assert [t["reference"] for t in asc] == ["dep-1", "wd-1"]

    by_amount = client.get("/transactions/account/1000000001", params={"sort_by": "amount"}).json()["data"]
    assert [t["amount"] for t in by_amount] == ["50.00", "20.00"]


def test_list_transactions_window(client):
    _setup(client)

    r = client.get("/transactions/account/1000000001", params={"to": "2000-01-01T00:00:00Z"})
    assert r.json()["data"] == []

    r = client.get(
        "/transactions/account/1000000001",
        params={"from": "2030-01-01T00:00:00Z", "to": "2020-01-01T00:00:00Z"},
    )
    assert r.status_code == 400


def test_transactions_of_unknown_account(client):
    r = client.get("/transactions/account/9999999999")
    assert r.status_code == 404
    assert r.json()["message"] == "Account not found"


def test_transactions_by_type(client):
    _setup(client)
    items = client.get("/transactions/account/1000000001/type/deposit").json()["data"]
    assert [t["reference"] for t in items] == ["dep-1"]

    assert client.get("/transactions/account/1000000001/type/REFUND").status_code == 400


def test_summary(client):
    _setup(client)

    r = client.get("/transactions/account/1000000001/summary")
    assert r.status_code == 200
    assert r.json()["data"] == {
        "totalDeposits": "50.00",
        "totalWithdrawals": "20.00",
        "netBalance": "30.00",
        "totalTransactions": 2,
    }


def test_get_and_reverse_by_reference(client):
    _setup(client)

    r = client.get("/transactions/reference/dep-1")
    assert r.status_code == 200
    assert r.json()["data"]["amount"] == "50.00"
    assert client.get("/transactions/reference/nope").status_code == 404

    r1 = client.post("/transactions/reference/wd-1/reverse")
    r2 = client.post("/transactions/reference/wd-1/reverse")
    assert r1.status_code == 200, r1.text
    assert r1.json() == r2.json()
    assert r1.json()["data"]["balance"] == "150.00"

    rev = client.get("/transactions/reference/wd-1-REV").json()["data"]
    assert rev["status"] == "REVERSED"
    assert rev["reversesReference"] == "wd-1"
    assert rev["transactionType"] == "DEPOSIT"

    assert client.post("/transactions/reference/wd-1-REV/reverse").status_code == 400
