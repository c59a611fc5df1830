from __future__ import annotations


def _account(client, name="Checking", **extra):
    r = client.post("/api/accounts", json={"name": name, "type": "checking", **extra})
    assert r.status_code == 201, r.text
    return r.json()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_account_crud_and_balances(client):
    acc = _account(client, openingBalance=10_000, openingDate="2024-01-01")
    assert acc["openingBalance"] == 10_000
    assert acc["type"] == "checking"

    r = client.patch(f"/api/accounts/{acc['id']}", json={"description": "main"})
    assert r.status_code == 200
    assert r.json()["description"] == "main"

    r = client.post(
        "/api/transactions",
        json={"accountId": acc["id"], "amount": -2_500, "description": "coffee", "date": "2024-01-03"},
    )
    assert r.status_code == 201, r.text
    tx = r.json()
    assert tx["kind"] == "DEBIT"
    assert tx["amount"] == -2_500

    r = client.get(f"/api/accounts/{acc['id']}/current-balance")
    assert r.json() == {"accountId": acc["id"], "balance": 7_500}
    r = client.get(f"/api/transactions/balances/{acc['id']}")
    assert r.json()["balance"] == 7_500
    r = client.get("/api/accounts/balances")
    assert r.json() == [{"accountId": acc["id"], "balance": 7_500}]

    assert client.delete(f"/api/transactions/{tx['id']}").status_code == 204
    assert client.get(f"/api/accounts/{acc['id']}/current-balance").json()["balance"] == 10_000

    assert client.delete(f"/api/accounts/{acc['id']}").status_code == 204
    r = client.get(f"/api/accounts/{acc['id']}")
    assert r.status_code == 404
    assert r.json() == {"message": "Account not found"}


def test_error_mapping(client):
    r = client.post("/api/accounts", json={"name": "Card", "type": "check_card"})
    assert r.status_code == 400
    assert r.json()["code"] == "InvalidAccountType"

    # request validation also maps to 400
    r = client.post("/api/accounts", json={"type": "checking"})
    assert r.status_code == 400
    assert "message" in r.json()

    # fractional cents are not accepted
    acc = _account(client)
    r = client.post("/api/transactions", json={"accountId": acc["id"], "amount": 12.5})
    assert r.status_code == 400

    root = client.post("/api/categories", json={"name": "Food"}).json()
    child = client.post("/api/categories", json={"name": "Coffee", "parentId": root["id"]}).json()
    r = client.post("/api/categories", json={"name": "Espresso", "parentId": child["id"]})
    assert r.status_code == 409
    assert r.json()["code"] == "InvalidParent"

    r = client.get("/api/transactions/00000000-0000-0000-0000-000000000000")
    assert r.status_code == 404


def test_category_endpoints(client):
    food = client.post("/api/categories", json={"name": "Food", "color": "#00aa00"}).json()
    rent = client.post("/api/categories", json={"name": "Rent"}).json()
    coffee = client.post("/api/categories", json={"name": "Coffee", "parentId": food["id"]}).json()
    assert (food["sortOrder"], rent["sortOrder"], coffee["sortOrder"]) == (0, 1, 0)

    r = client.get("/api/categories")
    assert r.status_code == 200
    tree = r.json()["categories"]
    assert [c["name"] for c in tree] == ["Food", "Rent"]
    assert [c["name"] for c in tree[0]["children"]] == ["Coffee"]

    r = client.post("/api/categories/reorder", json={"parentId": None, "orderedIds": [rent["id"], food["id"]]})
    assert r.json() == {"ok": True}
    assert [c["name"] for c in client.get("/api/categories").json()["categories"]] == ["Rent", "Food"]

    r = client.post("/api/categories/reorder", json={"parentId": None, "orderedIds": [rent["id"]]})
    assert r.status_code == 400
    assert r.json()["code"] == "InvalidOrdering"

    r = client.delete(f"/api/categories/{food['id']}")
    assert r.status_code == 409
    assert r.json()["code"] == "HasChildren"

    r = client.post(f"/api/categories/{coffee['id']}/move", json={"parentId": None})
    assert r.json()["parentId"] is None
    assert client.delete(f"/api/categories/{food['id']}").status_code == 204

    r = client.post(f"/api/categories/{rent['id']}/archive")
    assert r.json()["archived"] is True
    names = [c["name"] for c in client.get("/api/categories/flat", params={"includeArchived": "true"}).json()]
    assert names == ["Rent", "Coffee"]
    r = client.post(f"/api/categories/{rent['id']}/unarchive")
    assert r.json()["archived"] is False


def test_rule_endpoints_and_auto_categorization(client):
    acc = _account(client)
    transport = client.post("/api/categories", json={"name": "Transport"}).json()
    food = client.post("/api/categories", json={"name": "Food"}).json()

    r1 = client.post(
        "/api/transaction-rules",
        json={"name": "uber", "pattern": "uber", "priority": 10, "categoryId": transport["id"]},
    ).json()
    r2 = client.post(
        "/api/transaction-rules",
        json={"name": "u", "pattern": "u", "priority": 20, "categoryId": food["id"]},
    ).json()

    r = client.post("/api/transaction-rules/test", json={"description": "uber eats"})
    assert r.json()["rule"]["id"] == r1["id"]

    tx = client.post("/api/transactions", json={"accountId": acc["id"], "amount": -1_800, "description": "Uber Eats"}).json()
    assert tx["categoryId"] == transport["id"]

    r = client.post("/api/transaction-rules/reorder", json={"ids": [r2["id"], r1["id"]]})
    assert r.json() == {"ok": True}
    rules = client.get("/api/transaction-rules").json()
    assert [(r["id"], r["priority"]) for r in rules] == [(r2["id"], 10), (r1["id"], 20)]

    r = client.post("/api/transaction-rules", json={"name": "bad", "pattern": "(", "isRegex": True})
    assert r.status_code == 400
    assert r.json()["code"] == "InvalidPattern"

    r = client.put(f"/api/transaction-rules/{r1['id']}", json={"isActive": False})
    assert r.json()["isActive"] is False
    assert client.delete(f"/api/transaction-rules/{r2['id']}").status_code == 204
    assert client.post("/api/transaction-rules/test", json={"description": "uber"}).json() == {"rule": None}


def test_transaction_listing_and_grouping(client):
    acc = _account(client)
    food = client.post("/api/categories", json={"name": "Food"}).json()
    for amount, day, cat in ((-100, "2024-02-01", food["id"]), (-200, "2024-02-02", None), (300, "2024-02-03", None)):
        r = client.post(
            "/api/transactions",
            json={"accountId": acc["id"], "amount": amount, "date": day, "categoryId": cat},
        )
        assert r.status_code == 201

    r = client.get("/api/transactions", params={"sortBy": "amount", "sortDir": "asc", "pageSize": 2})
    body = r.json()
    assert (body["total"], body["page"], body["pageSize"]) == (3, 1, 2)
    assert [t["amount"] for t in body["items"]] == [-200, -100]

    r = client.get("/api/transactions", params={"categoryId": "null"})
    assert r.json()["total"] == 2
    r = client.get("/api/transactions", params={"categoryId": food["id"], "from": "2024-02-01", "to": "2024-02-01"})
    assert r.json()["total"] == 1

    assert client.get("/api/transactions", params={"pageSize": 500}).status_code == 400
    assert client.get("/api/transactions", params={"sortBy": "bogus"}).status_code == 400

    groups = client.get("/api/transactions/group-by-category").json()["groups"]
    assert [(g["categoryId"], g["count"], g["sum"]) for g in groups] == [(food["id"], 1, -100), (None, 2, 100)]


def test_transaction_update_over_http(client):
    acc = _account(client)
    tx = client.post("/api/transactions", json={"accountId": acc["id"], "amount": -500, "notes": "x"}).json()

    r = client.put(f"/api/transactions/{tx['id']}", json={"kind": "CREDIT"})
    assert (r.json()["kind"], r.json()["amount"]) == ("CREDIT", 500)
    assert r.json()["notes"] == "x"

    r = client.put(f"/api/transactions/{tx['id']}", json={"notes": None})
    assert r.json()["notes"] is None

    r = client.put(f"/api/transactions/{tx['id']}", json={"bogus": 1})
    assert r.status_code == 400


def test_transfer_endpoints(client):
    checking = _account(client, "Checking")
    savings = _account(client, "Savings")

    r = client.post(
        "/api/transactions/transfers",
        json={"fromAccountId": checking["id"], "toAccountId": savings["id"], "amount": 2_000, "date": "2024-03-03"},
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["out"]["amount"] == -2_000
    assert body["in"]["amount"] == 2_000
    assert body["out"]["transferId"] == body["transferId"]

    r = client.get("/api/transactions/transfers", params={"accountId": savings["id"]})
    assert [leg["amount"] for leg in r.json()["items"]] == [2_000]

    r = client.post(
        "/api/transactions/transfers",
        json={"fromAccountId": checking["id"], "toAccountId": checking["id"], "amount": 1},
    )
    assert r.status_code == 400
    assert r.json()["code"] == "InvalidTransfer"

    assert client.delete(f"/api/transactions/transfers/{body['transferId']}").status_code == 204
    assert client.get("/api/transactions").json()["total"] == 0

    tx = client.post("/api/transactions", json={"accountId": checking["id"], "amount": -900}).json()
    r = client.post("/api/transactions/transfers/convert", json={"txId": tx["id"], "toAccountId": savings["id"]})
    assert r.status_code == 200, r.text
    converted = r.json()
    assert converted["source"]["id"] == tx["id"]
    assert converted["destination"]["amount"] == 900

    r = client.post("/api/transactions/transfers/convert", json={"txId": tx["id"], "toAccountId": savings["id"]})
    assert r.status_code == 409
    assert r.json()["code"] == "AlreadyTransfer"
