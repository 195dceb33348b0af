"""Dashboard sharing over HTTP: owner management and recipient permissions."""

import pytest


@pytest.fixture
def shared(client, alice, bob, categories):
    """Alice owns an account holding 100 and knows bob by username."""
    assert client.patch("/api/me", json={"username": "alice"}, headers=alice).status_code == 200
    assert client.patch("/api/me", json={"username": "bob"}, headers=bob).status_code == 200
    resp = client.post("/api/accounts", json={"name": "Joint", "initial_balance": "100"}, headers=alice)
    assert resp.status_code == 201
    return resp.get_json()["id"]


def _share(client, alice, permission):
    resp = client.post("/api/shares", json={"username": "bob", "permission": permission}, headers=alice)
    assert resp.status_code == 201
    return resp.get_json()["id"]


def _balance(client, headers, account_id):
    accounts = client.get("/api/accounts", headers=headers).get_json()
    return next(a["current_balance"] for a in accounts if a["id"] == account_id)


def _expense(categories, account_id, amount="30", when="2025-03-14"):
    return {
        "account_id": account_id, "category_id": categories["food"],
        "amount": amount, "type": "expense", "date": when,
    }


def test_requires_authentication(client):
    assert client.get("/api/shares").status_code == 401
    bad = {"Authorization": "Bearer user_alice.deadbeef"}
    assert client.get("/api/shares", headers=bad).status_code == 401


def test_share_validation(client, alice, shared):
    assert client.post("/api/shares", json={"username": "nobody"}, headers=alice).status_code == 404
    assert client.post("/api/shares", json={"username": "alice"}, headers=alice).status_code == 400
    assert client.post(
        "/api/shares", json={"username": "bob", "permission": "admin"}, headers=alice
    ).status_code == 400
    _share(client, alice, "view")
    dup = client.post("/api/shares", json={"username": "bob"}, headers=alice)
    assert dup.status_code == 409


def test_owner_lists_shares_with_usernames(client, alice, shared):
    _share(client, alice, "view")
    rows = client.get("/api/shares", headers=alice).get_json()
    assert [(r["shared_with_username"], r["permission"]) for r in rows] == [("bob", "view")]


def test_without_share_account_looks_missing(client, bob, shared, categories):
    resp = client.post("/api/shared-dashboards/transactions", json=_expense(categories, shared), headers=bob)
    assert resp.status_code == 404


def test_view_permission_cannot_mutate(client, alice, bob, shared, categories):
    _share(client, alice, "view")
    resp = client.post("/api/shared-dashboards/transactions", json=_expense(categories, shared), headers=bob)
    assert resp.status_code == 403
    assert _balance(client, alice, shared) == 100.0


def test_edit_permission_goes_through_the_ledger(client, alice, bob, shared, categories):
    share_id = _share(client, alice, "edit")

    created = client.post("/api/shared-dashboards/transactions", json=_expense(categories, shared), headers=bob)
    assert created.status_code == 201
    txn_id = created.get_json()["id"]
    assert _balance(client, alice, shared) == 70.0

    edited = client.patch(f"/api/shared-dashboards/transactions/{txn_id}", json={"amount": "50"}, headers=bob)
    assert edited.status_code == 200
    assert _balance(client, alice, shared) == 50.0

    # downgrade: bob can no longer delete
    assert client.patch(f"/api/shares/{share_id}", json={"permission": "view"}, headers=alice).status_code == 200
    assert client.delete(f"/api/shared-dashboards/transactions/{txn_id}", headers=bob).status_code == 403

    assert client.delete(f"/api/transactions/{txn_id}", headers=alice).status_code == 200
    assert _balance(client, alice, shared) == 100.0


def test_recipient_dashboard(client, alice, bob, shared, categories):
    _share(client, alice, "view")
    client.post("/api/transactions", json=_expense(categories, shared, "30", "2025-03-10"), headers=alice)
    client.post("/api/transactions", json=_expense(categories, shared, "5", "2025-03-20"), headers=alice)

    boards = client.get("/api/shared-dashboards", headers=bob).get_json()

    assert len(boards) == 1
    board = boards[0]
    assert board["owner_username"] == "alice"
    assert board["permission"] == "view"
    assert board["total_balance"] == 70.0
    assert board["monthly_expense"] == 30.0
    assert [t["date"] for t in board["transactions"]] == ["2025-03-10"]
    assert board["current_month_start"] is None


def test_revoked_share_disappears(client, alice, bob, shared):
    share_id = _share(client, alice, "view")
    assert client.delete(f"/api/shares/{share_id}", headers=alice).status_code == 200
    assert client.get("/api/shared-dashboards", headers=bob).get_json() == []
    assert client.delete(f"/api/shares/{share_id}", headers=alice).status_code == 404
