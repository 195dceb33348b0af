"""HTTP surface for accounts, transactions, credits, maintenance and settings."""

import csv
import io


def _account(client, headers, balance="100", name="Main"):
    resp = client.post("/api/accounts", json={"name": name, "initial_balance": balance}, headers=headers)
    assert resp.status_code == 201
    return resp.get_json()["id"]


def _balance(client, headers, account_id):
    rows = client.get("/api/accounts", headers=headers).get_json()
    return next(a["current_balance"] for a in rows if a["id"] == account_id)


def test_healthz(client):
    assert client.get("/healthz").data == b"ok"


def test_requires_token(client):
    assert client.get("/api/accounts").status_code == 401
    assert client.get("/api/accounts", headers={"Authorization": "Bearer user_x.deadbeef"}).status_code == 401


class TestAccounts:
    def test_create_and_correct(self, client, alice):
        account_id = _account(client, alice)
        resp = client.patch(f"/api/accounts/{account_id}", json={"initialBalance": "250.5"}, headers=alice)
        assert resp.status_code == 200
        assert resp.get_json()["current_balance"] == 250.5

    def test_name_required(self, client, alice):
        assert client.post("/api/accounts", json={"name": "  "}, headers=alice).status_code == 400

    def test_categories_filter(self, client, alice, categories):
        rows = client.get("/api/categories?type=income", headers=alice).get_json()
        assert [c["name"] for c in rows] == ["Salary"]


class TestTransactionsApi:
    def test_lifecycle_moves_balance(self, client, alice, categories):
        account_id = _account(client, alice)
        body = {"account_id": account_id, "category_id": categories["food"], "amount": "30",
                "type": "expense", "date": "2025-03-10"}
        txn = client.post("/api/transactions", json=body, headers=alice).get_json()
        assert _balance(client, alice, account_id) == 70

        client.patch(f"/api/transactions/{txn['id']}", json={"amount": "50"}, headers=alice)
        assert _balance(client, alice, account_id) == 50

        client.delete(f"/api/transactions/{txn['id']}", headers=alice)
        assert _balance(client, alice, account_id) == 100

    def test_future_dated_waits(self, client, alice, categories):
        account_id = _account(client, alice)
        body = {"accountId": account_id, "categoryId": categories["salary"], "amount": "40",
                "type": "income", "date": "2025-04-01"}
        assert client.post("/api/transactions", json=body, headers=alice).status_code == 201
        assert _balance(client, alice, account_id) == 100

        listed = client.get("/api/transactions", headers=alice).get_json()
        assert listed == []
        listed = client.get("/api/transactions?include_upcoming=1", headers=alice).get_json()
        assert len(listed) == 1

    def test_other_users_account_is_invisible(self, client, alice, bob, categories):
        account_id = _account(client, alice)
        body = {"account_id": account_id, "category_id": categories["food"], "amount": "5",
                "type": "expense", "date": "2025-03-10"}
        assert client.post("/api/transactions", json=body, headers=bob).status_code == 404


class TestTransfersApi:
    def test_create_and_delete(self, client, alice):
        a, b = _account(client, alice, "100", "A"), _account(client, alice, "0", "B")
        resp = client.post("/api/transfers", json={"from_account_id": a, "to_account_id": b,
                                                   "amount": "25", "date": "2025-03-14"}, headers=alice)
        assert resp.status_code == 201
        assert (_balance(client, alice, a), _balance(client, alice, b)) == (75, 25)

        client.delete(f"/api/transfers/{resp.get_json()['id']}", headers=alice)
        assert (_balance(client, alice, a), _balance(client, alice, b)) == (100, 0)

    def test_same_account_rejected(self, client, alice):
        a = _account(client, alice)
        resp = client.post("/api/transfers", json={"from_account_id": a, "to_account_id": a,
                                                   "amount": "1", "date": "2025-03-14"}, headers=alice)
        assert resp.status_code == 400


class TestCreditsApi:
    def test_repay_flow(self, client, alice, categories):
        account_id = _account(client, alice, "500")
        credit = client.post("/api/credits", json={"title": "Car", "principal": "300",
                                                   "account_id": account_id}, headers=alice).get_json()
        assert credit["outstanding"] == 300

        resp = client.post(f"/api/credits/{credit['id']}/repay", json={"amount": "100"}, headers=alice)
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["credit"]["outstanding"] == 200
        assert body["transaction"]["credit_id"] == credit["id"]
        assert _balance(client, alice, account_id) == 400

        too_much = client.post(f"/api/credits/{credit['id']}/repay", json={"amount": "201"}, headers=alice)
        assert too_much.status_code == 400

    def test_foreign_credit_is_404(self, client, alice, bob):
        credit = client.post("/api/credits", json={"principal": "10"}, headers=alice).get_json()
        assert client.delete(f"/api/credits/{credit['id']}", headers=bob).status_code == 404


class TestMaintenanceApi:
    def test_change_month(self, client, alice, categories):
        account_id = _account(client, alice)
        assert client.post("/api/change-month", headers=alice).status_code == 409

        body = {"account_id": account_id, "category_id": categories["food"], "amount": "12",
                "type": "expense", "date": "2025-02-20"}
        client.post("/api/transactions", json=body, headers=alice)
        resp = client.post("/api/change-month", headers=alice)

        assert resp.status_code == 200
        assert resp.get_json()["month_year"] == "2025-02"
        assert resp.get_json()["archived"] == 1
        assert client.post("/api/change-month", headers=alice).status_code == 409

    def test_process_recurring(self, client, alice, categories):
        account_id = _account(client, alice)
        body = {"account_id": account_id, "category_id": categories["food"], "amount": "50",
                "type": "expense", "date": "2025-03-01", "is_recurring": True}
        client.post("/api/transactions", json=body, headers=alice)
        assert client.get("/api/process-recurring", headers=alice).get_json()["pending"] == 1

        run = client.post("/api/process-recurring", headers=alice).get_json()

        assert run["processed"] == 1
        assert _balance(client, alice, account_id) == 50
        assert client.get("/api/process-recurring", headers=alice).get_json()["pending"] == 0


class TestSettingsApi:
    def test_settings_round_trip(self, client, alice):
        assert client.get("/api/settings", headers=alice).get_json() == {}
        resp = client.patch("/api/settings", json={"savings_rate": "12.5", "spend_targets": {"food": 300}},
                            headers=alice)
        assert resp.get_json()["savings_rate"] == 12.5
        assert client.get("/api/settings", headers=alice).get_json()["spend_targets"] == {"food": 300}

    def test_csv_export(self, client, alice, categories):
        account_id = _account(client, alice)
        body = {"account_id": account_id, "category_id": categories["food"], "amount": "9.99",
                "type": "expense", "date": "2025-03-02", "note": "bread"}
        client.post("/api/transactions", json=body, headers=alice)

        resp = client.get("/api/export?format=csv", headers=alice)

        assert resp.mimetype == "text/csv"
        assert "moneyflow-export-2025-03-15.csv" in resp.headers["Content-Disposition"]
        rows = list(csv.reader(io.StringIO(resp.data.decode())))
        assert rows[0] == ["ACCOUNTS"]
        assert ["2025-03-02", "expense", "9.99", "Groceries", "Main", "bread", "no", ""] in rows

    def test_json_export_only_transactions(self, client, alice):
        _account(client, alice)
        data = client.get("/api/export?format=json&type=transactions", headers=alice).get_json()
        assert set(data) == {"transactions", "export_date"}

    def test_bad_format(self, client, alice):
        assert client.get("/api/export?format=xml", headers=alice).status_code == 400
