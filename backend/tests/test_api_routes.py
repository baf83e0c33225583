"""Integration tests for API routes."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from io import BytesIO

from openpyxl import load_workbook

from conftest import HOUSEHOLD_ID, NOW, USER_ID


def _create_account(client, **overrides) -> dict:
    payload = {"name": "Checking", "type": "bank", "currency": "USD", "balance": "1000"}
    payload.update(overrides)
    response = client.post("/accounts", json=payload)
    assert response.status_code == 200, response.text
    return response.json()


def _create_category(client, **overrides) -> dict:
    payload = {"name": "Groceries", "type": "expense", "icon": "shopping-cart", "color": "#f43f5e"}
    payload.update(overrides)
    response = client.post("/categories", json=payload)
    assert response.status_code == 200, response.text
    return response.json()


def _create_transaction(client, account_id: str, **overrides) -> dict:
    payload = {
        "account_id": account_id,
        "type": "expense",
        "amount": "50",
        "date": date.today().isoformat(),
        "description": "Supermarket",
    }
    payload.update(overrides)
    response = client.post("/transactions", json=payload)
    assert response.status_code == 200, response.text
    return response.json()


class TestBasics:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_meta_lists_reference_data(self, client):
        data = client.get("/meta").json()
        assert {c["code"] for c in data["currencies"]} >= {"USD", "ARS", "BTC"}
        assert [t["value"] for t in data["account_types"]] == ["cash", "bank", "credit_card", "crypto"]
        assert "shopping-cart" in data["category_icons"]

    def test_requires_authentication(self, client):
        response = client.get("/accounts", headers={"X-Demo-User-Id": ""})
        assert response.status_code == 401

    def test_me_without_profile(self, client):
        data = client.get("/me").json()
        assert data["uid"] == USER_ID
        assert data["is_demo"] is True
        assert data["profile"] is None

    def test_register_profile_provisions_household(self, client, household_repo):
        household_repo.save_profile.side_effect = lambda uid, email, name, currency: {
            "id": uid,
            "email": email,
            "display_name": name,
            "main_currency": currency,
            "created_at": NOW,
            "updated_at": NOW,
        }

        response = client.post("/me/profile", json={"display_name": " Ana ", "main_currency": "ars"})

        assert response.status_code == 200
        data = response.json()
        assert data["profile"]["display_name"] == "Ana"
        assert data["profile"]["main_currency"] == "ARS"
        assert data["household"]["id"] == HOUSEHOLD_ID
        household_repo.ensure_household.assert_called_with(USER_ID, "Ana's Household")

    def test_register_profile_rejects_unknown_currency(self, client):
        response = client.post("/me/profile", json={"display_name": "Ana", "main_currency": "XYZ"})
        assert response.status_code == 422


class TestAccounts:
    def test_create_and_list(self, client):
        created = _create_account(client)
        assert Decimal(created["balance"]) == Decimal("1000")
        assert Decimal(created["opening_balance"]) == Decimal("1000")
        assert created["formatted_balance"] == "$1,000.00"
        assert created["household_id"] == HOUSEHOLD_ID

        listed = client.get("/accounts").json()
        assert [a["id"] for a in listed] == [created["id"]]

    def test_credit_card_available_credit(self, client):
        card = _create_account(
            client, name="Visa", type="credit_card", balance="-200", credit_limit="1000", due_day=5
        )
        assert Decimal(card["available_credit"]) == Decimal("800")

    def test_credit_fields_rejected_on_bank_account(self, client):
        response = client.post(
            "/accounts", json={"name": "Checking", "type": "bank", "currency": "USD", "credit_limit": "100"}
        )
        assert response.status_code == 400
        assert "credit_limit" in response.json()["detail"]

    def test_unknown_currency(self, client):
        response = client.post("/accounts", json={"name": "Checking", "currency": "ZZZ"})
        assert response.status_code == 422

    def test_missing_account(self, client):
        assert client.get("/accounts/nope").status_code == 404

    def test_delete_account_in_use_conflicts(self, client):
        account = _create_account(client)
        _create_transaction(client, account["id"])

        response = client.delete(f"/accounts/{account['id']}")

        assert response.status_code == 409

    def test_rename_account(self, client):
        account = _create_account(client)
        response = client.put(f"/accounts/{account['id']}", json={"name": "Main Checking"})
        assert response.status_code == 200
        assert response.json()["name"] == "Main Checking"


class TestCategories:
    def test_duplicate_name_per_type_conflicts(self, client):
        _create_category(client)
        response = client.post("/categories", json={"name": "groceries", "type": "expense"})
        assert response.status_code == 409

    def test_same_name_allowed_for_other_type(self, client):
        _create_category(client, name="Other")
        _create_category(client, name="Other", type="income", icon="wallet")
        assert len(client.get("/categories", params={"type": "income"}).json()) == 1

    def test_unknown_icon_rejected(self, client):
        response = client.post("/categories", json={"name": "Pets", "type": "expense", "icon": "dog"})
        assert response.status_code == 422

    def test_rename_to_blank_rejected(self, client):
        category = _create_category(client)

        response = client.put(f"/categories/{category['id']}", json={"name": "   "})

        assert response.status_code == 422
        assert [c["name"] for c in client.get("/categories").json()] == ["Groceries"]

    def test_rename_strips_whitespace(self, client):
        category = _create_category(client)

        response = client.put(f"/categories/{category['id']}", json={"name": "  Food  "})

        assert response.status_code == 200
        assert response.json()["name"] == "Food"

    def test_delete_category_in_use_conflicts(self, client):
        account = _create_account(client)
        category = _create_category(client)
        _create_transaction(client, account["id"], category_id=category["id"])

        assert client.delete(f"/categories/{category['id']}").status_code == 409


class TestTransactions:
    def test_expense_updates_balance(self, client):
        account = _create_account(client)
        category = _create_category(client)

        txn = _create_transaction(client, account["id"], category_id=category["id"])

        assert txn["category_name"] == "Groceries"
        assert txn["formatted_amount"] == "-$50.00"
        balance = client.get(f"/accounts/{account['id']}").json()["balance"]
        assert Decimal(balance) == Decimal("950")

    def test_transfer_to_same_account_rejected(self, client):
        account = _create_account(client)
        response = client.post(
            "/transactions",
            json={
                "account_id": account["id"],
                "to_account_id": account["id"],
                "type": "transfer",
                "amount": "10",
                "date": "2024-03-01",
            },
        )
        assert response.status_code == 422

    def test_zero_amount_rejected(self, client):
        account = _create_account(client)
        response = client.post(
            "/transactions",
            json={"account_id": account["id"], "type": "expense", "amount": "0", "date": "2024-03-01"},
        )
        assert response.status_code == 422

    def test_cross_currency_transfer_without_rate(self, client):
        usd = _create_account(client)
        ars = _create_account(client, name="Pesos", currency="ARS", balance="0")
        response = client.post(
            "/transactions",
            json={
                "account_id": usd["id"],
                "to_account_id": ars["id"],
                "type": "transfer",
                "amount": "10",
                "date": "2024-03-01",
            },
        )
        assert response.status_code == 400

    def test_list_update_and_delete(self, client):
        account = _create_account(client)
        txn = _create_transaction(client, account["id"])

        listed = client.get("/transactions", params={"search": "super"}).json()
        assert [t["id"] for t in listed] == [txn["id"]]

        updated = client.put(f"/transactions/{txn['id']}", json={"description": "Corner shop"})
        assert updated.json()["description"] == "Corner shop"

        assert client.delete(f"/transactions/{txn['id']}").status_code == 200
        assert client.get(f"/transactions/{txn['id']}").status_code == 404
        assert Decimal(client.get(f"/accounts/{account['id']}").json()["balance"]) == Decimal("1000")

    def test_installments_listed_and_paid(self, client):
        card = _create_account(client, name="Visa", type="credit_card", balance="0", due_day=10)
        txn = _create_transaction(
            client, card["id"], amount="300", is_installment=True, installment_count=3
        )
        assert len(txn["installments"]) == 3

        pending = client.get("/installments", params={"pending_only": True}).json()
        assert len(pending) == 3
        assert pending[0]["description"] == "Supermarket"

        paid = client.post(f"/installments/{pending[0]['id']}/pay")
        assert paid.status_code == 200
        assert paid.json()["is_paid"] is True
        assert client.post(f"/installments/{pending[0]['id']}/pay").status_code == 409

    def test_reconcile(self, client):
        account = _create_account(client)
        _create_transaction(client, account["id"])

        data = client.get(f"/accounts/{account['id']}/reconcile").json()

        assert data["is_consistent"] is True
        assert data["transaction_count"] == 1


class TestExchangeRates:
    def test_create_and_convert(self, client):
        response = client.post(
            "/exchange-rates", json={"base_currency": "usd", "target_currency": "ARS", "rate": "1000"}
        )
        assert response.status_code == 200
        assert response.json()["base_currency"] == "USD"

        converted = client.get("/exchange-rates/convert", params={"amount": "2.5", "base": "USD", "target": "ARS"})
        assert converted.status_code == 200
        assert Decimal(converted.json()["converted"]) == Decimal("2500")

        inverse = client.get("/exchange-rates/convert", params={"amount": "500", "base": "ARS", "target": "USD"})
        assert Decimal(inverse.json()["converted"]) == Decimal("0.5")

    def test_same_currency_rate_rejected(self, client):
        response = client.post(
            "/exchange-rates", json={"base_currency": "USD", "target_currency": "USD", "rate": "1"}
        )
        assert response.status_code == 400

    def test_convert_without_rate(self, client):
        response = client.get("/exchange-rates/convert", params={"amount": "1", "base": "EUR", "target": "USD"})
        assert response.status_code == 404

    def test_list_filters_by_base_and_target(self, client):
        client.post("/exchange-rates", json={"base_currency": "USD", "target_currency": "ARS", "rate": "1000"})
        client.post("/exchange-rates", json={"base_currency": "USD", "target_currency": "BRL", "rate": "5"})
        client.post("/exchange-rates", json={"base_currency": "BRL", "target_currency": "USD", "rate": "0.2"})

        response = client.get("/exchange-rates", params={"base": "USD", "target": "BRL"})
        assert response.status_code == 200
        assert [(r["base_currency"], r["target_currency"]) for r in response.json()] == [("USD", "BRL")]

        from_usd = client.get("/exchange-rates", params={"base": "usd"}).json()
        assert sorted(r["target_currency"] for r in from_usd) == ["ARS", "BRL"]

    def test_unknown_currency_param_rejected(self, client):
        response = client.get("/exchange-rates", params={"base": "XYZ"})
        assert response.status_code == 400


class TestDashboardAndReports:
    def test_dashboard_converts_to_main_currency(self, client):
        checking = _create_account(client)
        _create_account(client, name="Pesos", currency="ARS", balance="-100000")
        _create_account(client, name="Euros", currency="EUR", balance="10")
        client.post("/exchange-rates", json={"base_currency": "USD", "target_currency": "ARS", "rate": "1000"})
        _create_transaction(client, checking["id"], type="income", amount="200")
        _create_transaction(client, checking["id"], amount="50")

        data = client.get("/dashboard").json()

        assert data["main_currency"] == "USD"
        assert Decimal(data["total_net_worth"]["amount"]) == Decimal("1050")
        assert Decimal(data["monthly_income"]["amount"]) == Decimal("200")
        assert Decimal(data["monthly_expenses"]["amount"]) == Decimal("50")
        assert data["active_accounts"] == 3
        assert data["unconverted_currencies"] == ["EUR"]
        assert len(data["recent_transactions"]) == 2

    def test_monthly_report(self, client):
        account = _create_account(client)
        _create_transaction(client, account["id"], amount="75")

        data = client.get("/reports/monthly", params={"months": 3}).json()

        assert len(data["months"]) == 3
        assert Decimal(data["months"][-1]["expenses"]) == Decimal("75")
        assert data["expense_breakdown"][0]["category"] == "Uncategorized"

    def test_monthly_report_bounds(self, client):
        assert client.get("/reports/monthly", params={"months": 0}).status_code == 422

    def test_export_xlsx(self, client):
        account = _create_account(client)
        _create_transaction(client, account["id"])

        response = client.get("/reports/export.xlsx")

        assert response.status_code == 200
        assert "spreadsheetml" in response.headers["content-type"]
        sheet = load_workbook(BytesIO(response.content)).active
        assert sheet["A1"].value == "Date"
        assert sheet["C2"].value == "Checking"
        assert sheet["G2"].value == 50.0
