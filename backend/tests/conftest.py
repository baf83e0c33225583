"""Pytest fixtures and configuration."""

from __future__ import annotations

import itertools
import os
from typing import Any, Generator
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

# Set environment variables before importing app modules
os.environ["DEMO_MODE"] = "true"
os.environ["DEFAULT_CURRENCY"] = "USD"

from app.core.money import quantize_amount, to_decimal  # noqa: E402

NOW = "2024-03-01T12:00:00+00:00"
USER_ID = "demo_test-user"
HOUSEHOLD_ID = "household-1"


def make_household(**overrides: Any) -> dict[str, Any]:
    household = {
        "id": HOUSEHOLD_ID,
        "name": "Test User's Household",
        "owner_id": USER_ID,
        "created_at": NOW,
        "updated_at": NOW,
        "member_count": 1,
    }
    household.update(overrides)
    return household


def make_membership(user_id: str = USER_ID, role: str = "owner", **overrides: Any) -> dict[str, Any]:
    membership = {
        "id": user_id,
        "household_id": HOUSEHOLD_ID,
        "user_id": user_id,
        "role": role,
        "created_at": NOW,
        "invited_by": None,
    }
    membership.update(overrides)
    return membership


def fake_user_details(user_id: str):
    if user_id.startswith("demo_"):
        demo_id = user_id.replace("demo_", "", 1)
        return (f"{demo_id}@demo.fintrack.local", f"Demo User ({demo_id})")
    return (f"{user_id}@test.com", f"Test User ({user_id})")


def build_finance_repo() -> MagicMock:
    """MagicMock FinanceRepository backed by in-memory dicts.

    Balance deltas are applied on record/delete so tests can check the
    balances the services produce.
    """
    store: dict[str, dict[str, dict[str, Any]]] = {
        "categories": {},
        "accounts": {},
        "transactions": {},
        "installments": {},
        "exchange_rates": {},
    }
    counter = itertools.count(1)
    repo = MagicMock()
    repo.store = store

    def insert(kind: str, data: dict[str, Any]) -> dict[str, Any]:
        item_id = data.get("id") or f"{kind}-{next(counter)}"
        item = {"created_at": NOW, "updated_at": NOW, **data, "id": item_id}
        store[kind][item_id] = item
        return item

    def listed(kind: str):
        return lambda household_id: [
            dict(item) for item in store[kind].values() if item.get("household_id") == household_id
        ]

    def scoped(kind: str):
        def get(item_id: str, household_id: str):
            item = store[kind].get(item_id)
            return dict(item) if item and item.get("household_id") == household_id else None

        return get

    def update(kind: str):
        def _update(item_id: str, data: dict[str, Any]):
            store[kind][item_id].update(data)
            return dict(store[kind][item_id])

        return _update

    def apply_deltas(deltas):
        for account_id, delta in deltas.items():
            account = store["accounts"][account_id]
            balance = to_decimal(account["balance"]) + delta
            account["balance"] = str(quantize_amount(balance, account["currency"]))

    def record_transaction(data, balance_deltas, installments):
        apply_deltas(balance_deltas)
        txn = insert("transactions", data)
        for item in installments:
            insert("installments", {**item, "transaction_id": txn["id"]})
        return dict(txn)

    def delete_transaction(transaction_id, balance_deltas):
        apply_deltas(balance_deltas)
        store["transactions"].pop(transaction_id)
        for item_id in [i for i, item in store["installments"].items() if item["transaction_id"] == transaction_id]:
            store["installments"].pop(item_id)

    def installments_for(transaction_id):
        items = [dict(i) for i in store["installments"].values() if i["transaction_id"] == transaction_id]
        return sorted(items, key=lambda i: i["current_installment"])

    def count_for(field_names):
        def count(household_id, item_id):
            return sum(
                1
                for txn in listed("transactions")(household_id)
                if item_id in [txn.get(name) for name in field_names]
            )

        return count

    def list_rates(base_currency=None, target_currency=None):
        return [
            dict(r)
            for r in store["exchange_rates"].values()
            if (base_currency is None or r["base_currency"] == base_currency)
            and (target_currency is None or r["target_currency"] == target_currency)
        ]

    repo.list_categories.side_effect = listed("categories")
    repo.get_category.side_effect = scoped("categories")
    repo.create_category.side_effect = lambda household_id, data: insert(
        "categories", {**data, "household_id": household_id}
    )
    repo.update_category.side_effect = update("categories")
    repo.delete_category.side_effect = lambda category_id: store["categories"].pop(category_id, None)

    repo.list_accounts.side_effect = listed("accounts")
    repo.get_account.side_effect = scoped("accounts")
    repo.create_account.side_effect = lambda household_id, data: insert(
        "accounts", {**data, "household_id": household_id}
    )
    repo.update_account.side_effect = update("accounts")
    repo.delete_account.side_effect = lambda account_id: store["accounts"].pop(account_id, None)

    repo.list_transactions.side_effect = listed("transactions")
    repo.get_transaction.side_effect = scoped("transactions")
    repo.update_transaction.side_effect = update("transactions")
    repo.record_transaction.side_effect = record_transaction
    repo.delete_transaction.side_effect = delete_transaction
    repo.count_transactions_for_account.side_effect = count_for(["account_id", "to_account_id"])
    repo.count_transactions_for_category.side_effect = count_for(["category_id"])

    repo.list_installments.side_effect = listed("installments")
    repo.list_installments_for_transaction.side_effect = installments_for
    repo.get_installment.side_effect = scoped("installments")
    repo.update_installment.side_effect = update("installments")

    repo.list_exchange_rates.side_effect = list_rates
    repo.create_exchange_rate.side_effect = lambda data: insert("exchange_rates", data)
    repo.delete_household_data.return_value = 0
    return repo


@pytest.fixture
def finance_repo() -> MagicMock:
    return build_finance_repo()


@pytest.fixture
def household_repo() -> MagicMock:
    """Mock HouseholdRepository: the caller owns a solo household."""
    repo = MagicMock()
    repo.get_profile.return_value = None
    repo.ensure_household.return_value = (make_household(), make_membership(), False)
    repo.get_household.return_value = make_household()
    repo.get_membership.return_value = make_membership()
    repo.list_members.return_value = [make_membership()]
    repo.list_invites.return_value = []
    repo.get_invite.return_value = None
    return repo


@pytest.fixture
def client(household_repo, finance_repo) -> Generator[TestClient, None, None]:
    """Test client with both repositories swapped for mocks."""
    from app.main import app
    from app.repositories.finance_repo import get_finance_repo
    from app.repositories.household_repo import get_household_repo

    app.dependency_overrides[get_household_repo] = lambda: household_repo
    app.dependency_overrides[get_finance_repo] = lambda: finance_repo

    with patch("app.services.household_service.get_user_details", side_effect=fake_user_details):
        test_client = TestClient(app)
        # Use demo mode for authentication
        test_client.headers["X-Demo-User-Id"] = "test-user"
        yield test_client

    app.dependency_overrides.pop(get_household_repo, None)
    app.dependency_overrides.pop(get_finance_repo, None)


@pytest.fixture
def usd_account(finance_repo) -> dict[str, Any]:
    return finance_repo.create_account(
        HOUSEHOLD_ID,
        {"name": "Checking", "type": "bank", "currency": "USD", "balance": "1000.00", "opening_balance": "1000.00"},
    )


@pytest.fixture
def ars_card(finance_repo) -> dict[str, Any]:
    return finance_repo.create_account(
        HOUSEHOLD_ID,
        {
            "name": "Visa",
            "type": "credit_card",
            "currency": "ARS",
            "balance": "0.00",
            "opening_balance": "0.00",
            "credit_limit": "500000",
            "closing_day": 25,
            "due_day": 5,
        },
    )


@pytest.fixture
def groceries(finance_repo) -> dict[str, Any]:
    return finance_repo.create_category(
        HOUSEHOLD_ID, {"name": "Groceries", "type": "expense", "icon": "shopping-cart", "color": "#f43f5e"}
    )


@pytest.fixture
def salary(finance_repo) -> dict[str, Any]:
    return finance_repo.create_category(
        HOUSEHOLD_ID, {"name": "Salary", "type": "income", "icon": "briefcase", "color": "#14b8a6"}
    )
