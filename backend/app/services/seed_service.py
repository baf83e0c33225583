"""
Demo data seeding.

Fills an empty household with categories, exchange rates, accounts, a handful
of recent transactions and a six-installment credit card purchase. Each row is
created independently; a failing row is logged and reported, not fatal.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Optional

from app.core.constants import DEFAULT_CATEGORIES
from app.core.exceptions import ConflictError
from app.core.logging import LogContext, get_logger
from app.repositories.finance_repo import FinanceRepository
from app.services.account_service import AccountService
from app.services.exchange_service import ExchangeRateService
from app.services.transaction_service import TransactionService

logger = get_logger("fintrack.services.seed")


@dataclass(frozen=True)
class SeedAccount:
    name: str
    type: str
    currency: str
    balance: Decimal
    credit_limit: Optional[Decimal] = None
    closing_day: Optional[int] = None
    due_day: Optional[int] = None


@dataclass(frozen=True)
class SeedTransaction:
    account: str
    category: str
    amount: Decimal
    days_ago: Optional[int]  # None = first day of the current month
    type: str
    description: str


SEED_EXCHANGE_RATES: tuple[tuple[str, str, str, str], ...] = (
    ("USD", "ARS", "1000", "real"),
    ("USD", "BRL", "5", "real"),
    ("ARS", "USD", "0.001", "real"),
    ("BRL", "USD", "0.2", "real"),
    ("USD", "USD", "1", "official"),
    ("ARS", "ARS", "1", "official"),
    ("BRL", "BRL", "1", "official"),
)

SEED_ACCOUNTS: tuple[SeedAccount, ...] = (
    SeedAccount("Cash Wallet", "cash", "USD", Decimal("200")),
    SeedAccount("Chase Checking", "bank", "USD", Decimal("2500")),
    SeedAccount("Savings Account", "bank", "USD", Decimal("5000")),
    SeedAccount(
        "Galicia Visa",
        "credit_card",
        "ARS",
        Decimal("-125000"),
        credit_limit=Decimal("500000"),
        closing_day=25,
        due_day=5,
    ),
)

SEED_TRANSACTIONS: tuple[SeedTransaction, ...] = (
    SeedTransaction("Chase Checking", "Salary", Decimal("5000"), None, "income", "Monthly salary"),
    SeedTransaction("Chase Checking", "Groceries", Decimal("150"), 2, "expense", "Whole Foods market"),
    SeedTransaction("Cash Wallet", "Transportation", Decimal("25"), 1, "expense", "Uber ride"),
    SeedTransaction("Savings Account", "Bills", Decimal("120"), 3, "expense", "Internet bill"),
    SeedTransaction("Chase Checking", "Restaurants", Decimal("85"), 4, "expense", "Dinner at restaurant"),
    SeedTransaction("Cash Wallet", "Entertainment", Decimal("45"), 6, "expense", "Movie tickets"),
    SeedTransaction("Galicia Visa", "Groceries", Decimal("35000"), 5, "expense", "Carrefour"),
    SeedTransaction("Galicia Visa", "Transportation", Decimal("8000"), 2, "expense", "Cabify ride"),
    SeedTransaction("Galicia Visa", "Bills", Decimal("25000"), 7, "expense", "Internet bill"),
)

INSTALLMENT_PURCHASE = SeedTransaction(
    "Galicia Visa", "Shopping", Decimal("60000"), 10, "expense", "New laptop - 6 installments"
)
INSTALLMENT_COUNT = 6
INSTALLMENTS_ALREADY_PAID = 2


class SeedService:
    def __init__(
        self,
        repository: FinanceRepository,
        accounts: AccountService,
        transactions: TransactionService,
        exchange: ExchangeRateService,
    ) -> None:
        self.repository = repository
        self.accounts = accounts
        self.transactions = transactions
        self.exchange = exchange

    def seed_household(self, household_id: str, user_id: str, today: Optional[date] = None) -> dict[str, Any]:
        if self.repository.list_accounts(household_id):
            raise ConflictError("Household already has accounts; demo data can only seed an empty household")

        today = today or date.today()
        counts = {"categories": 0, "exchange_rates": 0, "accounts": 0, "transactions": 0, "installments": 0}
        errors: list[str] = []

        with LogContext(logger, "seed demo data", household=household_id):
            category_ids = self._seed_categories(household_id, counts, errors)
            self._seed_exchange_rates(today, counts, errors)
            account_ids = self._seed_accounts(household_id, counts, errors)

            for seed in SEED_TRANSACTIONS:
                if self._seed_transaction(household_id, user_id, seed, account_ids, category_ids, today, errors):
                    counts["transactions"] += 1

            purchase = self._seed_transaction(
                household_id,
                user_id,
                INSTALLMENT_PURCHASE,
                account_ids,
                category_ids,
                today,
                errors,
                installment_count=INSTALLMENT_COUNT,
            )
            if purchase:
                counts["transactions"] += 1
                installments = purchase.get("installments", [])
                counts["installments"] = len(installments)
                for item in installments[:INSTALLMENTS_ALREADY_PAID]:
                    try:
                        self.repository.update_installment(item["id"], {"is_paid": True})
                    except Exception as e:
                        logger.error(f"Error marking installment {item['current_installment']} paid: {e}")
                        errors.append(f"installment {item['current_installment']}: {e}")

        if errors:
            logger.warning(f"Seeding {household_id} finished with {len(errors)} error(s)")
        return {**counts, "errors": errors}

    def _seed_categories(self, household_id: str, counts: dict, errors: list[str]) -> dict[str, str]:
        ids: dict[str, str] = {}
        existing = {c["name"]: c["id"] for c in self.repository.list_categories(household_id)}
        for seed in DEFAULT_CATEGORIES:
            if seed["name"] in existing:
                ids[seed["name"]] = existing[seed["name"]]
                continue
            try:
                created = self.repository.create_category(household_id, dict(seed))
            except Exception as e:
                logger.error(f"Error creating category {seed['name']}: {e}")
                errors.append(f"category {seed['name']}: {e}")
                continue
            ids[seed["name"]] = created["id"]
            counts["categories"] += 1
        return ids

    def _seed_exchange_rates(self, today: date, counts: dict, errors: list[str]) -> None:
        for base, target, rate, rate_type in SEED_EXCHANGE_RATES:
            if self.repository.list_exchange_rates(base, target):
                continue
            try:
                self.exchange.create_rate(base, target, Decimal(rate), rate_type, today)
            except Exception as e:
                logger.error(f"Error creating exchange rate {base}->{target}: {e}")
                errors.append(f"exchange rate {base}->{target}: {e}")
                continue
            counts["exchange_rates"] += 1

    def _seed_accounts(self, household_id: str, counts: dict, errors: list[str]) -> dict[str, str]:
        ids: dict[str, str] = {}
        for seed in SEED_ACCOUNTS:
            try:
                created = self.accounts.create_account(
                    household_id,
                    {
                        "name": seed.name,
                        "type": seed.type,
                        "currency": seed.currency,
                        "balance": seed.balance,
                        "credit_limit": seed.credit_limit,
                        "closing_day": seed.closing_day,
                        "due_day": seed.due_day,
                    },
                )
            except Exception as e:
                logger.error(f"Error creating account {seed.name}: {e}")
                errors.append(f"account {seed.name}: {e}")
                continue
            ids[seed.name] = created["id"]
            counts["accounts"] += 1
        return ids

    def _seed_transaction(
        self,
        household_id: str,
        user_id: str,
        seed: SeedTransaction,
        account_ids: dict[str, str],
        category_ids: dict[str, str],
        today: date,
        errors: list[str],
        installment_count: Optional[int] = None,
    ) -> Optional[dict[str, Any]]:
        if seed.account not in account_ids:
            errors.append(f"transaction {seed.description}: account {seed.account} missing")
            return None

        txn_date = today.replace(day=1) if seed.days_ago is None else today - timedelta(days=seed.days_ago)
        payload = {
            "account_id": account_ids[seed.account],
            "type": seed.type,
            "amount": seed.amount,
            "date": txn_date,
            "category_id": category_ids.get(seed.category),
            "description": seed.description,
            "is_installment": installment_count is not None,
            "installment_count": installment_count,
        }
        try:
            return self.transactions.create_transaction(household_id, user_id, payload)
        except Exception as e:
            logger.error(f"Error creating transaction {seed.description}: {e}")
            errors.append(f"transaction {seed.description}: {e}")
            return None
