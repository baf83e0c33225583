"""Dashboard summary: net worth, this month's cash flow and recent activity."""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

from app.core.logging import get_logger
from app.core.money import format_currency
from app.repositories.finance_repo import FinanceRepository
from app.services.account_service import present_account
from app.services.exchange_service import ExchangeRateService
from app.services.transaction_service import TransactionService

logger = get_logger("fintrack.services.dashboard")


def _figure(amount, currency: str) -> dict[str, Any]:
    return {"amount": amount, "currency": currency, "formatted": format_currency(amount, currency)}


class DashboardService:
    def __init__(
        self,
        repository: FinanceRepository,
        exchange: ExchangeRateService,
        transactions: TransactionService,
    ) -> None:
        self.repository = repository
        self.exchange = exchange
        self.transactions = transactions

    def build(self, household_id: str, main_currency: str, today: Optional[date] = None) -> dict[str, Any]:
        """
        Summarize a household in its member's main currency.

        Balances and this month's income/expenses are converted with the latest
        exchange rates; currencies without a rate are left out of the totals
        and reported in ``unconverted_currencies``.
        """
        today = today or date.today()
        month_prefix = today.strftime("%Y-%m")

        accounts = self.repository.list_accounts(household_id)
        transactions = self.repository.list_transactions(household_id)

        net_worth, missing_balances = self.exchange.convert_many(
            [(a.get("balance"), a.get("currency", main_currency)) for a in accounts],
            main_currency,
        )

        this_month = [t for t in transactions if t.get("date", "").startswith(month_prefix)]
        income, missing_income = self.exchange.convert_many(
            [(t["amount"], t["currency"]) for t in this_month if t.get("type") == "income"],
            main_currency,
        )
        expenses, missing_expenses = self.exchange.convert_many(
            [(t["amount"], t["currency"]) for t in this_month if t.get("type") == "expense"],
            main_currency,
        )

        logger.debug(
            f"Dashboard for {household_id}: {len(accounts)} accounts, "
            f"{len(this_month)} transactions in {month_prefix}"
        )

        return {
            "main_currency": main_currency,
            "total_net_worth": _figure(net_worth, main_currency),
            "monthly_income": _figure(income, main_currency),
            "monthly_expenses": _figure(expenses, main_currency),
            "active_accounts": len(accounts),
            "unconverted_currencies": sorted(set(missing_balances) | set(missing_income) | set(missing_expenses)),
            "recent_transactions": self.transactions.recent_transactions(household_id),
            "accounts": [present_account(a) for a in sorted(accounts, key=lambda a: a.get("name", "").lower())],
        }
