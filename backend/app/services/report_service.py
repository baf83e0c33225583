"""Monthly cash-flow reports aggregated with pandas."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Optional

import pandas as pd

from app.core.exceptions import ExchangeRateNotFoundError
from app.core.logging import get_logger
from app.core.money import currency_exponent
from app.repositories.finance_repo import FinanceRepository
from app.services.exchange_service import ExchangeRateService

logger = get_logger("fintrack.services.report")

UNCATEGORIZED = "Uncategorized"


class ReportService:
    MAX_BREAKDOWN_CATEGORIES = 8

    def __init__(self, repository: FinanceRepository, exchange: ExchangeRateService) -> None:
        self.repository = repository
        self.exchange = exchange

    @staticmethod
    def month_labels(months: int, today: date) -> list[str]:
        """``YYYY-MM`` labels of the last ``months`` months, oldest first."""
        end = pd.Period(today.strftime("%Y-%m"), freq="M")
        return list(pd.period_range(end=end, periods=months, freq="M").strftime("%Y-%m"))

    def _rows(
        self,
        transactions: list[dict[str, Any]],
        categories: dict[str, dict],
        main_currency: str,
        first_month: str,
        last_month: str,
    ) -> tuple[list[dict[str, Any]], list[str]]:
        """Income/expense rows in the window, amounts as integer minor units of the main currency."""
        exponent = currency_exponent(main_currency)
        rows: list[dict[str, Any]] = []
        missing: set[str] = set()

        for txn in transactions:
            month = txn.get("date", "")[:7]
            if txn.get("type") not in ("income", "expense") or not first_month <= month <= last_month:
                continue
            try:
                converted, _ = self.exchange.convert(txn["amount"], txn["currency"], main_currency)
            except ExchangeRateNotFoundError:
                missing.add(txn["currency"])
                continue

            category = categories.get(txn.get("category_id") or "", {})
            rows.append(
                {
                    "month": month,
                    "type": txn["type"],
                    "category": category.get("name", UNCATEGORIZED),
                    "color": category.get("color"),
                    "minor": int(converted.scaleb(exponent)),
                }
            )
        return rows, sorted(missing)

    @staticmethod
    def build_monthly(rows: list[dict[str, Any]], labels: list[str], exponent: int) -> list[dict[str, Any]]:
        """Income, expenses and net per month; months without activity are zero."""
        df = pd.DataFrame(rows, columns=["month", "type", "category", "color", "minor"])
        if df.empty:
            totals = pd.DataFrame(0, index=labels, columns=["income", "expense"])
        else:
            totals = (
                df.groupby(["month", "type"])["minor"]
                .sum()
                .unstack(fill_value=0)
                .reindex(index=labels, columns=["income", "expense"], fill_value=0)
                .fillna(0)
                .astype("int64")
            )

        result = []
        for month, row in totals.iterrows():
            income = Decimal(int(row["income"])).scaleb(-exponent)
            expenses = Decimal(int(row["expense"])).scaleb(-exponent)
            result.append({"month": month, "income": income, "expenses": expenses, "net": income - expenses})
        return result

    @classmethod
    def build_breakdown(cls, rows: list[dict[str, Any]], exponent: int) -> list[dict[str, Any]]:
        """Largest expense categories of the window, descending."""
        df = pd.DataFrame(rows, columns=["month", "type", "category", "color", "minor"])
        expenses = df[df["type"] == "expense"]
        if expenses.empty:
            return []

        colors = expenses.groupby("category")["color"].first()
        totals = (
            expenses.groupby("category")["minor"]
            .sum()
            .sort_values(ascending=False, kind="stable")
            .head(cls.MAX_BREAKDOWN_CATEGORIES)
        )
        return [
            {
                "category": name,
                "color": colors.get(name) if pd.notna(colors.get(name)) else None,
                "amount": Decimal(int(total)).scaleb(-exponent),
            }
            for name, total in totals.items()
        ]

    def monthly_report(
        self,
        household_id: str,
        main_currency: str,
        months: int = 6,
        today: Optional[date] = None,
    ) -> dict[str, Any]:
        labels = self.month_labels(months, today or date.today())
        categories = {c["id"]: c for c in self.repository.list_categories(household_id)}
        rows, missing = self._rows(
            self.repository.list_transactions(household_id),
            categories,
            main_currency,
            labels[0],
            labels[-1],
        )
        exponent = currency_exponent(main_currency)
        logger.info(f"Monthly report for {household_id}: {len(rows)} rows over {labels[0]}..{labels[-1]}")

        return {
            "main_currency": main_currency,
            "months": self.build_monthly(rows, labels, exponent),
            "expense_breakdown": self.build_breakdown(rows, exponent),
            "unconverted_currencies": missing,
        }
