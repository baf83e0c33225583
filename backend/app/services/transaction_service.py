from __future__ import annotations

import calendar
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from app.core.exceptions import ConflictError, EntityNotFoundError, ValidationError
from app.core.logging import LogContext, get_logger
from app.core.money import format_currency, quantize_amount, split_installments, sum_amounts, to_decimal
from app.repositories.finance_repo import FinanceRepository

logger = get_logger("fintrack.services.transaction")


def balance_effects(txn: dict[str, Any]) -> dict[str, Decimal]:
    """Signed balance change each account receives from a transaction.

    income adds to the account, expense subtracts, a transfer moves ``amount``
    out of the source and ``to_amount`` (amount x exchange rate) into the
    destination.
    """
    amount = to_decimal(txn["amount"])
    txn_type = txn["type"]

    if txn_type == "income":
        return {txn["account_id"]: amount}
    if txn_type == "expense":
        return {txn["account_id"]: -amount}
    if txn_type == "transfer":
        if txn.get("to_amount") not in (None, ""):
            received = to_decimal(txn["to_amount"])
        else:
            received = amount * to_decimal(txn.get("exchange_rate") or 1)
        return {txn["account_id"]: -amount, txn["to_account_id"]: received}
    raise ValidationError(f"Unknown transaction type: {txn_type}")


def add_months(start: date, months: int, day: int) -> date:
    """Date ``months`` after ``start`` on ``day``, clamped to the month's last day."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def installment_schedule(
    total: Any,
    count: int,
    currency: str,
    purchase_date: date,
    due_day: Optional[int] = None,
) -> list[dict[str, Any]]:
    """Monthly installment rows for a purchase, starting the month after it.

    Amounts always add up to ``total``.
    """
    amounts = split_installments(total, count, currency)
    day = due_day or purchase_date.day
    return [
        {
            "total_installments": count,
            "current_installment": index,
            "installment_amount": str(amount),
            "payment_date": add_months(purchase_date, index, day).isoformat(),
            "is_paid": False,
        }
        for index, amount in enumerate(amounts, start=1)
    ]


class TransactionService:
    RECENT_LIMIT = 10

    def __init__(self, repository: FinanceRepository) -> None:
        self.repository = repository

    # =========================================================================
    # Lookups
    # =========================================================================

    def _account(self, household_id: str, account_id: str) -> dict[str, Any]:
        account = self.repository.get_account(account_id, household_id)
        if not account:
            raise EntityNotFoundError(f"Account not found: {account_id}")
        return account

    def _category_for(self, household_id: str, category_id: str, txn_type: str) -> dict[str, Any]:
        category = self.repository.get_category(category_id, household_id)
        if not category:
            raise EntityNotFoundError(f"Category not found: {category_id}")
        if category.get("type") != txn_type:
            raise ValidationError(
                f"Category '{category.get('name')}' is for {category.get('type')}, not {txn_type}"
            )
        return category

    def _lookup_maps(self, household_id: str) -> tuple[dict[str, dict], dict[str, dict]]:
        accounts = {a["id"]: a for a in self.repository.list_accounts(household_id)}
        categories = {c["id"]: c for c in self.repository.list_categories(household_id)}
        return accounts, categories

    @staticmethod
    def present(
        txn: dict[str, Any],
        accounts: dict[str, dict],
        categories: dict[str, dict],
    ) -> dict[str, Any]:
        """Join a transaction with account and category display fields."""
        account = accounts.get(txn.get("account_id"), {})
        to_account = accounts.get(txn.get("to_account_id"), {}) if txn.get("to_account_id") else {}
        category = categories.get(txn.get("category_id"), {}) if txn.get("category_id") else {}

        sign = {"income": "+", "expense": "-"}.get(txn.get("type"), "")
        return {
            **txn,
            "account_name": account.get("name"),
            "to_account_name": to_account.get("name"),
            "category_name": category.get("name"),
            "category_type": category.get("type"),
            "category_color": category.get("color"),
            "formatted_amount": f"{sign}{format_currency(txn.get('amount'), txn.get('currency', 'USD'))}",
        }

    # =========================================================================
    # Commands
    # =========================================================================

    def create_transaction(self, household_id: str, user_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Validate and record a transaction together with its balance effects.

        Args:
            household_id: Household the transaction belongs to
            user_id: Author of the transaction
            payload: Fields of ``TransactionCreate``

        Returns:
            The stored transaction joined with display fields and installments
        """
        txn_type = payload["type"]
        account = self._account(household_id, payload["account_id"])
        currency = payload.get("currency") or account["currency"]
        if currency != account["currency"]:
            raise ValidationError(
                f"Transaction currency {currency} does not match account currency {account['currency']}"
            )

        amount = quantize_amount(payload["amount"], currency)
        if amount <= 0:
            raise ValidationError("Amount is too small for the currency precision")

        category_id = payload.get("category_id")
        if category_id:
            self._category_for(household_id, category_id, txn_type)

        exchange_rate = None
        to_amount = None
        to_account = None
        if txn_type == "transfer":
            to_account = self._account(household_id, payload["to_account_id"])
            rate = payload.get("exchange_rate")
            if to_account["currency"] != currency:
                if rate is None:
                    raise ValidationError(
                        f"An exchange rate is required to transfer {currency} to {to_account['currency']}"
                    )
            elif rate is not None and to_decimal(rate) != 1:
                raise ValidationError("Transfers between accounts in the same currency use a rate of 1")
            exchange_rate = to_decimal(rate) if rate is not None else None
            to_amount = quantize_amount(amount * (exchange_rate or 1), to_account["currency"])

        txn_date: date = payload["date"]
        data = {
            "household_id": household_id,
            "account_id": account["id"],
            "category_id": category_id,
            "to_account_id": to_account["id"] if to_account else None,
            "amount": str(amount),
            "currency": currency,
            "exchange_rate": str(exchange_rate) if exchange_rate is not None else None,
            "to_amount": str(to_amount) if to_amount is not None else None,
            "date": txn_date.isoformat(),
            "type": txn_type,
            "description": (payload.get("description") or "").strip() or None,
            "is_installment": bool(payload.get("is_installment")),
            "created_by": user_id,
        }

        installments: list[dict[str, Any]] = []
        if data["is_installment"]:
            due_day = account.get("due_day") if account["type"] == "credit_card" else None
            installments = [
                {**item, "household_id": household_id}
                for item in installment_schedule(
                    amount, payload["installment_count"], currency, txn_date, due_day
                )
            ]

        with LogContext(logger, f"record {txn_type}", household=household_id, amount=f"{amount} {currency}"):
            saved = self.repository.record_transaction(data, balance_effects(data), installments)

        accounts, categories = self._lookup_maps(household_id)
        return {
            **self.present(saved, accounts, categories),
            "installments": self.repository.list_installments_for_transaction(saved["id"]),
        }

    def update_transaction(self, household_id: str, transaction_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        """Edit descriptive fields. Amounts and accounts are fixed once recorded."""
        txn = self.get_transaction(household_id, transaction_id)
        if not changes:
            raise ValidationError("Nothing to update")

        update: dict[str, Any] = {}
        if "description" in changes:
            update["description"] = (changes["description"] or "").strip() or None
        if "category_id" in changes:
            category_id = changes["category_id"]
            if category_id:
                if txn["type"] == "transfer":
                    raise ValidationError("Transfers cannot have a category")
                self._category_for(household_id, category_id, txn["type"])
            update["category_id"] = category_id or None
        if changes.get("date") is not None:
            update["date"] = changes["date"].isoformat()

        updated = self.repository.update_transaction(transaction_id, update)
        accounts, categories = self._lookup_maps(household_id)
        return {
            **self.present(updated, accounts, categories),
            "installments": self.repository.list_installments_for_transaction(transaction_id),
        }

    def delete_transaction(self, household_id: str, transaction_id: str) -> None:
        """Delete a transaction, undoing its balance effects."""
        txn = self.repository.get_transaction(transaction_id, household_id)
        if not txn:
            raise EntityNotFoundError("Transaction not found")

        reversal = {account_id: -delta for account_id, delta in balance_effects(txn).items()}
        with LogContext(logger, f"delete {txn['type']}", household=household_id, transaction=transaction_id):
            self.repository.delete_transaction(transaction_id, reversal)

    # =========================================================================
    # Queries
    # =========================================================================

    def list_transactions(
        self,
        household_id: str,
        account_id: Optional[str] = None,
        category_id: Optional[str] = None,
        txn_type: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        search: Optional[str] = None,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        """Newest-first transactions matching every given filter."""
        transactions = self.repository.list_transactions(household_id)
        needle = search.strip().lower() if search else None

        def matches(txn: dict[str, Any]) -> bool:
            if account_id and account_id not in (txn.get("account_id"), txn.get("to_account_id")):
                return False
            if category_id and txn.get("category_id") != category_id:
                return False
            if txn_type and txn.get("type") != txn_type:
                return False
            if date_from and txn.get("date", "") < date_from.isoformat():
                return False
            if date_to and txn.get("date", "") > date_to.isoformat():
                return False
            if needle and needle not in (txn.get("description") or "").lower():
                return False
            return True

        selected = sorted(
            (t for t in transactions if matches(t)),
            key=lambda t: (t.get("date", ""), t.get("created_at", "")),
            reverse=True,
        )[:limit]

        accounts, categories = self._lookup_maps(household_id)
        return [self.present(t, accounts, categories) for t in selected]

    def recent_transactions(self, household_id: str) -> list[dict[str, Any]]:
        return self.list_transactions(household_id, limit=self.RECENT_LIMIT)

    def get_transaction(self, household_id: str, transaction_id: str) -> dict[str, Any]:
        txn = self.repository.get_transaction(transaction_id, household_id)
        if not txn:
            raise EntityNotFoundError("Transaction not found")

        accounts, categories = self._lookup_maps(household_id)
        return {
            **self.present(txn, accounts, categories),
            "installments": self.repository.list_installments_for_transaction(transaction_id),
        }

    # =========================================================================
    # Installments
    # =========================================================================

    def list_installments(self, household_id: str, pending_only: bool = False) -> list[dict[str, Any]]:
        installments = self.repository.list_installments(household_id)
        if pending_only:
            installments = [i for i in installments if not i.get("is_paid")]

        transactions = {t["id"]: t for t in self.repository.list_transactions(household_id)}
        result = []
        for item in installments:
            parent = transactions.get(item["transaction_id"], {})
            result.append(
                {**item, "description": parent.get("description"), "currency": parent.get("currency")}
            )
        return sorted(result, key=lambda i: (i["payment_date"], i.get("current_installment", 0)))

    def pay_installment(self, household_id: str, installment_id: str) -> dict[str, Any]:
        installment = self.repository.get_installment(installment_id, household_id)
        if not installment:
            raise EntityNotFoundError("Installment not found")
        if installment.get("is_paid"):
            raise ConflictError("Installment is already paid")

        logger.info(
            f"Installment {installment['current_installment']}/{installment['total_installments']} "
            f"of transaction {installment['transaction_id']} paid"
        )
        return self.repository.update_installment(installment_id, {"is_paid": True})

    # =========================================================================
    # Reconciliation
    # =========================================================================

    def reconcile_account(self, household_id: str, account_id: str) -> dict[str, Any]:
        """Compare an account's stored balance with its opening balance plus transactions."""
        account = self._account(household_id, account_id)
        currency = account.get("currency", "USD")

        deltas = [
            effects[account_id]
            for effects in (balance_effects(txn) for txn in self.repository.list_transactions(household_id))
            if account_id in effects
        ]
        count = len(deltas)
        expected = quantize_amount(to_decimal(account.get("opening_balance")) + sum_amounts(deltas), currency)
        recorded = quantize_amount(account.get("balance"), currency)
        difference = recorded - expected
        if difference:
            logger.warning(
                f"Account {account_id} drifted: recorded {recorded}, expected {expected} {currency}"
            )

        return {
            "account_id": account_id,
            "currency": currency,
            "recorded_balance": recorded,
            "expected_balance": expected,
            "difference": difference,
            "transaction_count": count,
            "is_consistent": difference == 0,
        }
