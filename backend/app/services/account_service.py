"""Household financial accounts (cash, bank, credit card, crypto)."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from app.core.exceptions import ConflictError, EntityNotFoundError, ValidationError
from app.core.logging import get_logger
from app.core.money import format_currency, quantize_amount, to_decimal, to_storage
from app.repositories.finance_repo import FinanceRepository

logger = get_logger("fintrack.services.account")

CREDIT_FIELDS = ("credit_limit", "closing_day", "due_day")


def available_credit(account: dict[str, Any]) -> Optional[Decimal]:
    """Credit left on a card: ``credit_limit - |balance|``; None for other accounts."""
    if account.get("type") != "credit_card" or account.get("credit_limit") in (None, ""):
        return None
    return to_decimal(account["credit_limit"]) - abs(to_decimal(account.get("balance")))


def present_account(account: dict[str, Any]) -> dict[str, Any]:
    """Add the derived display fields to a stored account."""
    return {
        **account,
        "available_credit": available_credit(account),
        "formatted_balance": format_currency(account.get("balance"), account.get("currency", "USD")),
    }


class AccountService:
    def __init__(self, repository: FinanceRepository) -> None:
        self.repository = repository

    def list_accounts(self, household_id: str) -> list[dict[str, Any]]:
        accounts = self.repository.list_accounts(household_id)
        return [present_account(a) for a in sorted(accounts, key=lambda a: a.get("name", "").lower())]

    def get_account(self, household_id: str, account_id: str) -> dict[str, Any]:
        account = self.repository.get_account(account_id, household_id)
        if not account:
            raise EntityNotFoundError("Account not found")
        return account

    @staticmethod
    def _check_credit_fields(account_type: str, values: dict[str, Any]) -> None:
        if account_type == "credit_card":
            return
        given = [field for field in CREDIT_FIELDS if values.get(field) is not None]
        if given:
            raise ValidationError(f"Only credit card accounts accept: {', '.join(given)}")

    def create_account(self, household_id: str, data: dict[str, Any]) -> dict[str, Any]:
        self._check_credit_fields(data["type"], data)
        balance = quantize_amount(data.get("balance", 0), data["currency"])
        credit_limit = data.get("credit_limit")

        account = self.repository.create_account(
            household_id,
            {
                "name": data["name"],
                "type": data["type"],
                "currency": data["currency"],
                "balance": str(balance),
                "opening_balance": str(balance),
                "credit_limit": to_storage(credit_limit) if credit_limit is not None else None,
                "closing_day": data.get("closing_day"),
                "due_day": data.get("due_day"),
            },
        )
        logger.info(f"Created {data['type']} account '{data['name']}' ({data['currency']}) in {household_id}")
        return present_account(account)

    def update_account(self, household_id: str, account_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        account = self.get_account(household_id, account_id)
        if not changes:
            raise ValidationError("Nothing to update")
        self._check_credit_fields(account["type"], changes)

        if "name" in changes:
            changes["name"] = changes["name"].strip()
            if not changes["name"]:
                raise ValidationError("Account name cannot be blank")
        if changes.get("credit_limit") is not None:
            changes["credit_limit"] = to_storage(changes["credit_limit"])

        return present_account(self.repository.update_account(account_id, changes))

    def delete_account(self, household_id: str, account_id: str) -> None:
        self.get_account(household_id, account_id)
        used_by = self.repository.count_transactions_for_account(household_id, account_id)
        if used_by:
            raise ConflictError(f"Account has {used_by} transaction(s); delete them first")
        self.repository.delete_account(account_id)
        logger.info(f"Deleted account {account_id} from {household_id}")
