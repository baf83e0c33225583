"""Household income/expense categories."""

from __future__ import annotations

from typing import Any, Optional

from app.core.exceptions import ConflictError, EntityNotFoundError, ValidationError
from app.core.logging import get_logger
from app.repositories.finance_repo import FinanceRepository

logger = get_logger("fintrack.services.category")


class CategoryService:
    def __init__(self, repository: FinanceRepository) -> None:
        self.repository = repository

    def list_categories(self, household_id: str, category_type: Optional[str] = None) -> list[dict[str, Any]]:
        categories = self.repository.list_categories(household_id)
        if category_type:
            categories = [c for c in categories if c.get("type") == category_type]
        return sorted(categories, key=lambda c: (c.get("type", ""), c.get("name", "").lower()))

    def get_category(self, household_id: str, category_id: str) -> dict[str, Any]:
        category = self.repository.get_category(category_id, household_id)
        if not category:
            raise EntityNotFoundError("Category not found")
        return category

    def _ensure_unique_name(
        self,
        household_id: str,
        name: str,
        category_type: str,
        exclude_id: Optional[str] = None,
    ) -> None:
        for existing in self.repository.list_categories(household_id):
            if existing.get("id") == exclude_id:
                continue
            if existing.get("type") == category_type and existing.get("name", "").lower() == name.lower():
                raise ConflictError(f"A {category_type} category named '{name}' already exists")

    def create_category(self, household_id: str, data: dict[str, Any]) -> dict[str, Any]:
        self._ensure_unique_name(household_id, data["name"], data["type"])
        category = self.repository.create_category(household_id, data)
        logger.info(f"Created {data['type']} category '{data['name']}' in {household_id}")
        return category

    def update_category(self, household_id: str, category_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        category = self.get_category(household_id, category_id)
        if not changes:
            raise ValidationError("Nothing to update")
        if "name" in changes:
            changes["name"] = changes["name"].strip()
            self._ensure_unique_name(household_id, changes["name"], category["type"], exclude_id=category_id)
        return self.repository.update_category(category_id, changes)

    def delete_category(self, household_id: str, category_id: str) -> None:
        self.get_category(household_id, category_id)
        used_by = self.repository.count_transactions_for_category(household_id, category_id)
        if used_by:
            raise ConflictError(f"Category is used by {used_by} transaction(s)")
        self.repository.delete_category(category_id)
        logger.info(f"Deleted category {category_id} from {household_id}")
