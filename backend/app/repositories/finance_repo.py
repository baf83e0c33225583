"""
Finance Repository

Firestore persistence for the household's financial documents.

Collections (all scoped by a ``household_id`` field except exchange rates):
    categories/{category_id}
    accounts/{account_id}
    transactions/{transaction_id}
    installments/{installment_id}
    exchange_rates/{rate_id}        - shared by every household

Money fields are stored as decimal strings.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional
from uuid import uuid4

import firebase_admin
from firebase_admin import firestore
from google.cloud.firestore_v1 import FieldFilter

from app.core.exceptions import EntityNotFoundError
from app.core.logging import get_logger
from app.core.money import quantize_amount, to_decimal

logger = get_logger("fintrack.repositories.finance")


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class FinanceRepository:
    """Repository for categories, accounts, transactions, installments and rates."""

    # Firestore batch write limit
    BATCH_SIZE = 500

    def __init__(self) -> None:
        if not firebase_admin._apps:
            firebase_admin.initialize_app()

        self.db = firestore.client()

        self.categories_collection = "categories"
        self.accounts_collection = "accounts"
        self.transactions_collection = "transactions"
        self.installments_collection = "installments"
        self.exchange_rates_collection = "exchange_rates"

    # =========================================================================
    # Generic helpers
    # =========================================================================

    def _get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        doc = self.db.collection(collection).document(doc_id).get()
        if not doc.exists:
            return None
        return doc.to_dict()

    def _get_scoped(self, collection: str, doc_id: str, household_id: str) -> Optional[dict[str, Any]]:
        """Fetch a document only if it belongs to the household."""
        data = self._get(collection, doc_id)
        if not data or data.get("household_id") != household_id:
            return None
        return data

    def _list_by(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        query = self.db.collection(collection).where(filter=FieldFilter(field, "==", value))
        return [doc.to_dict() for doc in query.stream()]

    def _insert(self, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        doc_id = data.get("id") or str(uuid4())
        data["id"] = doc_id
        data.setdefault("created_at", _utc_now_iso())
        self.db.collection(collection).document(doc_id).set(data)
        return data

    def _update(self, collection: str, doc_id: str, data: dict[str, Any]) -> dict[str, Any]:
        doc_ref = self.db.collection(collection).document(doc_id)
        doc_ref.update(data)
        return doc_ref.get().to_dict()

    # =========================================================================
    # Categories
    # =========================================================================

    def list_categories(self, household_id: str) -> list[dict[str, Any]]:
        return self._list_by(self.categories_collection, "household_id", household_id)

    def get_category(self, category_id: str, household_id: str) -> Optional[dict[str, Any]]:
        return self._get_scoped(self.categories_collection, category_id, household_id)

    def create_category(self, household_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return self._insert(self.categories_collection, {**data, "household_id": household_id})

    def update_category(self, category_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return self._update(self.categories_collection, category_id, data)

    def delete_category(self, category_id: str) -> None:
        self.db.collection(self.categories_collection).document(category_id).delete()

    # =========================================================================
    # Accounts
    # =========================================================================

    def list_accounts(self, household_id: str) -> list[dict[str, Any]]:
        return self._list_by(self.accounts_collection, "household_id", household_id)

    def get_account(self, account_id: str, household_id: str) -> Optional[dict[str, Any]]:
        return self._get_scoped(self.accounts_collection, account_id, household_id)

    def create_account(self, household_id: str, data: dict[str, Any]) -> dict[str, Any]:
        now = _utc_now_iso()
        return self._insert(
            self.accounts_collection,
            {**data, "household_id": household_id, "created_at": now, "updated_at": now},
        )

    def update_account(self, account_id: str, data: dict[str, Any]) -> dict[str, Any]:
        data["updated_at"] = _utc_now_iso()
        return self._update(self.accounts_collection, account_id, data)

    def delete_account(self, account_id: str) -> None:
        self.db.collection(self.accounts_collection).document(account_id).delete()

    # =========================================================================
    # Transactions
    # =========================================================================

    def list_transactions(self, household_id: str) -> list[dict[str, Any]]:
        return self._list_by(self.transactions_collection, "household_id", household_id)

    def get_transaction(self, transaction_id: str, household_id: str) -> Optional[dict[str, Any]]:
        return self._get_scoped(self.transactions_collection, transaction_id, household_id)

    def update_transaction(self, transaction_id: str, data: dict[str, Any]) -> dict[str, Any]:
        data["updated_at"] = _utc_now_iso()
        return self._update(self.transactions_collection, transaction_id, data)

    def count_transactions_for_category(self, household_id: str, category_id: str) -> int:
        return sum(
            1
            for txn in self.list_transactions(household_id)
            if txn.get("category_id") == category_id
        )

    def count_transactions_for_account(self, household_id: str, account_id: str) -> int:
        return sum(
            1
            for txn in self.list_transactions(household_id)
            if account_id in (txn.get("account_id"), txn.get("to_account_id"))
        )

    def _apply_balance_deltas(
        self,
        transaction,
        deltas: dict[str, Decimal],
    ) -> None:
        """Read every affected account, then write the adjusted balances.

        Firestore transactions require all reads before the first write.
        """
        refs = {
            account_id: self.db.collection(self.accounts_collection).document(account_id)
            for account_id in deltas
        }
        snapshots = {account_id: ref.get(transaction=transaction) for account_id, ref in refs.items()}

        now = _utc_now_iso()
        updates: list[tuple[Any, dict[str, Any]]] = []
        for account_id, snapshot in snapshots.items():
            if not snapshot.exists:
                raise EntityNotFoundError(f"Account not found: {account_id}")
            account = snapshot.to_dict()
            balance = quantize_amount(
                to_decimal(account.get("balance")) + deltas[account_id],
                account.get("currency", "USD"),
            )
            updates.append((refs[account_id], {"balance": str(balance), "updated_at": now}))

        for ref, data in updates:
            transaction.update(ref, data)

    def record_transaction(
        self,
        transaction_data: dict[str, Any],
        balance_deltas: dict[str, Decimal],
        installments: list[dict[str, Any]],
    ) -> dict[str, Any]:
        """
        Insert a transaction with its installments and balance changes atomically.

        Args:
            transaction_data: Transaction document (id assigned here if missing)
            balance_deltas: Account id to signed balance change
            installments: Installment documents without transaction_id

        Returns:
            Saved transaction document
        """
        now = _utc_now_iso()
        transaction_id = transaction_data.get("id") or str(uuid4())
        transaction_data.update(
            {"id": transaction_id, "created_at": now, "updated_at": now}
        )
        installment_docs = [
            {**item, "id": str(uuid4()), "transaction_id": transaction_id, "created_at": now}
            for item in installments
        ]

        txn_ref = self.db.collection(self.transactions_collection).document(transaction_id)
        transaction = self.db.transaction()

        @firestore.transactional
        def _record(transaction) -> None:
            self._apply_balance_deltas(transaction, balance_deltas)
            transaction.set(txn_ref, transaction_data)
            for doc in installment_docs:
                transaction.set(
                    self.db.collection(self.installments_collection).document(doc["id"]),
                    doc,
                )

        _record(transaction)
        return transaction_data

    def delete_transaction(
        self,
        transaction_id: str,
        balance_deltas: dict[str, Decimal],
    ) -> None:
        """Delete a transaction and its installments, applying reversing deltas atomically."""
        txn_ref = self.db.collection(self.transactions_collection).document(transaction_id)
        installment_refs = [
            self.db.collection(self.installments_collection).document(item["id"])
            for item in self.list_installments_for_transaction(transaction_id)
        ]
        transaction = self.db.transaction()

        @firestore.transactional
        def _delete(transaction) -> None:
            self._apply_balance_deltas(transaction, balance_deltas)
            for ref in installment_refs:
                transaction.delete(ref)
            transaction.delete(txn_ref)

        _delete(transaction)

    # =========================================================================
    # Installments
    # =========================================================================

    def list_installments(self, household_id: str) -> list[dict[str, Any]]:
        return self._list_by(self.installments_collection, "household_id", household_id)

    def list_installments_for_transaction(self, transaction_id: str) -> list[dict[str, Any]]:
        items = self._list_by(self.installments_collection, "transaction_id", transaction_id)
        return sorted(items, key=lambda i: i.get("current_installment", 0))

    def get_installment(self, installment_id: str, household_id: str) -> Optional[dict[str, Any]]:
        return self._get_scoped(self.installments_collection, installment_id, household_id)

    def update_installment(self, installment_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return self._update(self.installments_collection, installment_id, data)

    # =========================================================================
    # Exchange rates
    # =========================================================================

    def list_exchange_rates(
        self,
        base_currency: Optional[str] = None,
        target_currency: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        query = self.db.collection(self.exchange_rates_collection)
        if base_currency:
            query = query.where(filter=FieldFilter("base_currency", "==", base_currency))
        if target_currency:
            query = query.where(filter=FieldFilter("target_currency", "==", target_currency))
        return [doc.to_dict() for doc in query.stream()]

    def create_exchange_rate(self, data: dict[str, Any]) -> dict[str, Any]:
        return self._insert(self.exchange_rates_collection, dict(data))

    # =========================================================================
    # Household cleanup
    # =========================================================================

    def delete_household_data(self, household_id: str) -> int:
        """Delete every finance document of a household. Returns the count deleted."""
        deleted = 0
        for collection in (
            self.installments_collection,
            self.transactions_collection,
            self.accounts_collection,
            self.categories_collection,
        ):
            query = self.db.collection(collection).where(
                filter=FieldFilter("household_id", "==", household_id)
            )
            docs = list(query.stream())
            for i in range(0, len(docs), self.BATCH_SIZE):
                batch = self.db.batch()
                for doc in docs[i:i + self.BATCH_SIZE]:
                    batch.delete(doc.reference)
                batch.commit()
            deleted += len(docs)

        logger.info(f"Deleted {deleted} finance documents of household {household_id}")
        return deleted


# Singleton instance
_finance_repo: Optional[FinanceRepository] = None


def get_finance_repo() -> FinanceRepository:
    """Get the singleton FinanceRepository instance."""
    global _finance_repo
    if _finance_repo is None:
        _finance_repo = FinanceRepository()
    return _finance_repo
