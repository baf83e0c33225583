"""
Household Repository

Firestore persistence for households, memberships, invites and profiles.

Collections:
    profiles/{user_id}                - Display name and main currency
    households/{household_id}         - Household metadata, denormalized member_count
    household_members/{user_id}       - User-household relationship (one per user)
    household_invites/{invite_code}   - Shareable invite links
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import uuid4

import firebase_admin
from firebase_admin import firestore
from google.cloud.firestore_v1 import FieldFilter

from app.core.exceptions import ValidationError
from app.core.logging import get_logger
from app.schemas.household_models import HouseholdRole

logger = get_logger("fintrack.repositories.household")


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _membership(household_id: str, user_id: str, role: str, invited_by: Optional[str], now: str) -> dict[str, Any]:
    return {
        "id": user_id,
        "household_id": household_id,
        "user_id": user_id,
        "role": role,
        "created_at": now,
        "invited_by": invited_by,
    }


class HouseholdRepository:
    """Repository for household-related documents."""

    def __init__(self) -> None:
        if not firebase_admin._apps:
            firebase_admin.initialize_app()

        self.db = firestore.client()

        self.profiles_collection = "profiles"
        self.households_collection = "households"
        self.members_collection = "household_members"
        self.invites_collection = "household_invites"

    # =========================================================================
    # Helpers
    # =========================================================================

    def _ref(self, collection: str, doc_id: str):
        return self.db.collection(collection).document(doc_id)

    def _get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        snapshot = self._ref(collection, doc_id).get()
        return snapshot.to_dict() if snapshot.exists else None

    def _update_existing(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        touch: bool = True,
    ) -> Optional[dict[str, Any]]:
        """Update a document if it exists; returns the stored result or None."""
        doc_ref = self._ref(collection, doc_id)
        if not doc_ref.get().exists:
            return None
        if touch:
            data = {**data, "updated_at": _utc_now_iso()}
        doc_ref.update(data)
        return doc_ref.get().to_dict()

    def _household_query(self, collection: str, household_id: str):
        return self.db.collection(collection).where(filter=FieldFilter("household_id", "==", household_id))

    # =========================================================================
    # Profiles
    # =========================================================================

    def get_profile(self, user_id: str) -> Optional[dict[str, Any]]:
        return self._get(self.profiles_collection, user_id)

    def save_profile(
        self,
        user_id: str,
        email: Optional[str],
        display_name: str,
        main_currency: str,
    ) -> dict[str, Any]:
        """Create or overwrite a profile, keeping the original creation time."""
        now = _utc_now_iso()
        existing = self.get_profile(user_id)

        profile = {
            "id": user_id,
            "email": email,
            "display_name": display_name,
            "main_currency": main_currency,
            "created_at": existing["created_at"] if existing else now,
            "updated_at": now,
        }
        self._ref(self.profiles_collection, user_id).set(profile)
        return profile

    def update_profile(self, user_id: str, data: dict[str, Any]) -> Optional[dict[str, Any]]:
        return self._update_existing(self.profiles_collection, user_id, data)

    # =========================================================================
    # Households
    # =========================================================================

    def ensure_household(self, user_id: str, household_name: str) -> tuple[dict[str, Any], dict[str, Any], bool]:
        """
        Return the user's household, creating one owned by the user if needed.

        The membership lookup and both inserts share one Firestore transaction.
        Membership documents are keyed by user id, so a concurrent first
        request either sees the winner's membership on retry or loses the
        commit; the user never ends up with two households.

        Returns:
            Tuple of (household, membership, created)
        """
        member_ref = self._ref(self.members_collection, user_id)
        households = self.db.collection(self.households_collection)
        transaction = self.db.transaction()

        @firestore.transactional
        def _ensure(transaction) -> tuple[dict[str, Any], dict[str, Any], bool]:
            member_doc = member_ref.get(transaction=transaction)
            if member_doc.exists:
                membership = member_doc.to_dict()
                household_doc = households.document(membership["household_id"]).get(
                    transaction=transaction
                )
                if household_doc.exists:
                    return household_doc.to_dict(), membership, False
                logger.warning(
                    f"Membership of {user_id} points at missing household "
                    f"{membership['household_id']}; provisioning a new one"
                )

            now = _utc_now_iso()
            household_id = str(uuid4())
            household = {
                "id": household_id,
                "name": household_name,
                "owner_id": user_id,
                "created_at": now,
                "updated_at": now,
                "member_count": 1,
            }
            membership = _membership(household_id, user_id, HouseholdRole.OWNER.value, None, now)
            transaction.set(households.document(household_id), household)
            transaction.set(member_ref, membership)
            return household, membership, True

        return _ensure(transaction)

    def get_household(self, household_id: str) -> Optional[dict[str, Any]]:
        return self._get(self.households_collection, household_id)

    def update_household(self, household_id: str, data: dict[str, Any]) -> Optional[dict[str, Any]]:
        return self._update_existing(self.households_collection, household_id, data)

    def delete_household(self, household_id: str) -> bool:
        """Delete a household together with its memberships and invites in one batch."""
        doc_ref = self._ref(self.households_collection, household_id)
        if not doc_ref.get().exists:
            return False

        batch = self.db.batch()
        for collection in (self.members_collection, self.invites_collection):
            for doc in self._household_query(collection, household_id).stream():
                batch.delete(doc.reference)
        batch.delete(doc_ref)
        batch.commit()
        return True

    # =========================================================================
    # Membership
    # =========================================================================

    def get_membership(self, user_id: str) -> Optional[dict[str, Any]]:
        return self._get(self.members_collection, user_id)

    def remove_member(self, household_id: str, user_id: str) -> bool:
        member = self.get_membership(user_id)
        if not member or member.get("household_id") != household_id:
            return False

        batch = self.db.batch()
        batch.delete(self._ref(self.members_collection, user_id))
        batch.update(
            self._ref(self.households_collection, household_id),
            {"member_count": firestore.Increment(-1), "updated_at": _utc_now_iso()},
        )
        batch.commit()
        return True

    def update_member_role(self, household_id: str, user_id: str, role: str) -> Optional[dict[str, Any]]:
        member = self.get_membership(user_id)
        if not member or member.get("household_id") != household_id:
            return None
        return self._update_existing(self.members_collection, user_id, {"role": role}, touch=False)

    def list_members(self, household_id: str) -> list[dict[str, Any]]:
        return [doc.to_dict() for doc in self._household_query(self.members_collection, household_id).stream()]

    # =========================================================================
    # Invites
    # =========================================================================

    def create_invite(
        self,
        household_id: str,
        created_by: str,
        max_uses: int = 0,
        expires_hours: Optional[int] = None,
    ) -> dict[str, Any]:
        now = datetime.now(timezone.utc)
        invite_code = secrets.token_urlsafe(16)

        invite = {
            "id": invite_code,
            "household_id": household_id,
            "created_by": created_by,
            "created_at": now.isoformat(),
            "expires_at": (now + timedelta(hours=expires_hours)).isoformat() if expires_hours else None,
            "max_uses": max_uses,
            "use_count": 0,
            "is_active": True,
        }
        self._ref(self.invites_collection, invite_code).set(invite)
        return invite

    def get_invite(self, invite_code: str) -> Optional[dict[str, Any]]:
        return self._get(self.invites_collection, invite_code)

    def accept_invite(self, invite_code: str, user_id: str, role: str) -> dict[str, Any]:
        """
        Add ``user_id`` to the invite's household and count the use atomically.

        The invite is re-read inside the transaction, so concurrent joins can
        never push ``use_count`` past ``max_uses``.

        Raises:
            ValidationError: if the invite vanished, was revoked or is used up
        """
        invite_ref = self._ref(self.invites_collection, invite_code)
        member_ref = self._ref(self.members_collection, user_id)
        transaction = self.db.transaction()

        @firestore.transactional
        def _accept(transaction) -> dict[str, Any]:
            snapshot = invite_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise ValidationError("Invite not found")
            invite = snapshot.to_dict()
            max_uses = invite.get("max_uses", 0)
            if not invite.get("is_active") or (max_uses > 0 and invite.get("use_count", 0) >= max_uses):
                raise ValidationError("This invite is no longer valid")

            now = _utc_now_iso()
            household_id = invite["household_id"]
            membership = _membership(household_id, user_id, role, invite["created_by"], now)
            transaction.set(member_ref, membership)
            transaction.update(invite_ref, {"use_count": firestore.Increment(1)})
            transaction.update(
                self._ref(self.households_collection, household_id),
                {"member_count": firestore.Increment(1), "updated_at": now},
            )
            return membership

        return _accept(transaction)

    def deactivate_invite(self, invite_code: str) -> bool:
        return self._update_existing(self.invites_collection, invite_code, {"is_active": False}, touch=False) is not None

    def list_invites(self, household_id: str, active_only: bool = True) -> list[dict[str, Any]]:
        query = self._household_query(self.invites_collection, household_id)
        if active_only:
            query = query.where(filter=FieldFilter("is_active", "==", True))
        return [doc.to_dict() for doc in query.stream()]


# Singleton instance
_household_repo: Optional[HouseholdRepository] = None


def get_household_repo() -> HouseholdRepository:
    """Get the singleton HouseholdRepository instance."""
    global _household_repo
    if _household_repo is None:
        _household_repo = HouseholdRepository()
    return _household_repo
