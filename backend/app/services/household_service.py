"""
Household Service

Household provisioning, membership rules, invites and profiles.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from app.auth.firebase_auth import FirebaseUser, get_user_details
from app.core import config
from app.core.exceptions import ConflictError, EntityNotFoundError, PermissionDeniedError, ValidationError
from app.core.logging import get_logger
from app.repositories.finance_repo import FinanceRepository
from app.repositories.household_repo import HouseholdRepository
from app.schemas.household_models import HouseholdRole

logger = get_logger("fintrack.services.household")


@dataclass
class HouseholdContext:
    """The caller's household together with their membership."""

    household: dict[str, Any]
    membership: dict[str, Any]

    @property
    def household_id(self) -> str:
        return self.household["id"]

    @property
    def role(self) -> HouseholdRole:
        return HouseholdRole(self.membership["role"])

    @property
    def is_owner(self) -> bool:
        return self.household.get("owner_id") == self.membership.get("user_id")

    @property
    def is_admin(self) -> bool:
        return self.role in (HouseholdRole.OWNER, HouseholdRole.ADMIN)


class HouseholdService:
    def __init__(self, repository: HouseholdRepository, finance_repository: FinanceRepository) -> None:
        self.repository = repository
        self.finance_repository = finance_repository

    # =========================================================================
    # Provisioning
    # =========================================================================

    @staticmethod
    def household_name_for(user_name: Optional[str], email: Optional[str] = None) -> str:
        """Name of an auto-provisioned household: ``"<name>'s Household"``."""
        name = (user_name or "").strip()
        if not name and email:
            name = email.split("@", 1)[0].strip()
        if not name:
            return "My Household"
        return f"{name}'s Household"

    def ensure_user_has_household(
        self,
        user_id: str,
        user_name: Optional[str],
        email: Optional[str] = None,
    ) -> HouseholdContext:
        """Return the user's household, creating a personal one on first access."""
        household, membership, created = self.repository.ensure_household(
            user_id, self.household_name_for(user_name, email)
        )
        if created:
            logger.info(f"Created household {household['id']} for user {user_id}")
        else:
            logger.debug(f"User {user_id} already has household {household['id']}")
        return HouseholdContext(household=household, membership=membership)

    def get_context(self, user: FirebaseUser) -> HouseholdContext:
        profile = self.repository.get_profile(user.uid)
        user_name = profile["display_name"] if profile else user.name
        return self.ensure_user_has_household(user.uid, user_name, user.email)

    @staticmethod
    def require_admin(context: HouseholdContext) -> None:
        if not context.is_admin:
            raise PermissionDeniedError("This action requires household admin privileges")

    # =========================================================================
    # Profiles
    # =========================================================================

    def register_profile(
        self,
        user: FirebaseUser,
        display_name: str,
        main_currency: str,
    ) -> tuple[dict[str, Any], HouseholdContext]:
        """Store the profile collected at sign-up and provision the household."""
        profile = self.repository.save_profile(user.uid, user.email, display_name, main_currency)
        context = self.ensure_user_has_household(user.uid, display_name, user.email)
        logger.info(f"Registered profile for {user.uid} (main currency {main_currency})")
        return profile, context

    def get_profile(self, user: FirebaseUser) -> Optional[dict[str, Any]]:
        return self.repository.get_profile(user.uid)

    def update_profile(self, user: FirebaseUser, changes: dict[str, Any]) -> dict[str, Any]:
        if not changes:
            raise ValidationError("Nothing to update")
        profile = self.repository.update_profile(user.uid, changes)
        if profile is None:
            raise EntityNotFoundError("Profile not found. Register first.")
        return profile

    def main_currency(self, user_id: str) -> str:
        profile = self.repository.get_profile(user_id)
        if profile and profile.get("main_currency"):
            return profile["main_currency"]
        return config.DEFAULT_CURRENCY

    # =========================================================================
    # Household management
    # =========================================================================

    def rename(self, context: HouseholdContext, name: str) -> dict[str, Any]:
        self.require_admin(context)
        updated = self.repository.update_household(context.household_id, {"name": name})
        if updated is None:
            raise EntityNotFoundError("Household not found")
        return updated

    @staticmethod
    def _member_view(context: HouseholdContext, member: dict[str, Any]) -> dict[str, Any]:
        email, name = get_user_details(member["user_id"])
        return {
            "user_id": member["user_id"],
            "email": email,
            "name": name,
            "role": member["role"],
            "joined_at": member["created_at"],
            "is_owner": member["user_id"] == context.household["owner_id"],
        }

    def list_members(self, context: HouseholdContext) -> list[dict[str, Any]]:
        result = [self._member_view(context, m) for m in self.repository.list_members(context.household_id)]
        return sorted(result, key=lambda m: (not m["is_owner"], m["joined_at"]))

    def update_member_role(
        self,
        context: HouseholdContext,
        member_user_id: str,
        role: HouseholdRole,
    ) -> dict[str, Any]:
        self.require_admin(context)

        if member_user_id == context.household["owner_id"]:
            raise ValidationError("Cannot change the owner's role")
        if role == HouseholdRole.OWNER:
            raise ValidationError("The owner role cannot be assigned")

        updated = self.repository.update_member_role(context.household_id, member_user_id, role.value)
        if updated is None:
            raise EntityNotFoundError("Member not found")
        logger.info(f"Member {member_user_id} of {context.household_id} is now {role.value}")
        return self._member_view(context, updated)

    def remove_member(self, context: HouseholdContext, member_user_id: str) -> None:
        self.require_admin(context)

        if member_user_id == context.household["owner_id"]:
            raise ValidationError("Cannot remove the household owner")
        if member_user_id == context.membership["user_id"]:
            raise ValidationError("Use DELETE /households/me to leave the household")

        if not self.repository.remove_member(context.household_id, member_user_id):
            raise EntityNotFoundError("Member not found")
        logger.info(f"Removed member {member_user_id} from {context.household_id}")

    def leave(self, context: HouseholdContext) -> dict[str, str]:
        """Leave the household; the last member's leaving deletes it."""
        user_id = context.membership["user_id"]
        household_id = context.household_id

        if context.is_owner:
            members = self.repository.list_members(household_id)
            others = [m for m in members if m["user_id"] != user_id]
            if not others:
                self.finance_repository.delete_household_data(household_id)
                self.repository.delete_household(household_id)
                logger.info(f"Household {household_id} deleted by its last member {user_id}")
                return {"status": "household_deleted", "message": "You were the last member. Household has been deleted."}

            admins = [m for m in others if m["role"] == HouseholdRole.ADMIN.value]
            if not admins:
                raise ValidationError(
                    "As the owner, you must promote another admin before leaving, "
                    "or remove all other members first."
                )
            new_owner = admins[0]["user_id"]
            self.repository.update_household(household_id, {"owner_id": new_owner})
            self.repository.update_member_role(household_id, new_owner, HouseholdRole.OWNER.value)
            logger.info(f"Ownership of {household_id} transferred from {user_id} to {new_owner}")

        self.repository.remove_member(household_id, user_id)
        return {"status": "left", "message": "You have left the household."}

    # =========================================================================
    # Invites
    # =========================================================================

    @staticmethod
    def invite_url(invite_code: str) -> str:
        return f"{config.FRONTEND_URL}/join/{invite_code}"

    def create_invite(
        self,
        context: HouseholdContext,
        max_uses: int = 0,
        expires_hours: Optional[int] = None,
    ) -> dict[str, Any]:
        self.require_admin(context)
        invite = self.repository.create_invite(
            household_id=context.household_id,
            created_by=context.membership["user_id"],
            max_uses=max_uses,
            expires_hours=expires_hours,
        )
        return {**invite, "invite_url": self.invite_url(invite["id"])}

    def list_invites(self, context: HouseholdContext) -> list[dict[str, Any]]:
        self.require_admin(context)
        invites = self.repository.list_invites(context.household_id, active_only=True)
        return [{**invite, "invite_url": self.invite_url(invite["id"])} for invite in invites]

    def revoke_invite(self, context: HouseholdContext, invite_code: str) -> None:
        self.require_admin(context)
        invite = self.repository.get_invite(invite_code)
        if not invite or invite["household_id"] != context.household_id:
            raise EntityNotFoundError("Invite not found")
        self.repository.deactivate_invite(invite_code)

    @staticmethod
    def check_invite(invite: Optional[dict[str, Any]], now: Optional[datetime] = None) -> dict[str, Any]:
        """Raise ValidationError unless the invite can still be used."""
        if not invite:
            raise ValidationError("Invite not found")
        if not invite.get("is_active"):
            raise ValidationError("This invite has been revoked")

        expires_at = invite.get("expires_at")
        if expires_at:
            expiry = datetime.fromisoformat(expires_at.replace("Z", "+00:00"))
            if (now or datetime.now(timezone.utc)) > expiry:
                raise ValidationError("This invite has expired")

        max_uses = invite.get("max_uses", 0)
        if max_uses > 0 and invite.get("use_count", 0) >= max_uses:
            raise ValidationError("This invite has reached its maximum uses")
        return invite

    def preview_invite(self, invite_code: str, user: Optional[FirebaseUser]) -> dict[str, Any]:
        invite = self.check_invite(self.repository.get_invite(invite_code))
        household = self.repository.get_household(invite["household_id"])
        if not household:
            raise EntityNotFoundError("Household not found")

        current_name = None
        if user:
            membership = self.repository.get_membership(user.uid)
            if membership and membership["household_id"] != household["id"]:
                current = self.repository.get_household(membership["household_id"])
                current_name = current["name"] if current else None

        return {
            "household_name": household["name"],
            "member_count": household.get("member_count", 1),
            "is_valid": True,
            "current_household_name": current_name,
        }

    def _release_personal_household(self, user_id: str) -> None:
        """Drop the user's current household so they can join another.

        Only an untouched solo household (no other members, no accounts) can
        be given up this way.
        """
        membership = self.repository.get_membership(user_id)
        if not membership:
            return

        household_id = membership["household_id"]
        members = self.repository.list_members(household_id)
        if membership["role"] != HouseholdRole.OWNER.value or len(members) > 1:
            raise ConflictError("You are already a member of a household. Leave your current household first.")
        if self.finance_repository.list_accounts(household_id):
            raise ConflictError("Your household already has accounts. Leave it before joining another one.")

        self.finance_repository.delete_household_data(household_id)
        self.repository.delete_household(household_id)
        logger.info(f"Released empty household {household_id} of {user_id}")

    def join(self, user: FirebaseUser, invite_code: str) -> dict[str, Any]:
        invite = self.check_invite(self.repository.get_invite(invite_code))
        household = self.repository.get_household(invite["household_id"])
        if not household:
            raise EntityNotFoundError("Household not found")

        current = self.repository.get_membership(user.uid)
        if current and current["household_id"] == household["id"]:
            raise ConflictError("You are already a member of this household")

        self._release_personal_household(user.uid)
        self.repository.accept_invite(invite_code, user.uid, HouseholdRole.MEMBER.value)
        logger.info(f"User {user.uid} joined household {household['id']}")

        return self.repository.get_household(household["id"]) or household
