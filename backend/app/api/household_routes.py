"""
Household API Routes

Household provisioning, membership, invites and demo data.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from app.api.deps import domain_errors, get_household_context, get_household_service, get_seed_service
from app.auth.firebase_auth import FirebaseUser, get_current_user, get_optional_user
from app.schemas.finance_models import SeedResponse
from app.schemas.household_models import (
    CreateInviteRequest,
    HouseholdInviteResponse,
    HouseholdMemberResponse,
    HouseholdMembershipResponse,
    HouseholdResponse,
    HouseholdUpdate,
    JoinHouseholdRequest,
    UpdateMemberRoleRequest,
)
from app.services.household_service import HouseholdContext, HouseholdService
from app.services.seed_service import SeedService

router = APIRouter(prefix="/households", tags=["households"])


def _membership_response(context: HouseholdContext) -> HouseholdMembershipResponse:
    return HouseholdMembershipResponse(
        household=HouseholdResponse(**context.household),
        role=context.role,
        is_owner=context.is_owner,
        is_admin=context.is_admin,
    )


# =============================================================================
# Household
# =============================================================================


@router.get("/me", response_model=HouseholdMembershipResponse)
def get_my_household(
    context: HouseholdContext = Depends(get_household_context),
) -> HouseholdMembershipResponse:
    """Get the caller's household, creating a personal one on first access."""
    return _membership_response(context)


@router.put("/me", response_model=HouseholdResponse)
def rename_my_household(
    payload: HouseholdUpdate,
    context: HouseholdContext = Depends(get_household_context),
    service: HouseholdService = Depends(get_household_service),
) -> HouseholdResponse:
    """Rename the household. Requires owner or admin role."""
    with domain_errors():
        updated = service.rename(context, payload.name)
    return HouseholdResponse(**updated)


@router.delete("/me")
def leave_household(
    context: HouseholdContext = Depends(get_household_context),
    service: HouseholdService = Depends(get_household_service),
) -> dict:
    """Leave the household. The last member leaving deletes it with all its data."""
    with domain_errors():
        return service.leave(context)


@router.post("/me/seed", response_model=SeedResponse)
def seed_demo_data(
    context: HouseholdContext = Depends(get_household_context),
    service: HouseholdService = Depends(get_household_service),
    seed_service: SeedService = Depends(get_seed_service),
) -> SeedResponse:
    """Fill an empty household with demo accounts, categories and transactions."""
    with domain_errors():
        service.require_admin(context)
        result = seed_service.seed_household(context.household_id, context.membership["user_id"])
    return SeedResponse(**result)


# =============================================================================
# Member Management
# =============================================================================


@router.get("/me/members", response_model=list[HouseholdMemberResponse])
def list_members(
    context: HouseholdContext = Depends(get_household_context),
    service: HouseholdService = Depends(get_household_service),
) -> list[HouseholdMemberResponse]:
    return [HouseholdMemberResponse(**m) for m in service.list_members(context)]


@router.put("/me/members/{member_user_id}/role", response_model=HouseholdMemberResponse)
def update_member_role(
    member_user_id: str,
    payload: UpdateMemberRoleRequest,
    context: HouseholdContext = Depends(get_household_context),
    service: HouseholdService = Depends(get_household_service),
) -> HouseholdMemberResponse:
    """Change a member's role. Requires owner or admin role."""
    with domain_errors():
        member = service.update_member_role(context, member_user_id, payload.role)
    return HouseholdMemberResponse(**member)


@router.delete("/me/members/{member_user_id}")
def remove_member(
    member_user_id: str,
    context: HouseholdContext = Depends(get_household_context),
    service: HouseholdService = Depends(get_household_service),
) -> dict:
    """Remove a member from the household. Requires owner or admin role."""
    with domain_errors():
        service.remove_member(context, member_user_id)
    return {"status": "removed", "user_id": member_user_id}


# =============================================================================
# Invite Management
# =============================================================================


@router.post("/me/invites", response_model=HouseholdInviteResponse)
def create_invite(
    payload: CreateInviteRequest = CreateInviteRequest(),
    context: HouseholdContext = Depends(get_household_context),
    service: HouseholdService = Depends(get_household_service),
) -> HouseholdInviteResponse:
    with domain_errors():
        invite = service.create_invite(context, payload.max_uses, payload.expires_hours)
    return HouseholdInviteResponse(**invite)


@router.get("/me/invites", response_model=list[HouseholdInviteResponse])
def list_invites(
    context: HouseholdContext = Depends(get_household_context),
    service: HouseholdService = Depends(get_household_service),
) -> list[HouseholdInviteResponse]:
    with domain_errors():
        invites = service.list_invites(context)
    return [HouseholdInviteResponse(**invite) for invite in invites]


@router.delete("/me/invites/{invite_code}")
def revoke_invite(
    invite_code: str,
    context: HouseholdContext = Depends(get_household_context),
    service: HouseholdService = Depends(get_household_service),
) -> dict:
    with domain_errors():
        service.revoke_invite(context, invite_code)
    return {"status": "revoked", "invite_code": invite_code}


# =============================================================================
# Join Household
# =============================================================================


@router.post("/join", response_model=HouseholdResponse)
def join_household(
    payload: JoinHouseholdRequest,
    user: FirebaseUser = Depends(get_current_user),
    service: HouseholdService = Depends(get_household_service),
) -> HouseholdResponse:
    """Join a household using an invite code."""
    with domain_errors():
        household = service.join(user, payload.invite_code)
    return HouseholdResponse(**household)


@router.get("/invite/{invite_code}")
def get_invite_info(
    invite_code: str,
    user: Optional[FirebaseUser] = Depends(get_optional_user),
    service: HouseholdService = Depends(get_household_service),
) -> dict:
    """Preview an invite before joining."""
    with domain_errors():
        return service.preview_invite(invite_code, user)
