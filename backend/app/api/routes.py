from fastapi import APIRouter, Depends

from app.api.deps import domain_errors, get_household_service
from app.auth.firebase_auth import FirebaseUser, get_current_user
from app.core.constants import ACCOUNT_TYPES, CATEGORY_ICONS, CURRENCIES
from app.schemas.finance_models import MetaResponse
from app.schemas.household_models import (
    HouseholdResponse,
    ProfileCreate,
    ProfileResponse,
    ProfileUpdate,
    RegistrationResponse,
)
from app.services.household_service import HouseholdService

router = APIRouter()


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/meta", response_model=MetaResponse)
def get_meta() -> MetaResponse:
    """Supported currencies, account types and category icons."""
    return MetaResponse(currencies=CURRENCIES, account_types=ACCOUNT_TYPES, category_icons=CATEGORY_ICONS)


# =============================================================================
# Current user & profile
# =============================================================================

@router.get("/me")
def get_current_user_info(
    user: FirebaseUser = Depends(get_current_user),
    service: HouseholdService = Depends(get_household_service),
) -> dict:
    """Get information about the current authenticated user and their profile."""
    profile = service.get_profile(user)
    return {
        "uid": user.uid,
        "email": user.email,
        "name": user.name,
        "is_demo": user.is_demo,
        "profile": ProfileResponse(**profile).model_dump() if profile else None,
    }


@router.post("/me/profile", response_model=RegistrationResponse)
def register_profile(
    payload: ProfileCreate,
    user: FirebaseUser = Depends(get_current_user),
    service: HouseholdService = Depends(get_household_service),
) -> RegistrationResponse:
    """Complete registration after sign-up: store the profile and provision a household."""
    with domain_errors():
        profile, context = service.register_profile(user, payload.display_name, payload.main_currency)
    return RegistrationResponse(
        profile=ProfileResponse(**profile),
        household=HouseholdResponse(**context.household),
    )


@router.put("/me/profile", response_model=ProfileResponse)
def update_profile(
    payload: ProfileUpdate,
    user: FirebaseUser = Depends(get_current_user),
    service: HouseholdService = Depends(get_household_service),
) -> ProfileResponse:
    with domain_errors():
        profile = service.update_profile(user, payload.model_dump(exclude_none=True))
    return ProfileResponse(**profile)
