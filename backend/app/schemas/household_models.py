"""
Household Models

Pydantic models for households, membership, invites and user profiles.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from app.core.constants import CURRENCY_CODES


class HouseholdRole(str, Enum):
    """Household member roles."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


# =============================================================================
# Request Models
# =============================================================================


class HouseholdUpdate(BaseModel):
    """Request model for renaming a household."""

    name: str = Field(..., min_length=1, max_length=100, description="New household name")

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Household name cannot be blank")
        return value


class JoinHouseholdRequest(BaseModel):
    """Request model for joining a household via invite code."""

    invite_code: str = Field(..., min_length=1, description="The invite code from the invite link")


class UpdateMemberRoleRequest(BaseModel):
    """Request model for changing a member's role. Ownership cannot be granted."""

    role: HouseholdRole = Field(..., description="The new role for the member")

    @field_validator("role")
    @classmethod
    def _no_owner(cls, value: HouseholdRole) -> HouseholdRole:
        if value == HouseholdRole.OWNER:
            raise ValueError("The owner role cannot be assigned")
        return value


class CreateInviteRequest(BaseModel):
    """Request model for creating an invite link."""

    max_uses: int = Field(
        default=0,
        ge=0,
        description="Maximum number of uses (0 = unlimited)",
    )
    expires_hours: Optional[int] = Field(
        default=None,
        ge=1,
        description="Hours until expiration (None = no expiration)",
    )


class ProfileCreate(BaseModel):
    """Registration details collected after hosted sign-up."""

    display_name: str = Field(..., min_length=1, max_length=100)
    main_currency: str = Field(default="USD")

    @field_validator("display_name")
    @classmethod
    def _strip_display_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Display name cannot be blank")
        return value

    @field_validator("main_currency")
    @classmethod
    def _supported_currency(cls, value: str) -> str:
        value = value.upper()
        if value not in CURRENCY_CODES:
            raise ValueError(f"Unsupported currency: {value}")
        return value


class ProfileUpdate(BaseModel):
    display_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    main_currency: Optional[str] = None

    @field_validator("main_currency")
    @classmethod
    def _supported_currency(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.upper()
        if value not in CURRENCY_CODES:
            raise ValueError(f"Unsupported currency: {value}")
        return value


# =============================================================================
# Response Models
# =============================================================================


class HouseholdResponse(BaseModel):
    """Response model for household information."""

    id: str
    name: str
    owner_id: str
    created_at: str
    updated_at: str
    member_count: int = 1


class HouseholdMembershipResponse(BaseModel):
    """The caller's household, provisioned on first access."""

    household: HouseholdResponse
    role: HouseholdRole
    is_owner: bool
    is_admin: bool


class HouseholdMemberResponse(BaseModel):
    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: HouseholdRole
    joined_at: str
    is_owner: bool


class HouseholdInviteResponse(BaseModel):
    id: str  # The invite code
    household_id: str
    created_by: str
    created_at: str
    expires_at: Optional[str] = None
    max_uses: int
    use_count: int
    is_active: bool
    invite_url: str


class ProfileResponse(BaseModel):
    id: str
    email: Optional[str] = None
    display_name: str
    main_currency: str
    created_at: str
    updated_at: str


class RegistrationResponse(BaseModel):
    profile: ProfileResponse
    household: HouseholdResponse
