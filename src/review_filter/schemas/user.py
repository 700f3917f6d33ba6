"""User-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from review_filter.client.permissions import AccessLevel
from review_filter.policy.roles import Role


class RegisterRequest(BaseModel):
    """Profile details supplied when a verified identity first signs up."""

    nickname: str | None = Field(None, min_length=1, max_length=50)


class TokenResponse(BaseModel):
    """Bearer token whose role claim mirrors the stored role."""

    access_token: str
    token_type: str = "bearer"
    role: Role


class UserResponse(BaseModel):
    """Schema for a user's own profile."""

    id: str
    nickname: str | None = None
    role: Role
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AdminUserResponse(UserResponse):
    """Profile plus role management metadata, for administrators."""

    previous_role: Role | None = None
    managed_by: str | None = None
    managed_at: datetime | None = None
    management_reason: str | None = None


class UserUpdate(BaseModel):
    """Fields a user may change on their own profile."""

    nickname: str | None = Field(None, min_length=1, max_length=50)

    model_config = ConfigDict(extra="forbid")


class RoleChangeRequest(BaseModel):
    """Administrative role change."""

    action: Literal["block", "unblock", "promote", "demote", "set_role"]
    role: Role | None = Field(None, description="Target role, required for set_role")
    reason: str | None = Field(None, max_length=500)


class PermissionsResponse(BaseModel):
    """What the presentation tier may render for the caller."""

    role: Role
    user_id: str | None
    access_level: AccessLevel
    is_authenticated: bool
    is_admin: bool
    can_view_all_reviews: bool
    can_view_all_roadmaps: bool
    can_view_comments: bool
    can_create_reviews: bool
    can_create_roadmaps: bool
    can_create_comments: bool
    can_moderate: bool
    can_manage_users: bool
    can_view_analytics: bool
    is_ad_free: bool
    show_ads: bool
    has_priority_support: bool
    has_advanced_filters: bool
    show_upgrade_prompts: bool
    show_login_prompts: bool
    max_reviews_visible: int | None
    max_roadmaps_visible: int | None
    max_comments_visible: int | None
    upgrade_message: str | None

    model_config = ConfigDict(from_attributes=True)


class ContributionCounts(BaseModel):
    total: int
    PENDING: int
    APPROVED: int
    REJECTED: int


class UserStatsResponse(BaseModel):
    """The caller's contributions per content kind."""

    reviews: ContributionCounts
    roadmaps: ContributionCounts
    comments: ContributionCounts
