"""Pydantic schemas for request and response bodies."""

from .content import (
    CommentCreate,
    CommentResponse,
    CommentUpdate,
    ReviewCreate,
    ReviewResponse,
    ReviewUpdate,
    RoadmapCreate,
    RoadmapResponse,
    RoadmapUpdate,
)
from .moderation import ModerationEventResponse, ModerationRequest, StatsResponse
from .user import (
    AdminUserResponse,
    PermissionsResponse,
    RegisterRequest,
    RoleChangeRequest,
    TokenResponse,
    UserResponse,
    UserUpdate,
)

__all__ = [
    "CommentCreate", "CommentResponse", "CommentUpdate",
    "ReviewCreate", "ReviewResponse", "ReviewUpdate",
    "RoadmapCreate", "RoadmapResponse", "RoadmapUpdate",
    "ModerationEventResponse", "ModerationRequest", "StatsResponse",
    "AdminUserResponse", "PermissionsResponse", "RegisterRequest",
    "RoleChangeRequest", "TokenResponse", "UserResponse", "UserUpdate",
]
