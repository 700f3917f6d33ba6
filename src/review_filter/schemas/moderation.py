"""Moderation-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ModerationRequest(BaseModel):
    """Schema for approving or rejecting a pending item."""

    action: Literal["approve", "reject"]
    reason: str | None = Field(None, max_length=500, description="Shown to the author")


class ModerationEventResponse(BaseModel):
    """One entry of the moderation audit log."""

    id: int
    subject_kind: str
    subject_id: str
    action: str
    actor_id: str
    previous_value: str | None
    new_value: str | None
    reason: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StatsResponse(BaseModel):
    """Counts per content status and per role."""

    content: dict[str, dict[str, int]]
    users: dict[str, int]
