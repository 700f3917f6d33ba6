"""Content-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from review_filter.policy.moderation import ModerationStatus


class _ContentResponse(BaseModel):
    """Fields every moderated item exposes."""

    id: str
    author_id: str
    status: ModerationStatus
    moderated_by: str | None = None
    moderated_at: datetime | None = None
    moderation_reason: str | None = None
    deleted_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class _ContentUpdate(BaseModel):
    """Status and reason are accepted here so the policy layer can refuse them."""

    status: ModerationStatus | None = Field(None, description="Administrators only")
    moderation_reason: str | None = Field(None, max_length=500, description="Administrators only")

    model_config = ConfigDict(extra="forbid")


class ReviewCreate(BaseModel):
    """Schema for submitting a course review."""

    course_title: str = Field(..., min_length=1, max_length=200)
    course_platform: str = Field(..., min_length=1, max_length=100)
    course_instructor: str | None = Field(None, max_length=100)
    course_category: str | None = Field(None, max_length=100)
    content: str = Field(..., min_length=1, max_length=5000)
    rating: int = Field(..., ge=1, le=5)
    study_period: str | None = Field(None, max_length=50)
    positive_points: str | None = Field(None, max_length=2000)
    negative_points: str | None = Field(None, max_length=2000)
    changes: str | None = Field(None, max_length=2000, description="What the reviewer would change")
    recommended_for: str | None = Field(None, max_length=2000)

    model_config = ConfigDict(extra="forbid")


class ReviewUpdate(_ContentUpdate):
    """Partial update of a review."""

    course_title: str | None = Field(None, min_length=1, max_length=200)
    course_platform: str | None = Field(None, min_length=1, max_length=100)
    course_instructor: str | None = Field(None, max_length=100)
    course_category: str | None = Field(None, max_length=100)
    content: str | None = Field(None, min_length=1, max_length=5000)
    rating: int | None = Field(None, ge=1, le=5)
    study_period: str | None = Field(None, max_length=50)
    positive_points: str | None = Field(None, max_length=2000)
    negative_points: str | None = Field(None, max_length=2000)
    changes: str | None = Field(None, max_length=2000)
    recommended_for: str | None = Field(None, max_length=2000)


class ReviewResponse(_ContentResponse):
    """Schema for review information returned by the API."""

    course_title: str
    course_platform: str
    course_instructor: str | None = None
    course_category: str | None = None
    content: str
    rating: int
    study_period: str | None = None
    positive_points: str | None = None
    negative_points: str | None = None
    changes: str | None = None
    recommended_for: str | None = None


class RoadmapCreate(BaseModel):
    """Schema for submitting a learning roadmap."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)
    course_title: str = Field(..., min_length=1, max_length=200)
    course_platform: str = Field(..., min_length=1, max_length=100)
    next_course_title: str | None = Field(None, max_length=200)
    next_course_platform: str | None = Field(None, max_length=100)

    model_config = ConfigDict(extra="forbid")


class RoadmapUpdate(_ContentUpdate):
    """Partial update of a roadmap."""

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, min_length=1, max_length=5000)
    course_title: str | None = Field(None, min_length=1, max_length=200)
    course_platform: str | None = Field(None, min_length=1, max_length=100)
    next_course_title: str | None = Field(None, max_length=200)
    next_course_platform: str | None = Field(None, max_length=100)


class RoadmapResponse(_ContentResponse):
    """Schema for roadmap information returned by the API."""

    title: str
    description: str
    course_title: str
    course_platform: str
    next_course_title: str | None = None
    next_course_platform: str | None = None


class CommentCreate(BaseModel):
    """Schema for commenting on a review."""

    review_id: str = Field(..., min_length=1, max_length=32)
    content: str = Field(..., min_length=1, max_length=2000)

    model_config = ConfigDict(extra="forbid")


class CommentUpdate(_ContentUpdate):
    """Partial update of a comment."""

    content: str | None = Field(None, min_length=1, max_length=2000)


class CommentResponse(_ContentResponse):
    """Schema for comment information returned by the API."""

    review_id: str
    content: str
