# src/review_filter/models/content.py
"""Moderated content: reviews, roadmaps and comments.

All three share :class:`ModeratedContent`, the shape the policy layer
depends on: an owner, a moderation status and moderation/withdrawal metadata.
Everything else is payload.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, ClassVar

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, SmallInteger, String, Text
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from review_filter.db.session import Base
from review_filter.db.time import utcnow
from review_filter.policy.evaluator import ContentKind
from review_filter.policy.moderation import ModerationStatus


def _new_id() -> str:
    return uuid.uuid4().hex


class ModeratedContent:
    """Columns shared by every moderated content table."""

    kind: ClassVar[ContentKind]

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    author_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    status: Mapped[ModerationStatus] = mapped_column(
        Enum(ModerationStatus, native_enum=False, length=16),
        nullable=False,
        default=ModerationStatus.PENDING,
        index=True,
    )

    # Set only by an administrator's approve/reject.
    moderated_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    moderated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    moderation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Soft delete; status is REJECTED as well but the verdict fields stay untouched.
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_by: Mapped[str | None] = mapped_column(String(128), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    @declared_attr.directive
    def __mapper_args__(cls) -> dict[str, Any]:
        return {"version_id_col": cls.__table__.c.version_id}

    @property
    def is_withdrawn(self) -> bool:
        return self.deleted_at is not None


class Review(ModeratedContent, Base):
    """A course review."""

    __tablename__ = "reviews"
    kind = ContentKind.REVIEW

    course_title: Mapped[str] = mapped_column(String(200), nullable=False)
    course_platform: Mapped[str] = mapped_column(String(100), nullable=False)
    course_instructor: Mapped[str | None] = mapped_column(String(100), nullable=True)
    course_category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    rating: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    study_period: Mapped[str | None] = mapped_column(String(50), nullable=True)
    positive_points: Mapped[str | None] = mapped_column(Text, nullable=True)
    negative_points: Mapped[str | None] = mapped_column(Text, nullable=True)
    changes: Mapped[str | None] = mapped_column(Text, nullable=True)
    recommended_for: Mapped[str | None] = mapped_column(Text, nullable=True)


class Roadmap(ModeratedContent, Base):
    """An ordered learning path between courses."""

    __tablename__ = "roadmaps"
    kind = ContentKind.ROADMAP

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    course_title: Mapped[str] = mapped_column(String(200), nullable=False)
    course_platform: Mapped[str] = mapped_column(String(100), nullable=False)
    next_course_title: Mapped[str | None] = mapped_column(String(200), nullable=True)
    next_course_platform: Mapped[str | None] = mapped_column(String(100), nullable=True)


class Comment(ModeratedContent, Base):
    """A comment attached to a review."""

    __tablename__ = "comments"
    kind = ContentKind.COMMENT

    review_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("reviews.id"),
        nullable=False,
        index=True,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)


CONTENT_MODELS: dict[ContentKind, type[Review] | type[Roadmap] | type[Comment]] = {
    ContentKind.REVIEW: Review,
    ContentKind.ROADMAP: Roadmap,
    ContentKind.COMMENT: Comment,
}
