"""initial schema

Revision ID: 6a1f3c9d2b10
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "6a1f3c9d2b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ROLE = sa.Enum(
    "NOT_ACCESS", "LOGIN_NOT_AUTH", "AUTH_LOGIN", "AUTH_PREMIUM", "BLOCKED_LOGIN", "ADMIN",
    name="role", native_enum=False, length=32,
)
STATUS = sa.Enum("PENDING", "APPROVED", "REJECTED", name="moderationstatus", native_enum=False, length=16)


def _content_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("author_id", sa.String(length=128), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("status", STATUS, nullable=False, index=True),
        sa.Column("moderated_by", sa.String(length=128), nullable=True),
        sa.Column("moderated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("moderation_reason", sa.Text(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False),
    ]


def upgrade() -> None:
    """Create users, content tables and the moderation audit log."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=128), primary_key=True),
        sa.Column("nickname", sa.String(length=50), nullable=True),
        sa.Column("role", ROLE, nullable=False),
        sa.Column("previous_role", ROLE, nullable=True),
        sa.Column("managed_by", sa.String(length=128), nullable=True),
        sa.Column("managed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("management_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False),
    )
    op.create_table(
        "reviews",
        *_content_columns(),
        sa.Column("course_title", sa.String(length=200), nullable=False),
        sa.Column("course_platform", sa.String(length=100), nullable=False),
        sa.Column("course_instructor", sa.String(length=100), nullable=True),
        sa.Column("course_category", sa.String(length=100), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("rating", sa.SmallInteger(), nullable=False),
        sa.Column("study_period", sa.String(length=50), nullable=True),
        sa.Column("positive_points", sa.Text(), nullable=True),
        sa.Column("negative_points", sa.Text(), nullable=True),
        sa.Column("changes", sa.Text(), nullable=True),
        sa.Column("recommended_for", sa.Text(), nullable=True),
    )
    op.create_table(
        "roadmaps",
        *_content_columns(),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("course_title", sa.String(length=200), nullable=False),
        sa.Column("course_platform", sa.String(length=100), nullable=False),
        sa.Column("next_course_title", sa.String(length=200), nullable=True),
        sa.Column("next_course_platform", sa.String(length=100), nullable=True),
    )
    op.create_table(
        "comments",
        *_content_columns(),
        sa.Column("review_id", sa.String(length=32), sa.ForeignKey("reviews.id"), nullable=False, index=True),
        sa.Column("content", sa.Text(), nullable=False),
    )
    op.create_table(
        "moderation_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("subject_kind", sa.String(length=16), nullable=False),
        sa.Column("subject_id", sa.String(length=128), nullable=False, index=True),
        sa.Column("action", sa.String(length=16), nullable=False),
        sa.Column("actor_id", sa.String(length=128), nullable=False),
        sa.Column("previous_value", sa.String(length=32), nullable=True),
        sa.Column("new_value", sa.String(length=32), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("moderation_events")
    op.drop_table("comments")
    op.drop_table("roadmaps")
    op.drop_table("reviews")
    op.drop_table("users")
