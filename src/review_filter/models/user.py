# src/review_filter/models/user.py
"""SQLAlchemy model for user profiles and their role."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from review_filter.db.session import Base
from review_filter.db.time import utcnow
from review_filter.policy.roles import Role, RoleState, role_state


class User(Base):
    """Profile keyed by the identity provider's stable user id."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    nickname: Mapped[str | None] = mapped_column(String(50), nullable=True)
    role: Mapped[Role] = mapped_column(
        Enum(Role, native_enum=False, length=32),
        nullable=False,
        default=Role.LOGIN_NOT_AUTH,
    )
    # Only set while role is BLOCKED_LOGIN; consumed on unblock.
    previous_role: Mapped[Role | None] = mapped_column(
        Enum(Role, native_enum=False, length=32),
        nullable=True,
    )

    managed_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    managed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    management_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
    # Compare-and-set counter; concurrent writers get StaleDataError.
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def role_state(self) -> RoleState:
        """Return the tagged role state for this record."""
        return role_state(self.role, self.previous_role)
