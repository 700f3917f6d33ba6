# src/review_filter/policy/moderation.py
"""Moderation lifecycle shared by reviews, roadmaps and comments."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from review_filter.policy.errors import DenialReason


class ModerationStatus(str, Enum):
    """Lifecycle tag carried by every content item."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    def __str__(self) -> str:
        return self.value


class ModerationAction(str, Enum):
    """Actions that move an item through the lifecycle."""

    SUBMIT = "submit"
    EDIT = "edit"
    APPROVE = "approve"
    REJECT = "reject"
    DELETE = "delete"


@dataclass(frozen=True)
class Transition:
    """A permitted move. ``changed`` is False for idempotent re-application."""

    next_status: ModerationStatus
    changed: bool = True


@dataclass(frozen=True)
class Denied:
    """A refused move and why."""

    reason: DenialReason
    detail: str


_VERDICTS: dict[ModerationAction, ModerationStatus] = {
    ModerationAction.APPROVE: ModerationStatus.APPROVED,
    ModerationAction.REJECT: ModerationStatus.REJECTED,
}


def can_transition(
    current: ModerationStatus | None,
    action: ModerationAction,
    is_owner: bool,
    is_moderator: bool,
) -> Transition | Denied:
    """Decide where ``action`` takes an item currently in ``current``.

    Args:
        current: Current status, or ``None`` for an item not yet persisted.
        action: Requested lifecycle action.
        is_owner: Whether the actor authored the item.
        is_moderator: Whether the actor is an administrator.

    Returns:
        A :class:`Transition` with the resulting status, or :class:`Denied`.
    """
    if action is ModerationAction.SUBMIT:
        return Transition(ModerationStatus.PENDING)

    if current is None:
        return Denied(DenialReason.NOT_FOUND, "Item does not exist")

    if action is ModerationAction.EDIT:
        if not (is_owner or is_moderator):
            return Denied(DenialReason.FORBIDDEN, "Only the author may edit this item")
        if current is ModerationStatus.REJECTED:
            return Denied(DenialReason.CONFLICT, "Rejected items cannot be edited")
        return Transition(ModerationStatus.PENDING, changed=current is not ModerationStatus.PENDING)

    if action in _VERDICTS:
        if not is_moderator:
            return Denied(DenialReason.FORBIDDEN, "Administrator privileges required")
        target = _VERDICTS[action]
        if current is ModerationStatus.PENDING:
            return Transition(target)
        if current is target:
            return Transition(target, changed=False)
        return Denied(
            DenialReason.CONFLICT,
            f"Cannot {action.value} an item that is {current.value}",
        )

    if action is ModerationAction.DELETE:
        if not (is_owner or is_moderator):
            return Denied(DenialReason.FORBIDDEN, "Only the author may delete this item")
        return Transition(
            ModerationStatus.REJECTED,
            changed=current is not ModerationStatus.REJECTED,
        )

    return Denied(DenialReason.VALIDATION_FAILED, f"Unknown action {action!r}")
