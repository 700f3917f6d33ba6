"""User profile and role management."""
from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import exists, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from review_filter.db.guard import RuleDenied, trusted
from review_filter.db.time import utcnow
from review_filter.models import CONTENT_MODELS, ModerationEvent, User
from review_filter.policy.errors import Decision, DenialReason, PolicyError
from review_filter.policy.evaluator import PROFILE_FIELDS, SELF_REGISTERED_ROLE, Actor, can_manage_user, can_moderate
from review_filter.policy.moderation import ModerationStatus
from review_filter.policy.roles import (
    Role,
    RoleChange,
    block,
    demote,
    first_approval_promotion,
    promote,
    set_role,
    unblock,
)
from review_filter.services.notifications import Notice, Notifier, get_notifier

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"

__all__ = [
    "get_user",
    "require_user",
    "list_users",
    "register_user",
    "update_profile",
    "change_role",
    "apply_first_approval_promotion",
    "reconcile_promotion",
]


def get_user(db: Session, user_id: str) -> User | None:
    """Return a single user by primary key."""
    return db.execute(select(User).where(User.id == user_id)).scalar_one_or_none()


def require_user(db: Session, user_id: str) -> User:
    user = get_user(db, user_id)
    if user is None:
        raise PolicyError(Decision.deny(DenialReason.NOT_FOUND, "User not found"))
    return user


def list_users(
    db: Session,
    actor: Actor,
    role: Role | None = None,
    skip: int = 0,
    limit: int = 50,
) -> Sequence[User]:
    """Return users for the admin console, newest first."""
    decision = can_moderate(actor)
    if not decision:
        raise PolicyError(decision)
    query = select(User)
    if role is not None:
        query = query.where(User.role == role)
    query = query.order_by(User.created_at.desc()).offset(skip).limit(limit)
    return db.execute(query).scalars().all()


def register_user(db: Session, user_id: str, nickname: str | None = None) -> User:
    """Create the caller's own profile with the self-registration role."""
    if get_user(db, user_id) is not None:
        raise PolicyError(Decision.deny(DenialReason.CONFLICT, "Profile already exists"))
    user = User(id=user_id, nickname=nickname, role=SELF_REGISTERED_ROLE)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s", user_id)
    return user


def update_profile(db: Session, user: User, changes: dict[str, object]) -> User:
    """Apply partial updates to the caller's own profile."""
    unknown = set(changes) - PROFILE_FIELDS
    if unknown:
        raise PolicyError(
            Decision.deny(
                DenialReason.VALIDATION_FAILED,
                f"Fields cannot be updated: {', '.join(sorted(unknown))}",
            )
        )
    for key, value in changes.items():
        setattr(user, key, value)
    db.commit()
    db.refresh(user)
    return user


def _role_change(user: User, action: str, target: Role | None) -> RoleChange:
    if action == "block":
        return block(user.role)
    if action == "unblock":
        return unblock(user.role, user.previous_role)
    if action == "promote":
        return promote(user.role)
    if action == "demote":
        return demote(user.role)
    if action == "set_role":
        if target is None:
            raise PolicyError(Decision.deny(DenialReason.VALIDATION_FAILED, "A target role is required"))
        return set_role(user.role, user.previous_role, target)
    raise PolicyError(Decision.deny(DenialReason.VALIDATION_FAILED, f"Unknown action {action!r}"))


def change_role(
    db: Session,
    actor: Actor,
    target_id: str,
    action: str,
    role: Role | None = None,
    reason: str | None = None,
    notifier: Notifier | None = None,
) -> User:
    """Block, unblock, promote, demote or explicitly set a user's role.

    Raises:
        PolicyError: If the actor may not manage the target.
        RoleTransitionError: If the transition is not legal from the stored role.
    """
    decision = can_moderate(actor)
    if not decision:
        raise PolicyError(decision)
    user = require_user(db, target_id)
    decision = can_manage_user(actor, user.id, user.role)
    if not decision:
        raise PolicyError(decision)

    change = _role_change(user, action, role)
    previous = user.role
    user.role = change.role
    user.previous_role = change.previous_role
    user.managed_by = actor.user_id
    user.managed_at = utcnow()
    user.management_reason = reason
    db.add(
        ModerationEvent(
            subject_kind="user",
            subject_id=user.id,
            action=action,
            actor_id=actor.user_id,
            previous_value=previous.value,
            new_value=change.role.value,
            reason=reason,
        )
    )
    try:
        db.commit()
    except StaleDataError as err:
        db.rollback()
        raise PolicyError(
            Decision.deny(DenialReason.CONFLICT, "User was modified concurrently; retry")
        ) from err
    db.refresh(user)
    logger.info("%s changed role of %s: %s -> %s", actor.user_id, user.id, previous.value, user.role.value)

    (notifier or get_notifier()).emit(
        Notice(
            event="role_changed",
            subject_kind="user",
            subject_id=user.id,
            actor_id=actor.user_id,
            recipient_id=user.id,
            previous_value=previous.value,
            new_value=user.role.value,
            reason=reason,
        )
    )
    return user


def apply_first_approval_promotion(db: Session, user_id: str, actor_id: str | None) -> Role | None:
    """Promote ``user_id`` if, and only if, the stored role is LOGIN_NOT_AUTH.

    The change is staged on ``db``; the caller commits. Returns the new role
    or ``None`` when nothing changed.
    """
    user = get_user(db, user_id)
    if user is None:
        return None
    target = first_approval_promotion(user.role)
    if target is None:
        return None
    previous = user.role
    user.role = target
    db.add(
        ModerationEvent(
            subject_kind="user",
            subject_id=user.id,
            action="promote",
            actor_id=actor_id or SYSTEM_ACTOR,
            previous_value=previous.value,
            new_value=target.value,
        )
    )
    return target


def has_approved_content(db: Session, user_id: str) -> bool:
    for model in CONTENT_MODELS.values():
        query = select(
            exists().where(model.author_id == user_id, model.status == ModerationStatus.APPROVED)
        )
        if db.execute(query).scalar():
            return True
    return False


def contribution_stats(db: Session, user_id: str) -> dict[str, dict[str, int]]:
    """Count a user's live contributions per kind, in total and per status.

    Withdrawn items are left out.
    """
    stats: dict[str, dict[str, int]] = {}
    for kind, model in CONTENT_MODELS.items():
        counts = {status.value: 0 for status in ModerationStatus}
        query = (
            select(model.status, func.count())
            .where(model.author_id == user_id, model.deleted_at.is_(None))
            .group_by(model.status)
        )
        for status, count in db.execute(query).all():
            counts[ModerationStatus(status).value] = count
        stats[kind.collection] = {"total": sum(counts.values()), **counts}
    return stats


def reconcile_promotion(db: Session, user: User, notifier: Notifier | None = None) -> Role | None:
    """Retry a first-approval promotion that did not land with its approval.

    Failures are logged and left for the next attempt.
    """
    if first_approval_promotion(user.role) is None or not has_approved_content(db, user.id):
        return None
    try:
        with trusted(db):
            promoted = apply_first_approval_promotion(db, user.id, None)
        db.commit()
    except (SQLAlchemyError, RuleDenied):
        db.rollback()
        logger.warning("Deferred promotion of %s failed; will retry", user.id, exc_info=True)
        return None
    if promoted is not None:
        db.refresh(user)
        logger.info("Promoted %s to %s on reconciliation", user.id, promoted.value)
        (notifier or get_notifier()).emit(
            Notice(
                event="role_changed",
                subject_kind="user",
                subject_id=user.id,
                actor_id=SYSTEM_ACTOR,
                recipient_id=user.id,
                previous_value=Role.LOGIN_NOT_AUTH.value,
                new_value=promoted.value,
            )
        )
    return promoted
