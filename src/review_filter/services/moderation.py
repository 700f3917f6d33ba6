"""Moderation services: approve/reject with audit and first-approval promotion."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from review_filter.db.guard import RuleDenied
from review_filter.db.time import utcnow
from review_filter.models import CONTENT_MODELS, ModeratedContent, ModerationEvent, User
from review_filter.policy.errors import Decision, DenialReason, PolicyError
from review_filter.policy.evaluator import Actor, ContentKind, can_moderate
from review_filter.policy.moderation import Denied, ModerationAction, ModerationStatus, can_transition
from review_filter.policy.roles import Role
from review_filter.services.notifications import Notice, Notifier, get_notifier
from review_filter.services.user_service import apply_first_approval_promotion

logger = logging.getLogger(__name__)

# One retry after losing a compare-and-set race; the re-read decides.
MAX_ATTEMPTS = 2


@dataclass(frozen=True)
class ModerationResult:
    """Outcome of an approve/reject call."""

    item: ModeratedContent
    changed: bool
    promoted_role: Role | None = None


def _require_moderator(actor: Actor) -> None:
    decision = can_moderate(actor)
    if not decision:
        raise PolicyError(decision)


def _load(db: Session, kind: ContentKind, item_id: str) -> ModeratedContent:
    model = CONTENT_MODELS[kind]
    item = db.execute(select(model).where(model.id == item_id)).scalar_one_or_none()
    if item is None:
        raise PolicyError(Decision.deny(DenialReason.NOT_FOUND, "Item not found"))
    return item


def _promote_author(db: Session, author_id: str, actor_id: str | None) -> Role | None:
    """Best-effort promotion; a failure never undoes the approval."""
    try:
        promoted = apply_first_approval_promotion(db, author_id, actor_id)
        if promoted is not None:
            db.commit()
    except (SQLAlchemyError, RuleDenied):
        db.rollback()
        logger.warning(
            "Promotion of %s after approval failed; will retry on next sign-in",
            author_id,
            exc_info=True,
        )
        return None
    if promoted is not None:
        logger.info("Promoted %s to %s on first approval", author_id, promoted.value)
    return promoted


def moderate_item(
    db: Session,
    actor: Actor,
    kind: ContentKind,
    item_id: str,
    action: ModerationAction,
    reason: str | None = None,
    notifier: Notifier | None = None,
) -> ModerationResult:
    """Approve or reject a pending item.

    Re-applying the verdict an item already carries is a no-op. A lost race
    against another moderator is resolved by re-reading the item: the same
    verdict becomes a no-op, the opposite one a conflict.

    Raises:
        PolicyError: Not an administrator, unknown item, or illegal transition.
    """
    _require_moderator(actor)
    if action not in (ModerationAction.APPROVE, ModerationAction.REJECT):
        raise PolicyError(Decision.deny(DenialReason.VALIDATION_FAILED, f"Unsupported action {action.value}"))

    for _attempt in range(MAX_ATTEMPTS):
        item = _load(db, kind, item_id)
        outcome = can_transition(item.status, action, is_owner=actor.owns(item), is_moderator=True)
        if isinstance(outcome, Denied):
            raise PolicyError(Decision.deny(outcome.reason, outcome.detail))
        if not outcome.changed:
            promoted = None
            if action is ModerationAction.APPROVE:
                promoted = _promote_author(db, item.author_id, actor.user_id)
            return ModerationResult(item=item, changed=False, promoted_role=promoted)

        previous = item.status
        item.status = outcome.next_status
        item.moderated_by = actor.user_id
        item.moderated_at = utcnow()
        item.moderation_reason = reason
        db.add(
            ModerationEvent(
                subject_kind=kind.value,
                subject_id=item.id,
                action=action.value,
                actor_id=actor.user_id,
                previous_value=previous.value,
                new_value=outcome.next_status.value,
                reason=reason,
            )
        )
        try:
            db.commit()
        except StaleDataError:
            db.rollback()
            logger.info("Lost moderation race on %s %s; re-reading", kind.value, item_id)
            continue
        break
    else:
        raise PolicyError(Decision.deny(DenialReason.CONFLICT, "Item was modified concurrently"))

    db.refresh(item)
    logger.info("%s %s %s by %s", kind.value, item.id, outcome.next_status.value, actor.user_id)

    promoted = None
    if action is ModerationAction.APPROVE:
        promoted = _promote_author(db, item.author_id, actor.user_id)

    sink = notifier or get_notifier()
    sink.emit(
        Notice(
            event="approved" if action is ModerationAction.APPROVE else "rejected",
            subject_kind=kind.value,
            subject_id=item.id,
            actor_id=actor.user_id,
            recipient_id=item.author_id,
            previous_value=previous.value,
            new_value=item.status.value,
            reason=reason,
        )
    )
    if promoted is not None:
        sink.emit(
            Notice(
                event="role_changed",
                subject_kind="user",
                subject_id=item.author_id,
                actor_id=actor.user_id,
                recipient_id=item.author_id,
                previous_value=Role.LOGIN_NOT_AUTH.value,
                new_value=promoted.value,
            )
        )
    return ModerationResult(item=item, changed=True, promoted_role=promoted)


def moderation_queue(
    db: Session,
    actor: Actor,
    kind: ContentKind,
    status: ModerationStatus | None = ModerationStatus.PENDING,
    skip: int = 0,
    limit: int = 50,
) -> Sequence[ModeratedContent]:
    """Items of ``kind`` in ``status`` (all statuses when ``None``), oldest first."""
    _require_moderator(actor)
    model = CONTENT_MODELS[kind]
    query = select(model)
    if status is not None:
        query = query.where(model.status == status)
    query = query.order_by(model.created_at.asc()).offset(skip).limit(limit)
    return db.execute(query).scalars().all()


def moderation_events(
    db: Session,
    actor: Actor,
    subject_kind: str | None = None,
    subject_id: str | None = None,
    skip: int = 0,
    limit: int = 50,
) -> Sequence[ModerationEvent]:
    """Audit log, newest first."""
    _require_moderator(actor)
    query = select(ModerationEvent)
    if subject_kind is not None:
        query = query.where(ModerationEvent.subject_kind == subject_kind)
    if subject_id is not None:
        query = query.where(ModerationEvent.subject_id == subject_id)
    query = query.order_by(ModerationEvent.id.desc()).offset(skip).limit(limit)
    return db.execute(query).scalars().all()


def moderation_stats(db: Session, actor: Actor) -> dict[str, Any]:
    """Counts per status for each content kind and per role for users."""
    _require_moderator(actor)
    content: dict[str, dict[str, int]] = {}
    for kind, model in CONTENT_MODELS.items():
        counts = {status.value: 0 for status in ModerationStatus}
        rows = db.execute(select(model.status, func.count()).group_by(model.status)).all()
        for status, count in rows:
            counts[ModerationStatus(status).value] = count
        content[kind.collection] = counts

    users = {role.value: 0 for role in Role}
    for role, count in db.execute(select(User.role, func.count()).group_by(User.role)).all():
        users[Role(role).value] = count
    return {"content": content, "users": users}
