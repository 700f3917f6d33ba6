"""Service-level helpers for reviews, roadmaps and comments."""
from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from review_filter.core.settings import settings
from review_filter.db.guard import trusted
from review_filter.db.time import utcnow
from review_filter.models import CONTENT_MODELS, Comment, ModeratedContent, Review
from review_filter.policy.errors import Decision, DenialReason, PolicyError
from review_filter.policy.evaluator import (
    MODERATION_FIELDS,
    OWNER_FIELDS,
    PUBLIC_STATUSES,
    Actor,
    ContentKind,
    can_create,
    can_delete,
    can_read,
    can_update,
    filter_listing,
)
from review_filter.policy.moderation import Denied, ModerationAction, ModerationStatus, can_transition
from review_filter.services.moderation import moderate_item
from review_filter.services.notifications import Notifier
from review_filter.services.user_service import apply_first_approval_promotion

logger = logging.getLogger(__name__)

_VERDICT_ACTIONS = {
    ModerationStatus.APPROVED: ModerationAction.APPROVE,
    ModerationStatus.REJECTED: ModerationAction.REJECT,
}


def _raise_if_denied(decision: Decision) -> None:
    if not decision:
        raise PolicyError(decision)


def _raise_if_refused(outcome: Any) -> None:
    if isinstance(outcome, Denied):
        raise PolicyError(Decision.deny(outcome.reason, outcome.detail))


def get_item(db: Session, actor: Actor, kind: ContentKind, item_id: str) -> ModeratedContent:
    """Return an item the actor may read, or raise NOT_FOUND."""
    model = CONTENT_MODELS[kind]
    item = db.execute(select(model).where(model.id == item_id)).scalar_one_or_none()
    if item is None:
        raise PolicyError(Decision.deny(DenialReason.NOT_FOUND, "Item not found"))
    _raise_if_denied(can_read(actor, item))
    return item


def list_items(
    db: Session,
    actor: Actor,
    kind: ContentKind,
    *,
    author_id: str | None = None,
    review_id: str | None = None,
    status: ModerationStatus | None = None,
    skip: int = 0,
    limit: int | None = None,
) -> Sequence[ModeratedContent]:
    """Items of ``kind`` the actor may read, newest first, one bounded page."""
    model = CONTENT_MODELS[kind]
    query = select(model)
    if not actor.is_admin:
        visible = model.status.in_(PUBLIC_STATUSES)
        if actor.user_id is not None:
            visible = or_(visible, model.author_id == actor.user_id)
        query = query.where(visible)
    if author_id is not None:
        query = query.where(model.author_id == author_id)
    if status is not None:
        query = query.where(model.status == status)
    if review_id is not None and model is Comment:
        query = query.where(Comment.review_id == review_id)
    page = min(limit or settings.default_page_size, settings.max_page_size)
    query = query.order_by(model.created_at.desc()).offset(skip).limit(page)
    return filter_listing(db.execute(query).scalars().all(), actor)


def create_item(db: Session, actor: Actor, kind: ContentKind, data: dict[str, Any]) -> ModeratedContent:
    """Submit a new item as PENDING, owned by the actor."""
    parent = None
    if kind is ContentKind.COMMENT:
        review_id = data.get("review_id")
        parent = db.execute(select(Review).where(Review.id == review_id)).scalar_one_or_none()
    _raise_if_denied(
        can_create(actor, kind, parent, require_approved_parent=settings.require_approved_parent)
    )
    outcome = can_transition(None, ModerationAction.SUBMIT, is_owner=True, is_moderator=actor.is_admin)
    _raise_if_refused(outcome)

    unknown = set(data) - OWNER_FIELDS[kind] - {"review_id"}
    if unknown:
        raise PolicyError(
            Decision.deny(
                DenialReason.VALIDATION_FAILED,
                f"Fields cannot be set: {', '.join(sorted(unknown))}",
            )
        )

    model = CONTENT_MODELS[kind]
    item = model(author_id=actor.user_id, status=outcome.next_status, **data)
    db.add(item)
    if settings.promote_on_submission:
        with trusted(db):
            apply_first_approval_promotion(db, actor.user_id, None)
    db.commit()
    db.refresh(item)
    logger.info("%s %s submitted by %s", kind.value, item.id, actor.user_id)
    return item


def update_item(
    db: Session,
    actor: Actor,
    kind: ContentKind,
    item_id: str,
    changes: dict[str, Any],
    notifier: Notifier | None = None,
) -> ModeratedContent:
    """Apply an owner edit or an administrator's moderation change.

    Owner edits send the item back to PENDING. A status change is routed
    through the moderation flow so it gets the same audit and promotion.
    """
    item = get_item(db, actor, kind, item_id)
    _raise_if_denied(can_update(actor, item, kind, changes.keys()))

    content_changes = {k: v for k, v in changes.items() if k in OWNER_FIELDS[kind]}
    moderation_changes = {k: v for k, v in changes.items() if k in MODERATION_FIELDS}

    if content_changes:
        outcome = can_transition(
            item.status,
            ModerationAction.EDIT,
            is_owner=actor.owns(item),
            is_moderator=actor.is_admin,
        )
        _raise_if_refused(outcome)
        for key, value in content_changes.items():
            setattr(item, key, value)
        item.status = outcome.next_status
        db.commit()
        db.refresh(item)
        logger.info("%s %s edited by %s", kind.value, item.id, actor.user_id)

    if "status" in moderation_changes:
        target = ModerationStatus(moderation_changes["status"])
        action = _VERDICT_ACTIONS.get(target)
        if action is None:
            raise PolicyError(
                Decision.deny(
                    DenialReason.VALIDATION_FAILED,
                    "Status can only be set to APPROVED or REJECTED",
                )
            )
        result = moderate_item(
            db,
            actor,
            kind,
            item.id,
            action,
            reason=moderation_changes.get("moderation_reason"),
            notifier=notifier,
        )
        return result.item

    if "moderation_reason" in moderation_changes:
        item.moderation_reason = moderation_changes["moderation_reason"]
        db.commit()
        db.refresh(item)
    return item


def withdraw_item(db: Session, actor: Actor, kind: ContentKind, item_id: str) -> ModeratedContent:
    """Soft delete: status REJECTED plus who withdrew it and when."""
    item = get_item(db, actor, kind, item_id)
    _raise_if_denied(can_delete(actor, item))
    outcome = can_transition(
        item.status,
        ModerationAction.DELETE,
        is_owner=actor.owns(item),
        is_moderator=actor.is_admin,
    )
    _raise_if_refused(outcome)
    if item.deleted_at is not None:
        return item
    item.status = outcome.next_status
    item.deleted_at = utcnow()
    item.deleted_by = actor.user_id
    db.commit()
    db.refresh(item)
    logger.info("%s %s withdrawn by %s", kind.value, item.id, actor.user_id)
    return item
