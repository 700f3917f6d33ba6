"""Tests for approve/reject, promotion on first approval and moderation races."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from review_filter.models import ModerationEvent, Review, User
from review_filter.policy.errors import DenialReason, PolicyError
from review_filter.policy.evaluator import Actor, ContentKind
from review_filter.policy.moderation import ModerationAction, ModerationStatus
from review_filter.policy.roles import Role
from review_filter.services import moderation as moderation_service
from review_filter.services.moderation import moderate_item, moderation_queue, moderation_stats


def _actor(user: User) -> Actor:
    return Actor.from_record(user.role, user.id)


def _promotion_events(db_session, user_id: str) -> int:
    query = select(func.count()).select_from(ModerationEvent).where(
        ModerationEvent.subject_id == user_id,
        ModerationEvent.action == "promote",
    )
    return db_session.execute(query).scalar_one()


def test_approve_sets_audit_fields_and_promotes(db_session, admin, newcomer, make_review, notices):
    review = make_review(newcomer)

    result = moderate_item(db_session, _actor(admin), ContentKind.REVIEW, review.id, ModerationAction.APPROVE, "Looks good")

    assert result.changed is True
    assert result.promoted_role is Role.AUTH_LOGIN
    assert result.item.status is ModerationStatus.APPROVED
    assert result.item.moderated_by == admin.id
    assert result.item.moderated_at is not None
    assert result.item.moderation_reason == "Looks good"

    db_session.refresh(newcomer)
    assert newcomer.role is Role.AUTH_LOGIN
    assert [n.event for n in notices] == ["approved", "role_changed"]
    assert notices[0].recipient_id == newcomer.id


def test_reapproving_is_a_no_op(db_session, admin, member, make_review, notices):
    review = make_review(member)
    moderate_item(db_session, _actor(admin), ContentKind.REVIEW, review.id, ModerationAction.APPROVE)
    first_moderated_at = db_session.get(Review, review.id).moderated_at
    notices.clear()

    result = moderate_item(db_session, _actor(admin), ContentKind.REVIEW, review.id, ModerationAction.APPROVE)

    assert result.changed is False
    assert result.item.moderated_at == first_moderated_at
    assert notices == []
    events = db_session.execute(
        select(func.count()).select_from(ModerationEvent).where(ModerationEvent.subject_id == review.id)
    ).scalar_one()
    assert events == 1


def test_rejecting_an_approved_item_conflicts(db_session, admin, member, make_review):
    review = make_review(member, status=ModerationStatus.APPROVED)

    with pytest.raises(PolicyError) as exc_info:
        moderate_item(db_session, _actor(admin), ContentKind.REVIEW, review.id, ModerationAction.REJECT)

    assert exc_info.value.reason is DenialReason.CONFLICT


def test_non_admin_cannot_moderate(db_session, premium, member, make_review):
    review = make_review(member)

    with pytest.raises(PolicyError) as exc_info:
        moderate_item(db_session, _actor(premium), ContentKind.REVIEW, review.id, ModerationAction.APPROVE)

    assert exc_info.value.reason is DenialReason.FORBIDDEN
    db_session.refresh(review)
    assert review.status is ModerationStatus.PENDING


def test_unknown_item_is_not_found(db_session, admin):
    with pytest.raises(PolicyError) as exc_info:
        moderate_item(db_session, _actor(admin), ContentKind.ROADMAP, "missing", ModerationAction.APPROVE)

    assert exc_info.value.reason is DenialReason.NOT_FOUND


def test_promotion_happens_at_most_once(db_session, admin, newcomer, make_review, make_roadmap):
    review = make_review(newcomer)
    roadmap = make_roadmap(newcomer)

    first = moderate_item(db_session, _actor(admin), ContentKind.REVIEW, review.id, ModerationAction.APPROVE)
    second = moderate_item(db_session, _actor(admin), ContentKind.ROADMAP, roadmap.id, ModerationAction.APPROVE)

    assert first.promoted_role is Role.AUTH_LOGIN
    assert second.promoted_role is None
    assert _promotion_events(db_session, newcomer.id) == 1


def test_approval_never_promotes_above_login_not_auth(db_session, admin, premium, blocked, make_review):
    premium_review = make_review(premium)
    blocked_review = make_review(blocked)

    moderate_item(db_session, _actor(admin), ContentKind.REVIEW, premium_review.id, ModerationAction.APPROVE)
    moderate_item(db_session, _actor(admin), ContentKind.REVIEW, blocked_review.id, ModerationAction.APPROVE)

    db_session.refresh(premium)
    db_session.refresh(blocked)
    assert premium.role is Role.AUTH_PREMIUM
    assert blocked.role is Role.BLOCKED_LOGIN


def test_failed_promotion_keeps_the_approval(db_session, admin, newcomer, make_review, monkeypatch):
    review = make_review(newcomer)

    def _broken(*args, **kwargs):
        raise OperationalError("UPDATE users", {}, Exception("database is locked"))

    monkeypatch.setattr(moderation_service, "apply_first_approval_promotion", _broken)

    result = moderate_item(db_session, _actor(admin), ContentKind.REVIEW, review.id, ModerationAction.APPROVE)

    assert result.changed is True
    assert result.promoted_role is None
    stored = db_session.execute(select(Review).where(Review.id == review.id)).scalar_one()
    assert stored.status is ModerationStatus.APPROVED
    db_session.refresh(newcomer)
    assert newcomer.role is Role.LOGIN_NOT_AUTH


def test_concurrent_identical_approvals_collapse(session_factory, admin, member, make_review):
    review = make_review(member)
    actor = _actor(admin)
    slow = session_factory()
    fast = session_factory()
    try:
        # The slow moderator has already read the item while it was PENDING.
        slow.execute(select(Review).where(Review.id == review.id)).scalar_one()
        moderate_item(fast, actor, ContentKind.REVIEW, review.id, ModerationAction.APPROVE)

        result = moderate_item(slow, actor, ContentKind.REVIEW, review.id, ModerationAction.APPROVE)

        assert result.changed is False
        assert result.item.status is ModerationStatus.APPROVED
        events = slow.execute(
            select(func.count()).select_from(ModerationEvent).where(ModerationEvent.subject_id == review.id)
        ).scalar_one()
        assert events == 1
    finally:
        slow.close()
        fast.close()


def test_concurrent_opposite_verdicts_conflict(session_factory, admin, other_admin, member, make_review):
    review = make_review(member)
    slow = session_factory()
    fast = session_factory()
    try:
        slow.execute(select(Review).where(Review.id == review.id)).scalar_one()
        moderate_item(fast, _actor(other_admin), ContentKind.REVIEW, review.id, ModerationAction.REJECT)

        with pytest.raises(PolicyError) as exc_info:
            moderate_item(slow, _actor(admin), ContentKind.REVIEW, review.id, ModerationAction.APPROVE)

        assert exc_info.value.reason is DenialReason.CONFLICT
        stored = slow.execute(select(Review).where(Review.id == review.id)).scalar_one()
        assert stored.status is ModerationStatus.REJECTED
        assert stored.moderated_by == other_admin.id
    finally:
        slow.close()
        fast.close()


def test_queue_lists_pending_oldest_first(db_session, admin, member, make_review):
    older = make_review(member, course_title="First")
    newer = make_review(member, course_title="Second")
    make_review(member, status=ModerationStatus.APPROVED)

    queue = moderation_queue(db_session, _actor(admin), ContentKind.REVIEW)

    assert [item.id for item in queue] == [older.id, newer.id]


def test_stats_count_statuses_and_roles(db_session, admin, member, newcomer, make_review, make_comment):
    review = make_review(member, status=ModerationStatus.APPROVED)
    make_review(newcomer)
    make_comment(member, review, status=ModerationStatus.REJECTED)

    stats = moderation_stats(db_session, _actor(admin))

    assert stats["content"]["reviews"] == {"PENDING": 1, "APPROVED": 1, "REJECTED": 0}
    assert stats["content"]["comments"]["REJECTED"] == 1
    assert stats["content"]["roadmaps"] == {"PENDING": 0, "APPROVED": 0, "REJECTED": 0}
    assert stats["users"]["ADMIN"] == 1
    assert stats["users"]["AUTH_LOGIN"] == 1
    assert stats["users"]["LOGIN_NOT_AUTH"] == 1
