"""Tests for the presentation-tier permission hook."""

import json
from datetime import UTC, datetime, timedelta

import pytest

from review_filter.client.permissions import (
    ANONYMOUS,
    AccessLevel,
    can_view_item,
    content_preview,
    derive_permissions,
    page_size_for,
    permissions_from_session,
    visible_listing,
)
from review_filter.policy.evaluator import ContentKind, ItemView, VisibilityQuotas
from review_filter.policy.moderation import ModerationStatus
from review_filter.policy.roles import Role

NOW = datetime(2026, 1, 1, tzinfo=UTC)


def approved(n: int, author: str = "someone") -> list[ItemView]:
    return [ItemView(author_id=f"{author}-{i}", status=ModerationStatus.APPROVED) for i in range(n)]


@pytest.mark.parametrize(
    ("role", "level"),
    [
        (None, AccessLevel.NONE),
        (Role.NOT_ACCESS, AccessLevel.NONE),
        (Role.BLOCKED_LOGIN, AccessLevel.FULL),
        (Role.LOGIN_NOT_AUTH, AccessLevel.LIMITED),
        (Role.AUTH_LOGIN, AccessLevel.FULL),
        (Role.AUTH_PREMIUM, AccessLevel.PREMIUM),
        (Role.ADMIN, AccessLevel.PREMIUM),
    ],
)
def test_access_levels(role, level) -> None:
    assert derive_permissions(role, "u1").access_level is level


def test_anonymous_permissions() -> None:
    perms = ANONYMOUS
    assert not perms.is_authenticated
    assert perms.show_login_prompts
    assert perms.show_ads
    assert not perms.can_create_reviews
    assert perms.max_reviews_visible == 1
    assert perms.max_roadmaps_visible == 3
    assert not perms.can_view_comments


def test_role_without_user_id_is_anonymous() -> None:
    assert derive_permissions(Role.ADMIN) == ANONYMOUS


def test_newcomer_is_limited_but_can_contribute() -> None:
    perms = derive_permissions(Role.LOGIN_NOT_AUTH, "u1")
    assert perms.can_create_reviews and perms.can_create_comments
    assert not perms.can_view_all_reviews
    assert perms.upgrade_message
    assert perms.show_upgrade_prompts


def test_member_and_premium() -> None:
    member = derive_permissions(Role.AUTH_LOGIN, "u1")
    assert member.can_view_all_reviews and member.can_view_comments
    assert member.show_ads and not member.is_ad_free
    premium = derive_permissions(Role.AUTH_PREMIUM, "u1")
    assert premium.is_ad_free and not premium.show_ads
    assert premium.has_advanced_filters and premium.has_priority_support
    assert not premium.show_upgrade_prompts
    assert not premium.can_moderate


def test_blocked_user_sees_no_prompts_and_cannot_create() -> None:
    perms = derive_permissions(Role.BLOCKED_LOGIN, "u1")
    assert perms.is_authenticated
    assert not perms.can_create(ContentKind.REVIEW)
    assert not perms.show_upgrade_prompts
    assert perms.quota_for(ContentKind.REVIEW) is None


def test_admin_capabilities() -> None:
    perms = derive_permissions(Role.ADMIN, "a1")
    assert perms.can_moderate and perms.can_manage_users and perms.can_view_analytics
    assert perms.to_dict()["role"] == "ADMIN"


def test_configured_quotas_flow_through() -> None:
    perms = derive_permissions(Role.LOGIN_NOT_AUTH, "u1", VisibilityQuotas(review=2, roadmap=4, comment=1))
    assert perms.max_reviews_visible == 2
    assert perms.can_view_comments


def test_session_roundtrip_from_json() -> None:
    raw = json.dumps({"user": {"id": "u1", "role": "AUTH_LOGIN", "expires_at": "2026-02-01T00:00:00+00:00"}})
    perms = permissions_from_session(raw, now=NOW)
    assert perms.role is Role.AUTH_LOGIN
    assert perms.user_id == "u1"


def test_session_flat_mapping_and_bytes() -> None:
    assert permissions_from_session({"user_id": "u1", "role": "ADMIN"}, now=NOW).is_admin
    assert permissions_from_session(b'{"id": "u1", "role": "AUTH_PREMIUM"}', now=NOW).is_ad_free


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "",
        "{not json",
        b"\xff\xfe",
        "[1, 2, 3]",
        json.dumps({"user": "ADMIN"}),
        json.dumps({"id": "u1", "role": "SUPERUSER"}),
        json.dumps({"role": "ADMIN"}),
        json.dumps({"id": "u1", "role": "ADMIN", "expires_at": "yesterday"}),
        json.dumps({"id": "u1", "role": "ADMIN", "expires_at": {"ts": 1}}),
    ],
)
def test_corrupt_session_falls_back_to_anonymous(raw) -> None:
    assert permissions_from_session(raw, now=NOW) == ANONYMOUS


def test_expired_session_falls_back_to_anonymous() -> None:
    expired = (NOW - timedelta(minutes=1)).timestamp()
    raw = {"id": "u1", "role": "ADMIN", "expires_at": expired}
    assert permissions_from_session(raw, now=NOW) == ANONYMOUS


def test_can_view_item_matches_read_rule() -> None:
    pending = ItemView(author_id="u1", status=ModerationStatus.PENDING)
    assert can_view_item(derive_permissions(Role.LOGIN_NOT_AUTH, "u1"), pending)
    assert not can_view_item(derive_permissions(Role.AUTH_PREMIUM, "u2"), pending)
    assert can_view_item(derive_permissions(Role.ADMIN, "a1"), pending)


@pytest.mark.parametrize("extra", [0, 1, 5])
def test_quota_truncation(extra) -> None:
    items = approved(1 + extra)
    limited = visible_listing(items, ContentKind.REVIEW, derive_permissions(Role.LOGIN_NOT_AUTH, "u1"))
    assert len(limited.items) == 1
    assert limited.hidden_count == extra
    assert limited.upgrade_required
    assert limited.upgrade_message

    full = visible_listing(items, ContentKind.REVIEW, derive_permissions(Role.AUTH_LOGIN, "u1"))
    assert list(full.items) == items
    assert not full.truncated
    assert not full.upgrade_required


def test_limited_listing_hides_own_pending_items() -> None:
    own = ItemView(author_id="u1", status=ModerationStatus.PENDING)
    listing = visible_listing([own, *approved(4)], ContentKind.ROADMAP, derive_permissions(Role.LOGIN_NOT_AUTH, "u1"))
    assert own not in listing.items
    assert len(listing.items) == 3


def test_comments_hidden_for_anonymous() -> None:
    listing = visible_listing(approved(2), ContentKind.COMMENT, ANONYMOUS)
    assert listing.items == ()
    assert listing.hidden_count == 2


def test_page_size_is_bounded() -> None:
    assert page_size_for(ContentKind.REVIEW, ANONYMOUS, 50) == 2
    assert page_size_for(ContentKind.ROADMAP, ANONYMOUS, 2) == 2
    assert page_size_for(ContentKind.COMMENT, ANONYMOUS, 50) == 1
    assert page_size_for(ContentKind.REVIEW, derive_permissions(Role.AUTH_LOGIN, "u1"), 50) == 50


@pytest.mark.parametrize("role", [None, *Role])
def test_access_level_agrees_with_read_flags(role) -> None:
    perms = derive_permissions(role, "u1")
    limited = perms.access_level in (AccessLevel.NONE, AccessLevel.LIMITED)
    assert perms.can_view_all_reviews is not limited
    assert perms.can_view_all_roadmaps is not limited
    assert (perms.max_reviews_visible is not None) is limited


def test_preview_truncates_for_limited_sessions() -> None:
    text = "x" * 250

    preview = content_preview(text, derive_permissions(Role.LOGIN_NOT_AUTH, "u1"))

    assert preview.is_preview
    assert preview.content == "x" * 200 + "..."
    assert content_preview(text, ANONYMOUS, max_length=10).content == "x" * 10 + "..."


def test_preview_keeps_short_or_fully_readable_content() -> None:
    text = "x" * 250

    assert not content_preview("short", ANONYMOUS).is_preview
    for role in (Role.AUTH_LOGIN, Role.AUTH_PREMIUM, Role.ADMIN, Role.BLOCKED_LOGIN):
        preview = content_preview(text, derive_permissions(role, "u1"))
        assert preview.content == text
        assert not preview.is_preview
