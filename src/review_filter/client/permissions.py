# src/review_filter/client/permissions.py
"""Permission hook for the presentation tier.

Given the session's role (or nothing at all) this derives one immutable
:class:`Permissions` object that drives what the UI renders: which lists are
complete, which CTAs appear, whether ads show and how many items of a list
are revealed before an upgrade prompt. Nothing here raises for a denied
render decision; missing, stale or corrupt session data degrades to the
anonymous permissions.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Generic, TypeVar

from review_filter.policy.evaluator import (
    CONTRIBUTOR_ROLES,
    DEFAULT_QUOTAS,
    Actor,
    ContentKind,
    OwnedItem,
    VisibilityQuotas,
    can_read,
    filter_listing,
    is_public,
    visibility_quota,
)
from review_filter.policy.roles import Role, parse_role

logger = logging.getLogger(__name__)


class AccessLevel(str, Enum):
    """How much content a session may read.

    NONE and LIMITED sessions are quota-limited and get previews; FULL and
    PREMIUM read everything public. Blocked users keep FULL read access; their
    suspension shows in the ``can_create_*`` flags, not here.
    """

    NONE = "NONE"
    LIMITED = "LIMITED"
    FULL = "FULL"
    PREMIUM = "PREMIUM"


_ACCESS_LEVELS: dict[Role, AccessLevel] = {
    Role.NOT_ACCESS: AccessLevel.NONE,
    Role.BLOCKED_LOGIN: AccessLevel.FULL,
    Role.LOGIN_NOT_AUTH: AccessLevel.LIMITED,
    Role.AUTH_LOGIN: AccessLevel.FULL,
    Role.AUTH_PREMIUM: AccessLevel.PREMIUM,
    Role.ADMIN: AccessLevel.PREMIUM,
}

UPGRADE_MESSAGES: dict[Role, str] = {
    Role.NOT_ACCESS: "Sign in to see more reviews and roadmaps.",
    Role.LOGIN_NOT_AUTH: "Share a review of your own to unlock every review and roadmap.",
    Role.AUTH_LOGIN: "Upgrade to premium for an ad-free experience.",
    Role.BLOCKED_LOGIN: "Your account is suspended. Contact support to restore access.",
}


def access_level(role: Role | str | None) -> AccessLevel:
    parsed = parse_role(role)
    if parsed is None:
        return AccessLevel.NONE
    return _ACCESS_LEVELS[parsed]


@dataclass(frozen=True)
class Permissions:
    """Everything the UI needs to gate rendering for one session."""

    role: Role
    user_id: str | None
    access_level: AccessLevel
    is_authenticated: bool
    is_admin: bool

    can_view_all_reviews: bool
    can_view_all_roadmaps: bool
    can_view_comments: bool

    can_create_reviews: bool
    can_create_roadmaps: bool
    can_create_comments: bool

    can_moderate: bool
    can_manage_users: bool
    can_view_analytics: bool

    is_ad_free: bool
    show_ads: bool
    has_priority_support: bool
    has_advanced_filters: bool
    show_upgrade_prompts: bool
    show_login_prompts: bool

    max_reviews_visible: int | None
    max_roadmaps_visible: int | None
    max_comments_visible: int | None
    upgrade_message: str | None

    def quota_for(self, kind: ContentKind) -> int | None:
        return {
            ContentKind.REVIEW: self.max_reviews_visible,
            ContentKind.ROADMAP: self.max_roadmaps_visible,
            ContentKind.COMMENT: self.max_comments_visible,
        }[kind]

    def can_create(self, kind: ContentKind) -> bool:
        return {
            ContentKind.REVIEW: self.can_create_reviews,
            ContentKind.ROADMAP: self.can_create_roadmaps,
            ContentKind.COMMENT: self.can_create_comments,
        }[kind]

    def as_actor(self) -> Actor:
        return Actor.from_record(self.role, self.user_id)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["role"] = self.role.value
        data["access_level"] = self.access_level.value
        return data


def derive_permissions(
    role: Role | str | None,
    user_id: str | None = None,
    quotas: VisibilityQuotas = DEFAULT_QUOTAS,
) -> Permissions:
    """Derive the permissions object for a session.

    Args:
        role: Role held by the session, or ``None`` when signed out. Values
            that do not parse are treated as signed out.
        user_id: Session user id; without it the session is anonymous no
            matter what role it claims.
        quotas: Visibility quotas for quota-limited roles.

    Returns:
        The derived :class:`Permissions`.
    """
    parsed = parse_role(role)
    if parsed is None or user_id is None:
        parsed, user_id = Role.NOT_ACCESS, None

    level = _ACCESS_LEVELS[parsed]
    authenticated = user_id is not None and parsed is not Role.NOT_ACCESS
    admin = parsed is Role.ADMIN
    premium = level is AccessLevel.PREMIUM
    can_contribute = authenticated and parsed in CONTRIBUTOR_ROLES
    limits = {kind: visibility_quota(parsed, kind, quotas) for kind in ContentKind}

    return Permissions(
        role=parsed,
        user_id=user_id,
        access_level=level,
        is_authenticated=authenticated,
        is_admin=admin,
        can_view_all_reviews=limits[ContentKind.REVIEW] is None,
        can_view_all_roadmaps=limits[ContentKind.ROADMAP] is None,
        can_view_comments=limits[ContentKind.COMMENT] != 0,
        can_create_reviews=can_contribute,
        can_create_roadmaps=can_contribute,
        can_create_comments=can_contribute,
        can_moderate=admin,
        can_manage_users=admin,
        can_view_analytics=admin,
        is_ad_free=premium,
        show_ads=not premium,
        has_priority_support=premium,
        has_advanced_filters=premium,
        show_upgrade_prompts=not premium and parsed is not Role.BLOCKED_LOGIN,
        show_login_prompts=not authenticated,
        max_reviews_visible=limits[ContentKind.REVIEW],
        max_roadmaps_visible=limits[ContentKind.ROADMAP],
        max_comments_visible=limits[ContentKind.COMMENT],
        upgrade_message=UPGRADE_MESSAGES.get(parsed),
    )


ANONYMOUS = derive_permissions(None)


def _parse_expiry(value: Any) -> datetime | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, UTC)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    raise TypeError(f"Unsupported expiry value {value!r}")


def permissions_from_session(
    raw: str | bytes | Mapping[str, Any] | None,
    quotas: VisibilityQuotas = DEFAULT_QUOTAS,
    now: datetime | None = None,
) -> Permissions:
    """Derive permissions from locally cached session data.

    The cache holds either ``{"id", "role", "expires_at"}`` or the same keys
    nested under ``"user"``. Anything that is missing, expired or fails to
    parse yields the anonymous permissions, never elevated ones.
    """
    if raw is None:
        return derive_permissions(None, quotas=quotas)
    try:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        data = json.loads(raw) if isinstance(raw, str) else dict(raw)
        if not isinstance(data, Mapping):
            raise TypeError("Session payload is not an object")
        user = data.get("user", data)
        if not isinstance(user, Mapping):
            raise TypeError("Session user is not an object")

        expires = user.get("expires_at", data.get("expires_at"))
        if expires is not None and _parse_expiry(expires) <= (now or datetime.now(UTC)):
            logger.info("Cached session expired; using anonymous permissions")
            return derive_permissions(None, quotas=quotas)

        user_id = user.get("id", user.get("user_id"))
        role = parse_role(user.get("role"))
        if not isinstance(user_id, str) or not user_id or role is None:
            return derive_permissions(None, quotas=quotas)
        return derive_permissions(role, user_id, quotas)
    except (ValueError, TypeError, UnicodeDecodeError) as exc:
        logger.warning("Discarding unreadable cached session: %s", exc)
        return derive_permissions(None, quotas=quotas)


def can_view_item(permissions: Permissions, item: OwnedItem) -> bool:
    """Per-item visibility, identical to the server's read rule."""
    return can_read(permissions.as_actor(), item).allowed


@dataclass(frozen=True)
class ContentPreview:
    content: str
    is_preview: bool


def content_preview(content: str, permissions: Permissions, max_length: int = 200) -> ContentPreview:
    """Cut long content down to a teaser for quota-limited sessions."""
    if permissions.access_level in (AccessLevel.FULL, AccessLevel.PREMIUM) or len(content) <= max_length:
        return ContentPreview(content=content, is_preview=False)
    return ContentPreview(content=content[:max_length] + "...", is_preview=True)


T = TypeVar("T", bound=OwnedItem)


@dataclass(frozen=True)
class Listing(Generic[T]):
    """What a list view renders plus the upsell that goes with it."""

    items: Sequence[T] = field(default_factory=tuple)
    hidden_count: int = 0
    upgrade_required: bool = False
    upgrade_message: str | None = None

    @property
    def truncated(self) -> bool:
        return self.hidden_count > 0


def visible_listing(items: Iterable[T], kind: ContentKind, permissions: Permissions) -> Listing[T]:
    """Apply per-item visibility, then the role's visibility quota.

    Quota-limited roles only ever see approved items and always get the
    upgrade signal; everyone else sees approved items plus their own (or
    everything, for admins).
    """
    quota = permissions.quota_for(kind)
    if quota is None:
        return Listing(items=tuple(filter_listing(items, permissions.as_actor())))

    approved = [item for item in items if is_public(item)]
    shown = tuple(approved[:quota])
    return Listing(
        items=shown,
        hidden_count=len(approved) - len(shown),
        upgrade_required=True,
        upgrade_message=permissions.upgrade_message,
    )


def page_size_for(kind: ContentKind, permissions: Permissions, page_cap: int) -> int:
    """How many rows to fetch for one listing.

    Quota-limited roles fetch one row past their quota so the UI can tell
    whether anything was held back, without scanning the collection.
    """
    quota = permissions.quota_for(kind)
    if quota is None:
        return page_cap
    return max(1, min(page_cap, quota + 1))
