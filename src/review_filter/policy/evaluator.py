# src/review_filter/policy/evaluator.py
"""Policy evaluator shared by the datastore guard, the API and the client hook.

Every function here is pure: inputs are an :class:`Actor`, an item exposing
``author_id`` and ``status`` and the operation being attempted. The module
also publishes the decision table (role and status sets, field allow-lists)
that :mod:`review_filter.policy.rules` compiles into storage rules.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Final, Protocol, TypeVar

from review_filter.policy.errors import ALLOW, Decision, DenialReason
from review_filter.policy.moderation import ModerationStatus
from review_filter.policy.roles import Role, parse_role


class Operation(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    MODERATE = "moderate"
    MANAGE_USERS = "manage_users"


class ContentKind(str, Enum):
    REVIEW = "review"
    ROADMAP = "roadmap"
    COMMENT = "comment"

    @property
    def collection(self) -> str:
        return f"{self.value}s"


# Decision table -----------------------------------------------------------

PUBLIC_STATUSES: Final[frozenset[ModerationStatus]] = frozenset({ModerationStatus.APPROVED})
EDITABLE_STATUSES: Final[frozenset[ModerationStatus]] = frozenset(
    {ModerationStatus.PENDING, ModerationStatus.APPROVED}
)
CONTRIBUTOR_ROLES: Final[frozenset[Role]] = frozenset(
    {Role.LOGIN_NOT_AUTH, Role.AUTH_LOGIN, Role.AUTH_PREMIUM, Role.ADMIN}
)
QUOTA_LIMITED_ROLES: Final[frozenset[Role]] = frozenset({Role.NOT_ACCESS, Role.LOGIN_NOT_AUTH})
SELF_REGISTERED_ROLE: Final[Role] = Role.LOGIN_NOT_AUTH

OWNER_FIELDS: Final[dict[ContentKind, frozenset[str]]] = {
    ContentKind.REVIEW: frozenset(
        {
            "course_title",
            "course_platform",
            "course_instructor",
            "course_category",
            "content",
            "rating",
            "study_period",
            "positive_points",
            "negative_points",
            "changes",
            "recommended_for",
        }
    ),
    ContentKind.ROADMAP: frozenset(
        {
            "title",
            "description",
            "course_title",
            "course_platform",
            "next_course_title",
            "next_course_platform",
        }
    ),
    ContentKind.COMMENT: frozenset({"content"}),
}
MODERATION_FIELDS: Final[frozenset[str]] = frozenset(
    {"status", "moderated_by", "moderated_at", "moderation_reason"}
)
DELETION_FIELDS: Final[frozenset[str]] = frozenset({"deleted_at", "deleted_by"})
PROFILE_FIELDS: Final[frozenset[str]] = frozenset({"nickname"})
ROLE_FIELDS: Final[frozenset[str]] = frozenset(
    {"role", "previous_role", "managed_by", "managed_at", "management_reason"}
)


class OwnedItem(Protocol):
    """Minimum persisted shape of a content item."""

    author_id: str
    status: ModerationStatus


@dataclass(frozen=True)
class ItemView:
    """Plain value implementing :class:`OwnedItem`."""

    author_id: str
    status: ModerationStatus


@dataclass(frozen=True)
class Actor:
    """Who is asking. Anonymous callers carry no id and the NOT_ACCESS role."""

    role: Role = Role.NOT_ACCESS
    user_id: str | None = None

    @classmethod
    def anonymous(cls) -> Actor:
        return cls()

    @classmethod
    def from_record(cls, role: Role | str | None, user_id: str | None) -> Actor:
        """Build an actor from untrusted values, falling back to least privilege."""
        parsed = parse_role(role) or Role.NOT_ACCESS
        if user_id is None:
            return cls.anonymous()
        return cls(role=parsed, user_id=user_id)

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def is_admin(self) -> bool:
        return self.is_authenticated and self.role is Role.ADMIN

    def owns(self, item: OwnedItem) -> bool:
        return self.user_id is not None and item.author_id == self.user_id


@dataclass(frozen=True)
class VisibilityQuotas:
    """How many approved items a quota-limited role sees per listing."""

    review: int = 1
    roadmap: int = 3
    comment: int = 0

    def for_kind(self, kind: ContentKind) -> int:
        return max(0, int(getattr(self, kind.value)))


DEFAULT_QUOTAS: Final[VisibilityQuotas] = VisibilityQuotas()

_NOT_FOUND = "Item not found"


def _unauthenticated() -> Decision:
    return Decision.deny(DenialReason.UNAUTHENTICATED, "Authentication required")


def _coerce_status(status: ModerationStatus | str) -> ModerationStatus | None:
    if isinstance(status, ModerationStatus):
        return status
    try:
        return ModerationStatus(status)
    except ValueError:
        return None


def is_public(item: OwnedItem) -> bool:
    return _coerce_status(item.status) in PUBLIC_STATUSES


def can_read(actor: Actor, item: OwnedItem) -> Decision:
    """APPROVED for everyone, anything else for its author or an admin.

    Hidden items are reported as missing so their existence does not leak.
    """
    if is_public(item) or actor.owns(item) or actor.is_admin:
        return ALLOW
    return Decision.deny(DenialReason.NOT_FOUND, _NOT_FOUND)


def can_create(
    actor: Actor,
    kind: ContentKind,
    parent: OwnedItem | None = None,
    *,
    require_approved_parent: bool = True,
) -> Decision:
    """Check whether ``actor`` may submit a new item of ``kind``.

    Comments also need a ``parent`` review the actor can see; a missing or
    hidden parent is a validation failure rather than a leak of its state.
    """
    if not actor.is_authenticated:
        return _unauthenticated()
    if actor.role not in CONTRIBUTOR_ROLES:
        return Decision.deny(
            DenialReason.FORBIDDEN,
            f"Role {actor.role.value} may not create content",
        )
    if kind is ContentKind.COMMENT:
        if parent is None or not can_read(actor, parent):
            return Decision.deny(DenialReason.VALIDATION_FAILED, "Parent review not found")
        if require_approved_parent and not is_public(parent):
            return Decision.deny(
                DenialReason.VALIDATION_FAILED,
                "Comments are only accepted on approved reviews",
            )
    return ALLOW


def can_update(actor: Actor, item: OwnedItem, kind: ContentKind, fields: Iterable[str]) -> Decision:
    """Check an update touching ``fields`` of ``item``.

    Owners may change content fields while the item is PENDING or APPROVED;
    only admins may touch status and moderation metadata.
    """
    if not actor.is_authenticated:
        return _unauthenticated()
    if not can_read(actor, item):
        return Decision.deny(DenialReason.NOT_FOUND, _NOT_FOUND)

    requested = set(fields)
    if not requested:
        return Decision.deny(DenialReason.VALIDATION_FAILED, "No changes supplied")

    owner_fields = requested & OWNER_FIELDS[kind]
    moderation_fields = requested & MODERATION_FIELDS
    unknown = requested - owner_fields - moderation_fields
    if unknown:
        return Decision.deny(
            DenialReason.VALIDATION_FAILED,
            f"Fields cannot be updated: {', '.join(sorted(unknown))}",
        )

    if not (actor.owns(item) or actor.is_admin):
        return Decision.deny(DenialReason.FORBIDDEN, "Only the author or an administrator may update this item")
    if moderation_fields and not actor.is_admin:
        return Decision.deny(DenialReason.FORBIDDEN, "Only administrators may change moderation fields")
    if owner_fields:
        if not actor.owns(item):
            return Decision.deny(DenialReason.FORBIDDEN, "Only the author may change content")
        if actor.role not in CONTRIBUTOR_ROLES:
            return Decision.deny(
                DenialReason.FORBIDDEN,
                f"Role {actor.role.value} may not edit content",
            )
        if _coerce_status(item.status) not in EDITABLE_STATUSES:
            return Decision.deny(DenialReason.CONFLICT, "Rejected items cannot be edited")
    return ALLOW


def can_delete(actor: Actor, item: OwnedItem) -> Decision:
    """Owners and admins may withdraw an item in any state."""
    if not actor.is_authenticated:
        return _unauthenticated()
    if not can_read(actor, item):
        return Decision.deny(DenialReason.NOT_FOUND, _NOT_FOUND)
    if actor.owns(item) or actor.is_admin:
        return ALLOW
    return Decision.deny(DenialReason.FORBIDDEN, "Only the author or an administrator may delete this item")


def can_moderate(actor: Actor) -> Decision:
    if not actor.is_authenticated:
        return _unauthenticated()
    if not actor.is_admin:
        return Decision.deny(DenialReason.FORBIDDEN, "Administrator privileges required")
    return ALLOW


def can_manage_user(actor: Actor, target_id: str, target_role: Role | str | None) -> Decision:
    """Admins manage everyone except themselves and other admins."""
    decision = can_moderate(actor)
    if not decision:
        return decision
    if target_id == actor.user_id:
        return Decision.deny(DenialReason.FORBIDDEN, "You cannot change your own role")
    if parse_role(target_role) is Role.ADMIN:
        return Decision.deny(DenialReason.FORBIDDEN, "Administrator roles cannot be changed")
    return ALLOW


def evaluate(
    actor: Actor,
    operation: Operation,
    item: OwnedItem | None = None,
    *,
    kind: ContentKind = ContentKind.REVIEW,
    fields: Iterable[str] = (),
    parent: OwnedItem | None = None,
    target_id: str | None = None,
    target_role: Role | str | None = None,
    require_approved_parent: bool = True,
) -> Decision:
    """Single entry point dispatching to the per-operation checks."""
    if operation is Operation.CREATE:
        return can_create(actor, kind, parent, require_approved_parent=require_approved_parent)
    if operation is Operation.MODERATE:
        return can_moderate(actor)
    if operation is Operation.MANAGE_USERS:
        if target_id is None:
            return can_moderate(actor)
        return can_manage_user(actor, target_id, target_role)
    if item is None:
        return Decision.deny(DenialReason.NOT_FOUND, _NOT_FOUND)
    if operation is Operation.READ:
        return can_read(actor, item)
    if operation is Operation.UPDATE:
        return can_update(actor, item, kind, fields)
    if operation is Operation.DELETE:
        return can_delete(actor, item)
    return Decision.deny(DenialReason.VALIDATION_FAILED, f"Unknown operation {operation!r}")


def visibility_quota(
    role: Role | str | None,
    kind: ContentKind,
    quotas: VisibilityQuotas = DEFAULT_QUOTAS,
) -> int | None:
    """Return how many approved items ``role`` may see in one listing.

    ``None`` means unlimited. Unknown roles get the most restrictive quota.
    Blocked and admin users are outside the ladder and never quota-limited.
    """
    parsed = parse_role(role) or Role.NOT_ACCESS
    if parsed in QUOTA_LIMITED_ROLES:
        return quotas.for_kind(kind)
    return None


T = TypeVar("T", bound=OwnedItem)


def filter_listing(items: Iterable[T], actor: Actor) -> list[T]:
    """Keep the items ``actor`` may read, preserving order."""
    return [item for item in items if can_read(actor, item)]
