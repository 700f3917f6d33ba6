# src/review_filter/policy/roles.py
"""Role model: the ladder, the orthogonal blocked/admin states and role changes.

The persisted shape is a flat ``role`` string plus an optional
``previous_role`` snapshot. Callers that need to reason about capability
should go through :func:`role_state`, which turns the flat pair into a tagged
union so the two out-of-ladder roles can never be mistaken for ladder rungs.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final


class Role(str, Enum):
    """Every role a user record may hold."""

    NOT_ACCESS = "NOT_ACCESS"
    LOGIN_NOT_AUTH = "LOGIN_NOT_AUTH"
    AUTH_LOGIN = "AUTH_LOGIN"
    AUTH_PREMIUM = "AUTH_PREMIUM"
    BLOCKED_LOGIN = "BLOCKED_LOGIN"
    ADMIN = "ADMIN"

    def __str__(self) -> str:
        return self.value


LADDER: Final[tuple[Role, ...]] = (
    Role.NOT_ACCESS,
    Role.LOGIN_NOT_AUTH,
    Role.AUTH_LOGIN,
    Role.AUTH_PREMIUM,
)

_RANKS: Final[dict[Role, int]] = {role: index for index, role in enumerate(LADDER)}


class RoleTransitionError(Exception):
    """Raised when a requested role change is not a legal edge."""


@dataclass(frozen=True)
class Ladder:
    """A user somewhere on the capability ladder."""

    role: Role

    @property
    def rank(self) -> int:
        return _RANKS[self.role]


@dataclass(frozen=True)
class Blocked:
    """A suspended user, remembering the ladder role held before the block."""

    previous: Role | None = None


@dataclass(frozen=True)
class Admin:
    """Superuser, outside the ladder."""


RoleState = Ladder | Blocked | Admin


@dataclass(frozen=True)
class RoleChange:
    """Result of a legal role transition, ready to be persisted."""

    role: Role
    previous_role: Role | None = None


def parse_role(value: object) -> Role | None:
    """Return the :class:`Role` named by ``value`` or ``None`` if it is not one."""
    if isinstance(value, Role):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Role(value.strip().upper())
    except ValueError:
        return None


def is_admin(role: Role | str | None) -> bool:
    return parse_role(role) is Role.ADMIN


def is_blocked(role: Role | str | None) -> bool:
    return parse_role(role) is Role.BLOCKED_LOGIN


def is_ladder(role: Role | str | None) -> bool:
    return parse_role(role) in _RANKS


def rank(role: Role | str) -> int:
    """Return the ladder rank of ``role``.

    Raises:
        ValueError: If ``role`` is blocked, admin or not a role at all; those
            states have no rank and must be handled by the caller.
    """
    parsed = parse_role(role)
    if parsed is None or parsed not in _RANKS:
        raise ValueError(f"Role {role!r} has no ladder rank")
    return _RANKS[parsed]


def role_state(role: Role | str | None, previous_role: Role | str | None = None) -> RoleState:
    """Build the tagged role state from a persisted ``(role, previous_role)`` pair.

    Unknown role values collapse to the bottom of the ladder.
    """
    parsed = parse_role(role)
    if parsed is Role.ADMIN:
        return Admin()
    if parsed is Role.BLOCKED_LOGIN:
        previous = parse_role(previous_role)
        return Blocked(previous if previous in _RANKS else None)
    if parsed is None:
        return Ladder(Role.NOT_ACCESS)
    return Ladder(parsed)


def promote(role: Role) -> RoleChange:
    """Move one rung up the authenticated part of the ladder."""
    if role is Role.LOGIN_NOT_AUTH:
        return RoleChange(Role.AUTH_LOGIN)
    if role is Role.AUTH_LOGIN:
        return RoleChange(Role.AUTH_PREMIUM)
    raise RoleTransitionError(f"Cannot promote a user with role {role.value}")


def demote(role: Role) -> RoleChange:
    """Move one rung down the authenticated part of the ladder."""
    if role is Role.AUTH_PREMIUM:
        return RoleChange(Role.AUTH_LOGIN)
    if role is Role.AUTH_LOGIN:
        return RoleChange(Role.LOGIN_NOT_AUTH)
    raise RoleTransitionError(f"Cannot demote a user with role {role.value}")


def block(role: Role) -> RoleChange:
    """Suspend a user and snapshot the role they held."""
    if role is Role.ADMIN:
        raise RoleTransitionError("Administrators cannot be blocked")
    if role is Role.BLOCKED_LOGIN:
        # The snapshot must survive; re-blocking would overwrite it.
        raise RoleTransitionError("User is already blocked")
    return RoleChange(Role.BLOCKED_LOGIN, previous_role=role)


def unblock(role: Role, previous_role: Role | None) -> RoleChange:
    """Restore a blocked user to their snapshot, or to LOGIN_NOT_AUTH."""
    state = role_state(role, previous_role)
    if not isinstance(state, Blocked):
        raise RoleTransitionError("User is not blocked")
    restored = state.previous
    if restored is None or restored is Role.NOT_ACCESS:
        restored = Role.LOGIN_NOT_AUTH
    return RoleChange(restored)


def set_role(role: Role, previous_role: Role | None, target: Role) -> RoleChange:
    """Assign ``target`` directly, keeping the blocked snapshot invariant."""
    if target is role:
        raise RoleTransitionError(f"User already has role {target.value}")
    if target is Role.BLOCKED_LOGIN:
        return block(role)
    return RoleChange(target)


def first_approval_promotion(role: Role | str | None) -> Role | None:
    """Return the role to promote to after a first approval, if any.

    Only a user currently sitting on LOGIN_NOT_AUTH is promoted, which keeps
    repeated or concurrent approvals from promoting anyone twice.
    """
    if parse_role(role) is Role.LOGIN_NOT_AUTH:
        return Role.AUTH_LOGIN
    return None
