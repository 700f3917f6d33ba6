# src/review_filter/policy/rules.py
"""Declarative storage rules compiled from the evaluator's decision table.

Rules are written in a deliberately small language: a :class:`Condition`
wraps a predicate over a :class:`RuleContext` and composes with ``&``, ``|``
and ``~``. The :data:`RULES` table maps ``collection -> operation ->
condition``; any collection or operation missing from the table is denied.

The rules key on the requester's token claims (``uid`` and ``role``) and on
the stored document, never on the user table, so they hold even if the API
layer above them is wrong.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Final

from review_filter.policy.evaluator import (
    CONTRIBUTOR_ROLES,
    DELETION_FIELDS,
    EDITABLE_STATUSES,
    MODERATION_FIELDS,
    OWNER_FIELDS,
    PROFILE_FIELDS,
    PUBLIC_STATUSES,
    SELF_REGISTERED_ROLE,
    ContentKind,
    Operation,
)
from review_filter.policy.moderation import ModerationStatus
from review_filter.policy.roles import Role, parse_role

logger = logging.getLogger(__name__)

USERS: Final = "users"
MODERATION_EVENTS: Final = "moderation_events"


@dataclass(frozen=True)
class RequestAuth:
    """Verified identity claims attached to a storage request."""

    uid: str
    role: Role | None = None

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any] | None) -> RequestAuth | None:
        """Build from decoded token claims; ``None`` when there is no subject."""
        if not claims:
            return None
        uid = claims.get("sub")
        if not isinstance(uid, str) or not uid:
            return None
        return cls(uid=uid, role=parse_role(claims.get("role")))


@dataclass(frozen=True)
class RuleContext:
    """Everything a rule may look at."""

    auth: RequestAuth | None
    resource: Mapping[str, Any] | None = None
    request_resource: Mapping[str, Any] | None = None
    changed: frozenset[str] = field(default_factory=frozenset)


class Condition:
    """Composable predicate over a :class:`RuleContext`.

    ``shape`` is a nested tuple describing the predicate for conditions that
    only look at the requester claims and the stored document, so the storage
    layer can turn read rules into query filters:

    * ``("const", bool)``
    * ``("auth", fn)`` where ``fn(auth) -> bool``
    * ``("in", field, values)`` and ``("eq_uid", field)``
    * ``("and", a, b)``, ``("or", a, b)`` and ``("not", a)``

    Conditions over the incoming document or the changed fields have no shape.
    """

    def __init__(
        self,
        predicate: Callable[[RuleContext], bool],
        label: str,
        shape: tuple[Any, ...] | None = None,
    ) -> None:
        self._predicate = predicate
        self.label = label
        self.shape = shape

    def __call__(self, ctx: RuleContext) -> bool:
        try:
            return self.evaluate(ctx)
        except (KeyError, TypeError, AttributeError):
            # A rule that cannot be evaluated against the document denies.
            return False

    def evaluate(self, ctx: RuleContext) -> bool:
        """Evaluate without the fail-closed guard; lookup errors propagate."""
        return bool(self._predicate(ctx))

    # Composites propagate errors so that negation cannot turn one into a grant.
    def __and__(self, other: Condition) -> Condition:
        return Condition(
            lambda ctx: self.evaluate(ctx) and other.evaluate(ctx),
            f"({self.label} && {other.label})",
            _combine("and", self, other),
        )

    def __or__(self, other: Condition) -> Condition:
        return Condition(
            lambda ctx: self.evaluate(ctx) or other.evaluate(ctx),
            f"({self.label} || {other.label})",
            _combine("or", self, other),
        )

    def __invert__(self) -> Condition:
        shape = ("not", self.shape) if self.shape is not None else None
        return Condition(lambda ctx: not self.evaluate(ctx), f"!{self.label}", shape)

    def __repr__(self) -> str:
        return f"Condition({self.label})"


def _combine(op: str, left: Condition, right: Condition) -> tuple[Any, ...] | None:
    if left.shape is None or right.shape is None:
        return None
    return (op, left.shape, right.shape)


def _value(value: Any) -> Any:
    return getattr(value, "value", value)


def _values(values: Iterable[Any]) -> frozenset[Any]:
    return frozenset(_value(v) for v in values)


never = Condition(lambda ctx: False, "false", ("const", False))
signed_in = Condition(
    lambda ctx: ctx.auth is not None,
    "signed_in",
    ("auth", lambda auth: auth is not None),
)


def claim_in(roles: Iterable[Role]) -> Condition:
    allowed = frozenset(roles)
    return signed_in & Condition(
        lambda ctx: ctx.auth.role in allowed,
        f"auth.role in {sorted(r.value for r in allowed)}",
        ("auth", lambda auth: auth is not None and auth.role in allowed),
    )


is_admin = claim_in({Role.ADMIN})


def field_eq_requester(name: str) -> Condition:
    """Stored document's ``name`` equals the requester uid."""
    return signed_in & Condition(
        lambda ctx: ctx.resource[name] == ctx.auth.uid,
        f"resource.{name} == auth.uid",
        ("eq_uid", name),
    )


def new_field_eq_requester(name: str) -> Condition:
    """Incoming document's ``name`` equals the requester uid."""
    return signed_in & Condition(
        lambda ctx: ctx.request_resource[name] == ctx.auth.uid,
        f"request.{name} == auth.uid",
    )


def field_in(name: str, values: Iterable[Any]) -> Condition:
    members = frozenset(values)
    allowed = _values(members)
    return Condition(
        lambda ctx: _value(ctx.resource[name]) in allowed,
        f"resource.{name} in {sorted(map(str, allowed))}",
        ("in", name, members),
    )


def new_field_in(name: str, values: Iterable[Any]) -> Condition:
    allowed = _values(values)
    return Condition(
        lambda ctx: _value(ctx.request_resource.get(name)) in allowed,
        f"request.{name} in {sorted(map(str, allowed))}",
    )


def new_fields_empty(names: Iterable[str]) -> Condition:
    fields = tuple(sorted(names))
    return Condition(
        lambda ctx: all(ctx.request_resource.get(name) is None for name in fields),
        f"request[{', '.join(fields)}] == null",
    )


def only_changes(names: Iterable[str]) -> Condition:
    allowed = frozenset(names)
    return Condition(
        lambda ctx: bool(ctx.changed) and ctx.changed <= allowed,
        f"changed <= {sorted(allowed)}",
    )


def changes_any(names: Iterable[str]) -> Condition:
    watched = frozenset(names)
    return Condition(lambda ctx: bool(ctx.changed & watched), f"changed & {sorted(watched)}")


RuleTable = dict[str, dict[Operation, Condition]]


def _content_rules(kind: ContentKind) -> dict[Operation, Condition]:
    is_owner = field_eq_requester("author_id")
    owner_edit = (
        claim_in(CONTRIBUTOR_ROLES)
        & is_owner
        & field_in("status", EDITABLE_STATUSES)
        & only_changes(OWNER_FIELDS[kind] | {"status"})
        & new_field_in("status", {ModerationStatus.PENDING})
    )
    owner_withdraw = (
        is_owner
        & only_changes({"status"} | DELETION_FIELDS)
        & new_field_in("status", {ModerationStatus.REJECTED})
        & new_field_eq_requester("deleted_by")
    )
    return {
        Operation.READ: field_in("status", PUBLIC_STATUSES) | is_owner | is_admin,
        Operation.CREATE: (
            claim_in(CONTRIBUTOR_ROLES)
            & new_field_eq_requester("author_id")
            & new_field_in("status", {ModerationStatus.PENDING})
            & new_fields_empty((MODERATION_FIELDS - {"status"}) | DELETION_FIELDS)
        ),
        Operation.UPDATE: owner_edit | owner_withdraw | (is_admin & only_changes(MODERATION_FIELDS | DELETION_FIELDS)),
    }


def build_rules() -> RuleTable:
    """Compile the rule table from the evaluator's decision table."""
    is_self = field_eq_requester("id")
    rules: RuleTable = {
        USERS: {
            Operation.READ: is_self | is_admin,
            Operation.CREATE: (
                new_field_eq_requester("id")
                & new_field_in("role", {SELF_REGISTERED_ROLE})
                & new_fields_empty({"previous_role"})
            )
            | is_admin,
            Operation.UPDATE: (is_self & only_changes(PROFILE_FIELDS))
            | (is_admin & ~field_in("role", {Role.ADMIN}) & ~changes_any({"id", "created_at"})),
        },
        MODERATION_EVENTS: {
            Operation.READ: is_admin,
            Operation.CREATE: is_admin,
        },
    }
    for kind in ContentKind:
        rules[kind.collection] = _content_rules(kind)
    return rules


RULES: Final[RuleTable] = build_rules()


class RuleEngine:
    """Evaluates storage requests against a rule table, failing closed."""

    def __init__(self, rules: RuleTable | None = None) -> None:
        self.rules = RULES if rules is None else rules

    def allows(
        self,
        auth: RequestAuth | None,
        collection: str,
        operation: Operation,
        resource: Mapping[str, Any] | None = None,
        request_resource: Mapping[str, Any] | None = None,
        changed: Iterable[str] = (),
    ) -> bool:
        """Return True only when an explicit rule grants the request."""
        condition = self.rules.get(collection, {}).get(operation)
        if condition is None:
            logger.debug("No rule for %s.%s; denying", collection, operation.value)
            return False
        ctx = RuleContext(
            auth=auth,
            resource=resource,
            request_resource=request_resource,
            changed=frozenset(changed),
        )
        allowed = condition(ctx)
        if not allowed:
            logger.debug("Rule %s denied %s.%s", condition.label, collection, operation.value)
        return allowed


rule_engine = RuleEngine()
