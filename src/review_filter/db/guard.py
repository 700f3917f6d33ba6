# src/review_filter/db/guard.py
"""Storage-level enforcement of :mod:`review_filter.policy.rules`.

Sessions serving a request carry the caller's :class:`RequestAuth` in
``session.info`` (``None`` for anonymous callers). Every flush from such a
session is checked against the rule table and every ORM ``SELECT`` gets the
read rules added as loader criteria. Sessions that never had an auth context
bound are trusted server-side sessions (migrations, scripts, tests) and are
not filtered.
"""

from __future__ import annotations

import logging
from collections.abc import Generator, Mapping
from contextlib import contextmanager
from typing import Any

from sqlalchemy import and_, event, false, inspect, not_, or_
from sqlalchemy.orm import ORMExecuteState, Session, with_loader_criteria
from sqlalchemy.sql.elements import ColumnElement

from review_filter.models import CONTENT_MODELS, ModerationEvent, User
from review_filter.policy.evaluator import Operation
from review_filter.policy.rules import RequestAuth, rule_engine

logger = logging.getLogger(__name__)

AUTH_INFO_KEY = "review_filter.auth"

# Maintained by the ORM itself, never by a caller.
_BOOKKEEPING_FIELDS = frozenset({"updated_at", "version_id"})


class RuleDenied(Exception):
    """A write was refused by the storage rules. Carries no detail."""

    def __init__(self) -> None:
        super().__init__("Permission denied")


def bind_auth(session: Session, auth: RequestAuth | None) -> Session:
    """Mark ``session`` as serving a request made by ``auth``."""
    session.info[AUTH_INFO_KEY] = auth
    return session


def clear_auth(session: Session) -> None:
    session.info.pop(AUTH_INFO_KEY, None)


def is_guarded(session: Session) -> bool:
    return AUTH_INFO_KEY in session.info


@contextmanager
def trusted(session: Session) -> Generator[Session, None, None]:
    """Run server-side bookkeeping writes without the request's rules.

    Pending request changes are flushed (and checked) first; whatever is
    written inside the block is flushed before the request context returns.
    """
    if not is_guarded(session):
        yield session
        return
    session.flush()
    auth = session.info.pop(AUTH_INFO_KEY)
    try:
        yield session
        session.flush()
    finally:
        session.info[AUTH_INFO_KEY] = auth


def _snapshot(obj: Any) -> tuple[dict[str, Any], dict[str, Any], frozenset[str]]:
    """Return ``(stored, incoming, changed)`` column values for ``obj``."""
    state = inspect(obj)
    stored: dict[str, Any] = {}
    incoming: dict[str, Any] = {}
    changed: set[str] = set()
    for prop in state.mapper.column_attrs:
        key = prop.key
        history = state.attrs[key].load_history()
        if history.added:
            incoming[key] = history.added[0]
        elif history.unchanged:
            incoming[key] = history.unchanged[0]
        else:
            incoming[key] = None

        if history.deleted:
            stored[key] = history.deleted[0]
        else:
            stored[key] = history.unchanged[0] if history.unchanged else None

        if incoming[key] is None:
            column = prop.columns[0]
            default = getattr(column, "default", None)
            if default is not None and default.is_scalar:
                incoming[key] = default.arg

        if history.has_changes() and key not in _BOOKKEEPING_FIELDS:
            changed.add(key)
    return stored, incoming, frozenset(changed)


def _check(
    auth: RequestAuth | None,
    obj: Any,
    operation: Operation,
    resource: Mapping[str, Any] | None,
    request_resource: Mapping[str, Any] | None,
    changed: frozenset[str] = frozenset(),
) -> None:
    collection = getattr(obj, "__tablename__", None)
    if collection is None or not rule_engine.allows(
        auth,
        collection,
        operation,
        resource=resource,
        request_resource=request_resource,
        changed=changed,
    ):
        logger.info(
            "Storage rules refused %s on %s for %s",
            operation.value,
            collection,
            auth.uid if auth else "anonymous",
        )
        raise RuleDenied()


@event.listens_for(Session, "before_flush")
def _enforce_write_rules(session: Session, flush_context: Any, instances: Any) -> None:
    if not is_guarded(session):
        return
    auth: RequestAuth | None = session.info[AUTH_INFO_KEY]

    for obj in session.new:
        _, incoming, _ = _snapshot(obj)
        _check(auth, obj, Operation.CREATE, None, incoming)

    for obj in session.dirty:
        if not session.is_modified(obj, include_collections=False):
            continue
        stored, incoming, changed = _snapshot(obj)
        if not changed:
            continue
        _check(auth, obj, Operation.UPDATE, stored, incoming, changed)

    for obj in session.deleted:
        stored, _, _ = _snapshot(obj)
        _check(auth, obj, Operation.DELETE, stored, None)


def _compile(shape: tuple[Any, ...], auth: RequestAuth | None, model: type) -> ColumnElement[bool] | bool:
    """Turn a rule shape into a SQL criterion for ``model``.

    Claim-only terms are folded to plain booleans up front so that admins get
    no filter at all and anonymous callers get a constant ``false``.
    """
    op = shape[0]
    if op == "const":
        return bool(shape[1])
    if op == "auth":
        return bool(shape[1](auth))
    if op == "in":
        return getattr(model, shape[1]).in_(sorted(shape[2], key=str))
    if op == "eq_uid":
        if auth is None:
            return False
        return getattr(model, shape[1]) == auth.uid
    if op == "not":
        inner = _compile(shape[1], auth, model)
        return (not inner) if isinstance(inner, bool) else not_(inner)
    if op in ("and", "or"):
        absorbing = op == "or"
        left = _compile(shape[1], auth, model)
        if left is absorbing:
            return absorbing
        right = _compile(shape[2], auth, model)
        if right is absorbing:
            return absorbing
        if isinstance(left, bool):
            return right
        if isinstance(right, bool):
            return left
        return or_(left, right) if absorbing else and_(left, right)
    raise ValueError(f"Unknown rule shape {op!r}")


def read_criteria(auth: RequestAuth | None, model: type) -> ColumnElement[bool] | bool:
    """The ``RULES`` read condition for ``model`` as a query criterion."""
    condition = rule_engine.rules.get(model.__tablename__, {}).get(Operation.READ)
    if condition is None or condition.shape is None:
        return False
    return _compile(condition.shape, auth, model)


_READ_FILTERED_MODELS: tuple[type, ...] = (User, ModerationEvent, *CONTENT_MODELS.values())


@event.listens_for(Session, "do_orm_execute")
def _apply_storage_rules(orm_execute_state: ORMExecuteState) -> None:
    if not is_guarded(orm_execute_state.session):
        return
    auth: RequestAuth | None = orm_execute_state.session.info[AUTH_INFO_KEY]

    if not orm_execute_state.is_select:
        # Bulk INSERT/UPDATE/DELETE and raw SQL skip the per-row checks in
        # before_flush, so a request session may not issue them at all.
        logger.info(
            "Storage rules refused a bulk statement for %s",
            auth.uid if auth else "anonymous",
        )
        raise RuleDenied()
    if orm_execute_state.is_column_load or orm_execute_state.is_relationship_load:
        return

    options = []
    for model in _READ_FILTERED_MODELS:
        criterion = read_criteria(auth, model)
        if criterion is True:
            continue
        if criterion is False:
            criterion = false()
        options.append(with_loader_criteria(model, criterion, include_aliases=True))
    if options:
        orm_execute_state.statement = orm_execute_state.statement.options(*options)
