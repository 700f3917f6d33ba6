# src/review_filter/policy/__init__.py
"""Pure access-control and moderation policy.

Nothing in this package touches the database or the web framework; the
datastore guard, the API handlers and the client permission hook all call
into it so the three enforcement points share one decision table.
"""

from .errors import Decision, DenialReason, PolicyError
from .evaluator import (
    Actor,
    ContentKind,
    ItemView,
    Operation,
    VisibilityQuotas,
    can_create,
    can_delete,
    can_manage_user,
    can_moderate,
    can_read,
    can_update,
    evaluate,
    filter_listing,
    visibility_quota,
)
from .moderation import ModerationAction, ModerationStatus, can_transition
from .roles import Role, RoleTransitionError, role_state
from .rules import RequestAuth, RuleEngine, rule_engine

__all__ = [
    "Actor", "ContentKind", "ItemView", "Operation", "VisibilityQuotas",
    "can_create", "can_delete", "can_manage_user", "can_moderate", "can_read",
    "can_update", "evaluate", "filter_listing", "visibility_quota",
    "Decision", "DenialReason", "PolicyError",
    "ModerationAction", "ModerationStatus", "can_transition",
    "Role", "RoleTransitionError", "role_state",
    "RequestAuth", "RuleEngine", "rule_engine",
]
