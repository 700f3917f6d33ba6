# src/review_filter/policy/errors.py
"""Typed decisions returned by the policy layer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DenialReason(str, Enum):
    """Why a request was refused."""

    UNAUTHENTICATED = "UNAUTHENTICATED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    VALIDATION_FAILED = "VALIDATION_FAILED"


@dataclass(frozen=True)
class Decision:
    """Outcome of a policy evaluation."""

    allowed: bool
    reason: DenialReason | None = None
    detail: str = ""

    def __bool__(self) -> bool:
        return self.allowed

    @classmethod
    def allow(cls) -> Decision:
        return ALLOW

    @classmethod
    def deny(cls, reason: DenialReason, detail: str) -> Decision:
        return cls(allowed=False, reason=reason, detail=detail)


ALLOW = Decision(allowed=True)


class PolicyError(Exception):
    """Raised by services when a decision denies the requested operation."""

    def __init__(self, decision: Decision) -> None:
        super().__init__(decision.detail)
        self.decision = decision

    @property
    def reason(self) -> DenialReason | None:
        return self.decision.reason
