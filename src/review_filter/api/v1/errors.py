"""Map policy decisions onto HTTP errors."""

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from review_filter.db.guard import RuleDenied
from review_filter.policy.errors import Decision, DenialReason, PolicyError
from review_filter.policy.roles import RoleTransitionError

STATUS_BY_REASON: dict[DenialReason, int] = {
    DenialReason.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    DenialReason.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    DenialReason.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    DenialReason.CONFLICT: status.HTTP_409_CONFLICT,
    DenialReason.VALIDATION_FAILED: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def status_for(decision: Decision) -> int:
    if decision.reason is None:
        return status.HTTP_403_FORBIDDEN
    return STATUS_BY_REASON[decision.reason]


def raise_for_decision(decision: Decision) -> None:
    """Raise the matching ``HTTPException`` for a denial; no-op when allowed."""
    if decision.allowed:
        return
    headers = None
    if decision.reason is DenialReason.UNAUTHENTICATED:
        headers = {"WWW-Authenticate": "Bearer"}
    raise HTTPException(status_code=status_for(decision), detail=decision.detail, headers=headers)


async def policy_error_handler(request: Request, exc: PolicyError) -> JSONResponse:
    headers = None
    if exc.reason is DenialReason.UNAUTHENTICATED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=status_for(exc.decision),
        content={"detail": exc.decision.detail},
        headers=headers,
    )


async def rule_denied_handler(request: Request, exc: RuleDenied) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": "Permission denied"})


async def role_transition_handler(request: Request, exc: RoleTransitionError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})


async def stale_data_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": "Item was modified concurrently; retry"},
    )
