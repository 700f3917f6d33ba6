"""Shared API dependencies for authentication and the guarded session."""

from collections.abc import Generator
from typing import Annotated, Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from review_filter.core.security import InvalidTokenError, decode_access_token
from review_filter.db.guard import bind_auth, clear_auth
from review_filter.db.session import get_db
from review_filter.models import User
from review_filter.policy.evaluator import Actor
from review_filter.policy.rules import RequestAuth
from review_filter.services.user_service import get_user

# Anonymous callers are allowed through; handlers decide what they may see.
bearer_scheme = HTTPBearer(auto_error=False)

CredentialsDep = Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]


def get_token_claims(credentials: CredentialsDep) -> dict[str, Any] | None:
    """Return verified token claims, ``None`` without a token.

    Raises:
        HTTPException: If a token was sent but does not verify.
    """
    if credentials is None:
        return None
    try:
        return decode_access_token(credentials.credentials)
    except InvalidTokenError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from err


ClaimsDep = Annotated[dict[str, Any] | None, Depends(get_token_claims)]


def get_request_db(
    claims: ClaimsDep,
    db: Annotated[Session, Depends(get_db)],
) -> Generator[Session, None, None]:
    """Yield a session bound to the caller's claims so the storage rules apply."""
    bind_auth(db, RequestAuth.from_claims(claims))
    try:
        yield db
    finally:
        clear_auth(db)


# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_request_db)]


def get_current_actor(claims: ClaimsDep, db: SessionDep) -> Actor:
    """Resolve the caller, re-reading the role from their user record.

    Identities without a profile, and callers without a token, are anonymous.
    """
    if claims is None:
        return Actor.anonymous()
    user = get_user(db, claims["sub"])
    if user is None:
        return Actor.anonymous()
    return Actor.from_record(user.role, user.id)


ActorDep = Annotated[Actor, Depends(get_current_actor)]


def get_current_user(claims: ClaimsDep, db: SessionDep) -> User:
    """Get the current authenticated user from JWT token.

    Raises:
        HTTPException: If there is no token or no profile for it.
    """
    if claims is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user = get_user(db, claims["sub"])
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]
