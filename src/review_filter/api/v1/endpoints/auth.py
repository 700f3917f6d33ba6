"""Authentication endpoints for the Review Filter API.

Identities are verified upstream; these routes create the profile that
goes with a verified identity and keep the token's role claim in sync
with the stored role.
"""

from fastapi import APIRouter, HTTPException, status

from review_filter.api.v1.dependencies import ClaimsDep, CurrentUserDep, SessionDep
from review_filter.core.security import create_access_token
from review_filter.schemas.user import RegisterRequest, TokenResponse
from review_filter.services import user_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, claims: ClaimsDep, db: SessionDep) -> TokenResponse:
    """Create the caller's own profile with the LOGIN_NOT_AUTH role."""
    if claims is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user = user_service.register_user(db, claims["sub"], payload.nickname)
    return TokenResponse(access_token=create_access_token(user.id, role=user.role), role=user.role)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(current_user: CurrentUserDep) -> TokenResponse:
    """Reissue a token carrying the caller's current stored role."""
    return TokenResponse(
        access_token=create_access_token(current_user.id, role=current_user.role),
        role=current_user.role,
    )
