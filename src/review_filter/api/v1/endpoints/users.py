"""User-related endpoints for the Review Filter API."""

from fastapi import APIRouter, Query

from review_filter.api.v1.dependencies import ActorDep, CurrentUserDep, SessionDep
from review_filter.client.permissions import Permissions, derive_permissions
from review_filter.core.settings import settings
from review_filter.models import ModeratedContent, User
from review_filter.policy.evaluator import Actor, ContentKind
from review_filter.schemas.content import ReviewResponse, RoadmapResponse
from review_filter.schemas.user import PermissionsResponse, UserResponse, UserStatsResponse, UserUpdate
from review_filter.services import content_service, user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: CurrentUserDep, db: SessionDep) -> User:
    """Return the caller's profile, landing any promotion still owed."""
    user_service.reconcile_promotion(db, current_user)
    return current_user


@router.put("/me", response_model=UserResponse)
async def update_me(payload: UserUpdate, current_user: CurrentUserDep, db: SessionDep) -> User:
    """Update the caller's own profile."""
    return user_service.update_profile(db, current_user, payload.model_dump(exclude_unset=True))


@router.get("/me/permissions", response_model=PermissionsResponse)
async def get_my_permissions(actor: ActorDep) -> Permissions:
    """What the presentation tier may render for the caller (anonymous allowed)."""
    return derive_permissions(actor.role, actor.user_id, settings.visibility_quotas)


@router.get("/me/stats", response_model=UserStatsResponse)
async def get_my_stats(current_user: CurrentUserDep, db: SessionDep) -> dict[str, dict[str, int]]:
    """How many reviews, roadmaps and comments the caller has, by status."""
    return user_service.contribution_stats(db, current_user.id)


def _own_items(db: SessionDep, user: User, kind: ContentKind, skip: int, limit: int) -> list[ModeratedContent]:
    actor = Actor.from_record(user.role, user.id)
    return list(content_service.list_items(db, actor, kind, author_id=user.id, skip=skip, limit=limit))


@router.get("/me/reviews", response_model=list[ReviewResponse])
async def get_my_reviews(
    current_user: CurrentUserDep,
    db: SessionDep,
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    skip: int = Query(0, ge=0),
) -> list[ModeratedContent]:
    """The caller's reviews in any status."""
    return _own_items(db, current_user, ContentKind.REVIEW, skip, limit)


@router.get("/me/roadmaps", response_model=list[RoadmapResponse])
async def get_my_roadmaps(
    current_user: CurrentUserDep,
    db: SessionDep,
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    skip: int = Query(0, ge=0),
) -> list[ModeratedContent]:
    """The caller's roadmaps in any status."""
    return _own_items(db, current_user, ContentKind.ROADMAP, skip, limit)
