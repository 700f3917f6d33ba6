"""Administrator endpoints: moderation queue, verdicts, users and audit log."""

from typing import Any

from fastapi import APIRouter, Query

from review_filter.api.v1.dependencies import ActorDep, SessionDep
from review_filter.api.v1.errors import raise_for_decision
from review_filter.core.settings import settings
from review_filter.models import ModeratedContent, ModerationEvent, User
from review_filter.policy.evaluator import ContentKind, can_moderate
from review_filter.policy.moderation import ModerationAction, ModerationStatus
from review_filter.policy.roles import Role
from review_filter.schemas.content import CommentResponse, ReviewResponse, RoadmapResponse
from review_filter.schemas.moderation import ModerationEventResponse, ModerationRequest, StatsResponse
from review_filter.schemas.user import AdminUserResponse, RoleChangeRequest
from review_filter.services import moderation, user_service

router = APIRouter(prefix="/admin", tags=["admin"])

ContentResponse = ReviewResponse | RoadmapResponse | CommentResponse

_RESPONSE_SCHEMAS = {
    ContentKind.REVIEW: ReviewResponse,
    ContentKind.ROADMAP: RoadmapResponse,
    ContentKind.COMMENT: CommentResponse,
}


def _serialize(kind: ContentKind, item: ModeratedContent) -> ContentResponse:
    return _RESPONSE_SCHEMAS[kind].model_validate(item)


@router.get("/users", response_model=list[AdminUserResponse])
async def list_users(
    actor: ActorDep,
    db: SessionDep,
    role: Role | None = Query(None),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    skip: int = Query(0, ge=0),
) -> list[User]:
    """List users, optionally filtered by role."""
    raise_for_decision(can_moderate(actor))
    return list(user_service.list_users(db, actor, role=role, skip=skip, limit=limit))


@router.patch("/users/{user_id}", response_model=AdminUserResponse)
async def change_user_role(
    user_id: str,
    payload: RoleChangeRequest,
    actor: ActorDep,
    db: SessionDep,
) -> User:
    """Block, unblock, promote, demote or set the role of another user."""
    raise_for_decision(can_moderate(actor))
    return user_service.change_role(
        db,
        actor,
        user_id,
        payload.action,
        role=payload.role,
        reason=payload.reason,
    )


@router.get("/stats", response_model=StatsResponse)
async def get_stats(actor: ActorDep, db: SessionDep) -> dict[str, Any]:
    """Counts per content status and per role."""
    raise_for_decision(can_moderate(actor))
    return moderation.moderation_stats(db, actor)


@router.get("/events", response_model=list[ModerationEventResponse])
async def list_events(
    actor: ActorDep,
    db: SessionDep,
    subject_kind: str | None = Query(None),
    subject_id: str | None = Query(None),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    skip: int = Query(0, ge=0),
) -> list[ModerationEvent]:
    """Moderation audit log, newest first."""
    raise_for_decision(can_moderate(actor))
    return list(
        moderation.moderation_events(
            db,
            actor,
            subject_kind=subject_kind,
            subject_id=subject_id,
            skip=skip,
            limit=limit,
        )
    )


@router.get("/{kind}", response_model=list[ContentResponse])
async def get_moderation_queue(
    kind: ContentKind,
    actor: ActorDep,
    db: SessionDep,
    status_filter: ModerationStatus | None = Query(ModerationStatus.PENDING, alias="status"),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    skip: int = Query(0, ge=0),
) -> list[ContentResponse]:
    """Items of ``kind`` waiting for a verdict (or in ``status``), oldest first."""
    raise_for_decision(can_moderate(actor))
    items = moderation.moderation_queue(db, actor, kind, status=status_filter, skip=skip, limit=limit)
    return [_serialize(kind, item) for item in items]


@router.patch("/{kind}/{item_id}", response_model=ContentResponse)
async def moderate_item(
    kind: ContentKind,
    item_id: str,
    payload: ModerationRequest,
    actor: ActorDep,
    db: SessionDep,
) -> ContentResponse:
    """Approve or reject an item. Repeating the current verdict is a no-op."""
    raise_for_decision(can_moderate(actor))
    result = moderation.moderate_item(
        db,
        actor,
        kind,
        item_id,
        ModerationAction(payload.action),
        reason=payload.reason,
    )
    return _serialize(kind, result.item)
