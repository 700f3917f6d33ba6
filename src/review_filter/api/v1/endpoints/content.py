"""Router factory shared by the review, roadmap and comment endpoints."""

from typing import Any

from fastapi import APIRouter, Query, Response, status
from pydantic import BaseModel

from review_filter.api.v1.dependencies import ActorDep, SessionDep
from review_filter.api.v1.errors import raise_for_decision
from review_filter.core.settings import settings
from review_filter.models import ModeratedContent
from review_filter.policy.evaluator import ContentKind, can_create
from review_filter.policy.moderation import ModerationStatus
from review_filter.services import content_service


def build_content_router(
    kind: ContentKind,
    create_schema: type[BaseModel],
    update_schema: type[BaseModel],
    response_schema: type[BaseModel],
) -> APIRouter:
    """Build the CRUD router for one content kind."""
    router = APIRouter(prefix=f"/{kind.collection}", tags=[kind.collection])

    @router.get("/", response_model=list[response_schema])  # type: ignore[valid-type]
    async def list_items(
        actor: ActorDep,
        db: SessionDep,
        limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
        skip: int = Query(0, ge=0),
        author_id: str | None = Query(None),
        status_filter: ModerationStatus | None = Query(None, alias="status"),
        review_id: str | None = Query(None, description="Parent review, comments only"),
    ) -> list[ModeratedContent]:
        """List the items the caller may read, newest first."""
        return list(
            content_service.list_items(
                db,
                actor,
                kind,
                author_id=author_id,
                review_id=review_id,
                status=status_filter,
                skip=skip,
                limit=limit,
            )
        )

    @router.post("/", response_model=response_schema, status_code=status.HTTP_201_CREATED)
    async def create_item(
        payload: create_schema,  # type: ignore[valid-type]
        actor: ActorDep,
        db: SessionDep,
    ) -> ModeratedContent:
        """Submit a new item for moderation."""
        if kind is not ContentKind.COMMENT:
            raise_for_decision(can_create(actor, kind))
        data: dict[str, Any] = payload.model_dump(exclude_unset=True)  # type: ignore[attr-defined]
        return content_service.create_item(db, actor, kind, data)

    @router.get("/{item_id}", response_model=response_schema)
    async def get_item(item_id: str, actor: ActorDep, db: SessionDep) -> ModeratedContent:
        """Get one item; hidden items are reported as missing."""
        return content_service.get_item(db, actor, kind, item_id)

    @router.put("/{item_id}", response_model=response_schema)
    async def update_item(
        item_id: str,
        payload: update_schema,  # type: ignore[valid-type]
        actor: ActorDep,
        db: SessionDep,
    ) -> ModeratedContent:
        """Edit an item (owner) or change its moderation fields (admin)."""
        changes: dict[str, Any] = payload.model_dump(exclude_unset=True, exclude_none=True)  # type: ignore[attr-defined]
        return content_service.update_item(db, actor, kind, item_id, changes)

    @router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_item(item_id: str, actor: ActorDep, db: SessionDep) -> Response:
        """Withdraw an item. It is kept, marked REJECTED, for the audit trail."""
        content_service.withdraw_item(db, actor, kind, item_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router
