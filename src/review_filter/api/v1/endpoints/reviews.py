"""Review endpoints for the Review Filter API."""

from review_filter.policy.evaluator import ContentKind
from review_filter.schemas.content import ReviewCreate, ReviewResponse, ReviewUpdate

from .content import build_content_router

router = build_content_router(ContentKind.REVIEW, ReviewCreate, ReviewUpdate, ReviewResponse)
