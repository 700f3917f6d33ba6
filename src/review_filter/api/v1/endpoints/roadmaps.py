"""Roadmap endpoints for the Review Filter API."""

from review_filter.policy.evaluator import ContentKind
from review_filter.schemas.content import RoadmapCreate, RoadmapResponse, RoadmapUpdate

from .content import build_content_router

router = build_content_router(ContentKind.ROADMAP, RoadmapCreate, RoadmapUpdate, RoadmapResponse)
