# src/review_filter/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    admin_router,
    auth_router,
    comments_router,
    reviews_router,
    roadmaps_router,
    users_router,
)

__all__ = [
    "admin_router",
    "auth_router",
    "comments_router",
    "reviews_router",
    "roadmaps_router",
    "users_router",
]
