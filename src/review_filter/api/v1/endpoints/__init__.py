# src/review_filter/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .admin import router as admin_router
from .auth import router as auth_router
from .comments import router as comments_router
from .reviews import router as reviews_router
from .roadmaps import router as roadmaps_router
from .users import router as users_router

__all__ = [
    "admin_router",
    "auth_router",
    "comments_router",
    "reviews_router",
    "roadmaps_router",
    "users_router",
]
