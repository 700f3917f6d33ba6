# src/review_filter/models/__init__.py
"""SQLAlchemy models for the Review Filter service."""

from .content import CONTENT_MODELS, Comment, ModeratedContent, Review, Roadmap
from .moderation import ModerationEvent
from .user import User

__all__ = [
    "CONTENT_MODELS", "Comment", "ModeratedContent", "Review", "Roadmap",
    "ModerationEvent",
    "User",
]

# Install the storage rules on every Session once the models exist.
from review_filter.db import guard as _guard  # noqa: E402,F401
