# src/review_filter/client/__init__.py
"""Presentation-tier permission derivation."""

from .permissions import (
    ANONYMOUS,
    AccessLevel,
    Listing,
    Permissions,
    can_view_item,
    derive_permissions,
    page_size_for,
    permissions_from_session,
    visible_listing,
)

__all__ = [
    "ANONYMOUS",
    "AccessLevel",
    "Listing",
    "Permissions",
    "can_view_item",
    "derive_permissions",
    "page_size_for",
    "permissions_from_session",
    "visible_listing",
]
