"""Main entry point for the Review Filter application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm.exc import StaleDataError

from review_filter.api.v1 import (
    admin_router,
    auth_router,
    comments_router,
    reviews_router,
    roadmaps_router,
    users_router,
)
from review_filter.api.v1.errors import (
    policy_error_handler,
    role_transition_handler,
    rule_denied_handler,
    stale_data_handler,
)
from review_filter.core.logging import configure_logging
from review_filter.core.settings import settings
from review_filter.db.guard import RuleDenied
from review_filter.policy.errors import PolicyError
from review_filter.policy.roles import RoleTransitionError

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Role-based access and moderation for course reviews and roadmaps",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

app.add_exception_handler(PolicyError, policy_error_handler)  # type: ignore[arg-type]
app.add_exception_handler(RuleDenied, rule_denied_handler)  # type: ignore[arg-type]
app.add_exception_handler(RoleTransitionError, role_transition_handler)  # type: ignore[arg-type]
app.add_exception_handler(StaleDataError, stale_data_handler)  # type: ignore[arg-type]

# Include API routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")
app.include_router(reviews_router, prefix="/api/v1")
app.include_router(roadmaps_router, prefix="/api/v1")
app.include_router(comments_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging()
    logger.info("%s %s starting", settings.app_name, settings.app_version)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("review_filter.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
