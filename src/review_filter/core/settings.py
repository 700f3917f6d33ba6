"""Application settings and configuration.

This module defines all configuration options for the Review Filter service.
Settings are loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from review_filter.policy.evaluator import VisibilityQuotas


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Review Filter", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./review_filter.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # JWT authentication settings
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Visibility quotas for roles below AUTH_LOGIN (UX only, not a security boundary)
    review_visibility_quota: int = Field(default=1, ge=0, alias="REVIEW_VISIBILITY_QUOTA")
    roadmap_visibility_quota: int = Field(default=3, ge=0, alias="ROADMAP_VISIBILITY_QUOTA")
    comment_visibility_quota: int = Field(default=0, ge=0, alias="COMMENT_VISIBILITY_QUOTA")

    # When a LOGIN_NOT_AUTH user is promoted to AUTH_LOGIN
    promotion_trigger: Literal["approval", "submission"] = Field(
        default="approval",
        alias="PROMOTION_TRIGGER",
    )
    require_approved_parent: bool = Field(default=True, alias="REQUIRE_APPROVED_PARENT")

    # Listing bounds
    default_page_size: int = Field(default=10, ge=1, alias="DEFAULT_PAGE_SIZE")
    max_page_size: int = Field(default=50, ge=1, alias="MAX_PAGE_SIZE")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def visibility_quotas(self) -> VisibilityQuotas:
        """Return the visibility quotas as the policy layer's value object."""
        return VisibilityQuotas(
            review=self.review_visibility_quota,
            roadmap=self.roadmap_visibility_quota,
            comment=self.comment_visibility_quota,
        )

    @property
    def promote_on_submission(self) -> bool:
        return self.promotion_trigger == "submission"


settings = Settings()  # type: ignore[call-arg]
