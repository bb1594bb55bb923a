"""Application settings loaded from environment variables.

Environment Configuration:
    APP_ENV: Deployment environment (local | test | staging | prod)
    DATABASE_URL: Database connection string (required)
    INTERNAL_SECRET: Secret for identity-sync routes (required in staging/prod)

Redis / Celery Configuration:
    REDIS_URL: Redis connection string (required for worker)
    CELERY_BROKER_URL: Celery broker URL (defaults to REDIS_URL)
    CELERY_RESULT_BACKEND: Celery result backend URL (defaults to REDIS_URL)

Auth Configuration (required in all environments):
    AUTH_JWKS_URL: Full URL to the identity provider's JWKS endpoint
    AUTH_ISSUER: Expected JWT issuer (trailing slash stripped)
    AUTH_AUDIENCES: Comma-separated list of allowed audiences (optional)

Catalog Configuration:
    TMDB_API_KEY: TMDB v3 API key (required outside test)
    TMDB_BASE_URL: TMDB API root
    TMDB_TIMEOUT_S: Per-request timeout for catalog calls
    TMDB_WATCH_REGION: Region whose flatrate providers are retained
    TMDB_IMAGE_BASE_URL: Prefix for stored poster and backdrop URLs
    SEARCH_CACHE_TTL_S: Lifetime of a cached search result
"""

from enum import Enum
from functools import lru_cache
from typing import Annotated

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    """Application configuration.

    Settings are loaded from environment variables.
    Validation rules:
    - DATABASE_URL is always required
    - AUTH_JWKS_URL and AUTH_ISSUER are required in all environments
    - INTERNAL_SECRET is required in staging and prod only
    - TMDB_API_KEY is required everywhere except test
    """

    app_env: Environment = Field(default=Environment.LOCAL, alias="APP_ENV")
    database_url: Annotated[str, Field(alias="DATABASE_URL")]
    internal_secret: str | None = Field(default=None, alias="INTERNAL_SECRET")

    # Redis / Celery settings
    redis_url: str | None = Field(default=None, alias="REDIS_URL")
    celery_broker_url: str | None = Field(default=None, alias="CELERY_BROKER_URL")
    celery_result_backend: str | None = Field(default=None, alias="CELERY_RESULT_BACKEND")

    # Identity provider auth settings
    auth_jwks_url: str | None = Field(default=None, alias="AUTH_JWKS_URL")
    auth_issuer: str | None = Field(default=None, alias="AUTH_ISSUER")
    auth_audiences: str | None = Field(default=None, alias="AUTH_AUDIENCES")

    # External catalog
    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    tmdb_base_url: str = Field(default="https://api.themoviedb.org/3", alias="TMDB_BASE_URL")
    tmdb_timeout_s: float = Field(default=10.0, alias="TMDB_TIMEOUT_S")
    tmdb_watch_region: str = Field(default="US", alias="TMDB_WATCH_REGION")
    tmdb_image_base_url: str = Field(
        default="https://image.tmdb.org/t/p", alias="TMDB_IMAGE_BASE_URL"
    )

    # Search cache
    search_cache_ttl_s: int = Field(default=6 * 60 * 60, alias="SEARCH_CACHE_TTL_S")  # 6 hours

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def validate_required_settings(self) -> "Settings":
        """Ensure required settings are set for the current environment."""
        missing_auth = []
        if not self.auth_jwks_url:
            missing_auth.append("AUTH_JWKS_URL")
        if not self.auth_issuer:
            missing_auth.append("AUTH_ISSUER")

        if missing_auth:
            raise ValueError(f"Missing required auth settings: {', '.join(missing_auth)}")

        if self.app_env in (Environment.STAGING, Environment.PROD):
            if not self.internal_secret:
                raise ValueError(f"INTERNAL_SECRET is required for APP_ENV={self.app_env.value}")

        if self.app_env != Environment.TEST and not self.tmdb_api_key:
            raise ValueError(f"TMDB_API_KEY is required for APP_ENV={self.app_env.value}")

        return self

    @property
    def audience_list(self) -> list[str]:
        """Parse comma-separated audiences into a list."""
        if self.auth_audiences:
            return [a.strip() for a in self.auth_audiences.split(",") if a.strip()]
        return []

    @property
    def normalized_issuer(self) -> str | None:
        """Return issuer with trailing slash stripped."""
        if self.auth_issuer:
            return self.auth_issuer.rstrip("/")
        return None

    @property
    def effective_celery_broker_url(self) -> str | None:
        """Return Celery broker URL, falling back to REDIS_URL if not set."""
        return self.celery_broker_url or self.redis_url

    @property
    def effective_celery_result_backend(self) -> str | None:
        """Return Celery result backend URL, falling back to REDIS_URL if not set."""
        return self.celery_result_backend or self.redis_url


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Raises:
        ValidationError: If required settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
