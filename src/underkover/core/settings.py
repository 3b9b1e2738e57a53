"""Application settings and configuration.

This module defines all configuration options for the Underkover backend.
Settings are loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Underkover", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Database configuration
    database_url: str = Field(default="sqlite:///./underkover.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Feed cache (redis, memory or none)
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")
    feed_cache_backend: Literal["redis", "memory", "none"] = Field(
        default="redis",
        alias="FEED_CACHE_BACKEND",
    )
    feed_cache_ttl_seconds: int = Field(default=60, alias="FEED_CACHE_TTL_SECONDS")
    # Cached pages shorter than this are treated as corrupt and evicted.
    feed_cache_min_rows: int = Field(default=1, alias="FEED_CACHE_MIN_ROWS")

    # Feed pagination
    feed_default_limit: int = Field(default=20, alias="FEED_DEFAULT_LIMIT")
    feed_max_limit: int = Field(default=50, alias="FEED_MAX_LIMIT")

    # Post lifetime
    post_ttl_hours: int = Field(default=24, alias="POST_TTL_HOURS")
    seed_post_ttl_days: int = Field(default=365, alias="SEED_POST_TTL_DAYS")

    # Tags
    trending_default_limit: int = Field(default=10, alias="TRENDING_DEFAULT_LIMIT")
    trending_max_limit: int = Field(default=20, alias="TRENDING_MAX_LIMIT")
    tag_search_limit: int = Field(default=10, alias="TAG_SEARCH_LIMIT")
    tag_sweep_interval_seconds: float = Field(
        default=3600.0,
        alias="TAG_SWEEP_INTERVAL_SECONDS",
    )

    # Comment tree writes retried after a concurrent modification
    comment_write_retries: int = Field(default=3, alias="COMMENT_WRITE_RETRIES")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
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
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url


settings = Settings()  # type: ignore[call-arg]
