"""
Application settings.

Every tunable lives on ``Settings`` and is read from the environment (or a
local ``.env`` file) once, at import time, into the module-level
``settings`` instance.
"""

from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven configuration for the API and the worker."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ================================
    # Application
    # ================================
    APP_NAME: str = "Vidshelf"
    APP_ENV: Literal["development", "staging", "production", "testing"] = "development"
    DEBUG: bool = True
    # Shared with the account service, which signs the bearer tokens.
    SECRET_KEY: str = Field(..., min_length=32)

    API_V1_PREFIX: str = "/api/v1"
    ALLOWED_ORIGINS: str = "http://localhost:5173,http://localhost:8000"

    @field_validator("ALLOWED_ORIGINS")
    @classmethod
    def split_origins(cls, v: str) -> List[str]:
        """``"a, b"`` -> ``["a", "b"]``"""
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    # ================================
    # Database
    # ================================
    DATABASE_URL: str = Field(..., description="Async SQLAlchemy URL (asyncpg or aiosqlite)")
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # ================================
    # Bearer tokens (verification only)
    # ================================
    JWT_ALGORITHM: str = "HS256"

    # ================================
    # Feed
    # ================================
    FEED_PAGE_SIZE: int = Field(12, ge=1)
    FEED_MAX_PAGE_SIZE: int = Field(50, ge=1)

    # ================================
    # Video host (uploads and remote ingestion)
    # ================================
    INGEST_API_BASE_URL: str = "https://api.aurahub.fun"
    INGEST_REQUEST_TIMEOUT: float = 30.0
    INGEST_POLL_INTERVAL_MS: int = Field(5000, ge=0)
    INGEST_JOB_TIMEOUT_SECONDS: int = 60 * 60
    # Consecutive failed status checks before the worker abandons a job
    INGEST_MAX_TICK_FAILURES: int = Field(12, ge=1)

    # ================================
    # Image host (custom thumbnails)
    # ================================
    IMAGE_HOST_API_URL: str = "https://api.imgbb.com/1/upload"
    IMAGE_HOST_API_KEY: Optional[str] = None
    IMAGE_HOST_TIMEOUT: float = 20.0

    # ================================
    # Celery worker
    # ================================
    CELERY_BROKER_URL: str = "redis://redis:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://redis:6379/0"
    CELERY_TASK_SERIALIZER: str = "json"
    CELERY_RESULT_SERIALIZER: str = "json"
    CELERY_ACCEPT_CONTENT: str = "json"  # comma-separated
    CELERY_TIMEZONE: str = "UTC"
    CELERY_ENABLE_UTC: bool = True

    # ================================
    # Logging
    # ================================
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"

    @property
    def celery_accept_content_list(self) -> List[str]:
        return [item.strip() for item in self.CELERY_ACCEPT_CONTENT.split(",")]

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def poll_interval_seconds(self) -> float:
        return self.INGEST_POLL_INTERVAL_MS / 1000.0


settings = Settings()
