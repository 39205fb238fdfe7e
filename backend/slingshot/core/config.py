"""
Application configuration using Pydantic Settings.
"""
from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # Application
    APP_NAME: str = "Slingshot"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "info"
    DEBUG: bool = False
    PUBLIC_URL: str = "http://localhost:8000"

    # Database Schema
    DB_SCHEMA: str = "slingshot"

    # Database
    DATABASE_URL: str

    # Task queue
    REDIS_URL: str = "redis://redis:6379/0"
    # Celery task name served by the external image build workers
    BUILD_TASK_NAME: str = "builds.run_docker_build"
    # Repository new builds are pushed to
    DOCKER_IMAGE_REPOSITORY: str = "registry.local/app"
    # Seconds before redis redelivers an unacked task; must outlast the longest deploy
    CELERY_VISIBILITY_TIMEOUT: int = 86400 * 7

    # Deploy execution
    # Read once when the execution registry is created; not toggled at runtime.
    DEPLOYS_ENABLED: bool = True

    # Kubernetes
    KUBERNETES_POLL_INTERVAL: float = 2.0  # seconds between pod status polls
    KUBERNETES_BUILD_WAIT_INTERVAL: float = 2.0  # seconds between build status checks
    KUBERNETES_STABILITY_THRESHOLD: int = 1  # consecutive healthy polls before Live
    KUBERNETES_MISSING_POLL_LIMIT: Optional[int] = None  # None = keep polling until stopped
    KUBERNETES_REQUEST_TIMEOUT: float = 10.0

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    @field_validator("KUBERNETES_STABILITY_THRESHOLD")
    @classmethod
    def validate_stability_threshold(cls, value: int) -> int:
        if value < 1:
            raise ValueError("KUBERNETES_STABILITY_THRESHOLD must be at least 1")
        return value

    @field_validator("KUBERNETES_MISSING_POLL_LIMIT")
    @classmethod
    def validate_missing_poll_limit(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < 1:
            raise ValueError("KUBERNETES_MISSING_POLL_LIMIT must be positive or unset")
        return value


settings = Settings()
