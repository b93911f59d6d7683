"""WakeGate configuration management."""

from enum import Enum
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """WakeGate configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="WAKEGATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # General
    env: Environment = Environment.DEVELOPMENT
    log_level: str = "INFO"
    debug: bool = False

    # Database (schedule state)
    database_url: str = "sqlite+aiosqlite:///./wakegate.db"

    # Resource hold
    hold_name: str = Field(
        default="wakegate.WakefulWork",
        description="Name of the process-wide resource hold",
    )
    hold_reference_counted: bool = Field(
        default=True,
        description="Count every acquire; when false repeated acquires collapse into one",
    )

    # Dispatch / redelivery
    dispatch_max_attempts: int = Field(
        default=3, description="Deliveries per work item before it is dead-lettered"
    )
    dispatch_retry_backoff_seconds: float = Field(
        default=1.0, description="Base redelivery backoff"
    )
    dispatch_max_backoff_seconds: float = Field(
        default=60.0, description="Max redelivery backoff"
    )
    dispatch_poll_interval_seconds: float = Field(
        default=0.5, description="Idle wait between queue checks"
    )
    dispatch_stop_timeout_seconds: float = Field(
        default=10.0,
        description="Grace period for the delivery loop on shutdown; work in delivery is always awaited",
    )
    propagate_work_errors: bool = Field(
        default=True,
        description="Re-raise work function failures so the item is redelivered",
    )

    # Alarms
    default_alarm_max_age_seconds: int = Field(
        default=3600, description="Staleness window for policies that do not set one"
    )
    reschedule_on_startup: bool = Field(
        default=True, description="Force re-arm of known alarms when the runtime starts"
    )

    # Security (shared token)
    allow_insecure_dev: bool = Field(default=False, description="Allow unauthenticated in dev")
    api_key: Optional[str] = None

    # Server
    host: str = "0.0.0.0"
    port: int = 8080

    # Validators
    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate async database URL format."""
        if not v.startswith(("sqlite+aiosqlite://", "postgresql+asyncpg://")):
            raise ValueError(
                "database_url must be an async URL (sqlite+aiosqlite:// or postgresql+asyncpg://)"
            )
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port number range."""
        if not 1 <= v <= 65535:
            raise ValueError(f"Port must be between 1 and 65535, got {v}")
        return v

    @field_validator("dispatch_max_attempts")
    @classmethod
    def validate_max_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"dispatch_max_attempts must be at least 1, got {v}")
        return v

    @field_validator(
        "dispatch_retry_backoff_seconds",
        "dispatch_max_backoff_seconds",
        "dispatch_poll_interval_seconds",
    )
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"Interval must not be negative, got {v}")
        return v

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str], info) -> Optional[str]:
        """Validate API key is set when auth is required."""
        allow_insecure = info.data.get("allow_insecure_dev", False)
        env = info.data.get("env")

        if env in [Environment.PRODUCTION, Environment.STAGING] and not v:
            raise ValueError(f"api_key is required in {env.value} environment")

        if not v and not allow_insecure:
            raise ValueError("api_key is required when allow_insecure_dev=False")

        return v


settings = Settings()
