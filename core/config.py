"""
Application settings and configuration management using Pydantic Settings.
"""
from typing import List
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application Settings
    app_name: str = Field(default="Seating Engine", description="Application name")
    app_env: str = Field(default="development", description="Environment (development, staging, production)")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Logging level")
    loop_log_level: str = Field(default="INFO", description="Logging level of the background loops")

    # API Configuration
    api_prefix: str = Field(default="/api", description="Prefix for all REST routers")
    cors_origins: str = Field(default="*", description="Allowed CORS origins (comma-separated)")

    # Database Configuration
    database_url: str = Field(
        default="sqlite+aiosqlite:///./seating.db",
        description="Async database connection URL"
    )
    db_pool_size: int = Field(default=5, ge=1, description="Connections kept in the pool")
    db_max_overflow: int = Field(default=10, ge=0, description="Connections allowed beyond pool size")
    db_pool_timeout: int = Field(default=30, ge=1, description="Seconds to wait for a pooled connection")
    db_pool_recycle: int = Field(default=3600, ge=1, description="Seconds before a connection is recycled")
    db_echo: bool = Field(default=False, description="Log all SQL statements")
    storage_timeout_seconds: float = Field(default=10.0, gt=0, description="Upper bound for a single storage call")

    # Restaurant Configuration
    restaurant_timezone: str = Field(default="Europe/Bratislava", description="Restaurant timezone")

    # Background loops
    scheduler_enabled: bool = Field(default=True, description="Run reconciliation and notification loops")
    reconcile_interval_seconds: int = Field(default=300, ge=1, description="Table status reconciliation period")
    notification_interval_seconds: int = Field(default=60, ge=1, description="Reminder and escalation period")

    @field_validator("log_level", "loop_log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed_levels:
            raise ValueError(f"log_level must be one of {allowed_levels}")
        return v_upper

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate environment is one of the allowed values."""
        allowed_envs = ["development", "staging", "production"]
        v_lower = v.lower()
        if v_lower not in allowed_envs:
            raise ValueError(f"app_env must be one of {allowed_envs}")
        return v_lower

    @field_validator("notification_interval_seconds")
    @classmethod
    def validate_notification_interval(cls, v: int) -> int:
        """Long-wait milestones are one minute wide, so the loop must run at least once a minute."""
        if v > 60:
            raise ValueError("notification_interval_seconds must not exceed 60")
        return v

    @field_validator("database_url")
    @classmethod
    def ensure_async_driver(cls, v: str) -> str:
        """Rewrite plain PostgreSQL URLs to the asyncpg driver."""
        if v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string to list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_sqlite(self) -> bool:
        """Check if the configured database is SQLite."""
        return self.database_url.startswith("sqlite")


# Global settings instance
settings = Settings()
