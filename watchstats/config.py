"""Configuration management using pydantic-settings.

All environment variables are loaded and validated here. Every field has a
default so the statistics services can be built without any environment.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Variables are read with the ``WATCHSTATS_`` prefix, e.g.
    ``WATCHSTATS_ACCOUNT_STATS_TTL=7200``.
    """

    model_config = SettingsConfigDict(
        env_prefix="WATCHSTATS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    environment: str = Field(
        default="production",
        description="Environment name (development, production)",
    )

    # Cache Configuration
    profile_stats_ttl: int = Field(
        default=1800,
        description="TTL in seconds for profile-level statistics",
        ge=0,
    )

    account_stats_ttl: int = Field(
        default=3600,
        description="TTL in seconds for account-level aggregates",
        ge=0,
    )

    cache_default_ttl: int = Field(
        default=300,
        description="TTL in seconds used when a cache write names none",
        ge=0,
    )

    cache_single_flight: bool = Field(
        default=False,
        description="Share one in-flight compute between concurrent misses on a key",
    )

    # Display limits for merged account views
    recent_achievements_limit: int = Field(
        default=10,
        description="Maximum recent achievements in an account milestone view",
        ge=1,
    )

    top_binged_shows_limit: int = Field(
        default=10,
        description="Maximum shows in an account binge leaderboard",
        ge=1,
    )

    fastest_completions_limit: int = Field(
        default=10,
        description="Maximum entries in an account fastest-completions list",
        ge=1,
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v_upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is development or production."""
        allowed = {"development", "production"}
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v_lower

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    def get_safe_dict(self) -> dict[str, str | int | bool | None]:
        """Get configuration as a plain dict suitable for logging."""
        return {field_name: getattr(self, field_name) for field_name in type(self).model_fields}


# Global settings instance
settings = Settings()
