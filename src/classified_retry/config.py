"""
Configuration settings for classified retry.

All settings are loaded from environment variables with sensible defaults.
Use .env file for local development.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    APP_NAME: str = "classified-retry"
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # === Retry & Backoff ===
    RETRY_DEFAULT_MAX_ATTEMPTS: int = 4
    RETRY_BASE_DELAY: float = 0.05  # seconds, first delayed-retry wait before jitter
    RETRY_BACKOFF_MULTIPLIER: float = 10.0  # delay growth per delayed retry
    RETRY_JITTER_MIN: float = 0.8
    RETRY_JITTER_MAX: float = 1.2

    # === Monitoring ===
    PROMETHEUS_ENABLED: bool = True


class BackoffConfig(BaseModel):
    """
    Validated backoff constants.

    Attributes:
        base_delay: First wait in seconds (before jitter)
        multiplier: Factor applied to the delay after each delayed retry
        jitter_min: Lower bound of the jitter factor (inclusive)
        jitter_max: Upper bound of the jitter factor (exclusive)
    """

    model_config = ConfigDict(frozen=True)

    base_delay: float = Field(default=0.05, gt=0)
    multiplier: float = Field(default=10.0, ge=1.0)
    jitter_min: float = Field(default=0.8, gt=0)
    jitter_max: float = Field(default=1.2, gt=0)

    @model_validator(mode="after")
    def _check_jitter_range(self) -> "BackoffConfig":
        if self.jitter_min > self.jitter_max:
            raise ValueError(
                f"jitter_min ({self.jitter_min}) must be <= jitter_max ({self.jitter_max})"
            )
        return self

    @classmethod
    def from_settings(cls, settings: Settings) -> "BackoffConfig":
        return cls(
            base_delay=settings.RETRY_BASE_DELAY,
            multiplier=settings.RETRY_BACKOFF_MULTIPLIER,
            jitter_min=settings.RETRY_JITTER_MIN,
            jitter_max=settings.RETRY_JITTER_MAX,
        )


# Global settings instance
settings = Settings()
