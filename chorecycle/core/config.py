"""Configuration management for chorecycle."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # SQLite Configuration
    sqlite_db_path: str = Field(default="./data/chorecycle.db", description="Path to the SQLite database file")

    # Household Calendar
    household_timezone: str = Field(
        default="America/Los_Angeles",
        description="IANA time zone used to decide which calendar day 'today' is",
    )

    # Instance Engine
    instance_horizon_days: int = Field(
        default=30,
        ge=0,
        description="Days ahead to materialize instances for rules without an end date",
    )
    early_completion_bonus_ratio: float = Field(
        default=0.1,
        ge=0,
        description="Bonus share of a chore's points awarded when it is completed before its due date",
    )

    # Rollover Job
    enable_rollover_job: bool = Field(default=True, description="Run the daily horizon rollover job")
    rollover_hour: int = Field(default=0, ge=0, le=23, description="Household-local hour the rollover job runs at")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="production", description="Deployment environment name reported to Logfire")


# Application Constants
class Constants:
    """Application-wide constants."""

    # Instance Engine
    DEFAULT_HORIZON_DAYS: int = 30
    LOCAL_ANCHOR_HOUR: int = 12  # Noon keeps DST shifts on the same calendar day

    # Definitions
    MIN_TITLE_LENGTH: int = 2
    DEFAULT_POINTS: int = 10

    # Scheduler Configuration
    ROLLOVER_JOB_ID: str = "instance_rollover"
    JOB_MAX_RETRIES: int = 3
    JOB_RETRY_BASE_DELAY_SECONDS: float = 2.0
    TRACKER_DEAD_LETTER_QUEUE_MAXLEN: int = 100  # Max items in dead letter queue
    CONSECUTIVE_FAILURE_THRESHOLD: int = 3


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
