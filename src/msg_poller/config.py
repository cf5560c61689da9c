"""Application settings loaded from the environment.

Uses pydantic-settings for validation. Variables are prefixed with MSG_POLLER_
(e.g. MSG_POLLER_QUEUE_ENDPOINT) and may also come from a .env file.
"""

from pydantic import Field, PositiveInt, PostgresDsn
from pydantic_settings import BaseSettings, SettingsConfigDict

from msg_poller.queue_model_dto import DEFAULT_IDLE_TIMEOUT_SECONDS, DEFAULT_WAIT_TIME_SECONDS


class Settings(BaseSettings):
    """Runtime settings for the poller CLI (queue, AWS, database, Sentry, logging)."""

    model_config = SettingsConfigDict(env_prefix="MSG_POLLER_", env_file=".env", extra="ignore")

    app_name: str = Field(default="Queue Poller")
    queue_endpoint: str | None = Field(default=None)
    format: str = Field(default="json")
    max_messages: PositiveInt | None = Field(default=None)
    wait_time_seconds: int = Field(default=DEFAULT_WAIT_TIME_SECONDS)
    idle_timeout: int = Field(default=DEFAULT_IDLE_TIMEOUT_SECONDS)
    database_dsn: PostgresDsn | None = Field(default=None)
    aws_region: str | None = Field(default=None)
    sqs_endpoint_url: str | None = Field(default=None)
    sentry_dsn: str | None = Field(default=None)
    sentry_environment: str | None = Field(default=None)
    log_level: str = Field(default="INFO")


def get_settings() -> Settings:
    """Return the loaded settings instance."""
    return Settings()
