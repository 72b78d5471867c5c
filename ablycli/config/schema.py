"""Configuration schema for ably-cli."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings

from ..bus.events import WILDCARD


class SessionConfig(BaseModel):
    """Immutable settings for one channel session, built from CLI arguments."""

    model_config = ConfigDict(frozen=True)

    api_key: SecretStr
    channel_name: str
    event_filter: str = WILDCARD
    quiet: bool = False
    debug: bool = False

    @field_validator("api_key")
    @classmethod
    def _api_key_not_empty(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value().strip():
            raise ValueError("API key must not be empty")
        return value

    @field_validator("channel_name")
    @classmethod
    def _channel_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("channel name must not be empty")
        return value

    @field_validator("event_filter")
    @classmethod
    def _filter_defaults_to_wildcard(cls, value: str) -> str:
        return value or WILDCARD

    @property
    def filtering(self) -> bool:
        """True when only a single event name is rendered."""
        return self.event_filter != WILDCARD


class AppSettings(BaseSettings):
    """Operational tunables, read from ABLY_CLI_* environment variables."""

    model_config = {"env_prefix": "ABLY_CLI_"}

    close_timeout: float = Field(default=2.0, gt=0)
    shutdown_grace: float = Field(default=5.0, gt=0)
    queue_size: int = Field(default=1000, gt=0)
    render_overrides: bool = True
