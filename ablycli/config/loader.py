"""Build validated configuration from raw CLI values."""

from __future__ import annotations

from loguru import logger
from pydantic import ValidationError

from ..bus.events import WILDCARD
from ..errors import ConfigError
from .schema import AppSettings, SessionConfig


# Model field -> CLI flag, for error messages
FIELD_FLAGS: dict[str, str] = {
    "api_key": "--api-key",
    "channel_name": "--channel",
    "event_filter": "--event",
    "quiet": "--quiet",
    "debug": "--debug",
}


def build_session_config(
    api_key: str | None,
    channel: str | None,
    event: str | None = WILDCARD,
    quiet: bool = False,
    debug: bool = False,
) -> SessionConfig:
    """Validate CLI values into a SessionConfig.

    Raises ConfigError naming the first missing or invalid flag.
    """
    if not api_key:
        raise ConfigError("Missing option '--api-key' / '-k'", flag="--api-key")
    if not channel:
        raise ConfigError("Missing option '--channel' / '-c'", flag="--channel")

    try:
        return SessionConfig(
            api_key=api_key,
            channel_name=channel,
            event_filter=event if event is not None else WILDCARD,
            quiet=quiet,
            debug=debug,
        )
    except ValidationError as e:
        error = e.errors()[0]
        field = str(error["loc"][0]) if error.get("loc") else ""
        flag = FIELD_FLAGS.get(field, field)
        raise ConfigError(f"Invalid value for '{flag}': {error['msg']}", flag=flag) from e


def load_settings() -> AppSettings:
    """Load operational settings from the environment, falling back to defaults."""
    try:
        settings = AppSettings()
    except ValidationError as e:
        logger.warning(f"Invalid ABLY_CLI_* setting: {e.errors()[0]['msg']}, using defaults")
        return AppSettings.model_construct()
    logger.debug(
        f"Settings: close_timeout={settings.close_timeout}s "
        f"shutdown_grace={settings.shutdown_grace}s queue_size={settings.queue_size}"
    )
    return settings
