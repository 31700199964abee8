"""Configuration management and environment variable utilities."""

from __future__ import annotations

import os

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from dotenv import load_dotenv

from blockshot.errors import ConfigurationError
from blockshot.helpers.constants import (
    DEFAULT_EARLY_SUBMISSION_BLOCKS,
    DEFAULT_LEGACY_INTERVAL_MS,
    DEFAULT_MAX_FAILED_ROUNDS,
    DEFAULT_MONITOR_INTERVAL_MS,
    DEFAULT_POLL_INTERVAL_MS,
    DEFAULT_SAMPLE_SIZE,
    DEFAULT_TIMEOUT,
    MONITOR_FEE_MULTIPLIER,
    REPREDICT_AFTER_SECONDS,
    UNBONDING_FEE_MULTIPLIER,
)


# Load environment variables from .env file
load_dotenv()


def get_required_env(key: str) -> str:
    """Get a required environment variable.

    Args:
        key: Environment variable name

    Returns:
        Environment variable value

    Raises:
        ValueError: If the environment variable is not set

    Example:
        ```python
        from blockshot.helpers.config import get_required_env

        database = get_required_env("POSTGRE_DB")
        ```
    """
    value = os.getenv(key)
    if not value:
        msg = f"{key} environment variable is not set"
        raise ValueError(msg)
    return value


def get_optional_env(key: str, default: str | None = None) -> str | None:
    """Get an optional environment variable with a default value.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        Environment variable value or default

    Example:
        ```python
        from blockshot.helpers.config import get_optional_env

        poll_interval = int(get_optional_env("POLL_INTERVAL_MS", "500"))
        ```
    """
    return os.getenv(key, default)


class Settings(BaseModel):
    """Immutable runtime settings, built once at startup and passed down."""

    poll_interval_ms: int = Field(default=DEFAULT_POLL_INTERVAL_MS, gt=0)
    early_submission_blocks: int = Field(
        default=DEFAULT_EARLY_SUBMISSION_BLOCKS, ge=0
    )
    block_sample_size: int = Field(default=DEFAULT_SAMPLE_SIZE, gt=0)
    request_timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    max_failed_rounds: int = Field(default=DEFAULT_MAX_FAILED_ROUNDS, gt=0)
    monitor_interval_ms: int = Field(default=DEFAULT_MONITOR_INTERVAL_MS, gt=0)
    legacy_interval_ms: int = Field(default=DEFAULT_LEGACY_INTERVAL_MS, gt=0)
    unbonding_fee_multiplier: float = Field(default=UNBONDING_FEE_MULTIPLIER, gt=0)
    monitor_fee_multiplier: float = Field(default=MONITOR_FEE_MULTIPLIER, gt=0)
    repredict_after_seconds: float = Field(default=REPREDICT_AFTER_SECONDS, gt=0)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from environment variables.

        Unset variables keep their defaults. Names are the upper-cased
        field names, e.g. ``POLL_INTERVAL_MS``.

        Raises:
            ConfigurationError: If a variable is set to an invalid value
        """
        values = {
            name: raw
            for name in cls.model_fields
            if (raw := get_optional_env(name.upper())) not in {None, ""}
        }
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            msg = f"Invalid settings: {e}"
            raise ConfigurationError(msg) from e


__all__ = [
    "Settings",
    "get_optional_env",
    "get_required_env",
]
