"""
Settings — typed, validated run options loaded from environment/.env.

Uses pydantic-settings to:
  - Load scalar options from ISOTOPE_* environment variables
  - Fall back to a .env file in the working directory
  - Validate durations at construction, not in the middle of a test run

The two sinks (failure_action, logging_action) are plain callables and are
only ever set in code; by default they write structured events via structlog.

    ISOTOPE_WAIT=PT30S ISOTOPE_INTERVAL=0.25 pytest tests/ui
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import timedelta
from typing import Any

import structlog
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

log = structlog.get_logger()


def log_step(message: str) -> None:
    """Default logging_action: one structured event per recorded message."""
    log.info("isotope.step", message=message)


def log_failure(message: str, trace: Any) -> None:
    """Default failure_action: log the error along with the rendered step trace."""
    rendered = trace.render() if hasattr(trace, "render") else str(trace)
    log.error("isotope.failed", error=message, trace=rendered)


class IsotopeSettings(BaseSettings):
    """
    Options shared by every step of a run.

    Load order (highest priority first):
      1. Keyword arguments
      2. Environment variables (ISOTOPE_WAIT, ISOTOPE_INTERVAL, ISOTOPE_DISPOSE_ON_COMPLETION)
      3. .env file
      4. Default values

    Instances are frozen; derive a variant with `with_(...)` and install it
    with init_settings()/put().
    """

    model_config = SettingsConfigDict(
        env_prefix="ISOTOPE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    wait: timedelta = Field(
        default=timedelta(seconds=10),
        description="Default overall deadline for wait_until",
    )
    interval: timedelta = Field(
        default=timedelta(milliseconds=500),
        description="Default pause between wait_until attempts",
    )
    dispose_on_completion: bool = Field(
        default=False,
        description="Quit the driver when run() finishes, pass or fail",
    )
    failure_action: Callable[[str, Any], None] = Field(
        default=log_failure,
        exclude=True,
        description="Sink invoked with (message, log) on a terminal failure",
    )
    logging_action: Callable[[str], None] = Field(
        default=log_step,
        exclude=True,
        description="Sink invoked with each recorded log message",
    )

    @field_validator("wait", "interval", mode="before")
    @classmethod
    def parse_seconds(cls, value: Any) -> Any:
        """Accept bare numbers (as strings from the environment, too) as seconds."""
        if isinstance(value, str):
            try:
                return timedelta(seconds=float(value))
            except (ValueError, OverflowError):
                return value
        return value

    @field_validator("wait", "interval")
    @classmethod
    def reject_negative(cls, value: timedelta) -> timedelta:
        if value < timedelta(0):
            raise ValueError(f"Duration must not be negative, got {value}")
        return value

    def with_(self, **changes: Any) -> IsotopeSettings:
        """
        Return a validated copy with the given fields replaced.

        The copy goes through the same validators as construction; the
        environment is not read again.
        """
        current = {name: getattr(self, name) for name in type(self).model_fields}
        return type(self).model_validate({**current, **changes})
