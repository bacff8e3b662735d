"""Configuration loading and validation.

This module is responsible for:

- Loading `.env` into the process environment (without overriding existing vars).
- Converting environment variables into strongly-typed Pydantic models.
- Validating required fields and providing actionable error messages.
"""

from __future__ import annotations

import os
from typing import TypeVar

import dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

from insightops.backoff import BackoffPolicy
from insightops.transport import CONTENT_TYPE_HEADER, STANDARD_CONTENT_TYPE_HEADER

_T = TypeVar("_T", int, float)


def _get_required_env(name: str) -> str:
    """Read a required env var or raise a helpful error."""
    value = os.getenv(name, "").strip()
    if not value:
        raise ValueError(f"{name} is required. Please set it in your .env file.")
    if value.startswith("your_") and value.endswith("_here"):
        raise ValueError(f"{name} is required. Please replace the placeholder value in your .env file.")
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    """Read a boolean env var with a default."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    normalized = raw.strip().lower()
    if normalized in {"true", "1", "yes", "y", "on"}:
        return True
    if normalized in {"false", "0", "no", "n", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean (true/false). Got: {raw!r}")


def _get_env_number(name: str, default: _T, cast: type[_T]) -> _T:
    """Read an int/float env var with a default."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be a {cast.__name__}. Got: {raw!r}") from exc


def _get_env_optional_int(name: str) -> int | None:
    """Read an int env var where empty/unset (or "none") means no value."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "" or raw.strip().lower() == "none":
        return None
    return _get_env_number(name, 0, int)


class SinkConfig(BaseModel):
    """Configuration for shipping log events to an insightOps endpoint."""

    url: str = Field(..., description="insightOps webhook URL for the target log")

    # Retry/backoff tuning (see env_example.env).
    initial_delay: float = Field(default=2.0, gt=0.0, description="Delay after the first failed attempt (seconds)")
    max_delay: float = Field(default=120.0, gt=0.0, description="Ceiling for the retry delay (seconds)")
    backoff_multiplier: float = Field(default=2.0, ge=1.0, description="Delay growth factor per failure")
    max_attempts: int | None = Field(
        default=None,
        ge=1,
        description="Attempts per payload before it is dropped; None retries forever",
    )

    # Wire compatibility: the ingestion endpoint historically receives `ContentType`.
    standard_content_type: bool = Field(default=False, description="Send `Content-Type` instead of `ContentType`")
    timeout: float = Field(default=30.0, gt=0.0, description="Per-request timeout of the default transport (seconds)")

    @property
    def content_type_header(self) -> str:
        """Header name used to announce the JSON body."""
        if self.standard_content_type:
            return STANDARD_CONTENT_TYPE_HEADER
        return CONTENT_TYPE_HEADER

    @property
    def backoff_policy(self) -> BackoffPolicy:
        """Retry schedule derived from the tuning knobs above."""
        return BackoffPolicy(
            initial_delay=self.initial_delay,
            max_delay=self.max_delay,
            multiplier=self.backoff_multiplier,
            max_attempts=self.max_attempts,
        )

    @field_validator("url")
    def validate_url(cls, v: str) -> str:
        """Validate the endpoint is set (not empty/placeholder) and is http(s)."""
        v = v.strip()
        if not v or v == "your_insightops_url_here":
            raise ValueError("INSIGHTOPS_URL is required. Please set it in your .env file.")
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"INSIGHTOPS_URL must be an http(s) URL. Got: {v!r}")
        return v

    @model_validator(mode="after")
    def validate_delays(self) -> SinkConfig:
        """Ensure the first retry delay does not already exceed the ceiling."""
        if self.initial_delay > self.max_delay:
            raise ValueError(
                f"initial_delay ({self.initial_delay}) must not exceed max_delay ({self.max_delay})"
            )
        return self


def load_config() -> SinkConfig:
    """Load sink configuration from environment variables.

    Notes:
    - Calls `dotenv.load_dotenv()` so local `.env` values are visible to the process.
    - Raises `ValueError` with actionable messages when required configuration is
      missing or still contains placeholder values.
    """
    # Load variables from `.env` into the process environment (without overriding
    # already-set env vars).
    dotenv.load_dotenv()

    return SinkConfig(
        url=_get_required_env("INSIGHTOPS_URL"),
        initial_delay=_get_env_number("INSIGHTOPS_INITIAL_DELAY", 2.0, float),
        max_delay=_get_env_number("INSIGHTOPS_MAX_DELAY", 120.0, float),
        backoff_multiplier=_get_env_number("INSIGHTOPS_BACKOFF_MULTIPLIER", 2.0, float),
        max_attempts=_get_env_optional_int("INSIGHTOPS_MAX_ATTEMPTS"),
        standard_content_type=_get_env_bool("INSIGHTOPS_STANDARD_CONTENT_TYPE", False),
        timeout=_get_env_number("INSIGHTOPS_TIMEOUT", 30.0, float),
    )
