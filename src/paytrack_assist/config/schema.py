"""Configuration schema and validation using Pydantic.

This module defines the settings schema that validates and coerces configuration
values from various sources (environment, files, programmatic) into the correct
types with proper defaults.
"""

from typing import Any, Literal
from urllib.parse import urlsplit

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from paytrack_assist.constants import (
    COUNTDOWN_TICK_INTERVAL,
    DEFAULT_ENDPOINT_PATH,
    DEFAULT_RETRY_AFTER,
    REQUEST_TIMEOUT,
)

ConflictPolicy = Literal["supersede", "drop"]


class AssistSettings(BaseSettings):
    """Pydantic settings schema for the assistant client.

    Integrates with environment variables using the PAYTRACK_ASSIST_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="PAYTRACK_ASSIST_",
        env_file=None,  # Only used when explicitly requested
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore unknown env vars for forward compatibility
    )

    # --- Endpoint ---

    endpoint_url: str | None = Field(
        default=None,
        description="Full URL of the support assistant function",
    )

    api_key: str | None = Field(
        default=None,
        description="Project API key sent with every request",
    )

    # --- Orchestration ---

    request_timeout_seconds: float = Field(
        default=REQUEST_TIMEOUT,
        description="Client-side deadline per attempt",
        gt=0,
    )

    default_retry_after_seconds: float = Field(
        default=DEFAULT_RETRY_AFTER,
        description="Cooldown applied when a rate-limit response has no hint",
        ge=1,
    )

    tick_interval_seconds: float = Field(
        default=COUNTDOWN_TICK_INTERVAL,
        description="Granularity of the rate-limit countdown",
        gt=0,
    )

    on_conflict: ConflictPolicy = Field(
        default="supersede",
        description=(
            "What a different question does while a call is in flight: "
            "'supersede' cancels the in-flight call, 'drop' ignores the new one"
        ),
    )

    # --- Validation Rules ---

    @field_validator("endpoint_url", mode="after")
    @classmethod
    def check_endpoint_scheme(cls, v: str | None) -> str | None:
        """Require an http(s) URL; a bare project URL gets the default function path."""
        if v is None:
            return v
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"endpoint_url must be an http(s) URL, got {v!r}")
        if urlsplit(v).path in ("", "/"):
            v = v.rstrip("/") + DEFAULT_ENDPOINT_PATH
        return v

    @field_validator("on_conflict", mode="before")
    @classmethod
    def parse_conflict_policy(cls, v: Any) -> Any:
        """Accept policy names case-insensitively."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary suitable for SourceMap annotation.

        Returns:
            Dictionary with field names as keys and resolved values.
        """
        return {
            "endpoint_url": self.endpoint_url,
            "api_key": self.api_key,
            "request_timeout_seconds": self.request_timeout_seconds,
            "default_retry_after_seconds": self.default_retry_after_seconds,
            "tick_interval_seconds": self.tick_interval_seconds,
            "on_conflict": self.on_conflict,
        }
