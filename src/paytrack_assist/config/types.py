"""Core configuration data types.

Configuration follows a resolve-once, freeze-then-flow pattern: values are
merged and validated into a ``ResolvedConfig`` (with audit metadata), then
frozen into a ``FrozenConfig`` that components receive at construction.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal, NamedTuple

from paytrack_assist.constants import (
    COUNTDOWN_TICK_INTERVAL,
    DEFAULT_RETRY_AFTER,
    REQUEST_TIMEOUT,
)

# --- Source Tracking Types ---

ConfigOrigin = Literal["programmatic", "env", "file", "default"]
SourceMap = Mapping[str, ConfigOrigin]

# Display order for audits and summaries
CONFIG_FIELDS = (
    "endpoint_url",
    "api_key",
    "request_timeout_seconds",
    "default_retry_after_seconds",
    "tick_interval_seconds",
    "on_conflict",
)

SENSITIVE_FIELDS = frozenset({"api_key"})


class ResolvedConfig(NamedTuple):
    """Configuration after resolution from all sources, before freezing.

    Logically immutable; ``with_overrides`` returns a new instance.
    """

    endpoint_url: str | None
    api_key: str | None
    request_timeout_seconds: float
    default_retry_after_seconds: float
    tick_interval_seconds: float
    on_conflict: str

    # Audit metadata - tracks where each field value came from
    origin: SourceMap

    def __str__(self) -> str:
        """String representation with redacted API key for safe logging."""
        api_key_display = "[REDACTED]" if self.api_key else None
        return (
            f"ResolvedConfig(endpoint_url={self.endpoint_url!r}, "
            f"api_key={api_key_display!r}, "
            f"request_timeout_seconds={self.request_timeout_seconds!r}, "
            f"default_retry_after_seconds={self.default_retry_after_seconds!r}, "
            f"tick_interval_seconds={self.tick_interval_seconds!r}, "
            f"on_conflict={self.on_conflict!r}, origin={dict(self.origin)!r})"
        )

    def __repr__(self) -> str:
        """Repr with redacted API key for safe debugging."""
        return self.__str__()

    def to_frozen(self) -> "FrozenConfig":
        """Convert to the immutable configuration handed to components."""
        return FrozenConfig(
            endpoint_url=self.endpoint_url,
            api_key=self.api_key,
            request_timeout_seconds=self.request_timeout_seconds,
            default_retry_after_seconds=self.default_retry_after_seconds,
            tick_interval_seconds=self.tick_interval_seconds,
            on_conflict=self.on_conflict,
        )

    def with_overrides(self, **overrides: object) -> "ResolvedConfig":
        """Create a new ResolvedConfig with programmatic overrides applied.

        Unknown fields are ignored.
        """
        new_values = self._asdict()
        new_origin = dict(self.origin)

        for field, value in overrides.items():
            if field in CONFIG_FIELDS:
                new_values[field] = value
                new_origin[field] = "programmatic"

        new_values["origin"] = new_origin
        return ResolvedConfig(**new_values)

    def audit(self) -> str:
        """Redacted report showing the origin of each field."""
        # audit imports this module
        from .audit import generate_redacted_audit

        return generate_redacted_audit(self._asdict(), self.origin)


@dataclass(frozen=True)
class FrozenConfig:
    """Immutable configuration used by the orchestrator and transport."""

    endpoint_url: str | None = None
    api_key: str | None = None
    request_timeout_seconds: float = REQUEST_TIMEOUT
    default_retry_after_seconds: float = DEFAULT_RETRY_AFTER
    tick_interval_seconds: float = COUNTDOWN_TICK_INTERVAL
    on_conflict: str = "supersede"

    def __str__(self) -> str:
        """String representation with redacted API key for safe logging."""
        api_key_display = "[REDACTED]" if self.api_key else None
        return (
            f"FrozenConfig(endpoint_url={self.endpoint_url!r}, "
            f"api_key={api_key_display!r}, "
            f"request_timeout_seconds={self.request_timeout_seconds!r}, "
            f"default_retry_after_seconds={self.default_retry_after_seconds!r}, "
            f"tick_interval_seconds={self.tick_interval_seconds!r}, "
            f"on_conflict={self.on_conflict!r})"
        )

    def __repr__(self) -> str:
        """Representation with redacted API key for safe debugging."""
        return self.__str__()
