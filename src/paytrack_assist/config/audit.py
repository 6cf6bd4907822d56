"""Configuration audit and source tracking.

Tracks where each configuration value originated, with secret redaction.
"""

from typing import Any

from .types import CONFIG_FIELDS, SENSITIVE_FIELDS, ConfigOrigin, SourceMap

ENV_PREFIX = "PAYTRACK_ASSIST_"


class SourceTracker:
    """Tracks the origin of configuration values during resolution."""

    def __init__(self) -> None:
        """Initialize an empty source tracker."""
        self._origins: dict[str, ConfigOrigin] = {}

    def set_origin(self, field: str, origin: ConfigOrigin) -> None:
        """Record the origin of a configuration field."""
        self._origins[field] = origin

    def set_multiple(self, fields: dict[str, Any], origin: ConfigOrigin) -> None:
        """Record the same origin for several fields at once."""
        for field in fields:
            self._origins[field] = origin

    def get_source_map(self) -> SourceMap:
        """Return a copy of the current source map."""
        return dict(self._origins)


def generate_telemetry_summary(source_map: SourceMap) -> dict[str, int]:
    """Count fields per origin, e.g. ``{"env": 2, "default": 4}``."""
    counts: dict[str, int] = {}
    for origin in source_map.values():
        counts[origin] = counts.get(origin, 0) + 1
    return counts


def generate_redacted_audit(config_dict: dict[str, Any], source_map: SourceMap) -> str:
    """Generate a redacted audit report showing field origins.

    Args:
        config_dict: The configuration values
        source_map: The source origins for each field

    Returns:
        One ``field: origin:value`` line per field; secrets are never shown.
    """
    lines = []

    for field in CONFIG_FIELDS:
        if field not in source_map:
            continue
        origin = source_map[field]
        env_var = f"{ENV_PREFIX}{field.upper()}"

        if field in SENSITIVE_FIELDS:
            if config_dict.get(field) is None:
                value_display = f"{origin}:None"
            elif origin == "env":
                value_display = f"env:{env_var}"
            else:
                value_display = f"{origin}:<redacted>"
        else:
            actual_value = config_dict.get(field, "<missing>")
            if origin == "env":
                value_display = f"env:{env_var}={actual_value}"
            else:
                value_display = f"{origin}:{actual_value}"

        lines.append(f"{field}: {value_display}")

    return "\n".join(lines)
