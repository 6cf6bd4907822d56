"""Configuration management for the support assistant client.

Resolve-once, freeze-then-flow:
- ResolvedConfig: post-resolution configuration with audit metadata
- FrozenConfig: immutable configuration handed to components
- SourceMap: where each configuration value came from
"""

from .api import (
    check_environment,
    list_available_profiles,
    print_config_audit,
    resolve_config,
    validate_profile,
)
from .audit import SourceTracker, generate_redacted_audit, generate_telemetry_summary
from .file_loader import ConfigFileError, FileConfigLoader
from .resolver import ConfigResolver
from .schema import AssistSettings, ConflictPolicy
from .scope import config_override, config_scope, get_ambient_resolved_config
from .types import ConfigOrigin, FrozenConfig, ResolvedConfig, SourceMap

__all__ = [  # noqa: RUF022
    # Main API
    "resolve_config",
    "list_available_profiles",
    "validate_profile",
    "print_config_audit",
    "check_environment",
    # Scoping
    "config_scope",
    "config_override",
    "get_ambient_resolved_config",
    # Core types
    "ResolvedConfig",
    "FrozenConfig",
    "SourceMap",
    "ConfigOrigin",
    "ConflictPolicy",
    # Advanced usage
    "AssistSettings",
    "ConfigResolver",
    "FileConfigLoader",
    "ConfigFileError",
    "SourceTracker",
    "generate_redacted_audit",
    "generate_telemetry_summary",
]
