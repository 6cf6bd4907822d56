"""Public API for the configuration system."""

from pathlib import Path
from typing import Any

from .resolver import ConfigResolver
from .scope import get_ambient_resolved_config
from .types import ResolvedConfig

# Global resolver instance for efficient reuse
_resolver = ConfigResolver()

# ruff: noqa: T201


def resolve_config(
    programmatic: dict[str, Any] | None = None,
    *,
    profile: str | None = None,
    use_env_file: str | Path | None = None,
    project_root: Path | None = None,
) -> ResolvedConfig:
    """Resolve configuration from all sources with proper precedence.

    Programmatic > Environment > Project file > Home file > Defaults. Inside a
    ``config_scope`` the scoped configuration is the base and only the
    programmatic overrides are applied on top.

    Args:
        programmatic: Field overrides (highest precedence). Unknown keys are
            ignored.
        profile: Profile name to load from configuration files. Defaults to
            ``PAYTRACK_ASSIST_PROFILE``.
        use_env_file: Optional .env file to load before reading the
            environment.
        project_root: Directory to search for pyproject.toml.

    Returns:
        ResolvedConfig with merged values and source tracking for audit.

    Raises:
        ValueError: If validation fails or the environment is invalid.
        ConfigFileError: If the project configuration file is malformed.

    Example:
        config = resolve_config({"endpoint_url": "https://x.supabase.co/functions/v1/ai-support"})
    """
    ambient_config = get_ambient_resolved_config()
    if ambient_config is not None:
        if programmatic:
            return ambient_config.with_overrides(**programmatic)
        return ambient_config

    return _resolver.resolve(
        programmatic=programmatic,
        profile=profile,
        use_env_file=use_env_file,
        project_root=project_root,
    )


def list_available_profiles(project_root: Path | None = None) -> dict[str, list[str]]:
    """Profile names available in the project and home files."""
    return _resolver.list_available_profiles(project_root)


def validate_profile(profile: str, project_root: Path | None = None) -> dict[str, bool]:
    """Check that a profile exists somewhere.

    Raises:
        ValueError: If the profile doesn't exist in any configuration file.
    """
    exists_in_project, exists_in_home = _resolver.validate_profile_exists(
        profile, project_root
    )
    if not exists_in_project and not exists_in_home:
        available = list_available_profiles(project_root)
        all_profiles = available["project"] + available["home"]
        raise ValueError(
            f"Profile '{profile}' not found. Available profiles: {all_profiles}"
        )
    return {"project": exists_in_project, "home": exists_in_home}


def print_config_audit(config: ResolvedConfig) -> None:
    """Print a human-readable audit of configuration sources."""
    print(config.audit())


def check_environment() -> dict[str, str]:
    """Current PAYTRACK_ASSIST_* environment variables, redacted."""
    return _resolver.env_loader.get_env_summary()
