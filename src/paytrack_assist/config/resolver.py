"""Configuration resolution with precedence handling.

Precedence: Programmatic > Environment > Project file > Home file > Defaults
"""

import os
from pathlib import Path
from typing import Any

from .audit import SourceTracker
from .env_loader import EnvironmentConfigLoader
from .file_loader import ConfigFileError, FileConfigLoader
from .schema import AssistSettings
from .types import ResolvedConfig


class ConfigResolver:
    """Resolves configuration from multiple sources with proper precedence."""

    def __init__(self) -> None:
        """Initialize the configuration resolver."""
        self.file_loader = FileConfigLoader()
        self.env_loader = EnvironmentConfigLoader()

    def resolve(
        self,
        programmatic: dict[str, Any] | None = None,
        *,
        profile: str | None = None,
        use_env_file: str | Path | None = None,
        project_root: Path | None = None,
    ) -> ResolvedConfig:
        """Resolve configuration from all sources with proper precedence.

        Args:
            programmatic: Programmatic overrides (highest precedence)
            profile: Profile name to load from files
            use_env_file: Optional .env file to load
            project_root: Directory to search for pyproject.toml

        Returns:
            ResolvedConfig with merged values and source tracking.

        Raises:
            ValueError: If validation fails.
            ConfigFileError: If the project configuration file is malformed.
        """
        source_tracker = SourceTracker()
        merged_config: dict[str, Any] = {}

        if profile is None:
            profile = os.getenv("PAYTRACK_ASSIST_PROFILE")

        # Step 1: schema defaults
        defaults = AssistSettings.model_construct().to_dict()
        for field, value in defaults.items():
            merged_config[field] = value
            source_tracker.set_origin(field, "default")

        # Step 2: home file (errors are non-fatal)
        try:
            home_config = self.file_loader.load_home_config(profile=profile)
        except ConfigFileError:
            home_config = {}
        self._apply(merged_config, source_tracker, home_config, "file")

        # Step 3: project file
        try:
            project_config = self.file_loader.load_project_config(
                project_root=project_root, profile=profile
            )
        except ConfigFileError:
            if profile is None:
                raise
            # A profile missing from the project file may live in the home file
            project_config = {}
        self._apply(merged_config, source_tracker, project_config, "file")

        # Step 4: environment
        try:
            env_config = self.env_loader.load_env_config(env_file=use_env_file)
        except (ValueError, FileNotFoundError) as e:
            raise ValueError(f"Environment configuration error: {e}") from e
        self._apply(merged_config, source_tracker, env_config, "env")

        # Step 5: programmatic overrides
        self._apply(merged_config, source_tracker, programmatic or {}, "programmatic")

        # Step 6: validate the merged result
        try:
            final_config = AssistSettings(**merged_config).to_dict()
        except Exception as e:
            raise ValueError(f"Configuration validation failed: {e}") from e

        return ResolvedConfig(**final_config, origin=source_tracker.get_source_map())

    @staticmethod
    def _apply(
        merged: dict[str, Any],
        tracker: SourceTracker,
        values: dict[str, Any],
        origin: Any,
    ) -> None:
        for field, value in values.items():
            if field in merged:  # Only override known fields
                merged[field] = value
                tracker.set_origin(field, origin)

    def validate_profile_exists(
        self, profile: str, project_root: Path | None = None
    ) -> tuple[bool, bool]:
        """Return whether the profile exists in (project, home) files."""
        available = self.file_loader.list_available_profiles(project_root)
        return profile in available["project"], profile in available["home"]

    def list_available_profiles(
        self, project_root: Path | None = None
    ) -> dict[str, list[str]]:
        return self.file_loader.list_available_profiles(project_root)
