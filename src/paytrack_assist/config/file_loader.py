"""File-based configuration loading with profile support.

Supports project-level configuration in ``pyproject.toml`` under
``[tool.paytrack_assist]`` and a home-level file at
``~/.config/paytrack_assist.toml`` (or ``PAYTRACK_ASSIST_CONFIG_HOME``), each
with named profiles.
"""

import os
from pathlib import Path
import tomllib
from typing import Any

TOOL_SECTION = "paytrack_assist"


class ConfigFileError(Exception):
    """Raised when configuration file loading fails."""

    def __init__(
        self, file_path: Path, message: str, cause: Exception | None = None
    ) -> None:
        """Initialize with file path, message, and optional cause."""
        self.file_path = file_path
        self.message = message
        self.cause = cause
        super().__init__(f"Config file error in {file_path}: {message}")


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open(mode="rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigFileError(path, f"Failed to parse TOML: {e}", cause=e) from e


def _select_profile(
    section: dict[str, Any], path: Path, profile: str | None
) -> dict[str, Any]:
    if profile:
        profiles = section.get("profiles", {})
        if profile not in profiles:
            available = list(profiles.keys()) if profiles else []
            raise ConfigFileError(
                path, f"Profile '{profile}' not found. Available profiles: {available}"
            )
        return dict(profiles[profile])
    config = dict(section)
    config.pop("profiles", None)
    return config


class FileConfigLoader:
    """Loads configuration from TOML files with profile support."""

    def load_project_config(
        self, project_root: Path | None = None, profile: str | None = None
    ) -> dict[str, Any]:
        """Load ``[tool.paytrack_assist]`` from the nearest pyproject.toml.

        Args:
            project_root: Directory to start searching from (default: cwd).
            profile: Optional profile under ``[tool.paytrack_assist.profiles]``.

        Returns:
            Configuration values, or an empty dict when nothing is configured.

        Raises:
            ConfigFileError: If the file cannot be parsed or the profile is
                missing.
        """
        pyproject_path = self._find_pyproject_toml(project_root)
        if not pyproject_path:
            return {}

        data = _read_toml(pyproject_path)
        section = data.get("tool", {}).get(TOOL_SECTION, {})
        if not section:
            return {}
        return _select_profile(section, pyproject_path, profile)

    def load_home_config(self, profile: str | None = None) -> dict[str, Any]:
        """Load the home-level configuration file, if present."""
        home_config_path = self._get_home_config_path()
        if not home_config_path.exists():
            return {}
        return _select_profile(_read_toml(home_config_path), home_config_path, profile)

    def list_available_profiles(
        self, project_root: Path | None = None
    ) -> dict[str, list[str]]:
        """Profile names found in the project and home files."""
        profiles: dict[str, list[str]] = {"project": [], "home": []}

        pyproject_path = self._find_pyproject_toml(project_root)
        if pyproject_path:
            try:
                data = _read_toml(pyproject_path)
            except ConfigFileError:
                data = {}
            section = data.get("tool", {}).get(TOOL_SECTION, {})
            profiles["project"] = list(section.get("profiles", {}).keys())

        home_config_path = self._get_home_config_path()
        if home_config_path.exists():
            try:
                data = _read_toml(home_config_path)
            except ConfigFileError:
                data = {}
            profiles["home"] = list(data.get("profiles", {}).keys())

        return profiles

    def _find_pyproject_toml(self, start_dir: Path | None = None) -> Path | None:
        """Search up the directory tree for pyproject.toml."""
        current = Path(start_dir or Path.cwd()).resolve()
        while current != current.parent:
            pyproject_path = current / "pyproject.toml"
            if pyproject_path.exists():
                return pyproject_path
            current = current.parent
        return None

    def _get_home_config_path(self) -> Path:
        override = os.getenv("PAYTRACK_ASSIST_CONFIG_HOME")
        if override:
            return Path(override)
        return Path.home() / ".config" / "paytrack_assist.toml"
