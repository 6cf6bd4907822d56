"""Environment variable configuration loading.

Reads PAYTRACK_ASSIST_* variables, with optional .env file support and type
coercion through the settings schema.
"""

import os
from pathlib import Path
from typing import Any

from .schema import AssistSettings

ENV_VARS = {
    "PAYTRACK_ASSIST_ENDPOINT_URL": "endpoint_url",
    "PAYTRACK_ASSIST_API_KEY": "api_key",
    "PAYTRACK_ASSIST_REQUEST_TIMEOUT_SECONDS": "request_timeout_seconds",
    "PAYTRACK_ASSIST_DEFAULT_RETRY_AFTER_SECONDS": "default_retry_after_seconds",
    "PAYTRACK_ASSIST_TICK_INTERVAL_SECONDS": "tick_interval_seconds",
    "PAYTRACK_ASSIST_ON_CONFLICT": "on_conflict",
}


class EnvironmentConfigLoader:
    """Loads configuration from environment variables."""

    def load_env_config(self, env_file: str | Path | None = None) -> dict[str, Any]:
        """Load configuration from environment variables.

        Args:
            env_file: Optional path to a .env file loaded into the environment
                first. Existing variables are never overridden.

        Returns:
            Only the fields actually set in the environment, coerced to their
            schema types.

        Raises:
            ValueError: If environment variables contain invalid values.
        """
        if env_file:
            self._load_env_file(env_file)

        env_values = {
            field_name: os.environ[env_var]
            for env_var, field_name in ENV_VARS.items()
            if env_var in os.environ
        }
        if not env_values:
            return {}

        try:
            settings = AssistSettings(**env_values)
        except Exception as e:
            env_var_list = [
                env_var for env_var, field_name in ENV_VARS.items() if field_name in env_values
            ]
            raise ValueError(
                f"Invalid environment variable values in {', '.join(env_var_list)}. "
                f"Error: {e}"
            ) from e

        return {field_name: getattr(settings, field_name) for field_name in env_values}

    def _load_env_file(self, env_file: str | Path) -> None:
        """Load KEY=VALUE lines from a .env file into ``os.environ``.

        Raises:
            FileNotFoundError: If the .env file doesn't exist.
            ValueError: If the .env file has invalid format.
        """
        env_path = Path(env_file)
        if not env_path.exists():
            raise FileNotFoundError(f"Environment file not found: {env_path}")

        try:
            with env_path.open(encoding="utf-8") as f:
                for line_num, raw_line in enumerate(f, 1):
                    line = raw_line.strip()
                    if not line or line.startswith("#"):
                        continue
                    if "=" not in line:
                        raise ValueError(
                            f"Invalid format at line {line_num}: {line}. "
                            "Expected KEY=VALUE format."
                        )

                    key, value = line.split("=", 1)
                    key = key.strip()
                    value = value.strip()
                    if (value.startswith('"') and value.endswith('"')) or (
                        value.startswith("'") and value.endswith("'")
                    ):
                        value = value[1:-1]

                    if key not in os.environ:
                        os.environ[key] = value
        except OSError as e:
            raise ValueError(f"Failed to read environment file {env_path}: {e}") from e

    def get_env_summary(self) -> dict[str, str]:
        """Current PAYTRACK_ASSIST_* variables, with the API key redacted."""
        return {
            env_var: "<redacted>" if env_var.endswith("API_KEY") else os.environ[env_var]
            for env_var in ENV_VARS
            if env_var in os.environ
        }
