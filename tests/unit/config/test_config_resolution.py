"""Unit tests for configuration resolution.

These tests verify the core behaviors of the configuration module:
- Loading settings from environment variables, files and profiles.
- Honoring precedence: programmatic > env > project > home > defaults.
- Ensuring ``config_scope`` and ``config_override`` work as expected.
"""

import pytest

from paytrack_assist.config import (
    ConfigFileError,
    FrozenConfig,
    config_override,
    config_scope,
    list_available_profiles,
    resolve_config,
    validate_profile,
)

PROJECT_TOML = """
[tool.paytrack_assist]
endpoint_url = "https://project.example/functions/v1/ai-support"
request_timeout_seconds = 20

[tool.paytrack_assist.profiles.staging]
endpoint_url = "https://staging.example/functions/v1/ai-support"
on_conflict = "drop"
"""


@pytest.fixture
def project_dir(tmp_path):
    root = tmp_path / "project"
    root.mkdir()
    (root / "pyproject.toml").write_text(PROJECT_TOML)
    return root


@pytest.fixture
def home_file(monkeypatch, tmp_path):
    path = tmp_path / "home.toml"
    monkeypatch.setenv("PAYTRACK_ASSIST_CONFIG_HOME", str(path))
    return path


class TestDefaults:
    @pytest.mark.unit
    def test_defaults_when_nothing_is_configured(self):
        resolved = resolve_config()

        assert resolved.endpoint_url is None
        assert resolved.api_key is None
        assert resolved.request_timeout_seconds == 30
        assert resolved.default_retry_after_seconds == 30
        assert resolved.tick_interval_seconds == 1.0
        assert resolved.on_conflict == "supersede"
        assert set(resolved.origin.values()) == {"default"}

    @pytest.mark.unit
    def test_to_frozen_carries_every_field(self):
        frozen = resolve_config({"api_key": "k"}).to_frozen()
        assert isinstance(frozen, FrozenConfig)
        assert frozen.api_key == "k"
        assert frozen.on_conflict == "supersede"


class TestPrecedence:
    @pytest.mark.unit
    def test_environment_is_read(self, monkeypatch):
        monkeypatch.setenv("PAYTRACK_ASSIST_API_KEY", "env-key")
        monkeypatch.setenv("PAYTRACK_ASSIST_REQUEST_TIMEOUT_SECONDS", "12.5")

        resolved = resolve_config()

        assert resolved.api_key == "env-key"
        assert resolved.request_timeout_seconds == 12.5
        assert resolved.origin["api_key"] == "env"

    @pytest.mark.unit
    def test_project_file_then_env_then_programmatic(self, monkeypatch, project_dir):
        # Arrange: file sets endpoint + timeout, env overrides timeout
        monkeypatch.setenv("PAYTRACK_ASSIST_REQUEST_TIMEOUT_SECONDS", "10")

        # Act
        resolved = resolve_config(
            {"on_conflict": "drop"}, project_root=project_dir
        )

        # Assert
        assert resolved.endpoint_url == "https://project.example/functions/v1/ai-support"
        assert resolved.origin["endpoint_url"] == "file"
        assert resolved.request_timeout_seconds == 10
        assert resolved.origin["request_timeout_seconds"] == "env"
        assert resolved.on_conflict == "drop"
        assert resolved.origin["on_conflict"] == "programmatic"

    @pytest.mark.unit
    def test_project_file_overrides_home_file(self, project_dir, home_file):
        home_file.write_text(
            'endpoint_url = "https://home.example/x"\napi_key = "home-key"\n'
        )

        resolved = resolve_config(project_root=project_dir)

        assert resolved.endpoint_url == "https://project.example/functions/v1/ai-support"
        assert resolved.api_key == "home-key"

    @pytest.mark.unit
    def test_unknown_programmatic_keys_are_ignored(self):
        resolved = resolve_config({"model": "x"})
        assert "model" not in resolved.origin


class TestProfiles:
    @pytest.mark.unit
    def test_profile_from_argument(self, project_dir):
        resolved = resolve_config(profile="staging", project_root=project_dir)
        assert resolved.endpoint_url == "https://staging.example/functions/v1/ai-support"
        assert resolved.on_conflict == "drop"

    @pytest.mark.unit
    def test_profile_from_environment(self, monkeypatch, project_dir):
        monkeypatch.setenv("PAYTRACK_ASSIST_PROFILE", "staging")
        resolved = resolve_config(project_root=project_dir)
        assert resolved.on_conflict == "drop"

    @pytest.mark.unit
    def test_profile_listing_and_validation(self, project_dir):
        assert list_available_profiles(project_dir) == {
            "project": ["staging"],
            "home": [],
        }
        assert validate_profile("staging", project_dir) == {
            "project": True,
            "home": False,
        }
        with pytest.raises(ValueError, match="not found"):
            validate_profile("prod", project_dir)

    @pytest.mark.unit
    def test_malformed_project_file_raises(self, tmp_path):
        root = tmp_path / "broken"
        root.mkdir()
        (root / "pyproject.toml").write_text("[tool.paytrack_assist\n")
        with pytest.raises(ConfigFileError):
            resolve_config(project_root=root)


class TestValidation:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "overrides",
        [
            {"request_timeout_seconds": 0},
            {"default_retry_after_seconds": 0.5},
            {"on_conflict": "queue"},
            {"endpoint_url": "ftp://example"},
        ],
    )
    def test_invalid_values_are_rejected(self, overrides):
        with pytest.raises(ValueError, match="validation failed"):
            resolve_config(overrides)

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "url", ["https://abc.supabase.co", "https://abc.supabase.co/"]
    )
    def test_bare_project_url_gets_function_path(self, url):
        resolved = resolve_config({"endpoint_url": url})
        assert resolved.endpoint_url == "https://abc.supabase.co/functions/v1/ai-support"

    @pytest.mark.unit
    def test_explicit_endpoint_path_is_kept(self):
        resolved = resolve_config({"endpoint_url": "https://abc.example/custom"})
        assert resolved.endpoint_url == "https://abc.example/custom"

    @pytest.mark.unit
    def test_invalid_environment_value_is_reported(self, monkeypatch):
        monkeypatch.setenv("PAYTRACK_ASSIST_TICK_INTERVAL_SECONDS", "fast")
        with pytest.raises(ValueError, match="PAYTRACK_ASSIST_TICK_INTERVAL_SECONDS"):
            resolve_config()

    @pytest.mark.unit
    def test_env_file_is_loaded_without_overriding_the_environment(
        self, monkeypatch, tmp_path
    ):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "# local settings\n"
            "PAYTRACK_ASSIST_API_KEY='file-key'\n"
            "PAYTRACK_ASSIST_ON_CONFLICT=drop\n"
        )
        monkeypatch.setenv("PAYTRACK_ASSIST_ON_CONFLICT", "supersede")
        # Register the key with monkeypatch so the value the .env file adds is undone
        monkeypatch.setenv("PAYTRACK_ASSIST_API_KEY", "placeholder")
        monkeypatch.delenv("PAYTRACK_ASSIST_API_KEY")

        resolved = resolve_config(use_env_file=env_file)

        assert resolved.api_key == "file-key"
        assert resolved.on_conflict == "supersede"


class TestScoping:
    @pytest.mark.unit
    def test_config_scope_overrides_resolution(self):
        base = resolve_config()
        with config_scope(base.with_overrides(api_key="scoped")):
            assert resolve_config().api_key == "scoped"
            assert resolve_config({"on_conflict": "drop"}).on_conflict == "drop"
        assert resolve_config().api_key is None

    @pytest.mark.unit
    def test_config_override_shortcut(self):
        with config_override(request_timeout_seconds=5):
            resolved = resolve_config()
        assert resolved.request_timeout_seconds == 5
        assert resolved.origin["request_timeout_seconds"] == "programmatic"
