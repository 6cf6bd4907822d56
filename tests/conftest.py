"""
Global test configuration and shared fixtures.
"""

import asyncio
from collections import deque
import logging
import os
from typing import Any

import pytest
import pytest_asyncio

from paytrack_assist.config import FrozenConfig
from paytrack_assist.core.types import AssistRequest
from paytrack_assist.orchestration.orchestrator import AssistOrchestrator


# --- Environment Isolation (Autouse) ---
@pytest.fixture(autouse=True)
def isolate_assist_env(request, monkeypatch):
    """Ensure a clean PAYTRACK_ASSIST_* environment for each test.

    Escape hatch: @pytest.mark.allow_env_pollution keeps the current env.
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return

    for key in list(os.environ.keys()):
        if key.startswith("PAYTRACK_ASSIST_"):
            monkeypatch.delenv(key, raising=False)
    # Avoid DEBUG toggles switching telemetry on
    monkeypatch.delenv("DEBUG", raising=False)


@pytest.fixture(autouse=True)
def neutral_home_config(request, monkeypatch, tmp_path):
    """Point the home-config path at an isolated temp file.

    Escape hatch: @pytest.mark.allow_real_home_config uses the real path.
    """
    if request.node.get_closest_marker("allow_real_home_config"):
        return

    fake_home_dir = tmp_path / "home_config_isolated"
    fake_home_dir.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv(
        "PAYTRACK_ASSIST_CONFIG_HOME", str(fake_home_dir / "paytrack_assist.toml")
    )


@pytest.fixture(autouse=True)
def neutral_project_dir(monkeypatch, tmp_path):
    """Run each test from an empty directory so no pyproject.toml is discovered."""
    project_dir = tmp_path / "cwd"
    project_dir.mkdir(exist_ok=True)
    monkeypatch.chdir(project_dir)


# --- Logging Fixtures ---
@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Sets the log level for noisy external libraries to WARNING."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# --- Test Environment Markers ---
def pytest_configure(config):
    """Configure custom markers for test organization."""
    markers = [
        "unit: Fast, isolated unit tests",
        "integration: Component integration tests with mocked transports",
        "contract: Wire-format and public API contract tests",
        "allow_env_pollution: Keep PAYTRACK_ASSIST_* environment variables",
        "allow_real_home_config: Read the real home configuration file",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)


# --- Core Fixtures ---


def ok_body(**analysis: Any) -> dict[str, Any]:
    """A successful assistant response body."""
    payload = {
        "diagnosis": "WhatsApp desconectado",
        "explanation": "La sesión de WhatsApp expiró.",
        "recommendation": "Vuelve a escanear el código QR.",
        "resolved": True,
        "confidence": 0.9,
        "category": "whatsapp",
    }
    payload.update(analysis)
    return {"success": True, "analysis": payload}


class ManualClock:
    """Monotonic clock advanced explicitly by tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedTransport:
    """Transport double that replays queued outcomes in order.

    Each queued outcome is a response body, an exception to raise, or an
    ``asyncio.Future`` the call waits on (its result or exception is then
    used). With nothing queued, a successful body is returned.
    """

    def __init__(self) -> None:
        self.requests: list[AssistRequest] = []
        self.cancelled: list[AssistRequest] = []
        self.active = 0
        self.max_active = 0
        self.closed = False
        self._script: deque[Any] = deque()

    def queue(self, *outcomes: Any) -> None:
        self._script.extend(outcomes)

    def pending(self) -> "asyncio.Future[Any]":
        """Queue and return a future that holds the next call open."""
        future = asyncio.get_running_loop().create_future()
        self._script.append(future)
        return future

    async def send(self, request: AssistRequest) -> dict[str, Any]:
        self.requests.append(request)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            outcome = self._script.popleft() if self._script else ok_body()
            if isinstance(outcome, asyncio.Future):
                outcome = await asyncio.shield(outcome)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        except asyncio.CancelledError:
            self.cancelled.append(request)
            raise
        finally:
            self.active -= 1

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def manual_clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def assist_config() -> FrozenConfig:
    return FrozenConfig(
        endpoint_url="https://example.supabase.co/functions/v1/ai-support",
        api_key="test-anon-key",
    )


@pytest.fixture
def make_body():
    """Factory for successful assistant response bodies."""
    return ok_body


@pytest_asyncio.fixture
async def orchestrator(transport, assist_config, manual_clock):
    orch = AssistOrchestrator(transport, assist_config, clock=manual_clock)
    yield orch
    orch.close()
