"""Timings and counters for the assist flow.

The orchestrator opens an ``assist.submit`` scope per submission and an
``assist.call`` scope around the transport call, and counts
``assist.applied``, ``assist.dropped`` and ``assist.error``. None of it is
recorded unless ``PAYTRACK_ASSIST_TELEMETRY=1`` (or ``DEBUG=1``) is set and a
reporter is supplied; otherwise every call lands on one shared no-op object.
"""

from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
import logging
import os
import time
from types import TracebackType
from typing import Any, Protocol, Self, runtime_checkable

log = logging.getLogger(__name__)

_ENABLING_VARS = ("PAYTRACK_ASSIST_TELEMETRY", "DEBUG")

# Open scope names, outermost first. Per-task, so overlapping submissions
# on one loop do not see each other's scopes.
_open_scopes: ContextVar[tuple[str, ...]] = ContextVar(
    "paytrack_assist_open_scopes", default=()
)


def telemetry_enabled() -> bool:
    """Whether the environment opts into telemetry."""
    return any(os.getenv(name) == "1" for name in _ENABLING_VARS)


@runtime_checkable
class TelemetryReporter(Protocol):
    """Receives scope durations and metric values."""

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None: ...  # noqa: D102
    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None: ...  # noqa: D102


class _NoOpTelemetryContext:
    __slots__ = ()

    def __call__(self, name: str, **metadata: Any) -> Self:  # noqa: ARG002
        return self

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        return None

    def metric(self, name: str, value: Any, **metadata: Any) -> None:
        pass

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        pass


class _EnabledTelemetryContext:
    """Forwards scope timings and metrics to every reporter.

    A reporter that raises is logged and skipped; it never fails a submission.
    """

    __slots__ = ("reporters",)

    def __init__(self, *reporters: TelemetryReporter):
        self.reporters = reporters

    @contextmanager
    def __call__(self, name: str, **metadata: Any) -> Iterator[Self]:
        if not name or not isinstance(name, str):
            raise ValueError("Scope name must be a non-empty string")

        parents = _open_scopes.get()
        token = _open_scopes.set((*parents, name))
        started = time.perf_counter()
        try:
            yield self
        finally:
            elapsed = time.perf_counter() - started
            _open_scopes.reset(token)
            self._emit(
                "record_timing",
                ".".join((*parents, name)),
                elapsed,
                depth=len(parents),
                parent_scope=".".join(parents) or None,
                **metadata,
            )

    def metric(self, name: str, value: Any, **metadata: Any) -> None:
        """Record ``value`` under the currently open scope."""
        path = ".".join((*_open_scopes.get(), name))
        self._emit("record_metric", path, value, **metadata)

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        self.metric(name, increment, metric_type="counter", **metadata)

    def _emit(self, method: str, scope: str, value: Any, **metadata: Any) -> None:
        for reporter in self.reporters:
            try:
                getattr(reporter, method)(scope, value, **metadata)
            except Exception as e:
                log.error(
                    "Telemetry reporter '%s' failed: %s",
                    type(reporter).__name__,
                    e,
                    exc_info=True,
                )


_NO_OP = _NoOpTelemetryContext()

type TelemetryContextProtocol = _EnabledTelemetryContext | _NoOpTelemetryContext


def TelemetryContext(*reporters: TelemetryReporter) -> TelemetryContextProtocol:  # noqa: N802
    """Return a recording context, or the shared no-op when telemetry is off."""
    if reporters and telemetry_enabled():
        return _EnabledTelemetryContext(*reporters)
    return _NO_OP


class InMemoryReporter:
    """Keeps the most recent entries per scope, for development and tests."""

    def __init__(self, max_entries_per_scope: int = 1000):  # noqa: D107
        self.max_entries = max_entries_per_scope
        self.timings: dict[str, deque[tuple[float, dict[str, Any]]]] = {}
        self.metrics: dict[str, deque[tuple[Any, dict[str, Any]]]] = {}

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None:  # noqa: D102
        self._bucket(self.timings, scope).append((duration, metadata))

    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None:  # noqa: D102
        self._bucket(self.metrics, scope).append((value, metadata))

    def total(self, scope: str) -> float:
        """Sum of the numeric values recorded under a metric scope."""
        return sum(
            v for v, _ in self.metrics.get(scope, ()) if isinstance(v, int | float)
        )

    def _bucket(self, store: dict[str, deque], scope: str) -> deque:
        return store.setdefault(scope, deque(maxlen=self.max_entries))
