"""Temporary configuration for code that resolves its own settings.

``create_orchestrator()`` without arguments calls ``resolve_config()``. Wrapping
that call in ``config_scope`` or ``config_override`` decides which endpoint,
timeouts and conflict policy the new orchestrator gets. An orchestrator built
earlier keeps its ``FrozenConfig`` and is unaffected.
"""

from collections.abc import Generator
from contextlib import contextmanager
import contextvars
from typing import Any

from .types import ResolvedConfig

_scoped_config: contextvars.ContextVar[ResolvedConfig | None] = contextvars.ContextVar(
    "paytrack_assist_scoped_config", default=None
)


def get_ambient_resolved_config() -> ResolvedConfig | None:
    return _scoped_config.get()


@contextmanager
def config_scope(config: ResolvedConfig) -> Generator[None]:
    """Make ``resolve_config()`` start from ``config`` inside the block.

    Example:
        staging = resolve_config(profile="staging")
        with config_scope(staging.with_overrides(on_conflict="drop")):
            orchestrator = create_orchestrator()
    """
    token = _scoped_config.set(config)
    try:
        yield
    finally:
        _scoped_config.reset(token)


@contextmanager
def config_override(**overrides: Any) -> Generator[None]:
    """Override individual fields of the configuration in effect.

    Example:
        with config_override(request_timeout_seconds=10, on_conflict="drop"):
            orchestrator = create_orchestrator()
    """
    current = _scoped_config.get()
    if current is None:
        from .api import resolve_config  # api imports this module

        current = resolve_config()

    with config_scope(current.with_overrides(**overrides)):
        yield
