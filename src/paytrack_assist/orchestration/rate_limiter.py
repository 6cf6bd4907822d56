"""Server-driven cooldown after a rate-limit response.

The window itself is enforced by pure queries against an injectable clock.
A single asyncio countdown task mirrors the remaining time into an observable
``countdown`` value at tick granularity, for display, and stops at zero.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import TYPE_CHECKING

from paytrack_assist.constants import COUNTDOWN_TICK_INTERVAL
from paytrack_assist.core.types import ClassifiedError, RateLimitWindow

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class RateLimiter:
    """Tracks the active cooldown window, if any."""

    def __init__(
        self,
        *,
        clock: Callable[[], float] | None = None,
        tick_interval: float = COUNTDOWN_TICK_INTERVAL,
    ) -> None:
        """Initialize the limiter.

        Args:
            clock: Monotonic seconds source; defaults to ``time.monotonic``.
            tick_interval: Countdown granularity in seconds.
        """
        if tick_interval <= 0:
            raise ValueError("tick_interval must be > 0")
        self._clock = clock or time.monotonic
        self._tick_interval = tick_interval
        self._window: RateLimitWindow | None = None
        self._countdown = 0
        self._tick_task: asyncio.Task[None] | None = None
        self._listeners: list[Callable[[int], None]] = []

    # --- Arming ---

    def observe(self, signal: ClassifiedError) -> None:
        """Arm a window from a classified rate-limit error.

        Raises:
            ValueError: If the signal is not a rate-limit classification.
        """
        if not signal.is_rate_limit:
            raise ValueError(f"Expected a rate-limit signal, got {signal.kind}")
        if signal.retry_after_seconds is None:
            raise ValueError("Rate-limit signal carries no retry_after_seconds")
        self.arm(signal.retry_after_seconds)

    def arm(self, retry_after_seconds: float) -> None:
        """Start a window of ``retry_after_seconds``, replacing any active one."""
        if retry_after_seconds < 0:
            raise ValueError("retry_after_seconds must be >= 0")
        self._cancel_tick()
        self._window = RateLimitWindow(expires_at=self._clock() + retry_after_seconds)
        self._countdown = math.ceil(retry_after_seconds)
        logger.info("Rate limited; submissions paused for %.0fs", retry_after_seconds)
        self._notify()
        self._start_tick()

    # --- Queries ---

    @property
    def window(self) -> RateLimitWindow | None:
        """The active window, or None once it has expired."""
        window = self._window
        if window is None or not window.is_active(self._clock()):
            return None
        return window

    def is_blocked(self) -> bool:
        return self.window is not None

    def remaining_seconds(self) -> float:
        window = self._window
        if window is None:
            return 0.0
        return window.remaining(self._clock())

    @property
    def countdown(self) -> int:
        """Whole seconds left, as last published by the tick."""
        return self._countdown

    @property
    def ticking(self) -> bool:
        return self._tick_task is not None and not self._tick_task.done()

    def add_listener(self, listener: Callable[[int], None]) -> None:
        """Register a callback receiving the countdown on every tick."""
        self._listeners.append(listener)

    # --- Lifecycle ---

    def reset(self) -> None:
        """Drop any active window and stop the countdown."""
        self._cancel_tick()
        self._window = None
        self._countdown = 0

    def close(self) -> None:
        self._cancel_tick()
        self._listeners.clear()

    # --- Countdown ---

    def _start_tick(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: the window is still enforced through the clock queries.
            return
        self._tick_task = loop.create_task(self._run_countdown())

    def _cancel_tick(self) -> None:
        task, self._tick_task = self._tick_task, None
        if task is not None and not task.done():
            task.cancel()

    async def _run_countdown(self) -> None:
        while (remaining := self.remaining_seconds()) > 0:
            await asyncio.sleep(min(self._tick_interval, remaining))
            self._countdown = math.ceil(self.remaining_seconds())
            self._notify()
        self._window = None
        if self._countdown:
            self._countdown = 0
            self._notify()
        if self._tick_task is asyncio.current_task():
            self._tick_task = None

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._countdown)
            except Exception as e:
                logger.error(
                    "Countdown listener '%s' failed: %s",
                    getattr(listener, "__name__", type(listener).__name__),
                    e,
                    exc_info=True,
                )
