"""Cancellation tokens with identity comparison.

Exactly one token is current at any time. Starting a new attempt cancels the
previous token, which in turn cancels whatever asyncio task is bound to it.
Cancellation is fire-and-forget: nothing here waits for the cancelled work to
stop. Stale completions are detected later through ``is_current``.

A token may also carry a deadline timer. When the timer fires the token
cancels its task with reason ``"deadline"``, which lets the orchestrator tell
a timeout apart from a supersession.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import threading
from typing import Literal

from paytrack_assist.core.exceptions import OrchestratorClosedError

logger = logging.getLogger(__name__)

CancelReason = Literal["superseded", "deadline", "teardown"]

_token_ids = itertools.count(1)


class CancellationToken:
    """Opaque handle for one attempt. Compared by identity only."""

    __slots__ = ("_deadline_handle", "_reason", "_task", "id")

    def __init__(self) -> None:  # noqa: D107
        self.id = next(_token_ids)
        self._reason: CancelReason | None = None
        self._task: asyncio.Future[object] | None = None
        self._deadline_handle: asyncio.TimerHandle | None = None

    def __repr__(self) -> str:  # noqa: D105
        return f"CancellationToken(id={self.id}, reason={self._reason!r})"

    @property
    def cancelled(self) -> bool:
        return self._reason is not None

    @property
    def reason(self) -> CancelReason | None:
        return self._reason

    @property
    def deadline_exceeded(self) -> bool:
        return self._reason == "deadline"

    def bind(self, task: asyncio.Future[object]) -> None:
        """Attach the task that performs this attempt's I/O.

        A token that was cancelled before binding cancels the task at once.
        """
        self._task = task
        if self._reason is not None:
            task.cancel()

    def arm_deadline(
        self, timeout_seconds: float, loop: asyncio.AbstractEventLoop | None = None
    ) -> None:
        """Schedule expiry of this token after ``timeout_seconds``."""
        loop = loop or asyncio.get_running_loop()
        self._clear_deadline()
        self._deadline_handle = loop.call_later(timeout_seconds, self._expire)

    def disarm(self) -> None:
        """Stop the deadline timer once the attempt has settled."""
        self._clear_deadline()
        self._task = None

    def cancel(self, reason: CancelReason = "superseded") -> None:
        """Cancel the attempt. The first reason recorded wins."""
        if self._reason is None:
            self._reason = reason
        self._clear_deadline()
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def _expire(self) -> None:
        self._deadline_handle = None
        if self._reason is None:
            logger.debug("Token %d hit its deadline", self.id)
            self.cancel("deadline")

    def _clear_deadline(self) -> None:
        if self._deadline_handle is not None:
            self._deadline_handle.cancel()
            self._deadline_handle = None


class CancellationController:
    """Owns the single live cancellation token."""

    def __init__(self) -> None:  # noqa: D107
        self._lock = threading.Lock()
        self._current: CancellationToken | None = None
        self._closed = False

    @property
    def current(self) -> CancellationToken | None:
        return self._current

    @property
    def closed(self) -> bool:
        return self._closed

    def begin(self) -> CancellationToken:
        """Issue a new current token, cancelling and discarding the previous one.

        Raises:
            OrchestratorClosedError: After ``cancel_all`` has run.
        """
        with self._lock:
            if self._closed:
                raise OrchestratorClosedError("Cancellation controller is torn down")
            previous = self._current
            token = CancellationToken()
            self._current = token
        if previous is not None:
            previous.cancel("superseded")
        return token

    def is_current(self, token: CancellationToken) -> bool:
        """Identity check applied before any response mutates state."""
        with self._lock:
            return not self._closed and self._current is token

    def cancel_all(self) -> None:
        """Teardown: cancel the live token and refuse any new ones.

        Any response arriving afterwards fails ``is_current`` and is discarded.
        """
        with self._lock:
            self._closed = True
            previous, self._current = self._current, None
        if previous is not None:
            previous.cancel("teardown")
