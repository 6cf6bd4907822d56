"""Mutual exclusion for the single in-flight assistant call."""

from __future__ import annotations

import threading


class RequestGate:
    """Admits at most one in-flight orchestrated call.

    ``try_acquire`` never blocks. The held flag is guarded by a real lock so
    the gate stays correct if callers run on preemptive threads rather than a
    single event loop.
    """

    __slots__ = ("_held", "_lock")

    def __init__(self) -> None:  # noqa: D107
        self._lock = threading.Lock()
        self._held = False

    def try_acquire(self) -> bool:
        """Take the gate if free. Returns False when it is already held."""
        with self._lock:
            if self._held:
                return False
            self._held = True
            return True

    def release(self) -> None:
        """Free the gate. Safe to call when not held."""
        with self._lock:
            self._held = False

    @property
    def held(self) -> bool:
        with self._lock:
            return self._held
