"""Request fingerprints and per-attempt idempotency keys.

Fingerprints only drive duplicate suppression; a collision merely causes a
spurious "duplicate" drop, so an 8-byte digest is enough.
"""

from __future__ import annotations

import hashlib
import json
import secrets
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from paytrack_assist.core.types import PaymentContext, Query

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    digits = []
    while n:
        n, rem = divmod(n, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def normalize_text(text: str) -> str:
    """Trim and lowercase the question text."""
    return text.strip().lower()


def serialize_context(context: PaymentContext | None) -> str:
    """Canonical JSON for the context: sorted keys, compact, unset fields dropped."""
    if context is None:
        return ""
    return json.dumps(
        context.as_dict(), sort_keys=True, separators=(",", ":"), ensure_ascii=False
    )


class RequestKeyer:
    """Computes deduplication fingerprints and fresh idempotency keys."""

    def __init__(
        self,
        *,
        clock_ns: Callable[[], int] = time.time_ns,
        random_hex: Callable[[int], str] = secrets.token_hex,
    ) -> None:
        """Initialize with injectable time and randomness sources (for tests)."""
        self._clock_ns = clock_ns
        self._random_hex = random_hex

    def fingerprint(self, text: str, context: PaymentContext | None = None) -> str:
        """Deterministic 16-hex-char digest over normalized text and context."""
        material = f"{normalize_text(text)}\x1f{serialize_context(context)}"
        return hashlib.blake2b(material.encode("utf-8"), digest_size=8).hexdigest()

    def fingerprint_query(self, query: Query) -> str:
        return self.fingerprint(query.text, query.context)

    def new_idempotency_key(self) -> str:
        """Return ``<epoch-ms base36>-<128 random bits hex>``; never reused."""
        millis = self._clock_ns() // 1_000_000
        return f"{_base36(millis)}-{self._random_hex(16)}"
