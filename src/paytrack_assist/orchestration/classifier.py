"""Failure classification into a closed taxonomy.

Rules are evaluated in order and the first match wins:

1. HTTP 429, a ``rate_limit`` error body, or a rate-limit marker in the
   message -> ``RATE_LIMIT`` (carries ``retry_after_seconds``)
2. Client-side deadline abort -> ``TIMEOUT``
3. Low-level transport failure (refused, reset, DNS) -> ``NETWORK``
4. HTTP 5xx or a "server" marker -> ``SERVER``
5. Anything else -> ``UNKNOWN``

Every kind maps to a fixed, user-safe ``AnalysisResult``. Upstream messages
and tracebacks are logged at debug level and never placed in a result.
"""

from __future__ import annotations

import logging
import socket
from types import MappingProxyType
from typing import Any

import httpx

from paytrack_assist.constants import (
    DEFAULT_RETRY_AFTER,
    RATE_LIMIT_MARKERS,
    SERVER_ERROR_MARKERS,
)
from paytrack_assist.core.exceptions import DeadlineExceededError, TransportError
from paytrack_assist.core.types import AnalysisResult, ClassifiedError, ErrorKind

logger = logging.getLogger(__name__)

_ESCALATE = (
    "Por favor intenta nuevamente en unos segundos o crea un ticket de soporte "
    "para asistencia inmediata."
)

RESULT_TEMPLATES: MappingProxyType[ErrorKind, AnalysisResult] = MappingProxyType(
    {
        ErrorKind.RATE_LIMIT: AnalysisResult(
            diagnosis="Demasiadas consultas en poco tiempo",
            explanation=(
                "Alcanzaste el límite temporal de consultas al asistente. "
                "Podrás volver a preguntar cuando termine la cuenta regresiva."
            ),
            recommendation=(
                "Espera unos segundos antes de enviar otra consulta o crea un "
                "ticket de soporte si el problema es urgente."
            ),
            resolved=False,
            confidence=0.0,
        ),
        ErrorKind.TIMEOUT: AnalysisResult(
            diagnosis="El asistente tardó demasiado en responder",
            explanation=(
                "Tu consulta no obtuvo respuesta a tiempo. Esto puede deberse a "
                "una conexión lenta o a una alta demanda temporal."
            ),
            recommendation=_ESCALATE,
            resolved=False,
            confidence=0.0,
        ),
        ErrorKind.NETWORK: AnalysisResult(
            diagnosis="No se pudo conectar con el asistente IA",
            explanation=(
                "Hubo un problema de conexión al enviar tu consulta. Verifica tu "
                "conexión a internet."
            ),
            recommendation=_ESCALATE,
            resolved=False,
            confidence=0.0,
        ),
        ErrorKind.SERVER: AnalysisResult(
            diagnosis="El asistente no está disponible en este momento",
            explanation=(
                "El servicio de soporte tuvo un error temporal al procesar tu "
                "consulta."
            ),
            recommendation=_ESCALATE,
            resolved=False,
            confidence=0.0,
        ),
        ErrorKind.UNKNOWN: AnalysisResult(
            diagnosis="No se pudo procesar tu consulta",
            explanation=(
                "Hubo un problema al procesar tu consulta. Esto puede deberse a "
                "una conexión lenta o un error temporal."
            ),
            recommendation=_ESCALATE,
            resolved=False,
            confidence=0.0,
        ),
    }
)

# RemoteProtocolError is how httpx reports a peer dropping the connection
_NETWORK_ERRORS = (
    httpx.NetworkError,
    httpx.RemoteProtocolError,
    ConnectionError,
    socket.gaierror,
)


def _message_of(error: BaseException) -> str:
    parts = [str(error)]
    if isinstance(error, TransportError):
        for key in ("error", "message"):
            value = error.payload.get(key)
            if isinstance(value, str):
                parts.append(value)
    return " ".join(parts).lower()


def _coerce_seconds(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value) if value >= 0 else None
    if isinstance(value, str):
        try:
            seconds = float(value.strip())
        except ValueError:
            return None
        return seconds if seconds >= 0 else None
    return None


class ErrorClassifier:
    """Maps raw transport and response failures to ``ClassifiedError``."""

    def __init__(self, *, default_retry_after: float = DEFAULT_RETRY_AFTER) -> None:
        """Initialize with the cooldown used when the server gives none."""
        self.default_retry_after = default_retry_after

    def classify(self, error: BaseException) -> ClassifiedError:
        """Classify a failure. Total: every input yields exactly one kind."""
        kind = self._kind_of(error)
        logger.debug(
            "Classified %s as %s: %s", type(error).__name__, kind.value, error
        )
        retry_after = self._retry_after(error) if kind is ErrorKind.RATE_LIMIT else None
        return ClassifiedError(
            kind=kind, result=RESULT_TEMPLATES[kind], retry_after_seconds=retry_after
        )

    def _kind_of(self, error: BaseException) -> ErrorKind:
        message = _message_of(error)
        status = error.status_code if isinstance(error, TransportError) else None

        if isinstance(error, TransportError) and (
            status == 429 or error.payload.get("error") == "rate_limit"
        ):
            return ErrorKind.RATE_LIMIT
        if any(marker in message for marker in RATE_LIMIT_MARKERS):
            return ErrorKind.RATE_LIMIT

        if isinstance(error, DeadlineExceededError | httpx.TimeoutException):
            return ErrorKind.TIMEOUT

        if isinstance(error, _NETWORK_ERRORS):
            return ErrorKind.NETWORK

        if status is not None and 500 <= status <= 599:
            return ErrorKind.SERVER
        if any(marker in message for marker in SERVER_ERROR_MARKERS):
            return ErrorKind.SERVER

        return ErrorKind.UNKNOWN

    def _retry_after(self, error: BaseException) -> float:
        if isinstance(error, TransportError):
            for candidate in (error.payload.get("retryAfter"), error.retry_after):
                seconds = _coerce_seconds(candidate)
                if seconds is not None:
                    return seconds
        return self.default_retry_after
