"""Outbound transport for the support assistant endpoint.

The transport is a thin seam: it performs one POST and reports either the
decoded JSON body (2xx) or a ``TransportError`` carrying status and body.
Connection-level failures propagate as the underlying ``httpx`` exceptions so
the classifier can tell them apart. Deadlines and cancellation are owned by
the orchestrator; this module never retries.
"""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import httpx

from paytrack_assist.constants import REQUEST_TIMEOUT
from paytrack_assist.core.exceptions import ConfigurationError, TransportError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from paytrack_assist.config import FrozenConfig
    from paytrack_assist.core.types import AssistRequest

logger = logging.getLogger(__name__)

type SessionTokenProvider = Callable[[], str | None | Awaitable[str | None]]


@runtime_checkable
class AssistantTransport(Protocol):
    """Anything that can deliver one assistant request."""

    async def send(self, request: AssistRequest) -> dict[str, Any]:
        """Deliver the request and return the decoded 2xx JSON body.

        Raises:
            TransportError: On a non-2xx status or an undecodable body.
        """
        ...


async def _resolve_token(provider: SessionTokenProvider | None) -> str | None:
    if provider is None:
        return None
    token = provider()
    if inspect.isawaitable(token):
        token = await token
    return token or None


def _retry_after_header(response: httpx.Response) -> float | None:
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        # HTTP-date form is not used by the assistant endpoint
        return None


class HttpxAssistantTransport:
    """POSTs assistant requests with ``httpx.AsyncClient``.

    Headers always include the project API key; a bearer token is added only
    when the session provider returns one, since the endpoint accepts
    anonymous calls.
    """

    def __init__(
        self,
        endpoint_url: str,
        api_key: str,
        *,
        session_tokens: SessionTokenProvider | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        """Initialize the transport.

        Args:
            endpoint_url: Full URL of the assistant function.
            api_key: Project API key sent as the ``apikey`` header.
            session_tokens: Optional callable (sync or async) returning the
                current bearer token, or None for anonymous calls.
            client: Optional pre-built client. When omitted the transport
                creates and owns one.
            timeout: Socket-level timeout; the per-attempt deadline is
                enforced separately by the orchestrator.
        """
        if not endpoint_url:
            raise ConfigurationError("endpoint_url is required")
        if not api_key:
            raise ConfigurationError("api_key is required")
        self.endpoint_url = endpoint_url
        self._api_key = api_key
        self._session_tokens = session_tokens
        self._owns_client = client is None
        self._client = client or self._create_http_client(timeout)

    @classmethod
    def from_config(
        cls,
        config: FrozenConfig,
        *,
        session_tokens: SessionTokenProvider | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> HttpxAssistantTransport:
        """Build a transport from a frozen configuration."""
        if not config.endpoint_url or not config.api_key:
            raise ConfigurationError(
                "endpoint_url and api_key must be configured. Set "
                "PAYTRACK_ASSIST_ENDPOINT_URL and PAYTRACK_ASSIST_API_KEY, "
                "provide them in a config file, or pass them programmatically."
            )
        return cls(
            config.endpoint_url,
            config.api_key,
            session_tokens=session_tokens,
            client=client,
            timeout=config.request_timeout_seconds,
        )

    def _create_http_client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout)

    async def _build_headers(self, request: AssistRequest) -> dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Content-Type": "application/json",
            "Idempotency-Key": request.idempotency_key,
        }
        bearer = await _resolve_token(self._session_tokens)
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"
        return headers

    async def send(self, request: AssistRequest) -> dict[str, Any]:
        """POST the request and return the decoded JSON body."""
        headers = await self._build_headers(request)
        logger.debug(
            "POST %s (idempotency_key=%s, authenticated=%s)",
            self.endpoint_url,
            request.idempotency_key,
            "Authorization" in headers,
        )
        response = await self._client.post(
            self.endpoint_url, json=request.to_json(), headers=headers
        )

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not response.is_success:
            raise TransportError(
                f"Assistant endpoint returned HTTP {response.status_code}",
                status_code=response.status_code,
                payload=payload if isinstance(payload, dict) else None,
                retry_after=_retry_after_header(response),
            )
        if not isinstance(payload, dict):
            raise TransportError(
                "Assistant endpoint returned a non-object body",
                status_code=response.status_code,
            )
        return payload

    async def aclose(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()
