"""End-to-end flows through the real httpx transport with a mocked backend."""

import asyncio
import json

import httpx
import pytest

from paytrack_assist import (
    AssistOrchestrator,
    Disposition,
    ErrorKind,
    FrozenConfig,
    HttpxAssistantTransport,
    PaymentContext,
)
from paytrack_assist.orchestration.classifier import RESULT_TEMPLATES

URL = "https://example.supabase.co/functions/v1/ai-support"


def _analysis(diagnosis: str) -> dict:
    return {
        "success": True,
        "analysis": {
            "diagnosis": diagnosis,
            "explanation": "Explicación",
            "recommendation": "Recomendación",
            "resolved": True,
            "confidence": 0.75,
            "category": "payment",
        },
    }


def _orchestrator(handler, **config_overrides) -> AssistOrchestrator:
    config = FrozenConfig(endpoint_url=URL, api_key="anon", **config_overrides)
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    transport = HttpxAssistantTransport(
        URL, "anon", client=client, session_tokens=lambda: "jwt"
    )
    return AssistOrchestrator(transport, config)


@pytest.mark.integration
@pytest.mark.asyncio
async def test_successful_round_trip():
    seen: list[httpx.Request] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_analysis("Pago pendiente de conciliación"))

    orch = _orchestrator(handler)
    result = await orch.submit("Pago no detectado", PaymentContext(payment_id="p-3"))

    assert result is not None
    assert result.diagnosis == "Pago pendiente de conciliación"
    body = json.loads(seen[0].content)
    assert body["problem"] == "Pago no detectado"
    assert body["payloadHash"] == orch.last_successful_fingerprint
    assert seen[0].headers["idempotency-key"] == body["idempotencyKey"]
    assert seen[0].headers["authorization"] == "Bearer jwt"
    orch.close()


@pytest.mark.integration
@pytest.mark.asyncio
async def test_http_429_arms_the_cooldown():
    calls = 0

    async def handler(_request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(
            429, json={"error": "rate_limit", "message": "Too many", "retryAfter": 15}
        )

    orch = _orchestrator(handler)
    result = await orch.submit("uno")

    assert result is RESULT_TEMPLATES[ErrorKind.RATE_LIMIT]
    assert orch.rate_limiter.countdown == 15
    assert await orch.submit("dos") is None
    assert orch.last_disposition is Disposition.DROPPED_RATE_LIMITED
    assert calls == 1
    orch.close()


@pytest.mark.integration
@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("handler_kind", "kind"),
    [("refused", ErrorKind.NETWORK), ("500", ErrorKind.SERVER), ("400", ErrorKind.UNKNOWN)],
)
async def test_failures_map_to_their_kind(handler_kind, kind):
    async def handler(request: httpx.Request) -> httpx.Response:
        if handler_kind == "refused":
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(int(handler_kind), json={"error": "boom"})

    orch = _orchestrator(handler)
    assert await orch.submit("hola") is RESULT_TEMPLATES[kind]
    assert not orch.rate_limiter.is_blocked()
    orch.close()


@pytest.mark.integration
@pytest.mark.asyncio
async def test_slow_backend_times_out_then_recovers():
    slow = True

    async def handler(_request: httpx.Request) -> httpx.Response:
        if slow:
            await asyncio.sleep(5)
        return httpx.Response(200, json=_analysis("ok"))

    orch = _orchestrator(handler, request_timeout_seconds=0.05)
    assert await orch.submit("hola") is RESULT_TEMPLATES[ErrorKind.TIMEOUT]

    slow = False
    result = await orch.submit("hola")
    assert result is not None and result.diagnosis == "ok"
    orch.close()


@pytest.mark.integration
@pytest.mark.asyncio
async def test_superseded_request_is_aborted():
    started = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        problem = json.loads(request.content)["problem"]
        if problem == "uno":
            started.set()
            await asyncio.sleep(5)
        return httpx.Response(200, json=_analysis(problem))

    orch = _orchestrator(handler)
    first = asyncio.create_task(orch.submit("uno"))
    await started.wait()
    second = await orch.submit("dos")

    assert await first is None
    assert second is not None and second.diagnosis == "dos"
    assert orch.last_result is second
    orch.close()
