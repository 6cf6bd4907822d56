"""The orchestrator behind a single "ask the support assistant" operation.

One long-lived ``AssistOrchestrator`` owns the gate, the cancellation
controller, the rate limiter and the last successful fingerprint. Each
``submit`` call either returns an ``AnalysisResult`` (success or a canned
failure result) or returns None when the submission was dropped. The reason
for a drop is exposed through ``last_disposition``.

Settlement is applied only if the attempt's token is still current, so a
superseded or torn-down attempt never mutates visible state, whatever order
responses arrive in. The gate is released in a ``finally`` block on every
exit path.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any

from paytrack_assist.config import FrozenConfig, resolve_config
from paytrack_assist.core.exceptions import (
    DeadlineExceededError,
    OrchestratorClosedError,
    ValidationError,
)
from paytrack_assist.core.types import (
    AnalysisResult,
    AssistRequest,
    Disposition,
    Failure,
    InFlightState,
    OrchestratorState,
    PaymentContext,
    Query,
    Result,
    Success,
)
from paytrack_assist.orchestration.cancellation import (
    CancellationController,
    CancellationToken,
)
from paytrack_assist.orchestration.classifier import ErrorClassifier
from paytrack_assist.orchestration.gate import RequestGate
from paytrack_assist.orchestration.keyer import RequestKeyer
from paytrack_assist.orchestration.rate_limiter import RateLimiter
from paytrack_assist.orchestration.transport import HttpxAssistantTransport
from paytrack_assist.response import interpret_response
from paytrack_assist.telemetry import TelemetryContext

if TYPE_CHECKING:
    from collections.abc import Callable

    from paytrack_assist.orchestration.transport import (
        AssistantTransport,
        SessionTokenProvider,
    )
    from paytrack_assist.telemetry import TelemetryReporter

logger = logging.getLogger(__name__)


class AssistOrchestrator:
    """Drives submissions to the assistant with at most one call in flight.

    Collaborators are injectable for tests; by default each orchestrator
    builds its own keyer, gate, controller, limiter and classifier from the
    frozen configuration.
    """

    def __init__(
        self,
        transport: AssistantTransport,
        config: FrozenConfig | None = None,
        *,
        keyer: RequestKeyer | None = None,
        gate: RequestGate | None = None,
        controller: CancellationController | None = None,
        limiter: RateLimiter | None = None,
        classifier: ErrorClassifier | None = None,
        clock: Callable[[], float] | None = None,
        reporters: tuple[TelemetryReporter, ...] = (),
        owns_transport: bool = False,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            transport: Delivers one request and returns the decoded body.
            config: Frozen configuration; defaults are used when omitted.
            keyer: Fingerprint and idempotency key source.
            gate: Mutual exclusion for the in-flight call.
            controller: Owner of the current cancellation token.
            limiter: Rate-limit window; built from ``config`` when omitted.
            classifier: Failure classifier; built from ``config`` when omitted.
            clock: Monotonic clock for ``InFlightState.started_at``.
            reporters: Telemetry reporters (active only when telemetry is on).
            owns_transport: Close the transport in ``aclose``.
        """
        self.config = config or FrozenConfig()
        self._transport = transport
        self._owns_transport = owns_transport
        self._clock = clock or time.monotonic
        self._keyer = keyer or RequestKeyer()
        self._gate = gate or RequestGate()
        self._controller = controller or CancellationController()
        self._limiter = limiter or RateLimiter(
            clock=clock, tick_interval=self.config.tick_interval_seconds
        )
        self._classifier = classifier or ErrorClassifier(
            default_retry_after=self.config.default_retry_after_seconds
        )
        self._tele = TelemetryContext(*reporters)

        self._state = OrchestratorState.IDLE
        self._in_flight: InFlightState | None = None
        # Token and fingerprint of the newest attempt, waiting or in flight
        self._current: tuple[CancellationToken, str] | None = None
        self._last_successful_fingerprint: str | None = None
        self._last_result: AnalysisResult | None = None
        self._last_disposition: Disposition | None = None
        # Set whenever the gate is free; superseding submissions wait on it
        self._idle = asyncio.Event()
        self._idle.set()

    # --- Observables ---

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def in_flight(self) -> InFlightState | None:
        return self._in_flight

    @property
    def last_result(self) -> AnalysisResult | None:
        return self._last_result

    @property
    def last_disposition(self) -> Disposition | None:
        return self._last_disposition

    @property
    def last_successful_fingerprint(self) -> str | None:
        return self._last_successful_fingerprint

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._limiter

    @property
    def closed(self) -> bool:
        return self._state is OrchestratorState.CLOSED

    # --- Submission ---

    async def submit(
        self, text: str, context: PaymentContext | None = None
    ) -> AnalysisResult | None:
        """Ask the assistant a question.

        Returns:
            The applied ``AnalysisResult`` (a canned result when the call
            failed), or None when the submission was dropped. Blank text is
            dropped without touching the gate or the transport.

        Raises:
            ValidationError: If the arguments have the wrong types. Raised
                before any state changes.
        """
        if isinstance(text, str) and not text.strip():
            return self._drop(Disposition.DROPPED_BLANK)
        try:
            query = Query(text=text, context=context)
        except (TypeError, ValueError) as e:
            raise ValidationError(str(e)) from e

        with self._tele("assist.submit"):
            return await self._submit(query)

    async def _submit(self, query: Query) -> AnalysisResult | None:
        if self._controller.closed:
            return self._drop(Disposition.DROPPED_CLOSED)
        if self._limiter.is_blocked():
            return self._drop(Disposition.DROPPED_RATE_LIMITED)

        fingerprint = self._keyer.fingerprint_query(query)
        token: CancellationToken | None = None

        if not self._gate.try_acquire():
            if self._is_current_fingerprint(fingerprint):
                return self._drop(Disposition.DROPPED_BUSY)
            if self.config.on_conflict == "drop":
                return self._drop(Disposition.DROPPED_BUSY)
            if fingerprint == self._last_successful_fingerprint:
                return self._drop(Disposition.DROPPED_DUPLICATE)
            try:
                token = self._controller.begin()
            except OrchestratorClosedError:
                return self._drop(Disposition.DROPPED_CLOSED)
            self._current = (token, fingerprint)
            logger.debug("Token %d supersedes the in-flight attempt", token.id)
            if not await self._wait_for_gate(token):
                return self._drop(self._stale_disposition())

        if fingerprint == self._last_successful_fingerprint:
            self._release()
            return self._drop(Disposition.DROPPED_DUPLICATE)

        if token is None:
            try:
                token = self._controller.begin()
            except OrchestratorClosedError:
                self._release()
                return self._drop(Disposition.DROPPED_CLOSED)
            self._current = (token, fingerprint)

        return await self._attempt(query, fingerprint, token)

    def _is_current_fingerprint(self, fingerprint: str) -> bool:
        """True when the attempt owning the current token asks the same question.

        A superseded attempt may still hold the gate while it unwinds; its
        question no longer counts as in flight.
        """
        if self._current is None:
            return False
        token, current_fingerprint = self._current
        return current_fingerprint == fingerprint and self._controller.is_current(
            token
        )

    async def _wait_for_gate(self, token: CancellationToken) -> bool:
        """Wait until the gate frees up; False once ``token`` stops being current."""
        while self._controller.is_current(token):
            if self._gate.try_acquire():
                if self._controller.is_current(token):
                    return True
                self._release()
                return False
            self._idle.clear()
            await self._idle.wait()
        return False

    async def _attempt(
        self, query: Query, fingerprint: str, token: CancellationToken
    ) -> AnalysisResult | None:
        """Run one attempt with the gate held. Always releases the gate."""
        request = AssistRequest(
            query=query,
            idempotency_key=self._keyer.new_idempotency_key(),
            payload_hash=fingerprint,
        )
        self._in_flight = InFlightState(
            token=token,
            fingerprint=fingerprint,
            idempotency_key=request.idempotency_key,
            started_at=self._clock(),
        )
        self._state = OrchestratorState.SUBMITTING
        logger.debug(
            "Submitting attempt (token=%d, key=%s)", token.id, request.idempotency_key
        )

        try:
            with self._tele("assist.call"):
                outcome = await self._call(request, token)
            if outcome is None or not self._controller.is_current(token):
                # Belongs to a superseded or torn-down attempt
                return self._drop(self._stale_disposition())
            return self._settle(outcome, fingerprint)
        finally:
            token.disarm()
            self._in_flight = None
            self._release()

    async def _call(
        self, request: AssistRequest, token: CancellationToken
    ) -> Result[dict[str, Any], BaseException] | None:
        """Issue the transport call under the token's deadline.

        Returns None when the token cancelled the call for any reason other
        than its deadline.
        """
        task = asyncio.ensure_future(self._transport.send(request))
        token.bind(task)
        token.arm_deadline(self.config.request_timeout_seconds)
        try:
            return Success(await task)
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                # The caller cancelled submit() itself
                task.cancel()
                raise
            if token.deadline_exceeded:
                return Failure(
                    DeadlineExceededError(self.config.request_timeout_seconds)
                )
            return None
        except Exception as e:
            return Failure(e)

    def _settle(
        self, outcome: Result[dict[str, Any], BaseException], fingerprint: str
    ) -> AnalysisResult:
        if isinstance(outcome, Success):
            try:
                outcome = interpret_response(outcome.value)
            except Exception as e:
                # Transports other than httpx may hand back non-mapping bodies
                outcome = Failure(e)

        if isinstance(outcome, Success):
            result = outcome.value
            self._last_successful_fingerprint = fingerprint
        else:
            classified = self._classifier.classify(outcome.error)
            if classified.is_rate_limit:
                self._limiter.observe(classified)
            self._tele.count("assist.error", kind=classified.kind.value)
            result = classified.result

        self._last_result = result
        self._last_disposition = Disposition.APPLIED
        self._tele.count("assist.applied")
        return result

    # --- Helpers ---

    def _release(self) -> None:
        self._gate.release()
        if self._state is OrchestratorState.SUBMITTING:
            self._state = OrchestratorState.IDLE
        self._idle.set()

    def _stale_disposition(self) -> Disposition:
        if self._controller.closed:
            return Disposition.DROPPED_CLOSED
        return Disposition.DROPPED_STALE

    def _drop(self, disposition: Disposition) -> None:
        logger.debug("Submission dropped: %s", disposition.value)
        self._last_disposition = disposition
        self._tele.count("assist.dropped", reason=disposition.value)
        return None

    # --- Lifecycle ---

    def reset(self) -> None:
        """Forget the last answer so the same question can be asked again."""
        self._last_successful_fingerprint = None
        self._last_result = None
        self._last_disposition = None

    def close(self) -> None:
        """Tear down: cancel the outstanding attempt and stop the countdown.

        Responses that arrive afterwards are discarded. Idempotent.
        """
        if self._state is OrchestratorState.CLOSED:
            return
        self._controller.cancel_all()
        self._limiter.close()
        self._state = OrchestratorState.CLOSED
        self._idle.set()
        logger.debug("Orchestrator closed")

    async def aclose(self) -> None:
        """Close, then release the transport when this orchestrator owns it."""
        self.close()
        if self._owns_transport:
            aclose = getattr(self._transport, "aclose", None)
            if aclose is not None:
                await aclose()

    async def __aenter__(self) -> AssistOrchestrator:  # noqa: D105
        return self

    async def __aexit__(self, *exc_info: object) -> None:  # noqa: D105
        await self.aclose()


def create_orchestrator(
    config: FrozenConfig | None = None,
    *,
    session_tokens: SessionTokenProvider | None = None,
    reporters: tuple[TelemetryReporter, ...] = (),
) -> AssistOrchestrator:
    """Create an orchestrator talking to the configured HTTP endpoint.

    If no configuration is provided, it is resolved from the environment and
    configuration files.

    Raises:
        ConfigurationError: If the endpoint URL or API key is missing.
    """
    # This is the only place where ambient configuration is resolved.
    final_config = config if config is not None else resolve_config().to_frozen()
    transport = HttpxAssistantTransport.from_config(
        final_config, session_tokens=session_tokens
    )
    return AssistOrchestrator(
        transport, final_config, reporters=reporters, owns_transport=True
    )
