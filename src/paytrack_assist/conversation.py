"""Chat transcript and ticket escalation on top of the orchestrator.

``AssistantSession`` is what a help screen talks to: it forwards questions to
an ``AssistOrchestrator``, keeps the visible transcript of applied exchanges,
records whether the last answer helped, and turns the conversation into a
prefilled support ticket when the user escalates.
"""

from __future__ import annotations

import dataclasses
from datetime import UTC, datetime
import inspect
import logging
import time
from typing import TYPE_CHECKING, Any, Literal, Protocol, runtime_checkable

from paytrack_assist.constants import QUICK_QUESTIONS

if TYPE_CHECKING:
    from collections.abc import Callable

    from paytrack_assist.core.types import AnalysisResult, PaymentContext
    from paytrack_assist.orchestration.orchestrator import AssistOrchestrator

logger = logging.getLogger(__name__)

Role = Literal["user", "assistant"]
Feedback = Literal["helpful", "not_helpful"]


def _epoch_ms() -> int:
    return time.time_ns() // 1_000_000


@dataclasses.dataclass(frozen=True, slots=True)
class ChatMessage:
    """One line of the visible transcript."""

    id: str
    role: Role
    content: str
    timestamp: datetime
    analysis: AnalysisResult | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class TicketDraft:
    """Support ticket prefilled from the assistant conversation."""

    id: str
    timestamp: datetime
    problem: str
    diagnosis: str
    explanation: str
    recommendation: str
    resolved: bool
    payment_context: PaymentContext | None = None


@runtime_checkable
class TicketSink(Protocol):
    """Receives escalations. ``draft`` is None when nothing was analysed yet."""

    def create_ticket(self, draft: TicketDraft | None) -> Any: ...  # noqa: D102


class AssistantSession:
    """A conversation with the assistant about an optional payment."""

    def __init__(
        self,
        orchestrator: AssistOrchestrator,
        payment_context: PaymentContext | None = None,
        *,
        clock_ms: Callable[[], int] = _epoch_ms,
    ) -> None:
        """Initialize the session.

        Args:
            orchestrator: Orchestrator that performs the submissions.
            payment_context: Payment the user opened the assistant from.
            clock_ms: Epoch milliseconds source used for message and ticket ids.
        """
        self.orchestrator = orchestrator
        self.payment_context = payment_context
        self._clock_ms = clock_ms
        self._messages: list[ChatMessage] = []
        self._feedback: Feedback | None = None
        self._last_analysis: AnalysisResult | None = None

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    @property
    def feedback(self) -> Feedback | None:
        return self._feedback

    @property
    def last_analysis(self) -> AnalysisResult | None:
        return self._last_analysis

    @property
    def show_quick_questions(self) -> bool:
        """Starter questions are offered only on an empty transcript."""
        return not self._messages

    @staticmethod
    def quick_questions() -> tuple[tuple[str, str], ...]:
        return QUICK_QUESTIONS

    async def ask(self, text: str) -> AnalysisResult | None:
        """Submit a question; the exchange is recorded only when applied."""
        result = await self.orchestrator.submit(text, self.payment_context)
        if result is None:
            return None

        ms = self._clock_ms()
        now = datetime.fromtimestamp(ms / 1000, tz=UTC)
        self._messages.append(
            ChatMessage(id=f"user-{ms}", role="user", content=text, timestamp=now)
        )
        self._messages.append(
            ChatMessage(
                id=f"assistant-{ms}",
                role="assistant",
                content=result.explanation,
                timestamp=now,
                analysis=result,
            )
        )
        self._last_analysis = result
        self._feedback = None
        return result

    def give_feedback(self, helpful: bool) -> Feedback:
        """Record whether the latest answer helped.

        Raises:
            ValueError: If there is no answer to rate yet.
        """
        if self._last_analysis is None:
            raise ValueError("No assistant answer to rate yet")
        self._feedback = "helpful" if helpful else "not_helpful"
        logger.debug("Feedback recorded: %s", self._feedback)
        return self._feedback

    def new_conversation(self) -> None:
        """Clear the transcript, the feedback and the orchestrator's memory."""
        self._messages.clear()
        self._last_analysis = None
        self._feedback = None
        self.orchestrator.reset()

    def build_ticket_draft(self) -> TicketDraft | None:
        """Prefill a ticket from the latest answer, or None before any answer."""
        analysis = self._last_analysis
        if analysis is None:
            return None
        problem = next(
            (m.content for m in reversed(self._messages) if m.role == "user"), ""
        )
        ms = self._clock_ms()
        return TicketDraft(
            id=f"ai-{ms}",
            timestamp=datetime.fromtimestamp(ms / 1000, tz=UTC),
            problem=problem,
            diagnosis=analysis.diagnosis,
            explanation=analysis.explanation,
            recommendation=analysis.recommendation,
            resolved=analysis.resolved,
            payment_context=self.payment_context,
        )

    async def escalate(self, sink: TicketSink) -> TicketDraft | None:
        """Hand the conversation to a ticket sink; the sink may be sync or async."""
        draft = self.build_ticket_draft()
        outcome = sink.create_ticket(draft)
        if inspect.isawaitable(outcome):
            await outcome
        return draft
