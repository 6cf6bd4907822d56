"""Core data types shared by the orchestrator and its collaborators.

All values that cross component boundaries are immutable dataclasses. The
only mutable state in the package lives on long-lived component instances
(gate, controller, limiter, orchestrator), never on these records.
"""

from __future__ import annotations

import dataclasses
import enum
import typing

if typing.TYPE_CHECKING:
    from paytrack_assist.orchestration.cancellation import CancellationToken


# --- Minimal guard helpers ---


def _require(
    *,
    condition: bool,
    message: str,
    exc: type[Exception] = ValueError,
    field_name: str | None = None,
) -> None:
    """Centralized validation with optional field context for clearer errors."""
    if not condition:
        if field_name:
            raise exc(f"{field_name}: {message}")
        raise exc(message)


# --- Result type for stage-to-stage error handling ---

TSuccess = typing.TypeVar("TSuccess")
TFailure = typing.TypeVar("TFailure", bound=Exception)


@dataclasses.dataclass(frozen=True, slots=True)
class Success[TSuccess]:
    """A successful outcome."""

    value: TSuccess


@dataclasses.dataclass(frozen=True, slots=True)
class Failure[TFailure]:
    """A failed outcome, containing the error."""

    error: TFailure


Result = Success[TSuccess] | Failure[TFailure]


# --- Query model ---


@dataclasses.dataclass(frozen=True, slots=True)
class PaymentContext:
    """Structured context about the payment the user is asking about."""

    payment_id: str | None = None
    amount: float | None = None
    date: str | None = None
    origin: str | None = None
    status: str | None = None
    contact_name: str | None = None

    def __post_init__(self) -> None:
        """Validate numeric amount when present."""
        _require(
            condition=self.amount is None
            or (isinstance(self.amount, int | float) and not isinstance(self.amount, bool)),
            message="must be a number or None",
            field_name="amount",
            exc=TypeError,
        )

    def as_dict(self) -> dict[str, typing.Any]:
        """Return all populated fields, keyed by attribute name."""
        return {
            f.name: getattr(self, f.name)
            for f in dataclasses.fields(self)
            if getattr(self, f.name) is not None
        }

    def to_wire(self) -> dict[str, typing.Any]:
        """Return the subset of fields the assistant endpoint accepts."""
        wire = {
            "contactName": self.contact_name,
            "amount": self.amount,
            "date": self.date,
            "paymentId": self.payment_id,
        }
        return {k: v for k, v in wire.items() if v is not None}


@dataclasses.dataclass(frozen=True, slots=True)
class Query:
    """A single question for the support assistant. Immutable once submitted."""

    text: str
    context: PaymentContext | None = None

    def __post_init__(self) -> None:
        """Reject non-string or blank questions."""
        _require(
            condition=isinstance(self.text, str),
            message="must be str",
            field_name="text",
            exc=TypeError,
        )
        _require(
            condition=self.text.strip() != "",
            message="cannot be empty (after stripping whitespace)",
            field_name="text",
        )
        _require(
            condition=self.context is None or isinstance(self.context, PaymentContext),
            message="must be a PaymentContext or None",
            field_name="context",
            exc=TypeError,
        )


# --- Results ---


@dataclasses.dataclass(frozen=True, slots=True)
class AnalysisResult:
    """The assistant's answer, or a canned answer for a failed attempt."""

    diagnosis: str
    explanation: str
    recommendation: str
    resolved: bool
    confidence: float
    category: str | None = None
    suggested_actions: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        """Validate the confidence range."""
        _require(
            condition=0.0 <= self.confidence <= 1.0,
            message=f"must be within [0, 1], got {self.confidence!r}",
            field_name="confidence",
        )

    def to_dict(self) -> dict[str, typing.Any]:
        """Serialize using the backend's field names."""
        data: dict[str, typing.Any] = {
            "diagnosis": self.diagnosis,
            "explanation": self.explanation,
            "recommendation": self.recommendation,
            "resolved": self.resolved,
            "confidence": self.confidence,
        }
        if self.category is not None:
            data["category"] = self.category
        if self.suggested_actions is not None:
            data["suggestedActions"] = list(self.suggested_actions)
        return data


class ErrorKind(enum.Enum):
    """Closed failure taxonomy. Never extended ad hoc."""

    RATE_LIMIT = "rate_limit"
    NETWORK = "network"
    TIMEOUT = "timeout"
    SERVER = "server"
    UNKNOWN = "unknown"


@dataclasses.dataclass(frozen=True, slots=True)
class ClassifiedError:
    """Outcome of classifying a failed attempt."""

    kind: ErrorKind
    result: AnalysisResult
    retry_after_seconds: float | None = None

    @property
    def is_rate_limit(self) -> bool:
        return self.kind is ErrorKind.RATE_LIMIT


# --- Orchestrator state records ---


@dataclasses.dataclass(frozen=True, slots=True)
class InFlightState:
    """The single outstanding attempt, present only while the gate is held."""

    token: CancellationToken
    fingerprint: str
    idempotency_key: str
    started_at: float


@dataclasses.dataclass(frozen=True, slots=True)
class RateLimitWindow:
    """Interval during which new submissions are refused."""

    expires_at: float

    def is_active(self, now: float) -> bool:
        return now < self.expires_at

    def remaining(self, now: float) -> float:
        return max(0.0, self.expires_at - now)


class OrchestratorState(enum.Enum):
    """Coarse orchestrator lifecycle."""

    IDLE = "idle"
    SUBMITTING = "submitting"
    CLOSED = "closed"


class Disposition(enum.Enum):
    """How the most recent ``submit`` call ended."""

    APPLIED = "applied"
    DROPPED_BLANK = "dropped_blank"
    DROPPED_BUSY = "dropped_busy"
    DROPPED_RATE_LIMITED = "dropped_rate_limited"
    DROPPED_DUPLICATE = "dropped_duplicate"
    DROPPED_STALE = "dropped_stale"
    DROPPED_CLOSED = "dropped_closed"

    @property
    def dropped(self) -> bool:
        return self is not Disposition.APPLIED


@dataclasses.dataclass(frozen=True, slots=True)
class AssistRequest:
    """Everything the transport needs to issue one attempt."""

    query: Query
    idempotency_key: str
    payload_hash: str

    def to_json(self) -> dict[str, typing.Any]:
        """Build the JSON body for the assistant endpoint."""
        body: dict[str, typing.Any] = {
            "problem": self.query.text,
            "idempotencyKey": self.idempotency_key,
            "payloadHash": self.payload_hash,
        }
        if self.query.context is not None:
            body["context"] = self.query.context.to_wire()
        return body
