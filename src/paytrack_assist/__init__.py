"""Client-side orchestrator for the PayTrack support assistant."""

import importlib.metadata
import logging

from paytrack_assist.config import FrozenConfig, ResolvedConfig, resolve_config
from paytrack_assist.constants import QUICK_QUESTIONS
from paytrack_assist.conversation import (
    AssistantSession,
    ChatMessage,
    TicketDraft,
    TicketSink,
)
from paytrack_assist.core.exceptions import (
    AssistError,
    ConfigurationError,
    DeadlineExceededError,
    OrchestratorClosedError,
    TransportError,
    ValidationError,
)
from paytrack_assist.core.types import (
    AnalysisResult,
    AssistRequest,
    ClassifiedError,
    Disposition,
    ErrorKind,
    Failure,
    InFlightState,
    OrchestratorState,
    PaymentContext,
    Query,
    RateLimitWindow,
    Result,
    Success,
)
from paytrack_assist.orchestration import (
    AssistantTransport,
    AssistOrchestrator,
    CancellationController,
    CancellationToken,
    ErrorClassifier,
    HttpxAssistantTransport,
    RateLimiter,
    RequestGate,
    RequestKeyer,
    create_orchestrator,
)
from paytrack_assist.response import category_label
from paytrack_assist.telemetry import TelemetryContext, TelemetryReporter

# Version handling
try:
    __version__ = importlib.metadata.version("paytrack-assist")
except importlib.metadata.PackageNotFoundError:
    __version__ = "development"

# Set up a null handler for the library's root logger.
# This prevents 'No handler found' errors if the consuming app has no logging configured.
logging.getLogger(__name__).addHandler(logging.NullHandler())

# Public API
__all__ = [  # noqa: RUF022
    # Orchestrator
    "AssistOrchestrator",
    "create_orchestrator",
    "AssistantSession",
    # Components
    "RequestKeyer",
    "RequestGate",
    "CancellationController",
    "CancellationToken",
    "RateLimiter",
    "ErrorClassifier",
    "AssistantTransport",
    "HttpxAssistantTransport",
    # Types
    "AnalysisResult",
    "AssistRequest",
    "ChatMessage",
    "ClassifiedError",
    "Disposition",
    "ErrorKind",
    "InFlightState",
    "OrchestratorState",
    "PaymentContext",
    "Query",
    "RateLimitWindow",
    "TicketDraft",
    "TicketSink",
    "Result",
    "Success",
    "Failure",
    # Configuration
    "FrozenConfig",
    "ResolvedConfig",
    "resolve_config",
    # Telemetry (extension points)
    "TelemetryContext",
    "TelemetryReporter",
    # Helpers
    "QUICK_QUESTIONS",
    "category_label",
    # Exceptions
    "AssistError",
    "ConfigurationError",
    "DeadlineExceededError",
    "OrchestratorClosedError",
    "TransportError",
    "ValidationError",
]
