"""Components that drive a single assistant submission."""

from .cancellation import CancellationController, CancellationToken
from .classifier import RESULT_TEMPLATES, ErrorClassifier
from .gate import RequestGate
from .keyer import RequestKeyer
from .orchestrator import AssistOrchestrator, create_orchestrator
from .rate_limiter import RateLimiter
from .transport import AssistantTransport, HttpxAssistantTransport

__all__ = [
    "RESULT_TEMPLATES",
    "AssistOrchestrator",
    "AssistantTransport",
    "CancellationController",
    "CancellationToken",
    "ErrorClassifier",
    "HttpxAssistantTransport",
    "RateLimiter",
    "RequestGate",
    "RequestKeyer",
    "create_orchestrator",
]
