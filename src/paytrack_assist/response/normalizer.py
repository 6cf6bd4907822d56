"""Turn assistant response bodies into ``AnalysisResult`` values.

The model behind the endpoint produces loosely-typed JSON, so every field is
coerced: missing text gets a safe default, confidence is clamped to [0, 1],
and category is restricted to the known set.
"""

from __future__ import annotations

from collections.abc import Mapping
import math
from typing import Any

from paytrack_assist.constants import (
    ANALYSIS_CATEGORIES,
    CATEGORY_LABELS,
    DEFAULT_CATEGORY,
    DEFAULT_CONFIDENCE,
)
from paytrack_assist.core.exceptions import TransportError
from paytrack_assist.core.types import AnalysisResult, Failure, Result, Success

_DEFAULT_DIAGNOSIS = "Análisis del problema"
_DEFAULT_EXPLANATION = "No se pudo determinar la causa exacta."
_DEFAULT_RECOMMENDATION = "Te recomendamos crear un ticket de soporte."


def _text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value
    return default


def _confidence(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return DEFAULT_CONFIDENCE
    if math.isnan(value):
        return DEFAULT_CONFIDENCE
    return min(max(float(value), 0.0), 1.0)


def normalize_analysis(analysis: Mapping[str, Any]) -> AnalysisResult:
    """Coerce a raw ``analysis`` object into a valid ``AnalysisResult``."""
    category = analysis.get("category")
    if category not in ANALYSIS_CATEGORIES:
        category = DEFAULT_CATEGORY

    actions = analysis.get("suggestedActions")
    suggested = (
        tuple(a for a in actions if isinstance(a, str) and a.strip())
        if isinstance(actions, list | tuple)
        else ()
    )

    resolved = analysis.get("resolved")
    return AnalysisResult(
        diagnosis=_text(analysis.get("diagnosis"), _DEFAULT_DIAGNOSIS),
        explanation=_text(analysis.get("explanation"), _DEFAULT_EXPLANATION),
        recommendation=_text(analysis.get("recommendation"), _DEFAULT_RECOMMENDATION),
        resolved=resolved if isinstance(resolved, bool) else False,
        confidence=_confidence(analysis.get("confidence")),
        category=category,
        suggested_actions=suggested,
    )


def interpret_response(body: Mapping[str, Any]) -> Result[AnalysisResult, TransportError]:
    """Split a 2xx body into the success path or an error for classification.

    ``{success: true, analysis: {...}}`` is the only success shape. Anything
    else, including ``{error: "rate_limit", ...}`` delivered with a 2xx
    status, is returned as a ``TransportError`` carrying the body.
    """
    analysis = body.get("analysis")
    if body.get("success") is True and isinstance(analysis, Mapping):
        return Success(normalize_analysis(analysis))

    error = body.get("error")
    message = (
        f"Assistant reported an error: {error}"
        if isinstance(error, str)
        else "Assistant returned an unrecognized response"
    )
    return Failure(TransportError(message, payload=dict(body)))


def category_label(category: str | None) -> str:
    """Display label for a category, falling back to the generic one."""
    return CATEGORY_LABELS.get(category or DEFAULT_CATEGORY, CATEGORY_LABELS["other"])
