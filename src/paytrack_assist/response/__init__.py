"""Interpretation and normalization of assistant responses."""

from .normalizer import category_label, interpret_response, normalize_analysis

__all__ = ["category_label", "interpret_response", "normalize_analysis"]
