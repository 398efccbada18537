"""Turning a classifier score into what the user sees."""

import math
from typing import Any, NamedTuple

import numpy as np

from model_screener.exceptions import InferenceError

__all__ = ['ScreeningResult', 'render_result', 'extract_score']

AI_LABEL = "Likely AI Generated"
REAL_LABEL = "Likely Real Image"

AI_COLOR = "#ef4444"  # Red
REAL_COLOR = "#22c55e"  # Green
AI_GRADIENT = "linear-gradient(90deg, #f87171, #ef4444)"
REAL_GRADIENT = "linear-gradient(90deg, #4ade80, #22c55e)"


class ScreeningResult(NamedTuple):
    """Rendered outcome of one inference."""

    score: float  # Probability the image is AI generated (0.0-1.0)
    threshold: float
    is_ai: bool
    label: str
    percentage: str  # score * 100 with one decimal, e.g. "82.0"
    bar_width: str
    confidence_text: str
    color: str
    bar_gradient: str


def extract_score(prediction: Any) -> float:
    """Take the first value of a binary classifier's output."""
    try:
        values = np.asarray(prediction, dtype=np.float64).ravel()
    except (TypeError, ValueError) as e:
        raise InferenceError(f"Model output is not numeric: {e}") from e
    if values.size == 0:
        raise InferenceError("Model returned an empty prediction")
    return float(values[0])


def render_result(score: float, threshold: float = 0.7) -> ScreeningResult:
    """
    Render a score against a decision threshold.

    Args:
        score: Classifier output in [0, 1]
        threshold: Scores strictly above this are labelled AI generated

    Returns:
        ScreeningResult with label, bar width and confidence text
    """
    if math.isnan(score) or not 0.0 <= score <= 1.0:
        raise InferenceError(f"Score {score} is outside [0, 1]")

    is_ai = score > threshold
    percentage = f"{score * 100:.1f}"

    return ScreeningResult(
        score=score,
        threshold=threshold,
        is_ai=is_ai,
        label=AI_LABEL if is_ai else REAL_LABEL,
        percentage=percentage,
        bar_width=f"{percentage}%",
        confidence_text=f"Confidence Score: {percentage}%",
        color=AI_COLOR if is_ai else REAL_COLOR,
        bar_gradient=AI_GRADIENT if is_ai else REAL_GRADIENT,
    )
