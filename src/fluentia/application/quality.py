"""
Quality mapping: raw answer outcomes to the 0-5 SM-2 recall scale.

Pure and total. Out-of-range input is clamped, never rejected.
"""

import math

from fluentia.domain.constants import (
    FAST_ANSWER_MS,
    MODERATE_ANSWER_MS,
    SCORE_THRESHOLDS,
)
from fluentia.domain.models import Attempt


def score_to_quality(score: float) -> int:
    """
    Convert a 0-100 score to quality 0-5.

    Thresholds: >=95 -> 5, >=85 -> 4, >=70 -> 3, >=50 -> 2, >=30 -> 1, else 0.
    A NaN score counts as 0.
    """
    score = float(score)
    if math.isnan(score):
        return 0
    clamped = max(0.0, min(100.0, score))
    for minimum, quality in SCORE_THRESHOLDS:
        if clamped >= minimum:
            return quality
    return 0


def correct_to_quality(correct: bool, latency_ms: int | None = None) -> int:
    """
    Convert a right/wrong answer to quality 0-5.

    Any wrong answer is a full lapse (0). A correct answer scores by
    response time: under 5s -> 5, under 10s -> 4, otherwise 3. Without a
    latency a correct answer is 3.
    """
    if not correct:
        return 0

    if latency_ms is None:
        return 3
    if latency_ms < FAST_ANSWER_MS:
        return 5
    if latency_ms < MODERATE_ANSWER_MS:
        return 4
    return 3


def attempt_to_quality(attempt: Attempt) -> int:
    """Map an Attempt, preferring its score when one was recorded."""
    if attempt.score is not None:
        return score_to_quality(attempt.score)
    return correct_to_quality(attempt.correct, attempt.latency_ms)
