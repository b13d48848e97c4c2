import math

import pytest

from fluentia.application.quality import (
    attempt_to_quality,
    correct_to_quality,
    score_to_quality,
)
from fluentia.domain.models import Attempt


@pytest.mark.parametrize(
    "score,expected",
    [
        (100, 5),
        (95, 5),
        (94.9, 4),
        (85, 4),
        (84, 3),
        (70, 3),
        (69, 2),
        (50, 2),
        (49, 1),
        (30, 1),
        (29, 0),
        (0, 0),
    ],
)
def test_score_thresholds(score, expected):
    assert score_to_quality(score) == expected


def test_score_out_of_range_is_clamped():
    assert score_to_quality(150) == 5
    assert score_to_quality(-10) == 0


def test_non_finite_scores():
    assert score_to_quality(math.nan) == 0
    assert score_to_quality(math.inf) == 5
    assert score_to_quality(-math.inf) == 0


def test_score_mapping_is_monotonic():
    qualities = [score_to_quality(s) for s in range(-20, 121)]
    assert qualities == sorted(qualities)


@pytest.mark.parametrize("latency", [None, 0, 100, 4999, 9999, 60_000])
def test_wrong_answer_is_always_a_full_lapse(latency):
    assert correct_to_quality(False, latency) == 0


def test_correct_answer_scored_by_latency():
    assert correct_to_quality(True, 1200) == 5
    assert correct_to_quality(True, 4999) == 5
    assert correct_to_quality(True, 5000) == 4
    assert correct_to_quality(True, 9999) == 4
    assert correct_to_quality(True, 10000) == 3
    assert correct_to_quality(True, 45_000) == 3


def test_correct_answer_without_latency_is_acceptable():
    assert correct_to_quality(True) == 3


def test_attempt_prefers_score():
    attempt = Attempt(item_id="ciao-1", correct=False, score=96)
    assert attempt_to_quality(attempt) == 5


def test_attempt_without_score_uses_correctness():
    assert attempt_to_quality(Attempt(item_id="ciao-1", correct=True, latency_ms=7000)) == 4
    assert attempt_to_quality(Attempt(item_id="ciao-1", correct=False, latency_ms=100)) == 0
