"""SM-2 spaced repetition scheduling engine.

Pure computation, no I/O. See
https://www.supermemo.com/en/archives1990-2015/english/ol/sm2
"""

import math
from datetime import datetime, timedelta, timezone

from fluentia.domain.constants import (
    DEFAULT_EASE_FACTOR,
    LAPSE_QUALITY,
    MAX_INTERVAL_DAYS,
    MAX_QUALITY,
    MIN_EASE_FACTOR,
    MIN_QUALITY,
)
from fluentia.domain.models import ScheduleResult, SchedulingState


def initial_state() -> SchedulingState:
    """State for an item the learner has just met for the first time."""
    return SchedulingState(interval_days=1, ease_factor=DEFAULT_EASE_FACTOR, repetitions=0)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_quality(quality: float) -> int:
    """Round to the nearest whole grade and clamp to 0-5. NaN grades as 0."""
    if math.isnan(quality):
        return MIN_QUALITY
    if math.isinf(quality):
        return MAX_QUALITY if quality > 0 else MIN_QUALITY
    return max(MIN_QUALITY, min(MAX_QUALITY, _round_half_up(quality)))


def advance(
    state: SchedulingState,
    quality: float,
    now: datetime | None = None,
) -> ScheduleResult:
    """
    Apply one SM-2 review to `state`.

    Args:
        state: Current scheduling state for the item.
        quality: Recall quality 0-5 (5=perfect, 0=blackout). Rounded and clamped.
        now: Review time. Defaults to the current UTC time.

    Returns:
        ScheduleResult with the new state and its due date. The due date is
        `now` plus `interval_days` calendar days, keeping the time of day.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    q = clamp_quality(quality)

    # Ease moves first, even on a lapse
    ease = state.ease_factor + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
    ease = max(MIN_EASE_FACTOR, ease)

    if q < LAPSE_QUALITY:
        repetitions = 0
        interval = 1
    else:
        if state.repetitions == 0:
            interval = 1
        elif state.repetitions == 1:
            interval = 6
        else:
            interval = _round_half_up(state.interval_days * ease)
        repetitions = state.repetitions + 1

    interval = max(1, min(MAX_INTERVAL_DAYS, interval))
    next_due = now + timedelta(days=interval)
    new_state = SchedulingState(
        interval_days=interval,
        ease_factor=ease,
        repetitions=repetitions,
        next_due=next_due,
    )
    return ScheduleResult(state=new_state, next_due=next_due)
