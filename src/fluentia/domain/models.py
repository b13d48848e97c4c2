"""
Domain models for scheduling and progress synchronization.

These are pure data structures with no I/O or external dependencies.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime

from .constants import DEFAULT_EASE_FACTOR, XP_PER_ITEM, XP_PER_LEVEL, MAX_STREAK_DAYS


@dataclass(frozen=True)
class SchedulingState:
    """
    SM-2 scheduling state for one learner and one item.

    Attributes:
        interval_days: Days until the next review (>= 1).
        ease_factor: Interval growth multiplier (>= 1.3, starts at 2.5).
        repetitions: Consecutive successful reviews since the last lapse.
        next_due: When the item is due again. Set on every update.
    """

    interval_days: int = 1
    ease_factor: float = DEFAULT_EASE_FACTOR
    repetitions: int = 0
    next_due: datetime | None = None


@dataclass(frozen=True)
class ScheduleResult:
    """Outcome of a single SM-2 update."""

    state: SchedulingState
    next_due: datetime


@dataclass(frozen=True)
class ProgressRecord:
    """
    Per-learner progress, held both on the device and in the remote store.

    `completed` keeps first-insertion order for display; comparisons between
    records treat it as a set. The whole record is the unit of
    last-writer-wins: later `updated_at` wins, equal timestamps fall back
    to the higher `version`.
    """

    completed: tuple[str, ...] = ()
    updated_at: int = 0  # epoch ms
    version: int = 0
    schedules: Mapping[str, SchedulingState] = field(default_factory=dict)

    @classmethod
    def empty(cls, version: int = 0, updated_at: int = 0) -> "ProgressRecord":
        return cls(completed=(), updated_at=updated_at, version=version, schedules={})

    @property
    def completed_set(self) -> frozenset[str]:
        return frozenset(self.completed)

    def has_completed(self, item_id: str) -> bool:
        return item_id in self.completed

    def same_completed(self, other: "ProgressRecord | None") -> bool:
        """True when both records hold the same set of completed items."""
        other_set = other.completed_set if other is not None else frozenset()
        return self.completed_set == other_set

    def evolve(self, **changes) -> "ProgressRecord":
        return replace(self, **changes)


@dataclass(frozen=True)
class Attempt:
    """
    A single answer given by the learner. Never persisted.

    `score` (0-100) takes precedence over `correct`/`latency_ms` when set.
    """

    item_id: str
    correct: bool
    latency_ms: int | None = None
    score: float | None = None


@dataclass(frozen=True)
class PushResult:
    """Outcome of one remote upsert. `error` is set when `ok` is False."""

    user_id: str
    version: int
    ok: bool
    error: Exception | None = None


@dataclass(frozen=True)
class ProgressSummary:
    """Compact snapshot shown on profile and home screens."""

    xp: int
    streak: int
    level: int
    updated_at: int

    @classmethod
    def from_record(cls, record: ProgressRecord, now_ms: int) -> "ProgressSummary":
        count = len(record.completed_set)
        xp = count * XP_PER_ITEM
        streak = max(0, min(MAX_STREAK_DAYS, count))
        return cls(xp=xp, streak=streak, level=xp // XP_PER_LEVEL + 1, updated_at=now_ms)
