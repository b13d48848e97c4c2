"""
Due-set resolution for review sessions.

Turns reconciled scheduling state into the items a session should review.
"""

from collections.abc import Mapping
from datetime import datetime, timezone

from fluentia.domain.models import SchedulingState


def is_due(state: SchedulingState, now: datetime) -> bool:
    """An item with no due date has never been scheduled and is not due."""
    return state.next_due is not None and state.next_due <= now


def due_items(
    schedules: Mapping[str, SchedulingState],
    now: datetime | None = None,
) -> set[str]:
    """
    Return the ids of every item whose next review is at or before `now`.

    The result is unordered; use `due_queue` for most-overdue-first order.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    return {item_id for item_id, state in schedules.items() if is_due(state, now)}


def due_queue(
    schedules: Mapping[str, SchedulingState],
    now: datetime | None = None,
) -> list[str]:
    """Due item ids sorted most-overdue first, ties broken by item id."""
    due = due_items(schedules, now)
    return sorted(due, key=lambda item_id: (schedules[item_id].next_due, item_id))
