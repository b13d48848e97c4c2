from fluentia.domain.constants import cache_key
from fluentia.domain.models import ProgressRecord, ProgressSummary, SchedulingState


def test_scheduling_state_defaults():
    state = SchedulingState()
    assert (state.interval_days, state.ease_factor, state.repetitions) == (1, 2.5, 0)
    assert state.next_due is None


def test_completed_comparison_ignores_order():
    one = ProgressRecord(completed=("a", "b"), updated_at=1, version=1)
    two = ProgressRecord(completed=("b", "a"), updated_at=9, version=4)
    assert one.same_completed(two)
    assert not one.same_completed(ProgressRecord(completed=("a",)))
    assert ProgressRecord.empty().same_completed(None)


def test_evolve_returns_new_record():
    record = ProgressRecord.empty()
    updated = record.evolve(completed=("x",), version=1)
    assert record.completed == ()
    assert updated.completed == ("x",)
    assert updated.has_completed("x")


def test_summary_from_record():
    record = ProgressRecord(completed=tuple(f"item-{i}" for i in range(12)))
    summary = ProgressSummary.from_record(record, now_ms=42)
    assert summary.xp == 240
    assert summary.streak == 12
    assert summary.level == 3
    assert summary.updated_at == 42


def test_summary_streak_is_capped():
    record = ProgressRecord(completed=tuple(str(i) for i in range(400)))
    assert ProgressSummary.from_record(record, now_ms=0).streak == 365


def test_cache_key():
    assert cache_key(2) == "fluentia:progress:v2"


def test_cache_key_scoped_to_owner():
    assert cache_key(2, "alice") == "fluentia:progress:v2:alice"
    assert cache_key(2, None) == "fluentia:progress:v2"
