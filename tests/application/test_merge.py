from fluentia.application.merge import merge
from fluentia.domain.models import ProgressRecord


def _rec(completed=(), updated_at=0, version=0):
    return ProgressRecord(completed=tuple(completed), updated_at=updated_at, version=version)


def test_merge_is_idempotent():
    record = _rec(["a", "b"], updated_at=500, version=3)
    assert merge(record, record) == record


def test_equal_timestamps_higher_version_wins():
    local = _rec(["local"], updated_at=10, version=1)
    remote = _rec(["remote"], updated_at=10, version=2)
    assert merge(local, remote) is remote


def test_equal_timestamps_local_higher_version_wins():
    local = _rec(["local"], updated_at=10, version=5)
    remote = _rec(["remote"], updated_at=10, version=2)
    assert merge(local, remote) is local


def test_exact_tie_prefers_remote():
    local = _rec(["local"], updated_at=10, version=2)
    remote = _rec(["remote"], updated_at=10, version=2)
    assert merge(local, remote) is remote


def test_later_timestamp_wins_regardless_of_version():
    local = _rec(["local"], updated_at=20, version=1)
    remote = _rec(["remote"], updated_at=10, version=99)
    assert merge(local, remote) is local
    assert merge(remote, local) is local


def test_one_sided_inputs():
    record = _rec(["x"], updated_at=1, version=1)
    assert merge(record, None) is record
    assert merge(None, record) is record


def test_both_absent_gives_empty_record():
    merged = merge(None, None)
    assert merged.completed == ()
    assert merged.version == 0
    assert merged.updated_at == 0


def test_inputs_are_not_modified():
    local = _rec(["a"], updated_at=1, version=1)
    remote = _rec(["b"], updated_at=2, version=1)
    merge(local, remote)
    assert local.completed == ("a",)
    assert remote.completed == ("b",)
