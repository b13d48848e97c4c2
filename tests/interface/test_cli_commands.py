"""Tests for CLI commands: progress, review and config subgroups."""

import json

import pytest
from typer.testing import CliRunner

from fluentia.domain.errors import PushError
from fluentia.infrastructure.adapters.memory_remote import MemoryProgressStore
from fluentia.interface.cli import app

runner = CliRunner()


@pytest.fixture
def storage(mock_home, tmp_path):
    return tmp_path / "storage.json"


def _invoke(storage, *args):
    return runner.invoke(app, [*args, "--cache-file", str(storage)])


# --- Help ---


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "progress" in result.stdout
    assert "review" in result.stdout
    assert "config" in result.stdout


# --- Progress ---


def test_progress_show_empty(storage):
    result = _invoke(storage, "progress", "show")
    assert result.exit_code == 0
    assert "No completed items yet." in result.stdout


def test_progress_complete_then_show(storage):
    result = _invoke(storage, "progress", "complete", "ciao-1")
    assert result.exit_code == 0
    assert "Completed 'ciao-1'" in result.stdout

    result = _invoke(storage, "progress", "show")
    assert "ciao-1" in result.stdout
    assert "Total: 1 (version 1)" in result.stdout

    stored = json.loads(storage.read_text())
    assert json.loads(stored["fluentia:progress:v2"])["completed"] == ["ciao-1"]


def test_progress_complete_is_idempotent(storage):
    _invoke(storage, "progress", "complete", "ciao-1")
    _invoke(storage, "progress", "complete", "ciao-1")
    result = _invoke(storage, "progress", "show")
    assert "Total: 1 (version 1)" in result.stdout


def test_progress_reset_requires_confirmation(storage):
    _invoke(storage, "progress", "complete", "a")

    result = runner.invoke(
        app, ["progress", "reset", "--cache-file", str(storage)], input="n\n"
    )
    assert result.exit_code != 0
    assert "Total: 1" in _invoke(storage, "progress", "show").stdout

    result = _invoke(storage, "progress", "reset", "--force")
    assert result.exit_code == 0
    assert "No completed items yet." in _invoke(storage, "progress", "show").stdout


def test_progress_summary(storage):
    for item in ("a", "b", "c"):
        _invoke(storage, "progress", "complete", item)

    result = _invoke(storage, "progress", "summary")
    assert result.exit_code == 0
    assert "XP: 60" in result.stdout
    assert "Level: 1" in result.stdout


def test_progress_sync_requires_user(storage):
    result = _invoke(storage, "progress", "sync")
    assert result.exit_code == 2


def test_progress_sync_with_memory_remote(storage):
    _invoke(storage, "progress", "complete", "a")
    result = _invoke(storage, "progress", "sync", "--user", "u1", "--remote", "memory")
    assert result.exit_code == 0
    assert "Synced 1 items" in result.stdout


class RejectingProgressStore(MemoryProgressStore):
    async def upsert(self, user_id, record):
        raise PushError("503 Service Unavailable")


def test_progress_sync_warns_when_push_fails(storage, monkeypatch):
    _invoke(storage, "progress", "complete", "ciao-1")
    monkeypatch.setattr(
        "fluentia.application.factory.build_remote_store",
        lambda config: RejectingProgressStore(),
    )

    result = _invoke(storage, "progress", "sync", "--user", "u1")

    assert result.exit_code == 0
    assert "Synced 1 items" in result.output
    assert "1 remote update(s) failed" in result.output


def test_progress_sync_without_failures_prints_no_warning(storage, monkeypatch):
    _invoke(storage, "progress", "complete", "ciao-1")
    monkeypatch.setattr(
        "fluentia.application.factory.build_remote_store",
        lambda config: MemoryProgressStore(),
    )

    result = _invoke(storage, "progress", "sync", "--user", "u1")

    assert result.exit_code == 0
    assert "failed" not in result.output


def test_invalid_remote_is_rejected(storage):
    result = _invoke(storage, "progress", "show", "--remote", "carrier-pigeon")
    assert result.exit_code == 1


# --- Review ---


def test_review_answer_schedules_item(storage):
    result = _invoke(storage, "review", "answer", "ciao-1", "--latency-ms", "1200")
    assert result.exit_code == 0
    assert "next review in 1 day(s)" in result.stdout

    result = _invoke(storage, "review", "due")
    assert "Nothing due." in result.stdout


def test_review_answer_incorrect(storage):
    result = _invoke(storage, "review", "answer", "ciao-1", "--incorrect")
    assert result.exit_code == 0
    assert "streak 0" in result.stdout


# --- Config ---


def test_config_show_masks_key(mock_home, monkeypatch):
    monkeypatch.setenv("FLUENTIA_SUPABASE_KEY", "secret")
    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["supabase_key"] == "***"
    assert data["remote_backend"] == "none"
