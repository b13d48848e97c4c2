"""Fluentia CLI: progress, review and config command groups."""

import json
import logging
import sys
from pathlib import Path
from typing import Annotated

import typer

from fluentia.application.config import resolve_config
from fluentia.domain.models import Attempt
from fluentia.infrastructure.schemas import format_timestamp
from fluentia.interface._common import _resolve_with_overrides, _user_for, run_with_reconciler

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="fluentia: spaced-repetition scheduling and offline-first progress sync.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Subgroups
# ---------------------------------------------------------------------------

progress_app = typer.Typer(help="Inspect and change learner progress.", no_args_is_help=True)
app.add_typer(progress_app, name="progress")

review_app = typer.Typer(help="Spaced-repetition reviews.", no_args_is_help=True)
app.add_typer(review_app, name="review")

config_app = typer.Typer(help="Manage fluentia configuration.")
app.add_typer(config_app, name="config")

UserOption = Annotated[
    str | None, typer.Option("--user", "-u", help="Learner id. Omit to stay local-only.")
]
CacheFileOption = Annotated[
    Path | None, typer.Option("--cache-file", help="Local storage file to use.")
]
BackendOption = Annotated[
    str | None, typer.Option("--remote", help="Remote store: none, supabase, memory.")
]


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 1,
):
    """Global settings for fluentia."""
    ctx.ensure_object(dict)
    ctx.obj["verbose_bonus"] = verbose


def _config(ctx: typer.Context, cache_file: Path | None, remote: str | None):
    obj = ctx.obj or {}
    return _resolve_with_overrides(
        cache_file=cache_file,
        remote_backend=remote,
        verbose=obj.get("verbose_bonus", 1),
    )


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


@progress_app.command("show")
def progress_show(
    ctx: typer.Context,
    user: UserOption = None,
    cache_file: CacheFileOption = None,
    remote: BackendOption = None,
):
    """List completed items."""
    config = _config(ctx, cache_file, remote)
    record = run_with_reconciler(config, lambda r: r.resolve(_user_for(config, user)))

    if not record.completed:
        typer.secho("No completed items yet.", fg="yellow")
        return
    for item_id in record.completed:
        typer.echo(item_id)
    typer.echo(f"Total: {len(record.completed)} (version {record.version})")


@progress_app.command("complete")
def progress_complete(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument(help="Item to mark completed.")],
    user: UserOption = None,
    cache_file: CacheFileOption = None,
    remote: BackendOption = None,
):
    """Mark an item completed."""
    config = _config(ctx, cache_file, remote)
    record = run_with_reconciler(
        config, lambda r: r.mark_item_completed(item_id, _user_for(config, user))
    )
    typer.secho(f"Completed '{item_id}' ({len(record.completed)} total).", fg="green")


@progress_app.command("reset")
def progress_reset(
    ctx: typer.Context,
    user: UserOption = None,
    cache_file: CacheFileOption = None,
    remote: BackendOption = None,
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Bypass confirmation.")
    ] = False,
):
    """[bold red]Erase[/bold red] all progress, locally and remotely."""
    if not force:
        typer.confirm("This erases all progress. Continue?", abort=True)

    config = _config(ctx, cache_file, remote)
    run_with_reconciler(config, lambda r: r.reset_progress(_user_for(config, user)))
    typer.secho("Progress reset.", fg="green")


@progress_app.command("summary")
def progress_summary(
    ctx: typer.Context,
    user: UserOption = None,
    cache_file: CacheFileOption = None,
    remote: BackendOption = None,
):
    """Show XP, streak and level."""
    config = _config(ctx, cache_file, remote)
    summary = run_with_reconciler(
        config, lambda r: r.get_progress_summary(_user_for(config, user))
    )
    typer.echo(f"XP: {summary.xp}")
    typer.echo(f"Streak: {summary.streak}")
    typer.echo(f"Level: {summary.level}")


@progress_app.command("sync")
def progress_sync(
    ctx: typer.Context,
    user: UserOption = None,
    cache_file: CacheFileOption = None,
    remote: BackendOption = None,
):
    """Reconcile the local cache with the remote store."""
    config = _config(ctx, cache_file, remote)
    user_id = _user_for(config, user)
    if not user_id:
        typer.secho("No user given; nothing to sync.", fg="yellow")
        raise typer.Exit(2)

    record = run_with_reconciler(config, lambda r: r.resolve(user_id))
    typer.echo(
        f"Synced {len(record.completed)} items "
        f"(version {record.version}, updated {format_timestamp(record.updated_at)})"
    )


# ---------------------------------------------------------------------------
# Review
# ---------------------------------------------------------------------------


@review_app.command("due")
def review_due(
    ctx: typer.Context,
    user: UserOption = None,
    cache_file: CacheFileOption = None,
    remote: BackendOption = None,
):
    """List items due for review, most overdue first."""
    config = _config(ctx, cache_file, remote)
    queue = run_with_reconciler(config, lambda r: r.get_review_queue(_user_for(config, user)))
    if not queue:
        typer.secho("Nothing due.", fg="green")
        return
    for item_id in queue:
        typer.echo(item_id)


@review_app.command("answer")
def review_answer(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument(help="Item that was reviewed.")],
    correct: Annotated[
        bool, typer.Option("--correct/--incorrect", help="Whether the answer was right.")
    ] = True,
    latency_ms: Annotated[
        int | None, typer.Option("--latency-ms", help="Response time in milliseconds.")
    ] = None,
    score: Annotated[
        float | None, typer.Option("--score", help="0-100 score; overrides --correct.")
    ] = None,
    user: UserOption = None,
    cache_file: CacheFileOption = None,
    remote: BackendOption = None,
):
    """Record a review and schedule the next one."""
    config = _config(ctx, cache_file, remote)
    attempt = Attempt(item_id=item_id, correct=correct, latency_ms=latency_ms, score=score)
    result = run_with_reconciler(
        config, lambda r: r.record_attempt(attempt, _user_for(config, user))
    )
    state = result.state
    typer.echo(
        f"'{item_id}': next review in {state.interval_days} day(s) "
        f"on {result.next_due.isoformat(timespec='minutes')} "
        f"(ease {state.ease_factor:.2f}, streak {state.repetitions})"
    )


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@app.command()
def serve(
    host: Annotated[str, typer.Option(help="Interface to bind.")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Port to listen on.")] = 8777,
):
    """Run the HTTP API server."""
    import uvicorn

    uvicorn.run("fluentia.server:app", host=host, port=port)


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    d = config.model_dump()
    d["supabase_key"] = "***" if config.supabase_key else None
    d = {k: str(v) if isinstance(v, Path) else v for k, v in d.items()}
    typer.echo(json.dumps(d, indent=2))


if __name__ == "__main__":
    app()
