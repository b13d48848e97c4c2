"""Helpers shared by the CLI command groups."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import typer
from pydantic import ValidationError

from fluentia.application.config import AppConfig, resolve_config
from fluentia.application.factory import build_reconciler
from fluentia.application.reconciler import SyncReconciler

T = TypeVar("T")


def _resolve_with_overrides(**overrides: Any) -> AppConfig:
    """Resolve config, letting non-None CLI options win over file and env."""
    try:
        config = resolve_config(overrides)
    except ValidationError as e:
        typer.secho(f"Invalid configuration: {e}", fg="red", err=True)
        raise typer.Exit(1) from None
    if config.verbose >= 2:
        logging.getLogger().setLevel(logging.DEBUG)
    elif config.verbose <= 0:
        logging.getLogger().setLevel(logging.WARNING)
    return config


def _user_for(config: AppConfig, user: str | None) -> str | None:
    return user if user is not None else config.user_id


def run_with_reconciler(
    config: AppConfig, action: Callable[[SyncReconciler], Awaitable[T]]
) -> T:
    """
    Run `action` against a fresh reconciler, then wait for its remote pushes.

    Failed pushes are reported but do not change the exit code: the local
    cache already holds the change.
    """

    async def run() -> T:
        reconciler = build_reconciler(config)
        result = await action(reconciler)
        pushes = await reconciler.drain_pushes()
        await reconciler.aclose()
        failed = [p for p in pushes if not p.ok]
        if failed:
            typer.secho(
                f"WARNING: {len(failed)} remote update(s) failed; "
                "progress is saved locally and will sync later.",
                fg="yellow",
                err=True,
            )
        return result

    return asyncio.run(run())
