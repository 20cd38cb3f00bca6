"""Operator commands editing a deployment journal."""

import asyncio
import json
from typing import Annotated, Any

import typer

from chaindag.api import resolve_held
from chaindag.api import wipe as wipe_future
from chaindag.cli.utils import console, get_config
from chaindag.drivers.journal_store import FileJournalStore
from chaindag.kernel.exceptions import ChainDAGError


def wipe(
    ctx: typer.Context,
    deployment_id: Annotated[str, typer.Argument(help="Deployment id")],
    future_id: Annotated[str, typer.Argument(help="Future to forget, e.g. 'Token#Token'")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation")] = False,
) -> None:
    """Forget the recorded state of a future so the next deploy executes it again."""
    if not yes and not typer.confirm(f"Wipe '{future_id}' from '{deployment_id}'?"):
        raise typer.Abort()

    store = FileJournalStore(get_config(ctx).deployments_dir)
    try:
        asyncio.run(wipe_future(deployment_id, future_id, store))
    except ChainDAGError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from e
    console.print(f"[green]✓ Wiped '{future_id}'[/green]")


def resolve(
    ctx: typer.Context,
    deployment_id: Annotated[str, typer.Argument(help="Deployment id")],
    future_id: Annotated[str, typer.Argument(help="Held future to settle")],
    result: Annotated[
        str | None, typer.Option("--result", help="JSON result recorded on success")
    ] = None,
    error: Annotated[
        str | None, typer.Option("--error", help="Fail the future with this reason")
    ] = None,
) -> None:
    """Settle a held future as succeeded (optionally with --result) or failed (--error)."""
    if result is not None and error is not None:
        console.print("[red]Error: --result and --error are mutually exclusive[/red]")
        raise typer.Exit(1)

    value: Any = None
    if result is not None:
        try:
            value = json.loads(result)
        except json.JSONDecodeError:
            value = result

    store = FileJournalStore(get_config(ctx).deployments_dir)
    try:
        asyncio.run(
            resolve_held(deployment_id, future_id, result=value, error=error, journal_store=store)
        )
    except ChainDAGError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from e

    outcome = "failed" if error is not None else "succeeded"
    console.print(f"[green]✓ '{future_id}' marked as {outcome}[/green]")
