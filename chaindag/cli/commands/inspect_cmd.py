"""Inspection commands: recorded transactions and deployment status."""

import asyncio
from typing import Annotated

import typer
from rich.table import Table

from chaindag.api import list_operations
from chaindag.api import status as deployment_status
from chaindag.cli.utils import console, get_config, print_output, wants_machine_output
from chaindag.drivers.journal_store import FileJournalStore
from chaindag.kernel.exceptions import ChainDAGError

_STATUS_STYLES = {
    "success": "green",
    "confirmed": "green",
    "started": "cyan",
    "pending": "cyan",
    "held": "yellow",
    "timed_out": "red",
    "failed": "red",
    "reverted": "red",
}


def _styled(value: str) -> str:
    style = _STATUS_STYLES.get(str(value))
    return f"[{style}]{value}[/{style}]" if style else value


def transactions(
    ctx: typer.Context,
    deployment_id: Annotated[str, typer.Argument(help="Deployment id")],
) -> None:
    """List the network submissions recorded for a deployment."""
    store = FileJournalStore(get_config(ctx).deployments_dir)
    try:
        operations = asyncio.run(list_operations(deployment_id, store))
    except ChainDAGError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from e

    if wants_machine_output(ctx):
        print_output(
            [
                {
                    "future_id": op.future_id,
                    "interaction_id": op.interaction_id,
                    "kind": op.kind,
                    "sender": op.sender,
                    "to": op.to,
                    "value": op.value,
                    "handle": op.handle,
                    "status": str(op.status),
                }
                for op in operations
            ],
            ctx,
        )
        return

    if not operations:
        console.print(f"[yellow]No transactions recorded for '{deployment_id}'[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta", title=deployment_id)
    table.add_column("Future")
    table.add_column("#", justify="right")
    table.add_column("Kind")
    table.add_column("From")
    table.add_column("To")
    table.add_column("Value", justify="right")
    table.add_column("Handle")
    table.add_column("Status")
    for op in operations:
        table.add_row(
            op.future_id,
            str(op.interaction_id),
            op.kind,
            op.sender or "-",
            op.to or "-",
            str(op.value),
            op.handle or "-",
            _styled(op.status),
        )
    console.print(table)


def status(
    ctx: typer.Context,
    deployment_id: Annotated[str, typer.Argument(help="Deployment id")],
) -> None:
    """Show the recorded state of every future of a deployment."""
    store = FileJournalStore(get_config(ctx).deployments_dir)
    try:
        summary = asyncio.run(deployment_status(deployment_id, store))
    except ChainDAGError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from e

    if wants_machine_output(ctx):
        print_output(
            {
                "deployment_id": summary.deployment_id,
                "chain_id": summary.chain_id,
                "strategy": summary.strategy,
                "contracts": summary.contracts,
                "futures": {fid: str(s) for fid, s in summary.futures.items()},
            },
            ctx,
        )
        return

    console.print(f"[bold]Deployment {summary.deployment_id}[/bold]")
    console.print(f"  Chain: {summary.chain_id}")
    console.print(f"  Strategy: {summary.strategy}")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Future")
    table.add_column("Status")
    table.add_column("Address")
    for future_id, future_status in summary.futures.items():
        table.add_row(
            future_id, _styled(future_status), summary.contracts.get(future_id, "-")
        )
    console.print(table)

    counts = ", ".join(f"{count} {s}" for s, count in sorted(summary.counts.items()))
    console.print(f"[dim]{counts}[/dim]")
