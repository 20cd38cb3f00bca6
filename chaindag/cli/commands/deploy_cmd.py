"""Deploy command: execute a module against the simulated network."""

import asyncio
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.table import Table

from chaindag.api import DeploymentResult, DeployOptions
from chaindag.api import deploy as deploy_module
from chaindag.cli.utils import (
    console,
    get_config,
    load_module_definition,
    print_output,
    wants_machine_output,
)
from chaindag.drivers.artifacts import LocalArtifactResolver
from chaindag.drivers.network import SimulatedNetwork
from chaindag.kernel.config import load_parameters
from chaindag.kernel.exceptions import ChainDAGError


def deploy(
    ctx: typer.Context,
    module_file: Annotated[Path, typer.Argument(help="Python file declaring the module")],
    parameters: Annotated[
        Path | None,
        typer.Option("--parameters", "-p", help="JSON or YAML parameters file"),
    ] = None,
    module: Annotated[
        str | None,
        typer.Option("--module", "-m", help="Name of the module definition in the file"),
    ] = None,
    deployment_id: Annotated[
        str | None,
        typer.Option("--deployment-id", "-d", help="Deployment id (default: chain-<chain id>)"),
    ] = None,
    strategy: Annotated[
        str | None, typer.Option("--strategy", help="Execution strategy: basic | create2")
    ] = None,
    max_concurrency: Annotated[
        int | None, typer.Option("--max-concurrency", help="Futures executing at once")
    ] = None,
    future_timeout: Annotated[
        float | None, typer.Option("--timeout", help="Per-future timeout in seconds")
    ] = None,
    artifacts: Annotated[
        Path | None,
        typer.Option("--artifacts", help="Artifacts directory checked during validation"),
    ] = None,
    reset: Annotated[
        bool, typer.Option("--reset", help="Delete the existing journal first")
    ] = False,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation")] = False,
) -> None:
    """Validate, reconcile and execute a module.

    Runs against the in-process simulated network. Re-running with the same
    deployment id resumes from the journal.
    """
    config = get_config(ctx)
    if reset and not yes and not typer.confirm("Delete the existing deployment journal?"):
        raise typer.Abort()

    try:
        definition = load_module_definition(module_file, module)
        params = load_parameters(parameters) if parameters else {}
        options = DeployOptions.from_config(
            config,
            deployment_id=deployment_id,
            strategy=strategy,
            max_concurrency=max_concurrency,
            future_timeout=future_timeout,
            artifact_resolver=LocalArtifactResolver(artifacts) if artifacts else None,
            reset=reset,
        )
        if not wants_machine_output(ctx):
            console.print(f"[cyan]Deploying module:[/cyan] {definition.id}")
        result = asyncio.run(deploy_module(definition, params, SimulatedNetwork(), options))
    except ChainDAGError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from e

    if wants_machine_output(ctx):
        print_output(_as_dict(result), ctx)
    else:
        _print_result(result)

    if not result.successful:
        raise typer.Exit(1)


def _as_dict(result: DeploymentResult) -> dict[str, Any]:
    return {
        "kind": str(result.kind),
        "deployment_id": result.deployment_id,
        "contracts": result.contracts,
        "validation_errors": result.validation_errors,
        "reconciliation_failures": result.reconciliation_failures,
        "failed": result.failed,
        "timed_out": result.timed_out,
        "held": result.held,
        "blocked": result.blocked,
        "missing_executed_futures": result.missing_executed_futures,
    }


def _print_result(result: DeploymentResult) -> None:
    for future_id in result.missing_executed_futures:
        console.print(
            f"  [yellow]⚠[/yellow] {future_id} was executed before but is no longer declared"
        )

    if result.validation_errors:
        console.print("\n[red]Validation errors:[/red]")
        for future_id, errors in result.validation_errors.items():
            for error in errors:
                console.print(f"  [red]✗[/red] {future_id}: {error}")
        return

    if result.reconciliation_failures:
        console.print("\n[red]Reconciliation failed:[/red]")
        for future_id, reason in result.reconciliation_failures.items():
            console.print(f"  [red]✗[/red] {future_id}: {reason}")
        return

    if result.contracts:
        table = Table(show_header=True, header_style="bold magenta", title="Deployed contracts")
        table.add_column("Future")
        table.add_column("Address")
        for future_id, address in result.contracts.items():
            table.add_row(future_id, address)
        console.print(table)

    for label, problems in (
        ("failed", result.failed),
        ("timed out", result.timed_out),
        ("held", result.held),
        ("blocked", result.blocked),
    ):
        for future_id, reason in problems.items():
            console.print(f"  [red]✗[/red] {future_id} {label}: {reason}")

    if result.successful:
        console.print(f"\n[green]✓ Deployment '{result.deployment_id}' complete[/green]")
    else:
        console.print(f"\n[red]✗ Deployment '{result.deployment_id}' incomplete[/red]")
