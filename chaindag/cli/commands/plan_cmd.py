"""Plan command: show the execution order of a module."""

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from chaindag.api import plan as plan_module
from chaindag.cli.utils import console, load_module_definition, print_output, wants_machine_output
from chaindag.kernel.exceptions import ChainDAGError


def plan(
    ctx: typer.Context,
    module_file: Annotated[Path, typer.Argument(help="Python file declaring the module")],
    module: Annotated[
        str | None,
        typer.Option("--module", "-m", help="Name of the module definition in the file"),
    ] = None,
) -> None:
    """Show the futures of a module in execution order."""
    try:
        definition = load_module_definition(module_file, module)
        futures = plan_module(definition)
    except ChainDAGError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from e

    if wants_machine_output(ctx):
        print_output(
            [
                {"id": f.id, "type": str(f.future_type), "dependencies": f.dependency_ids}
                for f in futures
            ],
            ctx,
        )
        return

    table = Table(show_header=True, header_style="bold magenta", title=f"Plan: {definition.id}")
    table.add_column("#", justify="right")
    table.add_column("Future")
    table.add_column("Type")
    table.add_column("Depends on")
    for position, future in enumerate(futures, start=1):
        table.add_row(
            str(position),
            future.id,
            str(future.future_type),
            ", ".join(future.dependency_ids) or "-",
        )
    console.print(table)
