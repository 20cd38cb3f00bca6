"""chaindag CLI - Main entrypoint."""

from pathlib import Path

import typer
from rich.console import Console

from chaindag import __version__
from chaindag.cli.commands import deploy_cmd, inspect_cmd, operator_cmd, plan_cmd
from chaindag.kernel.config import load_config
from chaindag.kernel.exceptions import ChainDAGError
from chaindag.kernel.logging import configure_logging

# Create the main Typer app
app = typer.Typer(
    name="chaindag",
    help="chaindag - Resumable deployment orchestration for on-chain operations.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=False,
)

# Create console for rich output
console = Console()

# Add commands
app.command("deploy")(deploy_cmd.deploy)
app.command("plan")(plan_cmd.plan)
app.command("transactions")(inspect_cmd.transactions)
app.command("status")(inspect_cmd.status)
app.command("wipe")(operator_cmd.wipe)
app.command("resolve")(operator_cmd.resolve)


@app.callback(invoke_without_command=True)
def callback(
    ctx: typer.Context,
    *,
    quiet: bool = typer.Option(False, "-q", "--quiet", help="Suppress non-error output"),
    verbose: bool = typer.Option(False, "-V", "--verbose", help="Enable verbose logging"),
    json_out: bool = typer.Option(False, "--json", help="Output machine-readable JSON"),
    yaml_out: bool = typer.Option(False, "--yaml", help="Output machine-readable YAML"),
    config_path: Path | None = typer.Option(
        None, "--config", "-c", help="Configuration file (default: discovered pyproject.toml)"
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
    ),
) -> None:
    """chaindag CLI - plan, deploy and inspect deployments.

    Global flags are parsed here and stored on `ctx.obj` for subcommands.
    """
    if version:
        console.print(f"[bold blue]chaindag[/bold blue] version [green]{__version__}[/green]")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit()

    if ctx.obj is None:
        ctx.obj = {}

    output_format = "pretty"
    if json_out:
        output_format = "json"
    elif yaml_out:
        output_format = "yaml"

    try:
        config = load_config(config_path)
    except ChainDAGError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from e

    log = config.logging
    level = log.level
    if quiet:
        level = "ERROR"
    elif verbose:
        level = "DEBUG"

    configure_logging(
        level=level,
        format=log.format,
        output_file=log.output_file,
        use_color=log.use_color,
        include_timestamp=log.include_timestamp,
        backtrace=log.backtrace,
        diagnose=log.diagnose,
        force_reconfigure=True,
    )

    ctx.obj.update({
        "quiet": quiet,
        "verbose": verbose,
        "output_format": output_format,
        "config": config,
        "version": __version__,
    })


def main() -> None:
    """Main CLI entrypoint."""
    app()


if __name__ == "__main__":
    main()
