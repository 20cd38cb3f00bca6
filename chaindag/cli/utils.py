"""CLI helper utilities for chaindag commands."""

from __future__ import annotations

import importlib.util
import json
import sys
from pathlib import Path
from typing import Any, Protocol

import typer
import yaml
from rich.console import Console

from chaindag.kernel.config import ChainDAGConfig, load_config
from chaindag.kernel.domain.module import ModuleDefinition
from chaindag.kernel.exceptions import ConfigurationError


class ContextProtocol(Protocol):
    """Protocol for common interface between Click and Typer contexts."""

    @property
    def obj(self) -> dict[str, Any] | None: ...


console = Console()


def print_output(obj: Any, ctx: ContextProtocol | None = None) -> None:
    """Print `obj` according to `ctx.obj['output_format']`.

    Objects are printed with rich unless JSON or YAML output was requested.
    """
    fmt = None
    if ctx is not None:
        settings = getattr(ctx, "obj", None)
        if isinstance(settings, dict):
            fmt = settings.get("output_format")

    if fmt == "json":
        typer.echo(json.dumps(obj, default=str, indent=2))
    elif fmt == "yaml":
        typer.echo(yaml.safe_dump(obj, sort_keys=False))
    elif isinstance(obj, (str, int, float)):
        typer.echo(str(obj))
    else:
        console.print(obj)


def wants_machine_output(ctx: ContextProtocol) -> bool:
    settings = getattr(ctx, "obj", None)
    return isinstance(settings, dict) and settings.get("output_format") in ("json", "yaml")


def get_config(ctx: ContextProtocol) -> ChainDAGConfig:
    """Configuration loaded by the root callback, or discovered defaults."""
    settings = getattr(ctx, "obj", None)
    if isinstance(settings, dict) and isinstance(settings.get("config"), ChainDAGConfig):
        return settings["config"]
    return load_config()


def load_module_definition(module_file: Path, name: str | None = None) -> ModuleDefinition:
    """Import *module_file* and return the :class:`ModuleDefinition` it declares.

    With *name*, the attribute of that name is used. Otherwise the file must
    declare exactly one module definition.

    Raises
    ------
    ConfigurationError
        If the file cannot be imported or does not declare a single definition
    """
    if not module_file.exists():
        raise ConfigurationError("module", f"file not found: {module_file}")

    spec = importlib.util.spec_from_file_location(f"chaindag_user_{module_file.stem}", module_file)
    if spec is None or spec.loader is None:
        raise ConfigurationError("module", f"cannot import {module_file}")

    namespace = importlib.util.module_from_spec(spec)
    # Let the module file import siblings from its own directory
    sys.path.insert(0, str(module_file.parent.resolve()))
    try:
        spec.loader.exec_module(namespace)
    finally:
        sys.path.pop(0)

    if name is not None:
        definition = getattr(namespace, name, None)
        if not isinstance(definition, ModuleDefinition):
            raise ConfigurationError(
                "module", f"'{name}' in {module_file} is not a module definition"
            )
        return definition

    definitions = {
        attr: value
        for attr, value in vars(namespace).items()
        if isinstance(value, ModuleDefinition)
    }
    # A file that includes other modules exposes them too; prefer the one defined here
    if len(definitions) > 1:
        own = {
            attr: d
            for attr, d in definitions.items()
            if getattr(d.definition, "__module__", None) == namespace.__name__
        }
        definitions = own or definitions
    if len(definitions) != 1:
        found = ", ".join(sorted(definitions)) or "none"
        raise ConfigurationError(
            "module",
            f"expected exactly one module definition in {module_file} (found: {found}); "
            "pick one with --module",
        )
    return next(iter(definitions.values()))
