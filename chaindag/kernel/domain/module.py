"""Module definitions and built modules."""

from __future__ import annotations

import hashlib
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from chaindag.kernel.domain.futures import Future
    from chaindag.kernel.module_builder import ModuleBuilder


@dataclass(frozen=True, slots=True)
class ModuleDefinition:
    """A user module: an id plus the function that declares its futures.

    The definition function receives a :class:`ModuleBuilder` and returns a
    mapping of named outputs (usually futures) exposed to including modules.

    Examples
    --------
    Example usage::

        def token_module(m: ModuleBuilder) -> dict[str, Future]:
            token = m.contract("Token", args=[m.get_parameter("supply", 1000)])
            return {"token": token}

        TokenModule = ModuleDefinition("TokenModule", token_module)
    """

    id: str
    definition: Callable[[ModuleBuilder], Mapping[str, Any] | None]

    @property
    def fingerprint(self) -> str:
        """Stable digest of the definition function.

        Two definitions with the same qualified name and bytecode share a
        fingerprint even when they are distinct function objects.
        """
        fn = self.definition
        digest = hashlib.sha256()
        digest.update(getattr(fn, "__module__", "").encode())
        digest.update(getattr(fn, "__qualname__", repr(fn)).encode())
        code = getattr(fn, "__code__", None)
        if code is not None:
            digest.update(code.co_code)
            digest.update(repr(code.co_consts).encode())
        return digest.hexdigest()


def build_module(module_id: str) -> Callable[[Callable[..., Any]], ModuleDefinition]:
    """Decorator turning a definition function into a :class:`ModuleDefinition`.

    Examples
    --------
    Example usage::

        @build_module("Counter")
        def counter(m):
            return {"counter": m.contract("Counter")}
    """

    def wrap(fn: Callable[..., Any]) -> ModuleDefinition:
        return ModuleDefinition(module_id, fn)

    return wrap


@dataclass(frozen=True, slots=True)
class DeploymentModule:
    """A built module: its futures in declaration order and its outputs."""

    id: str
    futures: tuple[Future, ...]
    results: Mapping[str, Any] = field(default_factory=dict)
    submodules: tuple[DeploymentModule, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "futures", tuple(self.futures))
        object.__setattr__(self, "results", MappingProxyType(dict(self.results)))

    def all_futures(self) -> list[Future]:
        """Futures of this module and every included module, without duplicates.

        Included modules come first, in inclusion order.
        """
        seen: set[str] = set()
        ordered: list[Future] = []

        def walk(module: DeploymentModule) -> None:
            for sub in module.submodules:
                walk(sub)
            for future in module.futures:
                if future.id not in seen:
                    seen.add(future.id)
                    ordered.append(future)

        walk(self)
        return ordered

    def __repr__(self) -> str:
        return f"DeploymentModule({self.id!r}, futures={len(self.futures)})"
