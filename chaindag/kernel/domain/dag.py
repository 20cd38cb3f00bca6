"""Deployment graph: futures grouped by module, with dependency ordering.

Two levels of ordering are tracked:

- future level: a future runs after every future it depends on
- module level: a module is ordered after every *other* module one of its
  futures depends on; dependencies inside a module only affect future order
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from chaindag.kernel.exceptions import BuildError, CycleDetectedError, DuplicateFutureError

if TYPE_CHECKING:
    from chaindag.kernel.domain.futures import Future
    from chaindag.kernel.domain.module import DeploymentModule

_EMPTY_SET: frozenset[str] = frozenset()


def stable_topological_sort(
    items: Iterable[str], dependencies: Mapping[str, Iterable[str]]
) -> list[str]:
    """Order *items* so each comes after its dependencies, keeping declaration order.

    Repeatedly scans the unplaced items in declaration order and appends any
    item whose dependencies are all placed. An item placed earlier in the same
    pass already counts as placed. Dependencies outside *items* are ignored.

    Parameters
    ----------
    items : Iterable[str]
        Ids in declaration order
    dependencies : Mapping[str, Iterable[str]]
        Dependency ids per item

    Returns
    -------
    list[str]
        Sorted ids

    Raises
    ------
    CycleDetectedError
        If a full pass places nothing. The error names the first stuck id.

    Examples
    --------
    >>> stable_topological_sort(["b", "a", "c"], {"b": ["a"]})
    ['a', 'c', 'b']
    >>> stable_topological_sort(["a", "b", "c"], {"c": ["a"]})
    ['a', 'b', 'c']
    """
    ordered_items = list(items)
    domain = set(ordered_items)
    deps = {
        item: {dep for dep in dependencies.get(item, ()) if dep in domain and dep != item}
        for item in ordered_items
    }

    placed: set[str] = set()
    result: list[str] = []
    remaining = ordered_items

    while remaining:
        still_remaining: list[str] = []
        for item in remaining:
            if deps[item] <= placed:
                result.append(item)
                placed.add(item)
            else:
                still_remaining.append(item)

        if len(still_remaining) == len(remaining):
            stuck = still_remaining[0]
            unmet = sorted(deps[stuck] - placed)
            raise CycleDetectedError(
                f"Cannot order '{stuck}': dependencies {unmet} are never satisfied"
            )
        remaining = still_remaining

    return result


@dataclass(frozen=True, slots=True)
class GraphModule:
    """Futures registered under one module id, in declaration order."""

    id: str
    futures: tuple[Future, ...]

    def __iter__(self) -> Iterator[Future]:
        return iter(self.futures)

    def __len__(self) -> int:
        return len(self.futures)


class DeploymentGraph:
    """Directed acyclic graph of futures across modules.

    Provides:
    - Future registration with duplicate detection
    - Inter-module dependency tracking
    - Stable topological ordering of modules and futures
    - Dependents lookups used to block descendants of failed futures
    """

    def __init__(self, futures: Iterable[Future] | None = None) -> None:
        self.futures: dict[str, Future] = {}
        self._modules: dict[str, dict[str, Future]] = {}
        self._module_dependencies: defaultdict[str, set[str]] = defaultdict(set)
        self._forward_edges: defaultdict[str, set[str]] = defaultdict(set)
        self._sorted_cache: list[Future] | None = None

        for future in futures or ():
            self.add_future(future)

    @classmethod
    def from_module(cls, module: DeploymentModule) -> DeploymentGraph:
        """Build the graph for a module and everything it includes."""
        graph = cls(module.all_futures())
        graph.validate()
        return graph

    def add_future(self, future: Future) -> DeploymentGraph:
        """Register *future* under its owning module.

        Raises
        ------
        DuplicateFutureError
            If a future with the same id is already registered.
        """
        if future.id in self.futures:
            raise DuplicateFutureError(future.id)

        module_futures = self._modules.setdefault(future.module_id, {})
        for dependency in future.dependencies:
            if dependency.module_id != future.module_id:
                self._module_dependencies[future.module_id].add(dependency.module_id)
            self._forward_edges[dependency.id].add(future.id)

        module_futures[future.id] = future
        self.futures[future.id] = future
        self._sorted_cache = None
        return self

    def validate(self) -> None:
        """Check that every dependency is registered in the graph.

        Raises
        ------
        BuildError
            If a future depends on a future that was never added.
        """
        missing = [
            f"Future '{future.id}' depends on unknown future '{dep.id}'"
            for future in self.futures.values()
            for dep in future.dependencies
            if self.futures.get(dep.id) is not dep
        ]
        if missing:
            raise BuildError("; ".join(missing))

    def get_module(self, module_id: str) -> GraphModule | None:
        module_futures = self._modules.get(module_id)
        if module_futures is None:
            return None
        return GraphModule(module_id, tuple(module_futures.values()))

    def get_modules(self) -> list[GraphModule]:
        return [GraphModule(mid, tuple(futures.values())) for mid, futures in self._modules.items()]

    def get_sorted_modules(self) -> list[GraphModule]:
        """Modules ordered so each follows the modules its futures depend on."""
        order = stable_topological_sort(self._modules, self._module_dependencies)
        return [GraphModule(mid, tuple(self._modules[mid].values())) for mid in order]

    def get_sorted_futures(self, module_id: str) -> list[Future]:
        """Futures of one module in dependency order.

        Only dependencies inside the module constrain the order; dependencies
        on other modules are satisfied by module ordering.
        """
        module_futures = self._modules.get(module_id, {})
        order = stable_topological_sort(
            module_futures,
            {fid: future.dependency_ids for fid, future in module_futures.items()},
        )
        return [module_futures[fid] for fid in order]

    def topological_order(self) -> list[Future]:
        """Every future in execution order (modules first, then futures within)."""
        if self._sorted_cache is None:
            self._sorted_cache = [
                future
                for module in self.get_sorted_modules()
                for future in self.get_sorted_futures(module.id)
            ]
        return self._sorted_cache

    get_sorted_all = topological_order

    def get_dependencies(self, future_id: str) -> list[str]:
        if future_id not in self.futures:
            raise KeyError(f"Future '{future_id}' not found in graph")
        return self.futures[future_id].dependency_ids

    def get_dependents(self, future_id: str) -> set[str]:
        if future_id not in self.futures:
            raise KeyError(f"Future '{future_id}' not found in graph")
        return set(self._forward_edges.get(future_id, _EMPTY_SET))

    def get_transitive_dependents(self, future_id: str) -> set[str]:
        """Every future that depends on *future_id*, directly or indirectly."""
        found: set[str] = set()
        stack = [future_id]
        while stack:
            for dependent in self._forward_edges.get(stack.pop(), _EMPTY_SET):
                if dependent not in found:
                    found.add(dependent)
                    stack.append(dependent)
        return found

    def __len__(self) -> int:
        return len(self.futures)

    def __contains__(self, future_id: object) -> bool:
        return future_id in self.futures

    def __iter__(self) -> Iterator[Future]:
        return iter(self.futures.values())

    def __repr__(self) -> str:
        return f"DeploymentGraph(modules={list(self._modules)!r}, futures={len(self.futures)})"
