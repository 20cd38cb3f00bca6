"""Tests for chaindag.kernel.domain.dag."""

import pytest

from chaindag.kernel.domain.dag import DeploymentGraph, stable_topological_sort
from chaindag.kernel.domain.futures import ContractCallFuture, ContractDeploymentFuture
from chaindag.kernel.exceptions import BuildError, CycleDetectedError, DuplicateFutureError


def deploy(module_id: str, name: str, *args, after=()) -> ContractDeploymentFuture:
    return ContractDeploymentFuture(
        id=f"{module_id}#{name}",
        module_id=module_id,
        contract_name=name,
        args=args,
        after=after,
    )


class TestStableTopologicalSort:
    """Tests for the repeated-scan ordering."""

    def test_independent_items_keep_declaration_order(self) -> None:
        assert stable_topological_sort(["c", "a", "b"], {}) == ["c", "a", "b"]

    def test_dependency_moves_item_back(self) -> None:
        assert stable_topological_sort(["b", "a", "c"], {"b": ["a"]}) == ["a", "c", "b"]

    def test_item_placed_in_same_pass_counts_as_placed(self) -> None:
        assert stable_topological_sort(["a", "b", "c"], {"b": ["a"], "c": ["b"]}) == [
            "a",
            "b",
            "c",
        ]

    def test_unknown_and_self_dependencies_are_ignored(self) -> None:
        assert stable_topological_sort(["a", "b"], {"a": ["zzz", "a"]}) == ["a", "b"]

    def test_cycle_names_first_stuck_item(self) -> None:
        with pytest.raises(CycleDetectedError, match="'a'"):
            stable_topological_sort(["a", "b", "c"], {"a": ["b"], "b": ["a"]})

    def test_every_item_follows_its_dependencies(self) -> None:
        items = [f"n{i}" for i in range(12)]
        deps = {
            f"n{i}": [f"n{j}" for j in range(i + 1, 12) if (i * j) % 5 == 1] for i in range(12)
        }
        order = stable_topological_sort(items, deps)

        assert sorted(order) == sorted(items)
        position = {item: index for index, item in enumerate(order)}
        for item, item_deps in deps.items():
            for dep in item_deps:
                assert position[dep] < position[item]


class TestDeploymentGraph:
    """Tests for DeploymentGraph."""

    def test_duplicate_future_rejected(self) -> None:
        graph = DeploymentGraph([deploy("M", "Token")])
        with pytest.raises(DuplicateFutureError):
            graph.add_future(deploy("M", "Token"))

    def test_unknown_dependency_fails_validation(self) -> None:
        token = deploy("M", "Token")
        graph = DeploymentGraph([deploy("M", "Vault", token)])
        with pytest.raises(BuildError, match="unknown future 'M#Token'"):
            graph.validate()

    def test_future_order_within_module(self) -> None:
        token = deploy("M", "Token")
        vault = deploy("M", "Vault", token)
        # Declared before its dependency
        graph = DeploymentGraph([vault, token])
        assert [f.id for f in graph.topological_order()] == ["M#Token", "M#Vault"]

    def test_modules_ordered_before_dependents(self) -> None:
        """A module runs after every other module its futures depend on."""
        registry = deploy("Core", "Registry")
        app = deploy("App", "App", registry)
        unrelated = deploy("App", "Helper")
        graph = DeploymentGraph([app, unrelated, registry])

        assert [m.id for m in graph.get_sorted_modules()] == ["Core", "App"]
        assert [f.id for f in graph.topological_order()] == [
            "Core#Registry",
            "App#App",
            "App#Helper",
        ]

    def test_after_hints_are_dependencies(self) -> None:
        first = deploy("M", "First")
        second = deploy("M", "Second", after=(first,))
        graph = DeploymentGraph([second, first])
        assert graph.get_dependencies("M#Second") == ["M#First"]
        assert [f.id for f in graph.topological_order()] == ["M#First", "M#Second"]

    def test_transitive_dependents(self) -> None:
        token = deploy("M", "Token")
        mint = ContractCallFuture(id="M#mint", module_id="M", contract=token, method="mint")
        vault = deploy("M", "Vault", token, after=(mint,))
        other = deploy("M", "Other")
        graph = DeploymentGraph([token, mint, vault, other])

        assert graph.get_dependents("M#Token") == {"M#mint", "M#Vault"}
        assert graph.get_transitive_dependents("M#mint") == {"M#Vault"}
        assert graph.get_transitive_dependents("M#Other") == set()

    def test_get_dependencies_unknown_future(self) -> None:
        with pytest.raises(KeyError):
            DeploymentGraph().get_dependencies("M#Nope")

    def test_container_protocol(self) -> None:
        graph = DeploymentGraph([deploy("M", "A"), deploy("M", "B")])
        assert len(graph) == 2
        assert "M#A" in graph
        assert "M#C" not in graph
        assert {f.id for f in graph} == {"M#A", "M#B"}
