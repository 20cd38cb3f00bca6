"""Tests for chaindag.kernel.domain.runtime_values."""

import pytest

from chaindag.kernel.domain.futures import ContractDeploymentFuture
from chaindag.kernel.domain.runtime_values import (
    MISSING,
    AccountRuntimeValue,
    ModuleParameterRuntimeValue,
    collect_runtime_values,
    is_runtime_value,
)
from chaindag.kernel.exceptions import InvariantViolationError


class TestCollectRuntimeValues:
    """Tests for collect_runtime_values."""

    def test_literals_yield_nothing(self) -> None:
        assert collect_runtime_values([1, "0xabc", {"a": [True, None]}]) == []

    def test_nested_structures_in_discovery_order(self) -> None:
        """Values are found at any depth, in the order they are reached."""
        account = AccountRuntimeValue(1)
        supply = ModuleParameterRuntimeValue("Token", "supply")
        owner = ModuleParameterRuntimeValue("Token", "owner")

        found = collect_runtime_values([supply, {"x": [[account]], "y": (owner,)}])

        assert found == [supply, account, owner]

    def test_duplicates_are_dropped(self) -> None:
        account = AccountRuntimeValue(0)
        found = collect_runtime_values([account, [AccountRuntimeValue(0)], {"k": account}])
        assert found == [account]

    def test_parameters_compare_by_module_and_name(self) -> None:
        """The declared default does not take part in equality."""
        with_default = ModuleParameterRuntimeValue("M", "p", 5)
        without_default = ModuleParameterRuntimeValue("M", "p")
        assert with_default == without_default
        assert collect_runtime_values([with_default, without_default]) == [with_default]

    def test_futures_are_collected(self) -> None:
        token = ContractDeploymentFuture(id="M#Token", module_id="M", contract_name="Token")
        assert collect_runtime_values({"token": token}) == [token]

    def test_follow_futures_descends_into_reference_fields(self) -> None:
        owner = AccountRuntimeValue(2)
        token = ContractDeploymentFuture(
            id="M#Token", module_id="M", contract_name="Token", args=(owner,)
        )
        assert collect_runtime_values([token]) == [token]
        assert collect_runtime_values([token], follow_futures=True) == [token, owner]

    def test_self_containing_structure_is_an_invariant_violation(self) -> None:
        looped: list = [1]
        looped.append(looped)
        with pytest.raises(InvariantViolationError):
            collect_runtime_values(looped)


class TestModuleParameterRuntimeValue:
    def test_missing_default(self) -> None:
        param = ModuleParameterRuntimeValue("M", "p")
        assert param.default_value is MISSING
        assert not param.has_default

    def test_falsy_default_is_still_a_default(self) -> None:
        assert ModuleParameterRuntimeValue("M", "p", 0).has_default
        assert ModuleParameterRuntimeValue("M", "p", None).has_default


def test_is_runtime_value() -> None:
    assert is_runtime_value(AccountRuntimeValue(0))
    assert is_runtime_value(ModuleParameterRuntimeValue("M", "p"))
    assert not is_runtime_value("0xabc")
    assert not is_runtime_value([AccountRuntimeValue(0)])
