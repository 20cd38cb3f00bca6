"""Tests for chaindag.kernel.resolver."""

import pytest

from chaindag.kernel.domain.futures import (
    ContractDeploymentFuture,
    SendDataFuture,
    StaticCallFuture,
)
from chaindag.kernel.domain.runtime_values import AccountRuntimeValue, ModuleParameterRuntimeValue
from chaindag.kernel.exceptions import InvariantViolationError, ValidationError
from chaindag.kernel.resolver import (
    ResolutionContext,
    lookup_parameter,
    normalize_value,
    resolve_inputs,
)

ACCOUNTS = ["0xa0", "0xa1", "0xa2"]


class TestLookupParameter:
    def test_supplied_value_wins_over_default(self) -> None:
        param = ModuleParameterRuntimeValue("M", "supply", 10)
        assert lookup_parameter(param, {"M": {"supply": 99}}) == (True, 99)

    def test_default_used_when_not_supplied(self) -> None:
        param = ModuleParameterRuntimeValue("M", "supply", 10)
        assert lookup_parameter(param, {}) == (True, 10)

    def test_missing_is_not_a_zero_value(self) -> None:
        param = ModuleParameterRuntimeValue("M", "supply")
        assert lookup_parameter(param, {"M": {}}) == (False, None)

    def test_parameters_are_scoped_by_module(self) -> None:
        param = ModuleParameterRuntimeValue("M", "supply")
        assert lookup_parameter(param, {"Other": {"supply": 1}}) == (False, None)


class TestResolveInputs:
    """Tests for resolve_inputs."""

    def test_deployment_inputs(self) -> None:
        library = ContractDeploymentFuture(id="M#Lib", module_id="M", contract_name="Lib")
        token = ContractDeploymentFuture(
            id="M#Token",
            module_id="M",
            contract_name="Token",
            args=(ModuleParameterRuntimeValue("M", "supply"), AccountRuntimeValue(2), (1, 2)),
            libraries={"Lib": library},
            sender=AccountRuntimeValue(1),
        )
        context = ResolutionContext({"M": {"supply": 500}}, ACCOUNTS, {"M#Lib": "0xlib"})

        assert resolve_inputs(token, context) == {
            "contract_name": "Token",
            "args": [500, "0xa2", [1, 2]],
            "libraries": {"Lib": "0xlib"},
            "value": 0,
            "from": "0xa1",
        }

    def test_default_sender_is_first_account(self) -> None:
        token = ContractDeploymentFuture(id="M#Token", module_id="M", contract_name="Token")
        assert resolve_inputs(token, ResolutionContext({}, ACCOUNTS))["from"] == "0xa0"

    def test_send_without_data_sends_empty_data(self) -> None:
        send = SendDataFuture(id="M#pay", module_id="M", to="0xdd", value=3)
        inputs = resolve_inputs(send, ResolutionContext({}, ACCOUNTS))
        assert inputs == {"to": "0xdd", "data": "0x", "value": 3, "from": "0xa0"}

    def test_send_data_from_future_must_be_string(self) -> None:
        token = ContractDeploymentFuture(id="M#Token", module_id="M", contract_name="Token")
        encoded = StaticCallFuture(id="M#encode", module_id="M", contract=token, method="encode")
        send = SendDataFuture(id="M#pay", module_id="M", to="0xdd", data=encoded)

        good = ResolutionContext({}, ACCOUNTS, {"M#Token": "0xt", "M#encode": "0x1234"})
        assert resolve_inputs(send, good)["data"] == "0x1234"

        bad = ResolutionContext({}, ACCOUNTS, {"M#Token": "0xt", "M#encode": 1234})
        with pytest.raises(ValidationError, match="must be a string"):
            resolve_inputs(send, bad)

    def test_contract_result_must_be_an_address_string(self) -> None:
        token = ContractDeploymentFuture(id="M#Token", module_id="M", contract_name="Token")
        call = StaticCallFuture(id="M#owner", module_id="M", contract=token, method="owner")
        context = ResolutionContext({}, ACCOUNTS, {"M#Token": 12})
        with pytest.raises(ValidationError, match="must be an address string in 'M#owner'"):
            resolve_inputs(call, context)

    def test_unresolved_upstream_result_is_an_invariant_violation(self) -> None:
        token = ContractDeploymentFuture(id="M#Token", module_id="M", contract_name="Token")
        call = StaticCallFuture(id="M#owner", module_id="M", contract=token, method="owner")
        with pytest.raises(InvariantViolationError, match="before it succeeded"):
            resolve_inputs(call, ResolutionContext({}, ACCOUNTS))

    def test_non_integer_value_rejected(self) -> None:
        send = SendDataFuture(
            id="M#pay", module_id="M", to="0xdd", value=ModuleParameterRuntimeValue("M", "amount")
        )
        with pytest.raises(ValidationError):
            resolve_inputs(send, ResolutionContext({"M": {"amount": "lots"}}, ACCOUNTS))

    def test_account_out_of_range(self) -> None:
        token = ContractDeploymentFuture(
            id="M#Token", module_id="M", contract_name="Token", sender=AccountRuntimeValue(7)
        )
        with pytest.raises(ValidationError, match="out of range"):
            resolve_inputs(token, ResolutionContext({}, ACCOUNTS))


def test_normalize_value() -> None:
    assert normalize_value((1, {2: (3, [4])})) == [1, {"2": [3, [4]]}]
    assert normalize_value("0xabc") == "0xabc"
