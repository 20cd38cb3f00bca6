"""Runtime value resolution.

Turns a future's declared fields into concrete inputs: account references
become addresses, module parameters become their supplied or default value,
and embedded futures become their recorded results. The same resolution is
used when a future is executed (the inputs are journaled) and when a later
run reconciles against the journal (the inputs are recomputed and compared).

Resolved values are normalized to what survives a JSON round trip (tuples
become lists, mapping keys become strings) so recorded and recomputed
inputs compare equal.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from chaindag.kernel.domain.futures import (
    ContractAtFuture,
    ContractCallFuture,
    ContractDeploymentFuture,
    Future,
    FutureType,
    LibraryDeploymentFuture,
    ReadEventArgumentFuture,
    SendDataFuture,
    StaticCallFuture,
)
from chaindag.kernel.domain.runtime_values import (
    AccountRuntimeValue,
    ModuleParameterRuntimeValue,
)
from chaindag.kernel.exceptions import InvariantViolationError, ValidationError

DeploymentParameters = Mapping[str, Mapping[str, Any]]


@dataclass(frozen=True, slots=True)
class ResolutionContext:
    """Everything needed to resolve runtime values.

    Attributes
    ----------
    parameters : DeploymentParameters
        ``module_id -> name -> value``; never mutated
    accounts : Sequence[str]
        Available signing accounts; index 0 is the default sender
    results : Mapping[str, Any]
        Results of successful futures, by future id
    """

    parameters: DeploymentParameters = field(default_factory=dict)
    accounts: Sequence[str] = ()
    results: Mapping[str, Any] = field(default_factory=dict)

    @property
    def default_sender(self) -> str:
        if not self.accounts:
            raise ValidationError("accounts", "no accounts available to send from")
        return self.accounts[0]


def normalize_value(value: Any) -> Any:
    """Normalize *value* to its JSON round-trip shape.

    Examples
    --------
    >>> normalize_value((1, {2: (3,)}))
    [1, {'2': [3]}]
    """
    if isinstance(value, Mapping):
        return {str(k): normalize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize_value(v) for v in value]
    return value


def lookup_parameter(
    param: ModuleParameterRuntimeValue, parameters: DeploymentParameters
) -> tuple[bool, Any]:
    """Return ``(found, value)`` for a module parameter.

    User-supplied values win over the declared default. A missing parameter
    without default is reported as ``(False, None)``, never as a zero value.
    """
    module_params = parameters.get(param.module_id) or {}
    if param.name in module_params and module_params[param.name] is not None:
        return True, module_params[param.name]
    if param.has_default:
        return True, param.default_value
    return False, None


def resolve_parameter(param: ModuleParameterRuntimeValue, parameters: DeploymentParameters) -> Any:
    found, value = lookup_parameter(param, parameters)
    if not found:
        raise ValidationError(param.name, "module parameter requires a value but was given none")
    return value


def resolve_account(account: AccountRuntimeValue, accounts: Sequence[str]) -> str:
    if not 0 <= account.account_index < len(accounts):
        raise ValidationError(
            "account",
            f"index {account.account_index} is out of range ({len(accounts)} accounts available)",
        )
    return accounts[account.account_index]


def resolve_future_result(future: Future, results: Mapping[str, Any]) -> Any:
    if future.id not in results:
        raise InvariantViolationError(
            f"Result of future '{future.id}' requested before it succeeded"
        )
    return results[future.id]


def resolve_value(value: Any, context: ResolutionContext) -> Any:
    """Resolve every runtime value inside *value* and normalize the result."""
    match value:
        case AccountRuntimeValue():
            return resolve_account(value, context.accounts)
        case ModuleParameterRuntimeValue():
            return normalize_value(resolve_parameter(value, context.parameters))
        case Future():
            return normalize_value(resolve_future_result(value, context.results))
        case Mapping():
            return {str(k): resolve_value(v, context) for k, v in value.items()}
        case list() | tuple():
            return [resolve_value(v, context) for v in value]
        case _:
            return value


def resolve_sender(future: Future, context: ResolutionContext) -> str:
    sender = future.sender_value
    if sender is None:
        return context.default_sender
    if isinstance(sender, AccountRuntimeValue):
        return resolve_account(sender, context.accounts)
    return sender


def _resolve_address(value: Any, context: ResolutionContext, future_id: str) -> str:
    address = resolve_value(value, context)
    if not isinstance(address, str):
        raise ValidationError("address", f"must be an address string in '{future_id}'", address)
    return address


def _resolve_amount(value: Any, context: ResolutionContext) -> int:
    amount = resolve_value(value, context)
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError("value", "must be an integer amount", amount)
    return amount


def resolve_inputs(future: Future, context: ResolutionContext) -> dict[str, Any]:
    """Resolve the inputs of *future* into a flat, comparable mapping.

    The keys are the field names recorded in the journal and compared during
    reconciliation.
    """
    match future.future_type:
        case FutureType.DEPLOY_CONTRACT:
            assert isinstance(future, ContractDeploymentFuture)
            return {
                "contract_name": future.contract_name,
                "args": resolve_value(future.args, context),
                "libraries": resolve_value(dict(future.libraries), context),
                "value": _resolve_amount(future.value, context),
                "from": resolve_sender(future, context),
            }
        case FutureType.LIBRARY_DEPLOY:
            assert isinstance(future, LibraryDeploymentFuture)
            return {
                "contract_name": future.contract_name,
                "libraries": resolve_value(dict(future.libraries), context),
                "from": resolve_sender(future, context),
            }
        case FutureType.CALL_METHOD:
            assert isinstance(future, ContractCallFuture)
            return {
                "contract_address": _resolve_address(future.contract, context, future.id),
                "method": future.method,
                "args": resolve_value(future.args, context),
                "value": _resolve_amount(future.value, context),
                "from": resolve_sender(future, context),
            }
        case FutureType.STATIC_CALL:
            assert isinstance(future, StaticCallFuture)
            return {
                "contract_address": _resolve_address(future.contract, context, future.id),
                "method": future.method,
                "args": resolve_value(future.args, context),
                "name_or_index": future.name_or_index,
                "from": resolve_sender(future, context),
            }
        case FutureType.SEND_DATA:
            assert isinstance(future, SendDataFuture)
            return {
                "to": _resolve_address(future.to, context, future.id),
                "data": resolve_data(future, context),
                "value": _resolve_amount(future.value, context),
                "from": resolve_sender(future, context),
            }
        case FutureType.READ_EVENT_ARGUMENT:
            assert isinstance(future, ReadEventArgumentFuture)
            return {
                "emitter": future.emitter.id,
                "event_name": future.event_name,
                "name_or_index": future.name_or_index,
                "event_index": future.event_index,
            }
        case FutureType.CONTRACT_AT:
            assert isinstance(future, ContractAtFuture)
            return {
                "contract_name": future.contract_name,
                "address": _resolve_address(future.address, context, future.id),
            }

    raise InvariantViolationError(f"Unknown future type {future.future_type!r}")


def resolve_data(future: SendDataFuture, context: ResolutionContext) -> str:
    """Resolve the data field of a send; absent data is ``"0x"``.

    Data taken from an upstream future must resolve to a string.
    """
    if future.data is None or isinstance(future.data, str):
        return future.data or "0x"

    data = resolve_future_result(future.data, context.results)
    if not isinstance(data, str):
        raise ValidationError("data", f"must be a string in '{future.id}'", data)
    return data
