"""Pre-flight validation of futures.

Validation runs for every future before anything is sent to the network.
Each future yields a list of error strings; any error aborts the run.

Reporting rules:

- every invalid account reference (arguments or sender) is reported
- only the *first* missing module parameter of a future is reported; later
  missing parameters of the same future are not listed
- a module parameter used as the funds ``value`` must resolve to an integer
- with an artifact resolver, unknown artifacts, methods and events, and
  argument count mismatches are reported
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from chaindag.kernel.domain.futures import (
    TRANSACTION_FUTURE_TYPES,
    ContractAtFuture,
    ContractCallFuture,
    ContractDeploymentFuture,
    Future,
    LibraryDeploymentFuture,
    ReadEventArgumentFuture,
    SendDataFuture,
    StaticCallFuture,
)
from chaindag.kernel.domain.runtime_values import (
    AccountRuntimeValue,
    ModuleParameterRuntimeValue,
    collect_runtime_values,
)
from chaindag.kernel.exceptions import ResourceNotFoundError
from chaindag.kernel.logging import get_logger
from chaindag.kernel.resolver import DeploymentParameters, lookup_parameter

if TYPE_CHECKING:
    from chaindag.kernel.domain.dag import DeploymentGraph
    from chaindag.kernel.ports.artifacts import Artifact, ArtifactResolver

logger = get_logger(__name__)


def _missing_parameter_message(name: str) -> str:
    return f"Module parameter '{name}' requires a value but was given none"


def _type_name(value: Any) -> str:
    return type(value).__name__


def validate_account_value(account: AccountRuntimeValue, accounts: Sequence[str]) -> list[str]:
    if account.account_index < 0:
        return [f"Account index cannot be a negative number, got {account.account_index}"]
    if account.account_index >= len(accounts):
        return [
            f"Account index {account.account_index} is out of range "
            f"({len(accounts)} accounts available)"
        ]
    return []


def _validate_accounts(
    future: Future, runtime_values: list[Any], accounts: Sequence[str]
) -> list[str]:
    errors: list[str] = []
    for value in runtime_values:
        if isinstance(value, AccountRuntimeValue):
            errors.extend(validate_account_value(value, accounts))

    sender = future.sender_value
    if isinstance(sender, str) and sender.lower() not in {a.lower() for a in accounts}:
        errors.append(f"Sender '{sender}' is not one of the available accounts")
    elif sender is None and not accounts and future.future_type in TRANSACTION_FUTURE_TYPES:
        errors.append("No accounts available to send from")
    return errors


def _validate_typed_parameter(
    param: ModuleParameterRuntimeValue,
    parameters: DeploymentParameters,
    expected: type,
) -> list[str]:
    found, value = lookup_parameter(param, parameters)
    if not found:
        return [_missing_parameter_message(param.name)]
    if isinstance(value, bool) or not isinstance(value, expected):
        return [
            f"Module parameter '{param.name}' must be of type '{expected.__name__}' "
            f"but is '{_type_name(value)}'"
        ]
    return []


def _load(resolver: ArtifactResolver, contract_name: str, errors: list[str]) -> Artifact | None:
    try:
        return resolver.load_artifact(contract_name)
    except ResourceNotFoundError:
        errors.append(f"Artifact for contract '{contract_name}' could not be found")
        return None


def _contract_name_of(future: Future) -> str | None:
    return getattr(future, "contract_name", None)


def _validate_artifacts(future: Future, resolver: ArtifactResolver) -> list[str]:
    errors: list[str] = []

    match future:
        case ContractDeploymentFuture() | LibraryDeploymentFuture():
            artifact = _load(resolver, future.contract_name, errors)
            args = future.args if isinstance(future, ContractDeploymentFuture) else ()
            if artifact is not None and artifact.constructor_input_count() != len(args):
                errors.append(
                    f"Contract '{future.contract_name}' constructor expects "
                    f"{artifact.constructor_input_count()} arguments but got {len(args)}"
                )

        case ContractCallFuture() | StaticCallFuture():
            contract_name = _contract_name_of(future.contract)
            artifact = _load(resolver, contract_name, errors) if contract_name else None
            if artifact is None:
                return errors
            function = artifact.get_function(future.method)
            if function is None:
                errors.append(f"Function '{future.method}' not found in contract '{contract_name}'")
                return errors
            inputs = function.get("inputs", [])
            if len(inputs) != len(future.args):
                errors.append(
                    f"Function '{future.method}' of contract '{contract_name}' expects "
                    f"{len(inputs)} arguments but got {len(future.args)}"
                )
            if isinstance(future, StaticCallFuture):
                errors.extend(_validate_output_selector(future, function, contract_name))

        case ReadEventArgumentFuture():
            emitter = future.emitter
            target = emitter.contract if isinstance(emitter, ContractCallFuture) else emitter
            contract_name = _contract_name_of(target)
            artifact = _load(resolver, contract_name, errors) if contract_name else None
            if artifact is not None and artifact.get_event(future.event_name) is None:
                errors.append(
                    f"Event '{future.event_name}' not found in contract '{contract_name}'"
                )

        case ContractAtFuture():
            _load(resolver, future.contract_name, errors)

    return errors


def _validate_output_selector(
    future: StaticCallFuture, function: dict[str, Any], contract_name: str
) -> list[str]:
    outputs = function.get("outputs", [])
    selector = future.name_or_index
    if isinstance(selector, int):
        if outputs and selector >= len(outputs):
            return [
                f"Function '{future.method}' of contract '{contract_name}' has "
                f"{len(outputs)} outputs, index {selector} is out of range"
            ]
        return []
    if selector not in {o.get("name") for o in outputs}:
        return [
            f"Function '{future.method}' of contract '{contract_name}' has no output "
            f"named '{selector}'"
        ]
    return []


def validate_future(
    future: Future,
    deployment_parameters: DeploymentParameters,
    accounts: Sequence[str],
    artifact_resolver: ArtifactResolver | None = None,
) -> list[str]:
    """Validate one future's runtime values and, optionally, its artifacts.

    Parameters
    ----------
    future : Future
        Future to validate
    deployment_parameters : DeploymentParameters
        ``module_id -> name -> value``
    accounts : Sequence[str]
        Available signing accounts
    artifact_resolver : ArtifactResolver | None
        When given, artifact-level checks are included

    Returns
    -------
    list[str]
        Error messages; empty when the future is valid
    """
    errors: list[str] = []
    runtime_values = collect_runtime_values(future.reference_values())

    errors.extend(_validate_accounts(future, runtime_values, accounts))

    # The funds value and address fields get a typed check of their own below
    value_field = getattr(future, "value", None)
    address_field = getattr(future, "to", None) or getattr(future, "address", None)
    params = [
        value
        for value in runtime_values
        if isinstance(value, ModuleParameterRuntimeValue)
        and value is not value_field
        and value is not address_field
    ]
    missing = [p for p in params if not lookup_parameter(p, deployment_parameters)[0]]
    if missing:
        # Intentionally partial: one missing parameter per future
        errors.append(_missing_parameter_message(missing[0].name))

    if isinstance(value_field, ModuleParameterRuntimeValue):
        errors.extend(_validate_typed_parameter(value_field, deployment_parameters, int))

    if isinstance(future, (SendDataFuture, ContractAtFuture)) and isinstance(
        address_field, ModuleParameterRuntimeValue
    ):
        errors.extend(_validate_typed_parameter(address_field, deployment_parameters, str))

    if artifact_resolver is not None:
        errors.extend(_validate_artifacts(future, artifact_resolver))

    return errors


def validate_deployment(
    graph: DeploymentGraph,
    deployment_parameters: DeploymentParameters,
    accounts: Sequence[str],
    artifact_resolver: ArtifactResolver | None = None,
) -> dict[str, list[str]]:
    """Validate every future of *graph*.

    Returns
    -------
    dict[str, list[str]]
        Errors by future id, only for futures that have errors
    """
    errors: dict[str, list[str]] = {}
    for future in graph.topological_order():
        if future_errors := validate_future(
            future, deployment_parameters, accounts, artifact_resolver
        ):
            errors[future.id] = future_errors

    if errors:
        logger.warning(
            f"Validation found {sum(len(e) for e in errors.values())} error(s) "
            f"in {len(errors)} future(s)"
        )
    else:
        logger.debug(f"Validated {len(graph)} futures")
    return errors
