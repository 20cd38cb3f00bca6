"""Reconcile a freshly built plan against recorded execution state.

For every future of the new plan:

- no recorded state: ``to-execute``
- recorded SUCCESS: inputs are recomputed against the new parameters and the
  recorded upstream results and compared field by field with the inputs the
  future was executed with. Equal inputs reuse the recorded result
  (``unchanged``); any difference is a ``failure``. A completed on-chain
  action is never silently overwritten.
- a submission still pending (interrupted, timed out): the pending
  transaction was built from the recorded inputs, so they are compared like a
  success. Equal inputs resume the submission; a difference is a ``failure``.
- recorded STARTED without a submission, or HELD: ``to-execute`` with
  ``resume`` set
- recorded FAILED or TIMED_OUT otherwise: ``to-execute`` from scratch
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from chaindag.kernel.domain.dag import DeploymentGraph
from chaindag.kernel.domain.execution_state import ExecutionState, ExecutionStatus
from chaindag.kernel.domain.futures import Future
from chaindag.kernel.domain.journal import DeploymentState
from chaindag.kernel.exceptions import ValidationError
from chaindag.kernel.logging import get_logger
from chaindag.kernel.reconciliation.models import (
    ReconciliationKind,
    ReconciliationReport,
    ReconciliationResult,
)
from chaindag.kernel.resolver import DeploymentParameters, ResolutionContext, resolve_inputs

logger = get_logger(__name__)

FIELD_LABELS: dict[str, str] = {
    "contract_name": "Contract name",
    "args": "Arguments",
    "libraries": "Libraries",
    "value": "Value",
    "from": "From account",
    "contract_address": "Contract address",
    "method": "Function name",
    "name_or_index": "Output selector",
    "to": "To address",
    "data": "Data",
    "emitter": "Emitter",
    "event_name": "Event name",
    "event_index": "Event index",
    "address": "Address",
}


def compare(field_name: str, recorded: Any, computed: Any) -> str | None:
    """Describe a difference between a recorded and a recomputed input.

    Strings compare exactly (byte for byte), everything else by equality.

    Examples
    --------
    >>> compare("data", "0x1234", "0x1234") is None
    True
    >>> compare("data", "0x1234", "0x5678")
    "Data has been changed from '0x1234' to '0x5678'"
    """
    if recorded == computed and type(recorded) is type(computed):
        return None
    label = FIELD_LABELS.get(field_name, field_name)
    return f"{label} has been changed from {recorded!r} to {computed!r}"


def _dependency_failure(
    future: Future, prior: DeploymentState, done: str
) -> ReconciliationResult | None:
    for dependency in future.dependencies:
        dep_state = prior.get(dependency.id)
        if dep_state is None or dep_state.status != ExecutionStatus.SUCCESS:
            return ReconciliationResult(
                future.id,
                ReconciliationKind.FAILURE,
                f"Dependency '{dependency.id}' has no recorded successful result, "
                f"but this future was already {done}",
            )
    return None


def input_differences(
    future: Future, recorded: ExecutionState, context: ResolutionContext
) -> str | None:
    """Describe how the inputs of *future* differ from the recorded ones, or None."""
    try:
        computed = resolve_inputs(future, context)
    except ValidationError as e:
        return str(e)

    differences: list[str] = []
    for field_name, value in computed.items():
        recorded_value = recorded.resolved_inputs.get(field_name)
        # An implicit sender accepts whichever available account executed the future
        if (
            field_name == "from"
            and future.sender_value is None
            and recorded_value in context.accounts
        ):
            continue
        if difference := compare(field_name, recorded_value, value):
            differences.append(difference)
    return "; ".join(differences) or None


def _reconcile_success(
    future: Future,
    recorded: ExecutionState,
    prior: DeploymentState,
    context: ResolutionContext,
) -> ReconciliationResult:
    if recorded.future_type != future.future_type:
        return ReconciliationResult(
            future.id,
            ReconciliationKind.FAILURE,
            f"Future type changed from '{recorded.future_type}' to '{future.future_type}'",
        )

    if failure := _dependency_failure(future, prior, "executed"):
        return failure
    if reason := input_differences(future, recorded, context):
        return ReconciliationResult(future.id, ReconciliationKind.FAILURE, reason)
    return ReconciliationResult(future.id, ReconciliationKind.UNCHANGED)


def _reconcile_submitted(
    future: Future,
    recorded: ExecutionState,
    prior: DeploymentState,
    context: ResolutionContext,
) -> ReconciliationResult:
    """A future whose last submission may still land is resumed with its recorded inputs."""
    if failure := _dependency_failure(future, prior, "submitted"):
        return failure
    if reason := input_differences(future, recorded, context):
        return ReconciliationResult(
            future.id, ReconciliationKind.FAILURE, f"{reason} while a submission is pending"
        )
    return ReconciliationResult(future.id, ReconciliationKind.TO_EXECUTE, resume=True)


def reconcile(
    graph: DeploymentGraph,
    prior: DeploymentState,
    deployment_parameters: DeploymentParameters,
    accounts: Sequence[str],
) -> ReconciliationReport:
    """Decide, per future, whether recorded state can be reused.

    Parameters
    ----------
    graph : DeploymentGraph
        The new plan
    prior : DeploymentState
        State folded from the deployment's journal
    deployment_parameters : DeploymentParameters
        The new parameter table
    accounts : Sequence[str]
        Available signing accounts

    Returns
    -------
    ReconciliationReport
        One result per future of the plan, plus recorded futures the plan
        no longer contains
    """
    recorded_results = {
        fid: state.result
        for fid, state in prior.futures.items()
        if state.status == ExecutionStatus.SUCCESS
    }
    context = ResolutionContext(deployment_parameters, accounts, recorded_results)

    results: dict[str, ReconciliationResult] = {}
    for future in graph.topological_order():
        recorded = prior.get(future.id)

        if recorded is None:
            result = ReconciliationResult(future.id, ReconciliationKind.TO_EXECUTE)
        else:
            match recorded.status:
                case ExecutionStatus.SUCCESS:
                    result = _reconcile_success(future, recorded, prior, context)
                case ExecutionStatus.HELD:
                    result = ReconciliationResult(
                        future.id, ReconciliationKind.TO_EXECUTE, resume=True
                    )
                case _ if recorded.pending_interaction is not None:
                    result = _reconcile_submitted(future, recorded, prior, context)
                case ExecutionStatus.STARTED:
                    result = ReconciliationResult(
                        future.id, ReconciliationKind.TO_EXECUTE, resume=True
                    )
                case _:
                    result = ReconciliationResult(future.id, ReconciliationKind.TO_EXECUTE)

        results[future.id] = result
        if result.kind == ReconciliationKind.FAILURE:
            logger.error(f"Reconciliation failed for '{future.id}': {result.reason}")

    missing = [fid for fid in prior.futures if fid not in graph]
    if missing:
        logger.warning(
            f"{len(missing)} previously executed future(s) are no longer part of the plan: "
            f"{', '.join(missing)}"
        )

    return ReconciliationReport(results=results, missing_executed_futures=missing)
