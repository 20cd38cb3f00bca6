"""Execution handlers, one per future kind.

A handler receives a future together with its resolved inputs and returns
either :class:`Succeeded` with the future's result or :class:`Held` when the
network defers the operation to an operator. Failures are raised as
:class:`~chaindag.kernel.exceptions.ExecutionError` subclasses.

Transaction kinds (deploy, library, call, send) go through
:func:`submit_and_confirm`, which holds the sender's lock from submission
until the confirmation is observed and journals every interaction before
sending it. When the future already has an interaction without a
confirmation (an interrupted run, a timeout, or a transient failure while
waiting), that interaction is resumed instead of submitting again.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from chaindag.kernel.domain.futures import (
    ContractCallFuture,
    Future,
    FutureType,
    ReadEventArgumentFuture,
)
from chaindag.kernel.domain.execution_state import InteractionStatus
from chaindag.kernel.domain.journal import (
    InteractionConfirmed,
    InteractionSubmitted,
    NetworkInteractionRecorded,
)
from chaindag.kernel.exceptions import (
    ExecutionError,
    FutureTimeoutError,
    InvariantViolationError,
    OutOfGasError,
    RevertError,
)
from chaindag.kernel.logging import get_logger
from chaindag.kernel.orchestration.journal import Journal
from chaindag.kernel.orchestration.strategies import BasicStrategy, ExecutionStrategy
from chaindag.kernel.ports.artifacts import ArtifactResolver
from chaindag.kernel.ports.network import (
    Confirmation,
    ConfirmationStatus,
    EventLog,
    NetworkOperation,
    NetworkPort,
    OperationKind,
    StaticCallRequest,
)

logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL = 0.05


@dataclass(frozen=True, slots=True)
class Succeeded:
    result: Any = None


@dataclass(frozen=True, slots=True)
class Held:
    reason: str


HandlerResult = Succeeded | Held


@dataclass(slots=True)
class HandlerContext:
    """Collaborators shared by every handler of one run."""

    network: NetworkPort
    journal: Journal
    strategy: ExecutionStrategy = field(default_factory=BasicStrategy)
    artifact_resolver: ArtifactResolver | None = None
    poll_interval: float = DEFAULT_POLL_INTERVAL
    sender_locks: defaultdict[str, asyncio.Lock] = field(
        default_factory=lambda: defaultdict(asyncio.Lock)
    )


def rekey_error(error: ExecutionError, future_id: str) -> ExecutionError:
    """Attribute a network-level execution error to *future_id*."""
    if error.future_id == future_id:
        return error
    if isinstance(error, FutureTimeoutError):
        return FutureTimeoutError(future_id, error.timeout)
    return type(error)(future_id, error.reason)


def receipt_from(confirmation: Confirmation) -> dict[str, Any]:
    return confirmation.model_dump(mode="json", exclude={"status", "error"})


async def await_confirmation(
    network: NetworkPort, handle: str, poll_interval: float
) -> Confirmation:
    """Poll the network until *handle* has a confirmation."""
    while (confirmation := await network.aget_confirmation(handle)) is None:
        await asyncio.sleep(poll_interval)
    return confirmation


def submission_key(deployment_id: str, future_id: str, interaction_id: int) -> str:
    """Idempotency key of one interaction.

    Examples
    --------
    >>> submission_key("chain-31337", "M#Token", 1)
    'chain-31337/M#Token/1'
    """
    return f"{deployment_id}/{future_id}/{interaction_id}"


async def submit_and_confirm(
    future: Future, operation: NetworkOperation, ctx: HandlerContext
) -> Confirmation:
    """Submit *operation* (or resume its pending submission) and wait for the outcome.

    The interaction is journaled before the operation is sent and the handle
    right after. A pending interaction without a handle is looked up on the
    network by its submission key and only sent again if the network has
    never seen it.

    Returns
    -------
    Confirmation
        A confirmed or held confirmation

    Raises
    ------
    RevertError
        If the operation reverted
    OutOfGasError
        If the operation ran out of gas
    """
    state = ctx.journal.state.get(future.id)
    pending = state.pending_interaction if state else None
    sender = pending.sender if pending and pending.sender else operation.sender

    async with ctx.sender_locks[sender]:
        if pending is not None:
            interaction_id, handle = pending.interaction_id, pending.handle
        else:
            interaction_id = len(state.interactions) + 1 if state else 1
            handle = None
            await ctx.journal.append(
                NetworkInteractionRecorded(
                    future_id=future.id,
                    interaction_id=interaction_id,
                    kind=operation.kind,
                    sender=operation.sender,
                    to=operation.to,
                    data=operation.data,
                    value=operation.value,
                )
            )

        key = submission_key(ctx.journal.deployment_id, future.id, interaction_id)
        if handle is not None:
            logger.info(f"Resuming '{future.id}': re-querying pending submission {handle}")
        elif pending is not None and (handle := await ctx.network.afind_submission(key)):
            logger.info(f"Resuming '{future.id}': found unrecorded submission {handle}")
            await ctx.journal.append(
                InteractionSubmitted(
                    future_id=future.id, interaction_id=interaction_id, handle=handle
                )
            )
        else:
            handle = await ctx.network.asubmit(
                operation.model_copy(update={"submission_key": key})
            )
            await ctx.journal.append(
                InteractionSubmitted(
                    future_id=future.id, interaction_id=interaction_id, handle=handle
                )
            )
            logger.debug(f"Submitted '{future.id}' from {operation.sender} as {handle}")

        confirmation = await await_confirmation(ctx.network, handle, ctx.poll_interval)

    if confirmation.status == ConfirmationStatus.HELD:
        return confirmation

    reverted = confirmation.status != ConfirmationStatus.CONFIRMED
    await ctx.journal.append(
        InteractionConfirmed(
            future_id=future.id,
            interaction_id=interaction_id,
            status=InteractionStatus.REVERTED if reverted else InteractionStatus.CONFIRMED,
            receipt=receipt_from(confirmation),
        )
    )

    match confirmation.status:
        case ConfirmationStatus.REVERTED:
            raise RevertError(future.id, confirmation.error or "transaction reverted")
        case ConfirmationStatus.OUT_OF_GAS:
            raise OutOfGasError(future.id, confirmation.error or "transaction ran out of gas")
    return confirmation


def _bytecode(contract_name: str, ctx: HandlerContext) -> str | None:
    if ctx.artifact_resolver is None:
        return None
    return ctx.artifact_resolver.load_artifact(contract_name).bytecode


async def _handle_deployment(
    future: Future, inputs: Mapping[str, Any], ctx: HandlerContext
) -> HandlerResult:
    operation = NetworkOperation(
        kind=OperationKind.DEPLOY,
        sender=inputs["from"],
        contract_name=inputs["contract_name"],
        bytecode=_bytecode(inputs["contract_name"], ctx),
        args=inputs.get("args", []),
        libraries=inputs.get("libraries", {}),
        value=inputs.get("value", 0),
    )
    confirmation = await submit_and_confirm(
        future, ctx.strategy.prepare_operation(future.id, operation), ctx
    )
    if confirmation.status == ConfirmationStatus.HELD:
        return Held(confirmation.error or "held by network")
    if not confirmation.contract_address:
        raise ExecutionError(future.id, "deployment confirmed without a contract address")
    return Succeeded(confirmation.contract_address)


async def _handle_call(
    future: Future, inputs: Mapping[str, Any], ctx: HandlerContext
) -> HandlerResult:
    assert isinstance(future, ContractCallFuture)
    operation = NetworkOperation(
        kind=OperationKind.CALL,
        sender=inputs["from"],
        to=inputs["contract_address"],
        contract_name=getattr(future.contract, "contract_name", None),
        method=inputs["method"],
        args=inputs["args"],
        value=inputs["value"],
    )
    confirmation = await submit_and_confirm(future, operation, ctx)
    if confirmation.status == ConfirmationStatus.HELD:
        return Held(confirmation.error or "held by network")
    return Succeeded(confirmation.handle)


async def _handle_send(
    future: Future, inputs: Mapping[str, Any], ctx: HandlerContext
) -> HandlerResult:
    operation = NetworkOperation(
        kind=OperationKind.SEND,
        sender=inputs["from"],
        to=inputs["to"],
        data=inputs["data"],
        value=inputs["value"],
    )
    confirmation = await submit_and_confirm(future, operation, ctx)
    if confirmation.status == ConfirmationStatus.HELD:
        return Held(confirmation.error or "held by network")
    return Succeeded(confirmation.handle)


def select_output(future_id: str, outputs: Any, name_or_index: str | int) -> Any:
    """Pick one output of a static call.

    Examples
    --------
    >>> select_output("f", [1, 2], 1)
    2
    >>> select_output("f", {"owner": "0xabc"}, "owner")
    '0xabc'
    >>> select_output("f", 7, 0)
    7
    """
    if isinstance(outputs, Mapping):
        if isinstance(name_or_index, str) and name_or_index in outputs:
            return outputs[name_or_index]
        if isinstance(name_or_index, int):
            values = list(outputs.values())
            if 0 <= name_or_index < len(values):
                return values[name_or_index]
    elif isinstance(outputs, (list, tuple)):
        if isinstance(name_or_index, int) and 0 <= name_or_index < len(outputs):
            return outputs[name_or_index]
    elif name_or_index == 0:
        return outputs

    raise ExecutionError(future_id, f"call returned no output {name_or_index!r}")


async def _handle_static_call(
    future: Future, inputs: Mapping[str, Any], ctx: HandlerContext
) -> HandlerResult:
    contract = getattr(future, "contract", None)
    request = StaticCallRequest(
        sender=inputs["from"],
        to=inputs["contract_address"],
        contract_name=getattr(contract, "contract_name", "") or "",
        method=inputs["method"],
        args=inputs["args"],
    )
    outputs = await ctx.network.acall(request)
    return Succeeded(select_output(future.id, outputs, inputs["name_or_index"]))


def read_event_argument(
    future_id: str,
    receipt: Mapping[str, Any],
    event_name: str,
    event_index: int,
    name_or_index: str | int,
) -> Any:
    """Read one argument of the *event_index*-th *event_name* log of a receipt."""
    logs = [EventLog.model_validate(log) for log in receipt.get("logs", [])]
    matching = [log for log in logs if log.event_name == event_name]
    if event_index >= len(matching):
        raise ExecutionError(
            future_id,
            f"event '{event_name}' #{event_index} not found "
            f"({len(matching)} emitted)",
        )
    log = matching[event_index]
    if isinstance(name_or_index, int):
        if not 0 <= name_or_index < len(log.arg_order):
            raise ExecutionError(
                future_id, f"event '{event_name}' has no argument #{name_or_index}"
            )
        name_or_index = log.arg_order[name_or_index]
    if name_or_index not in log.args:
        raise ExecutionError(future_id, f"event '{event_name}' has no argument '{name_or_index}'")
    return log.args[name_or_index]


async def _handle_read_event_argument(
    future: Future, inputs: Mapping[str, Any], ctx: HandlerContext
) -> HandlerResult:
    assert isinstance(future, ReadEventArgumentFuture)
    emitter_state = ctx.journal.state.get(future.emitter.id)
    receipt = emitter_state.confirmed_receipt if emitter_state else None
    if receipt is None:
        raise InvariantViolationError(
            f"Future '{future.id}' reads events of '{future.emitter.id}', "
            "which has no confirmed receipt"
        )
    return Succeeded(
        read_event_argument(
            future.id,
            receipt,
            inputs["event_name"],
            inputs["event_index"],
            inputs["name_or_index"],
        )
    )


async def _handle_contract_at(
    future: Future, inputs: Mapping[str, Any], ctx: HandlerContext
) -> HandlerResult:
    return Succeeded(inputs["address"])


async def execute_future(
    future: Future, inputs: Mapping[str, Any], ctx: HandlerContext
) -> HandlerResult:
    """Dispatch *future* to the handler for its kind.

    Network-level execution errors are attributed to the future.
    """
    try:
        match future.future_type:
            case FutureType.DEPLOY_CONTRACT | FutureType.LIBRARY_DEPLOY:
                return await _handle_deployment(future, inputs, ctx)
            case FutureType.CALL_METHOD:
                return await _handle_call(future, inputs, ctx)
            case FutureType.STATIC_CALL:
                return await _handle_static_call(future, inputs, ctx)
            case FutureType.SEND_DATA:
                return await _handle_send(future, inputs, ctx)
            case FutureType.READ_EVENT_ARGUMENT:
                return await _handle_read_event_argument(future, inputs, ctx)
            case FutureType.CONTRACT_AT:
                return await _handle_contract_at(future, inputs, ctx)
    except ExecutionError as e:
        rekeyed = rekey_error(e, future.id)
        if rekeyed is e:
            raise
        raise rekeyed from e

    raise InvariantViolationError(f"No handler for future type {future.future_type!r}")
