"""Journal messages and the fold that rebuilds execution state from them.

The journal is the source of truth for a deployment. Every state change is
appended as one message; :func:`replay` folds the messages in order into a
:class:`DeploymentState`. The fold is pure: the same messages always yield
the same state.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from chaindag.kernel.domain.execution_state import (
    ExecutionState,
    ExecutionStatus,
    InteractionStatus,
    NetworkInteraction,
    check_transition,
)
from chaindag.kernel.exceptions import InvariantViolationError


class _JournalMessage(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class DeploymentInitialized(_JournalMessage):
    type: Literal["deployment-initialized"] = "deployment-initialized"
    chain_id: int | None = None
    strategy: str = "basic"


class FutureStarted(_JournalMessage):
    type: Literal["future-started"] = "future-started"
    future_id: str
    future_type: str
    resolved_inputs: dict[str, Any] = Field(default_factory=dict)
    dependencies: list[str] = Field(default_factory=list)
    retry_count: int = 0


class NetworkInteractionRecorded(_JournalMessage):
    type: Literal["network-interaction"] = "network-interaction"
    future_id: str
    interaction_id: int
    kind: str
    sender: str | None = None
    to: str | None = None
    data: str | None = None
    value: int = 0
    handle: str | None = None


class InteractionSubmitted(_JournalMessage):
    type: Literal["interaction-submitted"] = "interaction-submitted"
    future_id: str
    interaction_id: int
    handle: str


class InteractionConfirmed(_JournalMessage):
    type: Literal["interaction-confirmed"] = "interaction-confirmed"
    future_id: str
    interaction_id: int
    status: InteractionStatus = InteractionStatus.CONFIRMED
    receipt: dict[str, Any] = Field(default_factory=dict)


class FutureSucceeded(_JournalMessage):
    type: Literal["future-succeeded"] = "future-succeeded"
    future_id: str
    result: Any = None


class FutureFailed(_JournalMessage):
    type: Literal["future-failed"] = "future-failed"
    future_id: str
    error: str


class FutureTimedOut(_JournalMessage):
    type: Literal["future-timed-out"] = "future-timed-out"
    future_id: str
    error: str


class FutureHeld(_JournalMessage):
    type: Literal["future-held"] = "future-held"
    future_id: str
    reason: str


class FutureWiped(_JournalMessage):
    type: Literal["future-wiped"] = "future-wiped"
    future_id: str


JournalMessage = Annotated[
    DeploymentInitialized
    | FutureStarted
    | NetworkInteractionRecorded
    | InteractionSubmitted
    | InteractionConfirmed
    | FutureSucceeded
    | FutureFailed
    | FutureTimedOut
    | FutureHeld
    | FutureWiped,
    Field(discriminator="type"),
]

_MESSAGE_ADAPTER: TypeAdapter[JournalMessage] = TypeAdapter(JournalMessage)


def serialize_message(message: _JournalMessage) -> str:
    """Encode *message* as a single JSON line (no trailing newline)."""
    return json.dumps(message.model_dump(mode="python"), separators=(",", ":"), sort_keys=True)


def deserialize_message(line: str) -> JournalMessage:
    """Decode one journal line back into its message model."""
    return _MESSAGE_ADAPTER.validate_python(json.loads(line))


@dataclass(frozen=True, slots=True)
class DeploymentState:
    """Result of folding a journal."""

    chain_id: int | None = None
    strategy: str | None = None
    futures: Mapping[str, ExecutionState] = field(default_factory=dict)

    def get(self, future_id: str) -> ExecutionState | None:
        return self.futures.get(future_id)


def _require(states: Mapping[str, ExecutionState], future_id: str, kind: str) -> ExecutionState:
    state = states.get(future_id)
    if state is None:
        raise InvariantViolationError(f"Journal has '{kind}' for unknown future '{future_id}'")
    return state


def _update_interaction(
    current: ExecutionState,
    message: InteractionSubmitted | InteractionConfirmed,
    **changes: Any,
) -> tuple[NetworkInteraction, ...]:
    if not any(i.interaction_id == message.interaction_id for i in current.interactions):
        raise InvariantViolationError(
            f"Journal has '{message.type}' for unknown interaction {message.interaction_id} "
            f"of future '{message.future_id}'"
        )
    return tuple(
        replace(i, **changes) if i.interaction_id == message.interaction_id else i
        for i in current.interactions
    )


def apply_message(state: DeploymentState, message: JournalMessage) -> DeploymentState:
    """Fold one message into *state*, returning a new state.

    Raises
    ------
    InvalidTransitionError
        If the message implies a transition the state machine forbids.
    InvariantViolationError
        If the message refers to an unknown future or interaction.
    """
    futures = dict(state.futures)

    match message:
        case DeploymentInitialized():
            return replace(state, chain_id=message.chain_id, strategy=message.strategy)

        case FutureStarted():
            previous = futures.get(message.future_id)
            if previous is None:
                previous = ExecutionState(message.future_id, message.future_type)
            check_transition(message.future_id, previous.status, ExecutionStatus.STARTED)
            futures[message.future_id] = replace(
                previous,
                future_type=message.future_type,
                status=ExecutionStatus.STARTED,
                resolved_inputs=dict(message.resolved_inputs),
                dependencies=tuple(message.dependencies),
                retry_count=message.retry_count,
                error=None,
                held_reason=None,
                result=None,
            )

        case NetworkInteractionRecorded():
            current = _require(futures, message.future_id, message.type)
            interaction = NetworkInteraction(
                interaction_id=message.interaction_id,
                kind=message.kind,
                sender=message.sender,
                to=message.to,
                data=message.data,
                value=message.value,
                handle=message.handle,
            )
            futures[message.future_id] = replace(
                current, interactions=(*current.interactions, interaction)
            )

        case InteractionSubmitted():
            current = _require(futures, message.future_id, message.type)
            futures[message.future_id] = replace(
                current,
                interactions=_update_interaction(current, message, handle=message.handle),
            )

        case InteractionConfirmed():
            current = _require(futures, message.future_id, message.type)
            interactions = _update_interaction(
                current, message, status=message.status, receipt=dict(message.receipt)
            )
            futures[message.future_id] = replace(current, interactions=interactions)

        case FutureSucceeded():
            current = _require(futures, message.future_id, message.type)
            check_transition(message.future_id, current.status, ExecutionStatus.SUCCESS)
            futures[message.future_id] = replace(
                current, status=ExecutionStatus.SUCCESS, result=message.result, held_reason=None
            )

        case FutureFailed():
            current = _require(futures, message.future_id, message.type)
            check_transition(message.future_id, current.status, ExecutionStatus.FAILED)
            futures[message.future_id] = replace(
                current, status=ExecutionStatus.FAILED, error=message.error
            )

        case FutureTimedOut():
            current = _require(futures, message.future_id, message.type)
            check_transition(message.future_id, current.status, ExecutionStatus.TIMED_OUT)
            futures[message.future_id] = replace(
                current, status=ExecutionStatus.TIMED_OUT, error=message.error
            )

        case FutureHeld():
            current = _require(futures, message.future_id, message.type)
            check_transition(message.future_id, current.status, ExecutionStatus.HELD)
            futures[message.future_id] = replace(
                current, status=ExecutionStatus.HELD, held_reason=message.reason
            )

        case FutureWiped():
            futures.pop(message.future_id, None)

    return replace(state, futures=futures)


def replay(messages: Iterable[JournalMessage]) -> DeploymentState:
    """Rebuild deployment state by folding *messages* in order."""
    state = DeploymentState()
    for message in messages:
        state = apply_message(state, message)
    return state
