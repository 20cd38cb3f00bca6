"""Per-future execution state and its state machine.

State is never mutated in place. Each transition produces a new
:class:`ExecutionState` via :func:`dataclasses.replace`; the journal fold in
:mod:`chaindag.kernel.domain.journal` is the only producer.

State machine::

    UNSTARTED -> STARTED -> SUCCESS | FAILED | TIMED_OUT | HELD
    STARTED   -> STARTED               (retry)
    HELD      -> SUCCESS | FAILED      (operator action)
    FAILED | TIMED_OUT -> STARTED      (re-executed by a later run)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from chaindag.kernel.exceptions import InvalidTransitionError


class ExecutionStatus(StrEnum):
    """Lifecycle status of one future."""

    UNSTARTED = "unstarted"
    STARTED = "started"
    SUCCESS = "success"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    HELD = "held"


TERMINAL_STATUSES: frozenset[ExecutionStatus] = frozenset(
    {ExecutionStatus.SUCCESS, ExecutionStatus.FAILED, ExecutionStatus.TIMED_OUT}
)

_TRANSITIONS: dict[ExecutionStatus, frozenset[ExecutionStatus]] = {
    ExecutionStatus.UNSTARTED: frozenset({ExecutionStatus.STARTED}),
    ExecutionStatus.STARTED: frozenset(
        {
            ExecutionStatus.STARTED,
            ExecutionStatus.SUCCESS,
            ExecutionStatus.FAILED,
            ExecutionStatus.TIMED_OUT,
            ExecutionStatus.HELD,
        }
    ),
    ExecutionStatus.HELD: frozenset({ExecutionStatus.SUCCESS, ExecutionStatus.FAILED}),
    ExecutionStatus.FAILED: frozenset({ExecutionStatus.STARTED}),
    ExecutionStatus.TIMED_OUT: frozenset({ExecutionStatus.STARTED}),
    ExecutionStatus.SUCCESS: frozenset(),
}


def is_valid_transition(from_status: ExecutionStatus, to_status: ExecutionStatus) -> bool:
    """Check if a transition is allowed by the state machine."""
    return to_status in _TRANSITIONS[from_status]


def check_transition(
    future_id: str, from_status: ExecutionStatus, to_status: ExecutionStatus
) -> None:
    """Raise :class:`InvalidTransitionError` unless the transition is allowed."""
    if not is_valid_transition(from_status, to_status):
        raise InvalidTransitionError(future_id, from_status, to_status)


class InteractionStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REVERTED = "reverted"


@dataclass(frozen=True, slots=True)
class NetworkInteraction:
    """One submission to the network.

    Recorded before the operation is sent; the handle and the confirmation
    are filled in as they become known.
    """

    interaction_id: int
    kind: str
    sender: str | None
    to: str | None = None
    data: str | None = None
    value: int = 0
    handle: str | None = None
    status: InteractionStatus = InteractionStatus.PENDING
    receipt: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class ExecutionState:
    """Recorded state of one future.

    Attributes
    ----------
    future_id : str
        Id of the future this state belongs to
    future_type : str
        Kind of the future at the time it was started
    status : ExecutionStatus
        Current lifecycle status
    resolved_inputs : dict[str, Any]
        Inputs the future was executed with, after runtime value resolution
    interactions : tuple[NetworkInteraction, ...]
        Submissions and confirmations, oldest first
    result : Any
        Result value when status is SUCCESS
    error : str | None
        Failure detail when status is FAILED or TIMED_OUT
    retry_count : int
        Number of retries after the first attempt
    held_reason : str | None
        Why the future is awaiting operator action
    dependencies : tuple[str, ...]
        Dependency ids at the time the future was started
    """

    future_id: str
    future_type: str
    status: ExecutionStatus = ExecutionStatus.UNSTARTED
    resolved_inputs: dict[str, Any] = field(default_factory=dict)
    interactions: tuple[NetworkInteraction, ...] = ()
    result: Any = None
    error: str | None = None
    retry_count: int = 0
    held_reason: str | None = None
    dependencies: tuple[str, ...] = ()

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_interrupted(self) -> bool:
        """Started but never followed by a terminal or held transition."""
        return self.status == ExecutionStatus.STARTED

    @property
    def pending_interaction(self) -> NetworkInteraction | None:
        """Latest interaction still awaiting confirmation.

        Its handle is None when the run stopped between recording the
        interaction and learning the handle from the network.
        """
        for interaction in reversed(self.interactions):
            if interaction.status == InteractionStatus.PENDING:
                return interaction
        return None

    @property
    def confirmed_receipt(self) -> dict[str, Any] | None:
        for interaction in reversed(self.interactions):
            if interaction.status == InteractionStatus.CONFIRMED:
                return interaction.receipt
        return None
