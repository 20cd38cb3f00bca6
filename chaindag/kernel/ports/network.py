"""Port interface for submitting operations to a chain.

The engine never signs or encodes transactions itself. It hands a
:class:`NetworkOperation` to the network port, receives an opaque handle,
and later asks for the :class:`Confirmation` of that handle. Asking again
for the same handle must be safe, including from a new process after a
crash; this is what makes interrupted futures resumable. Each operation
carries a submission key so a submission whose handle never reached the
journal can still be found before anything is resent.
"""

from __future__ import annotations

from abc import abstractmethod
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


class OperationKind(StrEnum):
    DEPLOY = "deploy"
    CALL = "call"
    SEND = "send"


class NetworkOperation(BaseModel):
    """A signed-operation request, described structurally.

    Attributes
    ----------
    kind : OperationKind
        Deployment, contract call, or raw data send
    sender : str
        Address the operation is sent from
    to : str | None
        Target address (None for deployments)
    contract_name : str | None
        Artifact name for deployments and calls
    bytecode : str | None
        Creation bytecode for deployments
    method : str | None
        Method name for calls
    args : list[Any]
        Resolved constructor or method arguments
    libraries : dict[str, str]
        Library name to linked address
    data : str | None
        Raw calldata for sends
    value : int
        Funds to transfer, in the chain's smallest unit
    salt : str | None
        Deterministic deployment salt (create2 strategy)
    submission_key : str | None
        Caller-chosen idempotency key, used to find the submission again
        when its handle was lost
    """

    model_config = ConfigDict(frozen=True)

    kind: OperationKind
    sender: str
    to: str | None = None
    contract_name: str | None = None
    bytecode: str | None = None
    method: str | None = None
    args: list[Any] = Field(default_factory=list)
    libraries: dict[str, str] = Field(default_factory=dict)
    data: str | None = None
    value: int = 0
    salt: str | None = None
    submission_key: str | None = None


class ConfirmationStatus(StrEnum):
    CONFIRMED = "confirmed"
    REVERTED = "reverted"
    OUT_OF_GAS = "out_of_gas"
    HELD = "held"


class EventLog(BaseModel):
    """A decoded event emitted during a transaction."""

    address: str
    event_name: str
    args: dict[str, Any] = Field(default_factory=dict)
    arg_order: list[str] = Field(default_factory=list)


class Confirmation(BaseModel):
    """Outcome of a submitted operation.

    Attributes
    ----------
    handle : str
        Handle returned by ``asubmit`` (e.g., transaction hash)
    status : ConfirmationStatus
        Final status of the operation
    contract_address : str | None
        Address of the created contract, for deployments
    block_number : int | None
        Block the operation was included in
    logs : list[EventLog]
        Decoded events emitted by the operation
    error : str | None
        Revert reason or hold reason, when applicable
    """

    handle: str
    status: ConfirmationStatus
    contract_address: str | None = None
    block_number: int | None = None
    logs: list[EventLog] = Field(default_factory=list)
    error: str | None = None


class StaticCallRequest(BaseModel):
    """A read-only call; never changes chain state."""

    model_config = ConfigDict(frozen=True)

    sender: str
    to: str
    contract_name: str
    method: str
    args: list[Any] = Field(default_factory=list)


@runtime_checkable
class NetworkPort(Protocol):
    """Port interface for chain access.

    Adapters raise :class:`~chaindag.kernel.exceptions.TransientNetworkError`
    for failures that are safe to retry (connection loss, nonce contention).
    Any other exception fails the future without retry.
    """

    @abstractmethod
    async def aget_accounts(self) -> list[str]:
        """Return the signing accounts available to the deployment."""
        ...

    @abstractmethod
    async def aget_chain_id(self) -> int:
        """Return the id of the connected chain."""
        ...

    @abstractmethod
    async def asubmit(self, operation: NetworkOperation) -> str:
        """Submit *operation* and return a handle for later confirmation."""
        ...

    @abstractmethod
    async def afind_submission(self, submission_key: str) -> str | None:
        """Return the handle of the operation submitted with *submission_key*, if any."""
        ...

    @abstractmethod
    async def aget_confirmation(self, handle: str) -> Confirmation | None:
        """Return the confirmation for *handle*, or None while still pending.

        Must be idempotent; callers re-query after restarts.
        """
        ...

    @abstractmethod
    async def acall(self, request: StaticCallRequest) -> Any:
        """Execute a read-only call and return its decoded outputs."""
        ...
