"""Simulated network: an in-process chain for tests, dry runs and the CLI.

Deterministic by construction: accounts, transaction handles and contract
addresses are derived from hashes of their inputs, so the same operations
always produce the same results. Behaviors (reverts, holds, events, static
call results, transient failures) are configured per target, where a target
is a contract name (its deployment) or ``"Contract.method"`` (a call).

The network also keeps a timeline of submissions and observed confirmations
plus in-flight counters, which tests use to check per-sender serialization.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from chaindag.kernel.exceptions import RevertError, TransientNetworkError
from chaindag.kernel.logging import get_logger
from chaindag.kernel.ports.network import (
    Confirmation,
    ConfirmationStatus,
    EventLog,
    NetworkOperation,
    OperationKind,
    StaticCallRequest,
)

logger = get_logger(__name__)

DEFAULT_CHAIN_ID = 31337
DEFAULT_ACCOUNT_COUNT = 5

_NETWORK = "network"


def _hex(*parts: Any, length: int = 40) -> str:
    digest = hashlib.sha256(":".join(str(p) for p in parts).encode()).hexdigest()
    return "0x" + digest[:length]


def default_accounts(count: int = DEFAULT_ACCOUNT_COUNT) -> list[str]:
    """Deterministic account addresses.

    Examples
    --------
    >>> default_accounts(2) == default_accounts(2)
    True
    >>> len(default_accounts(3))
    3
    """
    return [_hex("account", i) for i in range(count)]


@dataclass(slots=True)
class Behavior:
    """How the network reacts to operations on one target.

    Attributes
    ----------
    revert : str | None
        Revert reason; the operation is confirmed as reverted
    out_of_gas : bool
        Confirm the operation as out of gas
    hold : str | None
        Hold reason; the operation is deferred to an operator
    events : list[tuple[str, dict[str, Any]]]
        Events emitted on success, as ``(event_name, args)``
    transient_failures : int
        Number of submissions rejected with a transient error first
    """

    revert: str | None = None
    out_of_gas: bool = False
    hold: str | None = None
    events: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    transient_failures: int = 0


class SimulatedNetwork:
    """In-process chain implementing :class:`~chaindag.kernel.ports.network.NetworkPort`.

    Parameters
    ----------
    accounts : Sequence[str], optional
        Signing accounts; five deterministic accounts by default
    chain_id : int
        Chain id reported to the engine
    confirmation_delay : float
        Seconds between submission and confirmation
    static_results : Mapping[str, Any], optional
        ``"Contract.method"`` to result, or to a callable receiving the call args

    Examples
    --------
    Example usage::

        network = SimulatedNetwork(confirmation_delay=0.01)
        network.set_behavior("Token.mint", events=[("Minted", {"amount": 100})])
        network.set_behavior("Broken", revert="constructor reverted")
    """

    def __init__(
        self,
        accounts: Sequence[str] | None = None,
        chain_id: int = DEFAULT_CHAIN_ID,
        confirmation_delay: float = 0.0,
        static_results: Mapping[str, Any] | None = None,
    ) -> None:
        self.accounts = list(accounts) if accounts is not None else default_accounts()
        self.chain_id = chain_id
        self.confirmation_delay = confirmation_delay
        self.static_results: dict[str, Any] = dict(static_results or {})
        self.behaviors: dict[str, Behavior] = {}
        self.contracts: dict[str, str] = {}
        self.submissions: list[NetworkOperation] = []
        self.timeline: list[tuple[str, str, str]] = []
        self.max_in_flight = 0
        self.max_in_flight_per_sender: Counter[str] = Counter()

        self._nonces: Counter[str] = Counter()
        self._block_number = 0
        self._pending: dict[str, tuple[float, Confirmation, str]] = {}
        self._confirmed: dict[str, Confirmation] = {}
        self._submission_keys: dict[str, str] = {}
        self._in_flight: Counter[str] = Counter()

    def set_behavior(self, target: str, **kwargs: Any) -> Behavior:
        """Configure the behavior of ``"Contract"`` or ``"Contract.method"``."""
        behavior = Behavior(**kwargs)
        self.behaviors[target] = behavior
        return behavior

    async def aget_accounts(self) -> list[str]:
        return list(self.accounts)

    async def aget_chain_id(self) -> int:
        return self.chain_id

    async def asubmit(self, operation: NetworkOperation) -> str:
        target = self._target(operation)
        behavior = self.behaviors.get(target, Behavior())
        if behavior.transient_failures > 0:
            behavior.transient_failures -= 1
            raise TransientNetworkError(_NETWORK, f"connection reset while submitting {target}")

        nonce = self._nonces[operation.sender]
        self._nonces[operation.sender] += 1
        handle = _hex("tx", self.chain_id, operation.sender, nonce, length=64)
        self._block_number += 1

        confirmation = self._execute(operation, behavior, handle, nonce)
        ready_at = asyncio.get_running_loop().time() + self.confirmation_delay
        self._pending[handle] = (ready_at, confirmation, operation.sender)
        self.submissions.append(operation)
        if operation.submission_key is not None:
            self._submission_keys[operation.submission_key] = handle

        self._in_flight[operation.sender] += 1
        self.max_in_flight_per_sender[operation.sender] = max(
            self.max_in_flight_per_sender[operation.sender], self._in_flight[operation.sender]
        )
        self.max_in_flight = max(self.max_in_flight, sum(self._in_flight.values()))
        self.timeline.append(("submit", operation.sender, handle))
        logger.debug(f"Simulated submission {handle} ({target}) from {operation.sender}")
        return handle

    async def afind_submission(self, submission_key: str) -> str | None:
        return self._submission_keys.get(submission_key)

    async def aget_confirmation(self, handle: str) -> Confirmation | None:
        if handle in self._confirmed:
            return self._confirmed[handle]
        if handle not in self._pending:
            return None

        ready_at, confirmation, sender = self._pending[handle]
        if asyncio.get_running_loop().time() < ready_at:
            return None
        if confirmation.status == ConfirmationStatus.HELD:
            return confirmation

        del self._pending[handle]
        self._confirmed[handle] = confirmation
        self._in_flight[sender] -= 1
        self.timeline.append(("confirm", sender, handle))
        return confirmation

    async def acall(self, request: StaticCallRequest) -> Any:
        key = f"{request.contract_name}.{request.method}"
        if key not in self.static_results:
            raise RevertError(_NETWORK, f"call to {key} reverted")
        result = self.static_results[key]
        return result(*request.args) if callable(result) else result

    @staticmethod
    def _target(operation: NetworkOperation) -> str:
        if operation.kind == OperationKind.CALL:
            return f"{operation.contract_name}.{operation.method}"
        if operation.kind == OperationKind.SEND:
            return f"send:{operation.to}"
        return operation.contract_name or ""

    def _contract_address(self, operation: NetworkOperation, nonce: int) -> str:
        if operation.salt is not None:
            init_code = json.dumps(
                [operation.bytecode, operation.args], sort_keys=True, default=str
            )
            return _hex("create2", operation.salt, operation.contract_name, init_code)
        return _hex("create", self.chain_id, operation.sender, nonce)

    def _execute(
        self, operation: NetworkOperation, behavior: Behavior, handle: str, nonce: int
    ) -> Confirmation:
        if behavior.hold is not None:
            return Confirmation(handle=handle, status=ConfirmationStatus.HELD, error=behavior.hold)
        if behavior.revert is not None:
            return Confirmation(
                handle=handle,
                status=ConfirmationStatus.REVERTED,
                block_number=self._block_number,
                error=behavior.revert,
            )
        if behavior.out_of_gas:
            return Confirmation(
                handle=handle,
                status=ConfirmationStatus.OUT_OF_GAS,
                block_number=self._block_number,
                error="out of gas",
            )

        address: str | None = None
        if operation.kind == OperationKind.DEPLOY:
            address = self._contract_address(operation, nonce)
            self.contracts[address] = operation.contract_name or ""
        emitter = address or operation.to or ""
        logs = [
            EventLog(address=emitter, event_name=name, args=dict(args), arg_order=list(args))
            for name, args in behavior.events
        ]
        return Confirmation(
            handle=handle,
            status=ConfirmationStatus.CONFIRMED,
            contract_address=address,
            block_number=self._block_number,
            logs=logs,
        )

