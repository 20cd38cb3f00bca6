"""Write-ahead journal for one deployment.

:class:`Journal` is the single writer of a deployment's journal. Every
message is checked against the state machine, durably appended to the
store, and only then folded into the in-memory state. Callers await
:meth:`Journal.append` before acting on a transition.
"""

from __future__ import annotations

import asyncio

from chaindag.kernel.domain.journal import (
    DeploymentState,
    JournalMessage,
    apply_message,
    deserialize_message,
    replay,
    serialize_message,
)
from chaindag.kernel.exceptions import InvariantViolationError
from chaindag.kernel.logging import get_logger
from chaindag.kernel.ports.journal_store import JournalStore

logger = get_logger(__name__)


async def read_messages(store: JournalStore, deployment_id: str) -> list[JournalMessage]:
    """Read and decode every message of a deployment's journal.

    Raises
    ------
    InvariantViolationError
        If a line cannot be decoded.
    """
    messages: list[JournalMessage] = []
    for line_no, line in enumerate(await store.aread_all(deployment_id), start=1):
        if not line.strip():
            continue
        try:
            messages.append(deserialize_message(line))
        except ValueError as e:
            raise InvariantViolationError(
                f"Corrupt journal entry at line {line_no} of deployment '{deployment_id}': {e}"
            ) from e
    return messages


class Journal:
    """Append-only journal with an in-memory fold of its messages.

    Examples
    --------
    Example usage::

        journal = await Journal.aload(store, "chain-31337")
        await journal.append(FutureStarted(future_id="Token#Token", future_type="deploy-contract"))
        journal.state.get("Token#Token").status  # ExecutionStatus.STARTED
    """

    def __init__(
        self,
        store: JournalStore,
        deployment_id: str,
        state: DeploymentState | None = None,
    ) -> None:
        self.store = store
        self.deployment_id = deployment_id
        self._state = state or DeploymentState()
        self._lock = asyncio.Lock()

    @classmethod
    async def aload(cls, store: JournalStore, deployment_id: str) -> Journal:
        """Replay the stored journal of *deployment_id*."""
        messages = await read_messages(store, deployment_id)
        state = replay(messages)
        if messages:
            logger.debug(
                f"Replayed {len(messages)} journal message(s) for '{deployment_id}' "
                f"({len(state.futures)} future(s))"
            )
        return cls(store, deployment_id, state)

    @property
    def state(self) -> DeploymentState:
        return self._state

    async def append(self, message: JournalMessage) -> DeploymentState:
        """Durably record *message* and fold it into the state.

        The write is shielded from cancellation: once started, a transition
        is either fully recorded (on disk and in memory) or not at all.

        Raises
        ------
        InvalidTransitionError
            If the message implies a forbidden transition; nothing is written.
        """
        return await asyncio.shield(self._append(message))

    async def _append(self, message: JournalMessage) -> DeploymentState:
        async with self._lock:
            new_state = apply_message(self._state, message)
            await self.store.aappend(self.deployment_id, serialize_message(message))
            self._state = new_state
            logger.trace(f"Journaled {message.type} {getattr(message, 'future_id', '')}")
            return new_state
