"""Port interface for durable journal storage.

A journal store keeps one ordered log of lines per deployment id. Appends
must be atomic and durable when ``aappend`` returns: the engine relies on
this to never act on a transition that could be lost.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol, runtime_checkable


@runtime_checkable
class JournalStore(Protocol):
    """Append-only line storage keyed by deployment id."""

    @abstractmethod
    async def aappend(self, deployment_id: str, line: str) -> None:
        """Durably append one line to the deployment's journal."""
        ...

    @abstractmethod
    async def aread_all(self, deployment_id: str) -> list[str]:
        """Return every line of the journal in append order (empty if none)."""
        ...

    @abstractmethod
    async def aexists(self, deployment_id: str) -> bool:
        """Check whether a journal exists for the deployment."""
        ...

    @abstractmethod
    async def adelete(self, deployment_id: str) -> bool:
        """Delete the deployment's journal. Returns ``True`` if it existed."""
        ...

    @abstractmethod
    async def alist_deployments(self) -> list[str]:
        """List deployment ids that have a journal."""
        ...
