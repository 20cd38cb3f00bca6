"""In-memory journal store for tests and dry runs."""

from __future__ import annotations


class InMemoryJournalStore:
    """Journal store keeping every journal in a dict of line lists.

    Examples
    --------
    >>> import asyncio
    >>> store = InMemoryJournalStore()
    >>> asyncio.run(store.aappend("dev", '{"type":"future-wiped","future_id":"M#A"}'))
    >>> asyncio.run(store.aread_all("dev"))
    ['{"type":"future-wiped","future_id":"M#A"}']
    """

    def __init__(self) -> None:
        self.journals: dict[str, list[str]] = {}

    async def aappend(self, deployment_id: str, line: str) -> None:
        self.journals.setdefault(deployment_id, []).append(line)

    async def aread_all(self, deployment_id: str) -> list[str]:
        return list(self.journals.get(deployment_id, []))

    async def aexists(self, deployment_id: str) -> bool:
        return deployment_id in self.journals

    async def adelete(self, deployment_id: str) -> bool:
        return self.journals.pop(deployment_id, None) is not None

    async def alist_deployments(self) -> list[str]:
        return sorted(self.journals)
