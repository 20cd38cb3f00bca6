"""File-based journal store.

One directory per deployment under ``base_dir``, holding the journal as
JSON Lines::

    deployments/
        chain-31337/
            journal.jsonl

Every append is flushed and fsynced before it returns.
"""

from __future__ import annotations

import asyncio
import os
import re
from contextlib import suppress
from pathlib import Path

import aiofiles

from chaindag.kernel.exceptions import ValidationError
from chaindag.kernel.logging import get_logger

logger = get_logger(__name__)

JOURNAL_FILE_NAME = "journal.jsonl"

_DEPLOYMENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


def check_deployment_id(deployment_id: str) -> str:
    """Ensure *deployment_id* is usable as a single path component.

    Raises
    ------
    ValidationError
        If the id is empty or contains path separators or other special characters
    """
    if not _DEPLOYMENT_ID_PATTERN.match(deployment_id):
        raise ValidationError(
            "deployment_id",
            "must start with a letter or digit and contain only letters, digits, '_', '.', '-'",
            deployment_id,
        )
    return deployment_id


class FileJournalStore:
    """Journal store backed by JSONL files.

    Parameters
    ----------
    base_dir : str | Path
        Directory containing one subdirectory per deployment

    Examples
    --------
    Example usage::

        store = FileJournalStore("./deployments")
        await store.aappend("chain-31337", '{"type":"deployment-initialized"}')
        lines = await store.aread_all("chain-31337")
    """

    def __init__(self, base_dir: str | Path = "deployments") -> None:
        self.base_dir = Path(base_dir)

    def journal_path(self, deployment_id: str) -> Path:
        return self.base_dir / check_deployment_id(deployment_id) / JOURNAL_FILE_NAME

    async def aappend(self, deployment_id: str, line: str) -> None:
        if "\n" in line:
            raise ValidationError("line", "journal entries must be a single line")
        path = self.journal_path(deployment_id)
        path.parent.mkdir(parents=True, exist_ok=True)

        async with aiofiles.open(path, "a", encoding="utf-8") as f:
            await f.write(line + "\n")
            await f.flush()
            await asyncio.get_running_loop().run_in_executor(None, os.fsync, f.fileno())

    async def aread_all(self, deployment_id: str) -> list[str]:
        path = self.journal_path(deployment_id)
        if not path.exists():
            return []

        async with aiofiles.open(path, encoding="utf-8") as f:
            content = await f.read()

        lines = content.split("\n")
        # A torn final write has no trailing newline; it was never acknowledged
        if lines and lines[-1]:
            logger.warning(
                f"Ignoring incomplete trailing journal entry of '{deployment_id}' ({path})"
            )
        return [line for line in lines[:-1] if line.strip()]

    async def aexists(self, deployment_id: str) -> bool:
        return self.journal_path(deployment_id).exists()

    async def adelete(self, deployment_id: str) -> bool:
        path = self.journal_path(deployment_id)
        if not path.exists():
            return False
        path.unlink()
        # Directory may hold other files
        with suppress(OSError):
            path.parent.rmdir()
        logger.info(f"Deleted journal of '{deployment_id}'")
        return True

    async def alist_deployments(self) -> list[str]:
        if not self.base_dir.exists():
            return []
        return sorted(
            entry.name
            for entry in self.base_dir.iterdir()
            if (entry / JOURNAL_FILE_NAME).is_file()
        )
