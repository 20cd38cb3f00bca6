"""Tests for FileJournalStore."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from chaindag.drivers.journal_store import FileJournalStore, InMemoryJournalStore
from chaindag.drivers.journal_store.file import JOURNAL_FILE_NAME, check_deployment_id
from chaindag.kernel.exceptions import ValidationError
from chaindag.kernel.ports.journal_store import JournalStore

if TYPE_CHECKING:
    from pathlib import Path


class TestCheckDeploymentId:
    @pytest.mark.parametrize("deployment_id", ["chain-31337", "mainnet_v2", "a.b"])
    def test_valid(self, deployment_id: str) -> None:
        assert check_deployment_id(deployment_id) == deployment_id

    @pytest.mark.parametrize("deployment_id", ["", "../escape", "a/b", ".hidden", "with space"])
    def test_invalid(self, deployment_id: str) -> None:
        with pytest.raises(ValidationError):
            check_deployment_id(deployment_id)


class TestFileJournalStore:
    """Tests for FileJournalStore."""

    def test_implements_port(self, tmp_path: Path) -> None:
        assert isinstance(FileJournalStore(tmp_path), JournalStore)
        assert isinstance(InMemoryJournalStore(), JournalStore)

    @pytest.mark.asyncio
    async def test_append_and_read(self, tmp_path: Path) -> None:
        store = FileJournalStore(tmp_path)
        await store.aappend("dev", '{"n":1}')
        await store.aappend("dev", '{"n":2}')

        assert await store.aread_all("dev") == ['{"n":1}', '{"n":2}']
        assert (tmp_path / "dev" / JOURNAL_FILE_NAME).read_text() == '{"n":1}\n{"n":2}\n'

    @pytest.mark.asyncio
    async def test_missing_journal(self, tmp_path: Path) -> None:
        store = FileJournalStore(tmp_path / "nowhere")
        assert await store.aread_all("dev") == []
        assert not await store.aexists("dev")
        assert await store.alist_deployments() == []

    @pytest.mark.asyncio
    async def test_torn_trailing_line_is_ignored(self, tmp_path: Path) -> None:
        store = FileJournalStore(tmp_path)
        await store.aappend("dev", '{"n":1}')
        with store.journal_path("dev").open("a") as f:
            f.write('{"n":2')

        assert await store.aread_all("dev") == ['{"n":1}']

    @pytest.mark.asyncio
    async def test_multiline_entries_are_rejected(self, tmp_path: Path) -> None:
        store = FileJournalStore(tmp_path)
        with pytest.raises(ValidationError):
            await store.aappend("dev", "one\ntwo")
        assert not await store.aexists("dev")

    @pytest.mark.asyncio
    async def test_invalid_id_never_touches_disk(self, tmp_path: Path) -> None:
        store = FileJournalStore(tmp_path / "deployments")
        with pytest.raises(ValidationError):
            await store.aappend("../outside", "{}")
        assert not (tmp_path / "outside").exists()

    @pytest.mark.asyncio
    async def test_list_and_delete(self, tmp_path: Path) -> None:
        store = FileJournalStore(tmp_path)
        await store.aappend("b-net", "{}")
        await store.aappend("a-net", "{}")
        (tmp_path / "not-a-deployment").mkdir()

        assert await store.alist_deployments() == ["a-net", "b-net"]
        assert await store.adelete("a-net")
        assert not await store.adelete("a-net")
        assert await store.alist_deployments() == ["b-net"]
        assert not (tmp_path / "a-net").exists()
