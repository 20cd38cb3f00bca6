"""Tests for the journal writer."""

import asyncio

import pytest

from chaindag.drivers.journal_store import InMemoryJournalStore
from chaindag.kernel.domain.execution_state import ExecutionStatus
from chaindag.kernel.domain.journal import (
    DeploymentInitialized,
    FutureStarted,
    FutureSucceeded,
    serialize_message,
)
from chaindag.kernel.exceptions import InvalidTransitionError, InvariantViolationError
from chaindag.kernel.orchestration import Journal, read_messages


class SlowStore(InMemoryJournalStore):
    """Store whose appends take a while to complete."""

    async def aappend(self, deployment_id: str, line: str) -> None:
        await asyncio.sleep(0.02)
        await super().aappend(deployment_id, line)


class TestJournal:
    @pytest.mark.asyncio
    async def test_append_persists_then_folds(self) -> None:
        store = InMemoryJournalStore()
        journal = await Journal.aload(store, "dev")

        state = await journal.append(FutureStarted(future_id="M#A", future_type="deploy-contract"))

        assert state.get("M#A").status == ExecutionStatus.STARTED
        assert journal.state is state
        assert len(store.journals["dev"]) == 1

    @pytest.mark.asyncio
    async def test_aload_replays_stored_messages(self) -> None:
        store = InMemoryJournalStore()
        for message in (
            DeploymentInitialized(chain_id=5, strategy="create2"),
            FutureStarted(future_id="M#A", future_type="deploy-contract"),
            FutureSucceeded(future_id="M#A", result="0xabc"),
        ):
            await store.aappend("dev", serialize_message(message))

        journal = await Journal.aload(store, "dev")

        assert journal.state.chain_id == 5
        assert journal.state.strategy == "create2"
        assert journal.state.get("M#A").result == "0xabc"

    @pytest.mark.asyncio
    async def test_invalid_transition_writes_nothing(self) -> None:
        store = InMemoryJournalStore()
        journal = await Journal.aload(store, "dev")
        await journal.append(FutureStarted(future_id="M#A", future_type="deploy-contract"))
        await journal.append(FutureSucceeded(future_id="M#A", result="0xabc"))

        with pytest.raises(InvalidTransitionError):
            await journal.append(FutureStarted(future_id="M#A", future_type="deploy-contract"))

        assert len(store.journals["dev"]) == 2
        assert journal.state.get("M#A").status == ExecutionStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_cancelled_append_still_completes(self) -> None:
        store = SlowStore()
        journal = await Journal.aload(store, "dev")

        task = asyncio.create_task(
            journal.append(FutureStarted(future_id="M#A", future_type="deploy-contract"))
        )
        await asyncio.sleep(0.005)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.sleep(0.05)

        assert len(store.journals["dev"]) == 1
        assert journal.state.get("M#A").status == ExecutionStatus.STARTED


class TestReadMessages:
    @pytest.mark.asyncio
    async def test_blank_lines_are_skipped(self) -> None:
        store = InMemoryJournalStore()
        await store.aappend("dev", serialize_message(DeploymentInitialized(chain_id=1)))
        await store.aappend("dev", "   ")

        assert await read_messages(store, "dev") == [DeploymentInitialized(chain_id=1)]

    @pytest.mark.asyncio
    async def test_corrupt_line_is_an_invariant_violation(self) -> None:
        store = InMemoryJournalStore()
        await store.aappend("dev", serialize_message(DeploymentInitialized(chain_id=1)))
        await store.aappend("dev", '{"type": "no-such-message"}')

        with pytest.raises(InvariantViolationError, match="line 2 of deployment 'dev'"):
            await read_messages(store, "dev")

    @pytest.mark.asyncio
    async def test_missing_journal_reads_empty(self) -> None:
        assert await read_messages(InMemoryJournalStore(), "absent") == []
