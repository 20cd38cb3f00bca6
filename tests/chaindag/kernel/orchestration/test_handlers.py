"""Tests for chaindag.kernel.orchestration.handlers."""

import pytest

from chaindag.drivers.journal_store import InMemoryJournalStore
from chaindag.drivers.network import SimulatedNetwork
from chaindag.kernel.domain.journal import FutureStarted, NetworkInteractionRecorded
from chaindag.kernel.domain.module import build_module
from chaindag.kernel.exceptions import (
    ExecutionError,
    FutureTimeoutError,
    RevertError,
    TransientNetworkError,
)
from chaindag.kernel.module_builder import ModuleBuilder
from chaindag.kernel.orchestration import Journal
from chaindag.kernel.orchestration.handlers import (
    HandlerContext,
    Held,
    Succeeded,
    execute_future,
    read_event_argument,
    rekey_error,
    select_output,
    submission_key,
)

RECEIPT = {
    "logs": [
        {
            "address": "0xtoken",
            "event_name": "Transfer",
            "args": {"from": "0xa", "to": "0xb", "value": 5},
            "arg_order": ["from", "to", "value"],
        },
        {"address": "0xtoken", "event_name": "Approval", "args": {"value": 1}},
        {
            "address": "0xtoken",
            "event_name": "Transfer",
            "args": {"from": "0xb", "to": "0xc", "value": 7},
            "arg_order": ["from", "to", "value"],
        },
    ]
}


@build_module("M")
def token_module(m):
    token = m.contract("Token")
    m.call(token, "mint", [1])
    m.static_call(token, "owner")
    m.send("ping", "0x" + "ee" * 20, data="0xbeef")
    m.contract_at("Token", "0x" + "ab" * 20, id="Existing")
    return {}


@pytest.fixture
def futures():
    return {f.id: f for f in ModuleBuilder.build(token_module).all_futures()}


@pytest.fixture
def ctx() -> HandlerContext:
    journal = Journal(InMemoryJournalStore(), "test")
    return HandlerContext(network=SimulatedNetwork(), journal=journal, poll_interval=0.001)


async def start(ctx: HandlerContext, future_id: str, future_type: str) -> None:
    await ctx.journal.append(FutureStarted(future_id=future_id, future_type=future_type))


class TestSelectOutput:
    def test_positional_output(self) -> None:
        assert select_output("M#f", ["a", "b"], 1) == "b"

    def test_named_output(self) -> None:
        assert select_output("M#f", {"owner": "0xabc", "balance": 3}, "balance") == 3

    def test_index_into_named_outputs(self) -> None:
        assert select_output("M#f", {"owner": "0xabc", "balance": 3}, 0) == "0xabc"

    def test_single_value_at_index_zero(self) -> None:
        assert select_output("M#f", 42, 0) == 42

    @pytest.mark.parametrize("outputs,selector", [([1], 3), ({"a": 1}, "b"), (42, 1)])
    def test_missing_output_fails_the_future(self, outputs, selector) -> None:
        with pytest.raises(ExecutionError) as exc_info:
            select_output("M#f", outputs, selector)
        assert exc_info.value.future_id == "M#f"


class TestReadEventArgument:
    def test_reads_by_name(self) -> None:
        assert read_event_argument("M#r", RECEIPT, "Transfer", 0, "to") == "0xb"

    def test_reads_by_position_and_event_index(self) -> None:
        assert read_event_argument("M#r", RECEIPT, "Transfer", 1, 2) == 7

    def test_other_events_do_not_count_toward_the_index(self) -> None:
        assert read_event_argument("M#r", RECEIPT, "Approval", 0, "value") == 1

    def test_missing_event(self) -> None:
        with pytest.raises(ExecutionError, match="event 'Transfer' #2 not found \\(2 emitted\\)"):
            read_event_argument("M#r", RECEIPT, "Transfer", 2, "to")

    def test_missing_argument(self) -> None:
        with pytest.raises(ExecutionError, match="no argument 'amount'"):
            read_event_argument("M#r", RECEIPT, "Transfer", 0, "amount")
        with pytest.raises(ExecutionError, match="no argument #3"):
            read_event_argument("M#r", RECEIPT, "Transfer", 0, 3)


class TestRekeyError:
    def test_keeps_error_of_the_same_future(self) -> None:
        error = RevertError("M#f", "nope")
        assert rekey_error(error, "M#f") is error

    def test_keeps_type_and_transient_flag(self) -> None:
        rekeyed = rekey_error(TransientNetworkError("network", "reset"), "M#f")
        assert isinstance(rekeyed, TransientNetworkError)
        assert rekeyed.transient
        assert rekeyed.future_id == "M#f"
        assert rekeyed.reason == "reset"

    def test_timeout_keeps_its_duration(self) -> None:
        rekeyed = rekey_error(FutureTimeoutError("network", 1.5), "M#f")
        assert isinstance(rekeyed, FutureTimeoutError)
        assert rekeyed.timeout == 1.5


class TestExecuteFuture:
    """Tests for the per-kind handlers."""

    @pytest.mark.asyncio
    async def test_deployment_returns_contract_address(self, ctx, futures) -> None:
        await start(ctx, "M#Token", "deploy-contract")
        inputs = {"contract_name": "Token", "args": [], "libraries": {}, "value": 0}
        inputs["from"] = ctx.network.accounts[0]

        result = await execute_future(futures["M#Token"], inputs, ctx)

        assert isinstance(result, Succeeded)
        assert ctx.network.contracts[result.result] == "Token"
        state = ctx.journal.state.get("M#Token")
        assert [i.status for i in state.interactions] == ["confirmed"]
        assert state.confirmed_receipt["contract_address"] == result.result

    @pytest.mark.asyncio
    async def test_call_returns_handle(self, ctx, futures) -> None:
        await start(ctx, "M#Token.mint", "call-method")
        inputs = {
            "contract_address": "0xtoken",
            "method": "mint",
            "args": [1],
            "value": 0,
            "from": ctx.network.accounts[0],
        }

        result = await execute_future(futures["M#Token.mint"], inputs, ctx)

        interaction = ctx.journal.state.get("M#Token.mint").interactions[0]
        assert result == Succeeded(interaction.handle)
        assert ctx.network.submissions[0].method == "mint"

    @pytest.mark.asyncio
    async def test_send_submits_data(self, ctx, futures) -> None:
        await start(ctx, "M#ping", "send-data")
        to = "0x" + "ee" * 20
        inputs = {"to": to, "data": "0xbeef", "value": 3, "from": ctx.network.accounts[2]}

        result = await execute_future(futures["M#ping"], inputs, ctx)

        assert isinstance(result, Succeeded)
        operation = ctx.network.submissions[0]
        assert (operation.to, operation.data, operation.value) == (to, "0xbeef", 3)
        assert operation.sender == ctx.network.accounts[2]

    @pytest.mark.asyncio
    async def test_revert_is_attributed_to_the_future(self, ctx, futures) -> None:
        ctx.network.set_behavior("Token", revert="not allowed")
        await start(ctx, "M#Token", "deploy-contract")
        inputs = {"contract_name": "Token", "args": [], "libraries": {}, "value": 0}
        inputs["from"] = ctx.network.accounts[0]

        with pytest.raises(RevertError) as exc_info:
            await execute_future(futures["M#Token"], inputs, ctx)

        assert exc_info.value.future_id == "M#Token"
        assert exc_info.value.reason == "not allowed"
        interaction = ctx.journal.state.get("M#Token").interactions[0]
        assert interaction.status == "reverted"

    @pytest.mark.asyncio
    async def test_hold_is_not_confirmed(self, ctx, futures) -> None:
        ctx.network.set_behavior("send:" + "0x" + "ee" * 20, hold="needs approval")
        await start(ctx, "M#ping", "send-data")
        inputs = {"to": "0x" + "ee" * 20, "data": "0x", "value": 0}
        inputs["from"] = ctx.network.accounts[0]

        result = await execute_future(futures["M#ping"], inputs, ctx)

        assert result == Held("needs approval")
        assert ctx.journal.state.get("M#ping").pending_interaction is not None

    @pytest.mark.asyncio
    async def test_static_call_selects_output(self, ctx, futures) -> None:
        ctx.network.static_results["Token.owner"] = ["0xowner"]
        inputs = {
            "contract_address": "0xtoken",
            "method": "owner",
            "args": [],
            "name_or_index": 0,
            "from": ctx.network.accounts[0],
        }

        assert await execute_future(futures["M#Token.owner"], inputs, ctx) == Succeeded("0xowner")
        assert ctx.network.submissions == []

    @pytest.mark.asyncio
    async def test_failed_static_call_is_attributed_to_the_future(self, ctx, futures) -> None:
        inputs = {
            "contract_address": "0xtoken",
            "method": "owner",
            "args": [],
            "name_or_index": 0,
            "from": ctx.network.accounts[0],
        }

        with pytest.raises(RevertError) as exc_info:
            await execute_future(futures["M#Token.owner"], inputs, ctx)
        assert exc_info.value.future_id == "M#Token.owner"

    @pytest.mark.asyncio
    async def test_contract_at_returns_address(self, ctx, futures) -> None:
        inputs = {"contract_name": "Token", "address": "0x" + "ab" * 20}
        result = await execute_future(futures["M#Existing"], inputs, ctx)
        assert result == Succeeded("0x" + "ab" * 20)

    @pytest.mark.asyncio
    async def test_pending_submission_is_requeried_not_resent(self, ctx, futures) -> None:
        await start(ctx, "M#Token", "deploy-contract")
        inputs = {"contract_name": "Token", "args": [], "libraries": {}, "value": 0}
        inputs["from"] = ctx.network.accounts[0]
        await execute_future(futures["M#Token"], inputs, ctx)
        assert len(ctx.network.submissions) == 1

        # Same journal, new process: replay state up to the recorded handle
        store = ctx.journal.store
        lines = await store.aread_all("test")
        trimmed = InMemoryJournalStore()
        for line in lines[:3]:
            await trimmed.aappend("test", line)
        ctx.journal = await Journal.aload(trimmed, "test")

        result = await execute_future(futures["M#Token"], inputs, ctx)

        assert len(ctx.network.submissions) == 1
        assert ctx.network.contracts[result.result] == "Token"

    @pytest.mark.asyncio
    async def test_submission_without_recorded_handle_is_found_by_key(self, ctx, futures) -> None:
        await start(ctx, "M#Token", "deploy-contract")
        inputs = {"contract_name": "Token", "args": [], "libraries": {}, "value": 0}
        inputs["from"] = ctx.network.accounts[0]
        await execute_future(futures["M#Token"], inputs, ctx)

        # The process stopped after submitting but before journaling the handle
        lines = await ctx.journal.store.aread_all("test")
        trimmed = InMemoryJournalStore()
        for line in lines[:2]:
            await trimmed.aappend("test", line)
        ctx.journal = await Journal.aload(trimmed, "test")
        assert ctx.journal.state.get("M#Token").pending_interaction.handle is None

        result = await execute_future(futures["M#Token"], inputs, ctx)

        assert len(ctx.network.submissions) == 1
        assert ctx.network.contracts[result.result] == "Token"
        interaction = ctx.journal.state.get("M#Token").interactions[0]
        assert interaction.handle is not None

    @pytest.mark.asyncio
    async def test_recorded_intent_that_never_landed_is_submitted_once(self, ctx, futures) -> None:
        await start(ctx, "M#Token", "deploy-contract")
        await ctx.journal.append(
            NetworkInteractionRecorded(
                future_id="M#Token",
                interaction_id=1,
                kind="deploy",
                sender=ctx.network.accounts[0],
            )
        )
        inputs = {"contract_name": "Token", "args": [], "libraries": {}, "value": 0}
        inputs["from"] = ctx.network.accounts[0]

        await execute_future(futures["M#Token"], inputs, ctx)

        assert [op.submission_key for op in ctx.network.submissions] == [
            submission_key("test", "M#Token", 1)
        ]
        assert [i.interaction_id for i in ctx.journal.state.get("M#Token").interactions] == [1]


class TestSubmissionKey:
    def test_names_deployment_future_and_interaction(self) -> None:
        assert submission_key("dev", "M#Token", 2) == "dev/M#Token/2"
