"""Tests for chaindag.kernel.orchestration.strategies."""

import pytest

from chaindag.drivers.journal_store import InMemoryJournalStore
from chaindag.drivers.network import SimulatedNetwork
from chaindag.kernel.domain.dag import DeploymentGraph
from chaindag.kernel.domain.module import build_module
from chaindag.kernel.exceptions import ConfigurationError
from chaindag.kernel.module_builder import ModuleBuilder
from chaindag.kernel.orchestration import (
    BasicStrategy,
    Create2Strategy,
    ExecutionStrategy,
    Journal,
    Orchestrator,
    get_strategy,
)
from chaindag.kernel.ports.network import NetworkOperation, OperationKind

DEPLOY = NetworkOperation(kind=OperationKind.DEPLOY, sender="0xa0", contract_name="Token")
CALL = NetworkOperation(kind=OperationKind.CALL, sender="0xa0", to="0xt", method="mint")


class TestStrategies:
    def test_get_strategy(self) -> None:
        assert isinstance(get_strategy("basic"), BasicStrategy)
        assert isinstance(get_strategy("create2"), Create2Strategy)
        assert isinstance(get_strategy("create2"), ExecutionStrategy)

    def test_unknown_strategy(self) -> None:
        with pytest.raises(ConfigurationError, match="unknown strategy 'fancy'"):
            get_strategy("fancy")

    def test_basic_leaves_operations_alone(self) -> None:
        assert BasicStrategy().prepare_operation("M#Token", DEPLOY) is DEPLOY

    def test_create2_salts_deployments_only(self) -> None:
        strategy = Create2Strategy()
        prepared = strategy.prepare_operation("M#Token", DEPLOY)

        assert prepared.salt == strategy.derive_salt("M#Token")
        assert DEPLOY.salt is None
        assert strategy.prepare_operation("M#Token.mint", CALL) is CALL

    def test_salt_depends_on_strategy_salt(self) -> None:
        assert Create2Strategy("0x01").derive_salt("M#A") != Create2Strategy("0x02").derive_salt(
            "M#A"
        )


@build_module("M")
def pair(m):
    m.contract("Token", args=[1])
    m.contract("Vault", sender=m.get_account(1))
    return {}


async def deploy_on(network: SimulatedNetwork, strategy) -> dict[str, str]:
    journal = await Journal.aload(InMemoryJournalStore(), "test")
    orchestrator = Orchestrator(network, journal, strategy=strategy, poll_interval=0.001)
    graph = DeploymentGraph.from_module(ModuleBuilder.build(pair))
    summary = await orchestrator.run(graph, {}, network.accounts)
    assert summary.successful
    return summary.results


class TestCreate2Deployments:
    @pytest.mark.asyncio
    async def test_same_addresses_on_every_chain(self) -> None:
        first = await deploy_on(SimulatedNetwork(chain_id=1), Create2Strategy())
        second = await deploy_on(SimulatedNetwork(chain_id=10), Create2Strategy())
        assert first == second

    @pytest.mark.asyncio
    async def test_basic_addresses_depend_on_chain(self) -> None:
        first = await deploy_on(SimulatedNetwork(chain_id=1), BasicStrategy())
        second = await deploy_on(SimulatedNetwork(chain_id=10), BasicStrategy())
        assert first["M#Token"] != second["M#Token"]
