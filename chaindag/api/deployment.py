"""Deployment API.

Entry points for planning, deploying and inspecting deployments:

- :func:`plan` builds a module and returns its futures in execution order
- :func:`deploy` validates, reconciles and executes a module
- :func:`list_operations`, :func:`status` inspect a recorded deployment
- :func:`wipe` and :func:`resolve_held` are operator actions on the journal

Examples
--------
Example usage::

    network = SimulatedNetwork()
    result = await deploy(token_module, {"Token": {"supply": 1_000}}, network)
    result.raise_for_status()
    print(result.contracts)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any

from chaindag.drivers.journal_store import FileJournalStore, check_deployment_id
from chaindag.kernel.config.models import ChainDAGConfig
from chaindag.kernel.domain.dag import DeploymentGraph
from chaindag.kernel.domain.execution_state import ExecutionStatus, InteractionStatus
from chaindag.kernel.domain.futures import CONTRACT_FUTURE_TYPES, Future, FutureType
from chaindag.kernel.domain.journal import (
    DeploymentInitialized,
    FutureFailed,
    FutureSucceeded,
    FutureWiped,
    InteractionConfirmed,
    InteractionSubmitted,
    NetworkInteractionRecorded,
)
from chaindag.kernel.domain.module import DeploymentModule, ModuleDefinition
from chaindag.kernel.exceptions import (
    ConfigurationError,
    DeploymentValidationError,
    ExecutionError,
    InvalidTransitionError,
    ReconciliationError,
    ResourceNotFoundError,
    ValidationError,
)
from chaindag.kernel.logging import get_logger, reset_deployment_id, set_deployment_id
from chaindag.kernel.module_builder import ModuleBuilder
from chaindag.kernel.orchestration import (
    DEFAULT_MAX_CONCURRENCY,
    ExecutionSummary,
    Journal,
    Orchestrator,
    get_strategy,
    read_messages,
)
from chaindag.kernel.orchestration.handlers import DEFAULT_POLL_INTERVAL
from chaindag.kernel.ports.artifacts import ArtifactResolver
from chaindag.kernel.ports.journal_store import JournalStore
from chaindag.kernel.ports.network import NetworkPort
from chaindag.kernel.reconciliation import reconcile
from chaindag.kernel.resolver import DeploymentParameters
from chaindag.kernel.validation import RetryConfig, validate_deployment

logger = get_logger(__name__)

DEFAULT_DEPLOYMENTS_DIR = "deployments"


class DeploymentResultKind(StrEnum):
    SUCCESSFUL_DEPLOYMENT = "successful-deployment"
    VALIDATION_ERROR = "validation-error"
    RECONCILIATION_ERROR = "reconciliation-error"
    EXECUTION_ERROR = "execution-error"


@dataclass(frozen=True, slots=True)
class DeployOptions:
    """Options for :func:`deploy`.

    Attributes
    ----------
    deployment_id : str | None
        Journal to use; ``chain-<chain_id>`` by default
    strategy : str | None
        ``basic`` or ``create2``; defaults to the recorded strategy, else ``basic``
    max_concurrency : int
        Maximum number of futures executing at once
    reset : bool
        Delete the existing journal once validation has passed
    retry : RetryConfig
        Retry policy for transient network failures
    future_timeout : float | None
        Per-future timeout in seconds
    journal_store : JournalStore | None
        Journal storage; a :class:`FileJournalStore` under ``deployments/`` by default
    artifact_resolver : ArtifactResolver | None
        Enables artifact checks during validation and supplies bytecode
    poll_interval : float
        Delay between confirmation queries
    """

    deployment_id: str | None = None
    strategy: str | None = None
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    reset: bool = False
    retry: RetryConfig = field(default_factory=RetryConfig)
    future_timeout: float | None = None
    journal_store: JournalStore | None = None
    artifact_resolver: ArtifactResolver | None = None
    poll_interval: float = DEFAULT_POLL_INTERVAL

    @classmethod
    def from_config(cls, config: ChainDAGConfig, **overrides: Any) -> DeployOptions:
        """Options from loaded configuration; keyword arguments take precedence."""
        execution = config.execution
        values: dict[str, Any] = {
            "strategy": execution.strategy,
            "max_concurrency": execution.max_concurrency,
            "retry": execution.retry_config(),
            "future_timeout": execution.future_timeout,
            "journal_store": FileJournalStore(config.deployments_dir),
            "poll_interval": execution.poll_interval,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass(frozen=True, slots=True)
class DeploymentResult:
    """Outcome of :func:`deploy`.

    Attributes
    ----------
    kind : DeploymentResultKind
        Overall outcome
    deployment_id : str
        Journal the run used
    contracts : dict[str, str]
        Future id to address, for every contract future that succeeded
    results : dict[str, Any]
        Results of every successful future
    validation_errors : dict[str, list[str]]
        Errors by future id (validation error only)
    reconciliation_failures : dict[str, str]
        Failure reason by future id (reconciliation error only)
    missing_executed_futures : list[str]
        Recorded futures no longer in the plan
    summary : ExecutionSummary | None
        Per-future outcomes, when execution ran
    """

    kind: DeploymentResultKind
    deployment_id: str
    contracts: dict[str, str] = field(default_factory=dict)
    results: dict[str, Any] = field(default_factory=dict)
    validation_errors: dict[str, list[str]] = field(default_factory=dict)
    reconciliation_failures: dict[str, str] = field(default_factory=dict)
    missing_executed_futures: list[str] = field(default_factory=list)
    summary: ExecutionSummary | None = None

    @property
    def successful(self) -> bool:
        return self.kind == DeploymentResultKind.SUCCESSFUL_DEPLOYMENT

    @property
    def failed(self) -> dict[str, str]:
        return self.summary.failed if self.summary else {}

    @property
    def timed_out(self) -> dict[str, str]:
        return self.summary.timed_out if self.summary else {}

    @property
    def held(self) -> dict[str, str]:
        return self.summary.held if self.summary else {}

    @property
    def blocked(self) -> dict[str, str]:
        return self.summary.blocked if self.summary else {}

    def raise_for_status(self) -> None:
        """Raise the error matching an unsuccessful result.

        Raises
        ------
        DeploymentValidationError
            For a validation error
        ReconciliationError
            For a reconciliation error
        ExecutionError
            For an execution error, naming the first unsuccessful future
        """
        match self.kind:
            case DeploymentResultKind.VALIDATION_ERROR:
                raise DeploymentValidationError(self.validation_errors)
            case DeploymentResultKind.RECONCILIATION_ERROR:
                raise ReconciliationError(self.reconciliation_failures)
            case DeploymentResultKind.EXECUTION_ERROR:
                problems = {**self.failed, **self.timed_out, **self.held, **self.blocked}
                future_id, reason = next(iter(problems.items()), ("-", "execution failed"))
                raise ExecutionError(future_id, reason)


def _build(module: ModuleDefinition | DeploymentModule) -> DeploymentModule:
    if isinstance(module, DeploymentModule):
        return module
    return ModuleBuilder.build(module)


def plan(module: ModuleDefinition | DeploymentModule) -> list[Future]:
    """Build *module* and return its futures in execution order.

    Pure: no network, journal or artifact access.

    Raises
    ------
    BuildError
        On duplicate ids or an invalid module
    CycleDetectedError
        If the futures or modules form a cycle
    """
    return DeploymentGraph.from_module(_build(module)).topological_order()


def _contracts(graph: DeploymentGraph, results: Mapping[str, Any]) -> dict[str, str]:
    return {
        future.id: results[future.id]
        for future in graph.topological_order()
        if future.future_type in CONTRACT_FUTURE_TYPES and future.id in results
    }


async def deploy(
    module: ModuleDefinition | DeploymentModule,
    parameters: DeploymentParameters | None,
    network: NetworkPort,
    options: DeployOptions | None = None,
) -> DeploymentResult:
    """Validate, reconcile and execute *module* against *network*.

    Validation and reconciliation errors are returned before anything is
    sent to the network. Execution continues past failures on independent
    branches; the result lists failed, timed-out, held and blocked futures.

    Parameters
    ----------
    module : ModuleDefinition | DeploymentModule
        Module to deploy
    parameters : DeploymentParameters | None
        ``module_id -> name -> value``; never mutated
    network : NetworkPort
        Chain access
    options : DeployOptions | None
        Deployment options

    Returns
    -------
    DeploymentResult
        Outcome of the run

    Raises
    ------
    BuildError
        If the module cannot be built
    ConfigurationError
        If the requested strategy or the network's chain differs from the
        ones the deployment was started with
    InvariantViolationError
        On a broken internal invariant
    """
    options = options or DeployOptions()
    parameters = parameters or {}
    graph = DeploymentGraph.from_module(_build(module))

    accounts = await network.aget_accounts()
    chain_id = await network.aget_chain_id()
    deployment_id = check_deployment_id(options.deployment_id or f"chain-{chain_id}")
    store = options.journal_store or FileJournalStore(DEFAULT_DEPLOYMENTS_DIR)

    token = set_deployment_id(deployment_id)
    try:
        logger.info(f"Deploying {len(graph)} futures to chain {chain_id}")
        errors = validate_deployment(graph, parameters, accounts, options.artifact_resolver)
        if errors:
            return DeploymentResult(
                DeploymentResultKind.VALIDATION_ERROR, deployment_id, validation_errors=errors
            )

        if options.reset and await store.adelete(deployment_id):
            logger.warning(f"Reset deployment '{deployment_id}'")

        journal = await Journal.aload(store, deployment_id)
        recorded = journal.state
        if recorded.chain_id is not None and recorded.chain_id != chain_id:
            raise ConfigurationError(
                "network",
                f"deployment '{deployment_id}' was started on chain {recorded.chain_id}, "
                f"not {chain_id}",
            )
        if recorded.strategy and options.strategy and recorded.strategy != options.strategy:
            raise ConfigurationError(
                "strategy",
                f"deployment '{deployment_id}' was started with '{recorded.strategy}', "
                f"cannot continue with '{options.strategy}'",
            )
        strategy = get_strategy(recorded.strategy or options.strategy or "basic")

        report = reconcile(graph, recorded, parameters, accounts)
        if not report.ok:
            return DeploymentResult(
                DeploymentResultKind.RECONCILIATION_ERROR,
                deployment_id,
                reconciliation_failures=report.failures,
                missing_executed_futures=report.missing_executed_futures,
            )

        if recorded.chain_id is None:
            await journal.append(DeploymentInitialized(chain_id=chain_id, strategy=strategy.name))

        orchestrator = Orchestrator(
            network,
            journal,
            strategy=strategy,
            artifact_resolver=options.artifact_resolver,
            max_concurrency=options.max_concurrency,
            retry=options.retry,
            future_timeout=options.future_timeout,
            poll_interval=options.poll_interval,
        )
        summary = await orchestrator.run(graph, parameters, accounts)

        kind = (
            DeploymentResultKind.SUCCESSFUL_DEPLOYMENT
            if summary.successful
            else DeploymentResultKind.EXECUTION_ERROR
        )
        results = summary.results
        logger.info(
            f"Deployment finished: {kind} ({len(summary.executed)} executed, "
            f"{len(results) - len(summary.executed)} reused)"
        )
        return DeploymentResult(
            kind,
            deployment_id,
            contracts=_contracts(graph, results),
            results=results,
            missing_executed_futures=report.missing_executed_futures,
            summary=summary,
        )
    finally:
        reset_deployment_id(token)


# ============================================================================
# Inspection
# ============================================================================


@dataclass(frozen=True, slots=True)
class RecordedOperation:
    """One network submission recorded in a deployment journal."""

    future_id: str
    interaction_id: int
    kind: str
    sender: str | None
    to: str | None
    value: int
    data: str | None
    handle: str | None
    status: InteractionStatus


@dataclass(frozen=True, slots=True)
class DeploymentStatus:
    deployment_id: str
    chain_id: int | None
    strategy: str | None
    contracts: dict[str, str]
    futures: dict[str, ExecutionStatus]

    @property
    def counts(self) -> dict[ExecutionStatus, int]:
        counts: dict[ExecutionStatus, int] = {}
        for future_status in self.futures.values():
            counts[future_status] = counts.get(future_status, 0) + 1
        return counts


async def _load_existing(store: JournalStore, deployment_id: str) -> Journal:
    check_deployment_id(deployment_id)
    if not await store.aexists(deployment_id):
        raise ResourceNotFoundError("deployment", deployment_id, await store.alist_deployments())
    return await Journal.aload(store, deployment_id)


async def list_operations(
    deployment_id: str, journal_store: JournalStore | None = None
) -> list[RecordedOperation]:
    """List every network submission of a deployment, in submission order.

    Raises
    ------
    ResourceNotFoundError
        If the deployment has no journal
    """
    store = journal_store or FileJournalStore(DEFAULT_DEPLOYMENTS_DIR)
    journal = await _load_existing(store, deployment_id)

    statuses = {
        (fid, interaction.interaction_id): interaction.status
        for fid, state in journal.state.futures.items()
        for interaction in state.interactions
    }
    operations: list[RecordedOperation] = []
    positions: dict[tuple[str, int], int] = {}
    for message in await read_messages(store, deployment_id):
        if isinstance(message, InteractionSubmitted):
            position = positions[(message.future_id, message.interaction_id)]
            operations[position] = replace(operations[position], handle=message.handle)
        elif isinstance(message, NetworkInteractionRecorded):
            positions[(message.future_id, message.interaction_id)] = len(operations)
            operations.append(
                RecordedOperation(
                    future_id=message.future_id,
                    interaction_id=message.interaction_id,
                    kind=message.kind,
                    sender=message.sender,
                    to=message.to,
                    value=message.value,
                    data=message.data,
                    handle=message.handle,
                    # Wiped futures keep their history but no longer have a status
                    status=statuses.get(
                        (message.future_id, message.interaction_id), InteractionStatus.PENDING
                    ),
                )
            )
    return operations


async def status(deployment_id: str, journal_store: JournalStore | None = None) -> DeploymentStatus:
    """Summarize a recorded deployment.

    Raises
    ------
    ResourceNotFoundError
        If the deployment has no journal
    """
    store = journal_store or FileJournalStore(DEFAULT_DEPLOYMENTS_DIR)
    state = (await _load_existing(store, deployment_id)).state
    contracts = {
        fid: s.result
        for fid, s in state.futures.items()
        if s.status == ExecutionStatus.SUCCESS
        and FutureType(s.future_type) in CONTRACT_FUTURE_TYPES
    }
    return DeploymentStatus(
        deployment_id=deployment_id,
        chain_id=state.chain_id,
        strategy=state.strategy,
        contracts=contracts,
        futures={fid: s.status for fid, s in state.futures.items()},
    )


# ============================================================================
# Operator actions
# ============================================================================


async def wipe(
    deployment_id: str, future_id: str, journal_store: JournalStore | None = None
) -> None:
    """Remove a future's recorded state so the next run executes it again.

    Raises
    ------
    ResourceNotFoundError
        If the deployment or the future is not recorded
    ValidationError
        If other recorded futures depend on it
    """
    store = journal_store or FileJournalStore(DEFAULT_DEPLOYMENTS_DIR)
    journal = await _load_existing(store, deployment_id)
    futures = journal.state.futures
    if future_id not in futures:
        raise ResourceNotFoundError("future", future_id, sorted(futures))

    dependents = sorted(fid for fid, s in futures.items() if future_id in s.dependencies)
    if dependents:
        raise ValidationError(
            "future_id", f"cannot wipe '{future_id}', recorded futures depend on it", dependents
        )

    await journal.append(FutureWiped(future_id=future_id))
    logger.warning(f"Wiped '{future_id}' from deployment '{deployment_id}'")


async def resolve_held(
    deployment_id: str,
    future_id: str,
    *,
    result: Any = None,
    error: str | None = None,
    journal_store: JournalStore | None = None,
) -> None:
    """Settle a held future as an operator: succeed with *result* or fail with *error*.

    A failed future is executed again by the next run; its held submission is
    recorded as dropped.

    Raises
    ------
    ResourceNotFoundError
        If the deployment or the future is not recorded
    InvalidTransitionError
        If the future is not held
    """
    store = journal_store or FileJournalStore(DEFAULT_DEPLOYMENTS_DIR)
    journal = await _load_existing(store, deployment_id)
    state = journal.state.get(future_id)
    if state is None:
        raise ResourceNotFoundError("future", future_id, sorted(journal.state.futures))
    if state.status != ExecutionStatus.HELD:
        raise InvalidTransitionError(
            future_id,
            state.status,
            ExecutionStatus.SUCCESS if error is None else ExecutionStatus.FAILED,
        )

    if error is None:
        await journal.append(FutureSucceeded(future_id=future_id, result=result))
        logger.info(f"Held future '{future_id}' resolved as successful")
        return

    if pending := state.pending_interaction:
        await journal.append(
            InteractionConfirmed(
                future_id=future_id,
                interaction_id=pending.interaction_id,
                status=InteractionStatus.REVERTED,
                receipt={"handle": pending.handle, "error": error},
            )
        )
    await journal.append(FutureFailed(future_id=future_id, error=error))
    logger.info(f"Held future '{future_id}' resolved as failed: {error}")


__all__ = [
    "DeployOptions",
    "DeploymentResult",
    "DeploymentResultKind",
    "DeploymentStatus",
    "RecordedOperation",
    "deploy",
    "list_operations",
    "plan",
    "resolve_held",
    "status",
    "wipe",
]
