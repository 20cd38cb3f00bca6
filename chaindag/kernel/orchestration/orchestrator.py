"""Deployment orchestrator - executes a deployment graph against a network.

The orchestrator is an event-driven asyncio scheduler over the sorted
futures of a :class:`~chaindag.kernel.domain.dag.DeploymentGraph`:

- a future starts once every dependency has succeeded (in this run or in a
  recorded earlier run)
- at most ``max_concurrency`` futures execute at once
- transactions from the same sender are serialized by the handlers
- every transition is journaled before the orchestrator acts on it
- a future that fails, times out, or is held blocks its transitive
  dependents, while independent branches keep running

Reconciliation against earlier runs happens before the orchestrator is
invoked; recorded successes found in the journal are reused as-is.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Any

from chaindag.kernel.domain.dag import DeploymentGraph
from chaindag.kernel.domain.execution_state import ExecutionStatus
from chaindag.kernel.domain.futures import Future
from chaindag.kernel.domain.journal import (
    FutureFailed,
    FutureHeld,
    FutureStarted,
    FutureSucceeded,
    FutureTimedOut,
)
from chaindag.kernel.exceptions import (
    ExecutionError,
    FutureTimeoutError,
    InvariantViolationError,
    ResourceNotFoundError,
    ValidationError,
)
from chaindag.kernel.logging import get_logger
from chaindag.kernel.orchestration.handlers import (
    DEFAULT_POLL_INTERVAL,
    HandlerContext,
    HandlerResult,
    Held,
    Succeeded,
    execute_future,
)
from chaindag.kernel.orchestration.journal import Journal
from chaindag.kernel.orchestration.models import ExecutionSummary, FutureOutcome, OutcomeKind
from chaindag.kernel.orchestration.strategies import BasicStrategy, ExecutionStrategy
from chaindag.kernel.ports.artifacts import ArtifactResolver
from chaindag.kernel.ports.network import NetworkPort
from chaindag.kernel.reconciliation.reconciler import input_differences
from chaindag.kernel.resolver import (
    DeploymentParameters,
    ResolutionContext,
    normalize_value,
    resolve_inputs,
)
from chaindag.kernel.validation.retry import RetryConfig, execute_with_retry

logger = get_logger(__name__)

# Default configuration constants
DEFAULT_MAX_CONCURRENCY = 8


class Orchestrator:
    """Executes deployment graphs with bounded concurrency and a write-ahead journal.

    Parameters
    ----------
    network : NetworkPort
        Chain access
    journal : Journal
        Journal of the deployment, already replayed
    strategy : ExecutionStrategy, optional
        Shapes deployment operations; ``basic`` by default
    artifact_resolver : ArtifactResolver, optional
        Supplies creation bytecode for deployments
    max_concurrency : int
        Maximum number of futures executing at once
    retry : RetryConfig, optional
        Retry policy for transient network failures
    future_timeout : float, optional
        Per-future timeout in seconds; ``None`` disables it
    poll_interval : float
        Delay between confirmation queries

    Examples
    --------
    Example usage::

        journal = await Journal.aload(store, "chain-31337")
        orchestrator = Orchestrator(network, journal, max_concurrency=4)
        summary = await orchestrator.run(graph, parameters, accounts)
    """

    def __init__(
        self,
        network: NetworkPort,
        journal: Journal,
        *,
        strategy: ExecutionStrategy | None = None,
        artifact_resolver: ArtifactResolver | None = None,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        retry: RetryConfig | None = None,
        future_timeout: float | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be at least 1, got {max_concurrency}")
        self.network = network
        self.journal = journal
        self.strategy = strategy or BasicStrategy()
        self.artifact_resolver = artifact_resolver
        self.max_concurrency = max_concurrency
        self.retry = retry or RetryConfig()
        self.future_timeout = future_timeout
        self.poll_interval = poll_interval

    async def run(
        self,
        graph: DeploymentGraph,
        deployment_parameters: DeploymentParameters,
        accounts: Sequence[str],
    ) -> ExecutionSummary:
        """Execute every future of *graph* that has no recorded success.

        Returns
        -------
        ExecutionSummary
            One outcome per future of the graph

        Raises
        ------
        InvariantViolationError
            On a broken internal invariant; running futures are cancelled.
        """
        ctx = HandlerContext(
            network=self.network,
            journal=self.journal,
            strategy=self.strategy,
            artifact_resolver=self.artifact_resolver,
            poll_interval=self.poll_interval,
        )
        semaphore = asyncio.Semaphore(self.max_concurrency)
        summary = ExecutionSummary()
        results: dict[str, Any] = {}
        resolution = ResolutionContext(deployment_parameters, accounts, results)

        pending: list[Future] = []
        for future in graph.topological_order():
            recorded = self.journal.state.get(future.id)
            if recorded is not None and recorded.status == ExecutionStatus.SUCCESS:
                results[future.id] = recorded.result
                summary.add(FutureOutcome(future.id, OutcomeKind.UNCHANGED, recorded.result))
            elif recorded is not None and recorded.status == ExecutionStatus.HELD:
                logger.warning(f"'{future.id}' is still held: {recorded.held_reason}")
                summary.add(
                    FutureOutcome(future.id, OutcomeKind.HELD, error=recorded.held_reason)
                )
            else:
                pending.append(future)

        logger.info(
            f"Executing {len(pending)} of {len(graph)} futures "
            f"(max_concurrency={self.max_concurrency}, strategy={self.strategy.name})"
        )

        running: dict[asyncio.Task[FutureOutcome], Future] = {}
        try:
            while pending or running:
                for future in list(pending):
                    unsuccessful = [
                        dep
                        for dep in future.dependency_ids
                        if dep in summary.outcomes and not summary.outcomes[dep].successful
                    ]
                    if unsuccessful:
                        pending.remove(future)
                        reason = f"blocked by {', '.join(unsuccessful)}"
                        logger.warning(f"'{future.id}' {reason}")
                        summary.add(FutureOutcome(future.id, OutcomeKind.BLOCKED, error=reason))
                    elif all(dep in summary.outcomes for dep in future.dependency_ids):
                        pending.remove(future)
                        task = asyncio.create_task(
                            self._run_future(future, ctx, resolution, semaphore),
                            name=f"future:{future.id}",
                        )
                        running[task] = future

                if not running:
                    if pending:
                        raise InvariantViolationError(
                            f"Futures can never become ready: {', '.join(f.id for f in pending)}"
                        )
                    break

                done, _ = await asyncio.wait(running, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    running.pop(task)
                    outcome = task.result()
                    summary.add(outcome)
                    if outcome.successful:
                        results[outcome.future_id] = outcome.result
        finally:
            for task in running:
                task.cancel()
            if running:
                await asyncio.gather(*running, return_exceptions=True)

        return summary

    async def _run_future(
        self,
        future: Future,
        ctx: HandlerContext,
        resolution: ResolutionContext,
        semaphore: asyncio.Semaphore,
    ) -> FutureOutcome:
        async with semaphore:
            try:
                async with asyncio.timeout(self.future_timeout):
                    outcome: HandlerResult = await execute_with_retry(
                        lambda attempt: self._attempt(future, ctx, resolution, attempt),
                        self.retry,
                    )
            except TimeoutError:
                assert self.future_timeout is not None
                error = FutureTimeoutError(future.id, self.future_timeout)
                await self.journal.append(FutureTimedOut(future_id=future.id, error=error.reason))
                logger.error(str(error))
                return FutureOutcome(future.id, OutcomeKind.TIMED_OUT, error=error.reason)
            except ExecutionError as e:
                await self.journal.append(FutureFailed(future_id=future.id, error=e.reason))
                logger.error(str(e))
                return FutureOutcome(future.id, OutcomeKind.FAILED, error=e.reason)
            except ResourceNotFoundError as e:
                await self.journal.append(FutureFailed(future_id=future.id, error=str(e)))
                logger.error(f"Future '{future.id}' failed: {e}")
                return FutureOutcome(future.id, OutcomeKind.FAILED, error=str(e))

        match outcome:
            case Held(reason=reason):
                await self.journal.append(FutureHeld(future_id=future.id, reason=reason))
                logger.warning(f"'{future.id}' held: {reason}")
                return FutureOutcome(future.id, OutcomeKind.HELD, error=reason)
            case Succeeded(result=result):
                result = normalize_value(result)
                await self.journal.append(FutureSucceeded(future_id=future.id, result=result))
                logger.info(f"'{future.id}' succeeded")
                return FutureOutcome(future.id, OutcomeKind.SUCCESS, result)

        raise InvariantViolationError(f"Handler for '{future.id}' returned {outcome!r}")

    async def _attempt(
        self,
        future: Future,
        ctx: HandlerContext,
        resolution: ResolutionContext,
        attempt: int,
    ) -> HandlerResult:
        recorded = self.journal.state.get(future.id)
        if recorded is None or recorded.pending_interaction is None:
            recorded = None
        kept_inputs = recorded.resolved_inputs if recorded is not None else {}

        try:
            inputs = resolve_inputs(future, resolution)
        except ValidationError as e:
            # An upstream result of the wrong shape fails this future only
            await self._journal_started(future, kept_inputs, attempt)
            raise ExecutionError(future.id, str(e)) from e

        if recorded is not None:
            # The pending submission was built from the recorded inputs
            if difference := input_differences(future, recorded, resolution):
                await self._journal_started(future, kept_inputs, attempt)
                raise ExecutionError(future.id, f"{difference} while a submission is pending")
            inputs = kept_inputs

        await self._journal_started(future, inputs, attempt)
        suffix = f" (retry {attempt - 1})" if attempt > 1 else ""
        logger.debug(f"Executing '{future.id}' [{future.future_type}]{suffix}")
        return await execute_future(future, inputs, ctx)

    async def _journal_started(self, future: Future, inputs: dict[str, Any], attempt: int) -> None:
        await self.journal.append(
            FutureStarted(
                future_id=future.id,
                future_type=future.future_type,
                resolved_inputs=inputs,
                dependencies=future.dependency_ids,
                retry_count=attempt - 1,
            )
        )
