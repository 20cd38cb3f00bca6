"""Orchestration: journal writer, execution handlers, strategies and scheduler."""

from chaindag.kernel.orchestration.journal import Journal, read_messages
from chaindag.kernel.orchestration.models import ExecutionSummary, FutureOutcome, OutcomeKind
from chaindag.kernel.orchestration.orchestrator import DEFAULT_MAX_CONCURRENCY, Orchestrator
from chaindag.kernel.orchestration.strategies import (
    STRATEGIES,
    BasicStrategy,
    Create2Strategy,
    ExecutionStrategy,
    get_strategy,
)

__all__ = [
    "DEFAULT_MAX_CONCURRENCY",
    "STRATEGIES",
    "BasicStrategy",
    "Create2Strategy",
    "ExecutionStrategy",
    "ExecutionSummary",
    "FutureOutcome",
    "Journal",
    "Orchestrator",
    "OutcomeKind",
    "get_strategy",
    "read_messages",
]
