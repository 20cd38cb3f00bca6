"""Domain model: runtime values, futures, modules, the graph, and execution state."""

from chaindag.kernel.domain.runtime_values import (
    MISSING,
    AccountRuntimeValue,
    ModuleParameterRuntimeValue,
    collect_runtime_values,
    is_runtime_value,
)
from chaindag.kernel.domain.futures import (  # noqa: I001
    CONTRACT_FUTURE_TYPES,
    TRANSACTION_FUTURE_TYPES,
    ContractAtFuture,
    ContractCallFuture,
    ContractDeploymentFuture,
    Future,
    FutureType,
    LibraryDeploymentFuture,
    ReadEventArgumentFuture,
    SendDataFuture,
    StaticCallFuture,
)
from chaindag.kernel.domain.module import DeploymentModule, ModuleDefinition, build_module
from chaindag.kernel.domain.dag import DeploymentGraph, GraphModule, stable_topological_sort
from chaindag.kernel.domain.execution_state import (
    ExecutionState,
    ExecutionStatus,
    InteractionStatus,
    NetworkInteraction,
)
from chaindag.kernel.domain.journal import DeploymentState, JournalMessage, replay

__all__ = [
    "CONTRACT_FUTURE_TYPES",
    "MISSING",
    "TRANSACTION_FUTURE_TYPES",
    "AccountRuntimeValue",
    "ContractAtFuture",
    "ContractCallFuture",
    "ContractDeploymentFuture",
    "DeploymentGraph",
    "DeploymentModule",
    "DeploymentState",
    "ExecutionState",
    "ExecutionStatus",
    "Future",
    "FutureType",
    "GraphModule",
    "InteractionStatus",
    "JournalMessage",
    "LibraryDeploymentFuture",
    "ModuleDefinition",
    "ModuleParameterRuntimeValue",
    "NetworkInteraction",
    "ReadEventArgumentFuture",
    "SendDataFuture",
    "StaticCallFuture",
    "build_module",
    "collect_runtime_values",
    "is_runtime_value",
    "replay",
    "stable_topological_sort",
]
