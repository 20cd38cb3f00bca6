"""chaindag kernel: the deployment engine.

User-facing code (``chaindag.api``, ``chaindag.cli`` and end-user module
files) should import from ``chaindag.kernel`` or the top-level ``chaindag``
package rather than from kernel submodules.

The exports are grouped by category:
- Module declaration
- Domain types
- Ports
- Engine stages (validation, reconciliation, orchestration)
- Exceptions
- Logging
"""

# ============================================================================
# 1. Module Declaration
# ============================================================================
from chaindag.kernel.domain.module import DeploymentModule, ModuleDefinition, build_module
from chaindag.kernel.module_builder import ModuleBuilder

# ============================================================================
# 2. Domain Types
# ============================================================================
from chaindag.kernel.domain.dag import DeploymentGraph  # noqa: I001
from chaindag.kernel.domain.execution_state import ExecutionState, ExecutionStatus
from chaindag.kernel.domain.futures import Future, FutureType
from chaindag.kernel.domain.runtime_values import (
    AccountRuntimeValue,
    ModuleParameterRuntimeValue,
    collect_runtime_values,
)

# ============================================================================
# 3. Ports
# ============================================================================
from chaindag.kernel.ports import ArtifactResolver, JournalStore, NetworkPort

# ============================================================================
# 4. Engine Stages
# ============================================================================
from chaindag.kernel.validation import RetryConfig, validate_deployment, validate_future
from chaindag.kernel.reconciliation import (
    ReconciliationKind,
    ReconciliationReport,
    ReconciliationResult,
    reconcile,
)
from chaindag.kernel.orchestration import Journal, Orchestrator

# ============================================================================
# 5. Exceptions
# ============================================================================
from chaindag.kernel.exceptions import (
    BuildError,
    ChainDAGError,
    ConfigurationError,
    CycleDetectedError,
    DeploymentValidationError,
    ExecutionError,
    InvariantViolationError,
    ReconciliationError,
    ValidationError,
)

# ============================================================================
# 6. Logging
# ============================================================================
from chaindag.kernel.logging import configure_logging, get_logger

__all__ = [
    # Module declaration
    "DeploymentModule",
    "ModuleBuilder",
    "ModuleDefinition",
    "build_module",
    # Domain types
    "AccountRuntimeValue",
    "DeploymentGraph",
    "ExecutionState",
    "ExecutionStatus",
    "Future",
    "FutureType",
    "ModuleParameterRuntimeValue",
    "collect_runtime_values",
    # Ports
    "ArtifactResolver",
    "JournalStore",
    "NetworkPort",
    # Engine stages
    "Journal",
    "Orchestrator",
    "ReconciliationKind",
    "ReconciliationReport",
    "ReconciliationResult",
    "RetryConfig",
    "reconcile",
    "validate_deployment",
    "validate_future",
    # Exceptions
    "BuildError",
    "ChainDAGError",
    "ConfigurationError",
    "CycleDetectedError",
    "DeploymentValidationError",
    "ExecutionError",
    "InvariantViolationError",
    "ReconciliationError",
    "ValidationError",
    # Logging
    "configure_logging",
    "get_logger",
]
