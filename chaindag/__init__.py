"""chaindag - resumable deployment orchestration for on-chain operations.

Declare deployments as modules of futures, plan them into a deterministic
dependency-respecting order, and execute them against a network while an
append-only journal records progress, so interrupted or modified
deployments resume without redoing work.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("chaindag")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"  # Fallback for development checkouts

from chaindag.api import (
    DeploymentResult,
    DeploymentResultKind,
    DeploymentStatus,
    DeployOptions,
    RecordedOperation,
    deploy,
    list_operations,
    plan,
    resolve_held,
    status,
    wipe,
)
from chaindag.drivers.artifacts import LocalArtifactResolver
from chaindag.drivers.journal_store import FileJournalStore, InMemoryJournalStore
from chaindag.drivers.network import SimulatedNetwork
from chaindag.kernel import (
    ChainDAGError,
    DeploymentModule,
    Future,
    FutureType,
    ModuleBuilder,
    ModuleDefinition,
    RetryConfig,
    build_module,
    configure_logging,
)
from chaindag.kernel.config import load_config, load_parameters

__all__ = [
    "ChainDAGError",
    "DeployOptions",
    "DeploymentModule",
    "DeploymentResult",
    "DeploymentResultKind",
    "DeploymentStatus",
    "FileJournalStore",
    "Future",
    "FutureType",
    "InMemoryJournalStore",
    "LocalArtifactResolver",
    "ModuleBuilder",
    "ModuleDefinition",
    "RecordedOperation",
    "RetryConfig",
    "SimulatedNetwork",
    "__version__",
    "build_module",
    "configure_logging",
    "deploy",
    "list_operations",
    "load_config",
    "load_parameters",
    "plan",
    "resolve_held",
    "status",
    "wipe",
]
