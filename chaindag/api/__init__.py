"""Public API for planning, deploying and inspecting deployments."""

from chaindag.api.deployment import (
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
