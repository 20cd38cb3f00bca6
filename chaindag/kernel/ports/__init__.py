"""Port interfaces consumed by the deployment engine."""

from chaindag.kernel.ports.artifacts import Artifact, ArtifactResolver
from chaindag.kernel.ports.journal_store import JournalStore
from chaindag.kernel.ports.network import (
    Confirmation,
    ConfirmationStatus,
    EventLog,
    NetworkOperation,
    NetworkPort,
    OperationKind,
    StaticCallRequest,
)

__all__ = [
    "Artifact",
    "ArtifactResolver",
    "Confirmation",
    "ConfirmationStatus",
    "EventLog",
    "JournalStore",
    "NetworkOperation",
    "NetworkPort",
    "OperationKind",
    "StaticCallRequest",
]
