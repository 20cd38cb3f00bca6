"""Futures: immutable units of on-chain work.

Each future kind is a frozen dataclass tagged with a :class:`FutureType`.
The set of kinds is closed; the orchestrator dispatches on ``future_type``
with one handler per kind.

Dependencies are never declared directly. They are derived from the futures
embedded in a future's arguments and reference fields, plus any explicit
``after`` hints, and a future never depends on itself.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, ClassVar

from chaindag.kernel.domain.runtime_values import (
    AccountRuntimeValue,
    ModuleParameterRuntimeValue,
    collect_runtime_values,
)


class FutureType(StrEnum):
    """Closed set of future kinds."""

    DEPLOY_CONTRACT = "deploy-contract"
    LIBRARY_DEPLOY = "library-deploy"
    CALL_METHOD = "call-method"
    STATIC_CALL = "static-call"
    SEND_DATA = "send-data"
    READ_EVENT_ARGUMENT = "read-event-argument"
    CONTRACT_AT = "contract-at"


# Kinds whose result is a contract address
CONTRACT_FUTURE_TYPES: frozenset[FutureType] = frozenset(
    {FutureType.DEPLOY_CONTRACT, FutureType.LIBRARY_DEPLOY, FutureType.CONTRACT_AT}
)

# Kinds that submit a transaction and therefore have a receipt
TRANSACTION_FUTURE_TYPES: frozenset[FutureType] = frozenset(
    {
        FutureType.DEPLOY_CONTRACT,
        FutureType.LIBRARY_DEPLOY,
        FutureType.CALL_METHOD,
        FutureType.SEND_DATA,
    }
)

Sender = str | AccountRuntimeValue | None


@dataclass(frozen=True, slots=True, eq=False, kw_only=True)
class Future:
    """Base class for every future kind.

    Futures compare and hash by identity: two futures are the same only if
    they are the same object. Ids are ``"<module_id>#<local_id>"``.
    """

    future_type: ClassVar[FutureType]

    id: str
    module_id: str
    after: tuple[Future, ...] = ()
    dependencies: tuple[Future, ...] = field(init=False, default=())

    def __post_init__(self) -> None:
        object.__setattr__(self, "after", tuple(self.after))
        deps: list[Future] = [
            value
            for value in collect_runtime_values(self.reference_values())
            if isinstance(value, Future)
        ]
        deps.extend(f for f in self.after if f not in deps)
        object.__setattr__(
            self, "dependencies", tuple(dep for dep in deps if dep.id != self.id)
        )

    def reference_values(self) -> list[Any]:
        """Fields that may embed runtime values, in a stable order."""
        return []

    @property
    def dependency_ids(self) -> list[str]:
        return [dep.id for dep in self.dependencies]

    @property
    def sender_value(self) -> Sender:
        return getattr(self, "sender", None)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.id!r})"


@dataclass(frozen=True, slots=True, eq=False, kw_only=True)
class ContractDeploymentFuture(Future):
    """Deploy a contract from its artifact."""

    future_type: ClassVar[FutureType] = FutureType.DEPLOY_CONTRACT

    contract_name: str
    args: tuple[Any, ...] = ()
    libraries: Mapping[str, Future] = field(default_factory=dict)
    value: Any = 0
    sender: Sender = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(self.args))
        Future.__post_init__(self)

    def reference_values(self) -> list[Any]:
        return [self.args, dict(self.libraries), self.value, self.sender]


@dataclass(frozen=True, slots=True, eq=False, kw_only=True)
class LibraryDeploymentFuture(Future):
    """Deploy a library; other deployments link against its address."""

    future_type: ClassVar[FutureType] = FutureType.LIBRARY_DEPLOY

    contract_name: str
    libraries: Mapping[str, Future] = field(default_factory=dict)
    sender: Sender = None

    def reference_values(self) -> list[Any]:
        return [dict(self.libraries), self.sender]


@dataclass(frozen=True, slots=True, eq=False, kw_only=True)
class ContractCallFuture(Future):
    """Send a transaction calling ``method`` on a contract future."""

    future_type: ClassVar[FutureType] = FutureType.CALL_METHOD

    contract: Future
    method: str
    args: tuple[Any, ...] = ()
    value: Any = 0
    sender: Sender = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(self.args))
        Future.__post_init__(self)

    def reference_values(self) -> list[Any]:
        return [self.contract, self.args, self.value, self.sender]


@dataclass(frozen=True, slots=True, eq=False, kw_only=True)
class StaticCallFuture(Future):
    """Read-only call; ``name_or_index`` selects one output of the method."""

    future_type: ClassVar[FutureType] = FutureType.STATIC_CALL

    contract: Future
    method: str
    args: tuple[Any, ...] = ()
    name_or_index: str | int = 0
    sender: Sender = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(self.args))
        Future.__post_init__(self)

    def reference_values(self) -> list[Any]:
        return [self.contract, self.args, self.sender]


@dataclass(frozen=True, slots=True, eq=False, kw_only=True)
class SendDataFuture(Future):
    """Send raw data (and optionally funds) to an address."""

    future_type: ClassVar[FutureType] = FutureType.SEND_DATA

    to: str | Future | AccountRuntimeValue | ModuleParameterRuntimeValue
    data: str | Future | None = None
    value: Any = 0
    sender: Sender = None

    def reference_values(self) -> list[Any]:
        return [self.to, self.data, self.value, self.sender]


@dataclass(frozen=True, slots=True, eq=False, kw_only=True)
class ReadEventArgumentFuture(Future):
    """Read an argument of an event emitted by a transaction future."""

    future_type: ClassVar[FutureType] = FutureType.READ_EVENT_ARGUMENT

    emitter: Future
    event_name: str
    name_or_index: str | int = 0
    event_index: int = 0

    def reference_values(self) -> list[Any]:
        return [self.emitter]


@dataclass(frozen=True, slots=True, eq=False, kw_only=True)
class ContractAtFuture(Future):
    """Bind an already deployed contract at a known address."""

    future_type: ClassVar[FutureType] = FutureType.CONTRACT_AT

    contract_name: str
    address: str | Future | ModuleParameterRuntimeValue

    def reference_values(self) -> list[Any]:
        return [self.address]


def is_contract_future(value: Any) -> bool:
    """Return True if *value* is a future whose result is a contract address."""
    return isinstance(value, Future) and value.future_type in CONTRACT_FUTURE_TYPES
