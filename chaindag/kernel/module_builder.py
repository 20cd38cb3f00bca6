"""Fluent builder used by module definitions to declare futures.

A :class:`ModuleBuilder` is handed to every module definition function. Each
declaration creates an immutable future owned by the module currently being
built, and ``use_module`` builds (or reuses) an included module.

Examples
--------
Example usage::

    @build_module("Token")
    def token_module(m: ModuleBuilder):
        owner = m.get_account(1)
        token = m.contract("Token", args=[m.get_parameter("supply", 1_000)], sender=owner)
        m.call(token, "transferOwnership", args=[owner])
        return {"token": token}

    module = ModuleBuilder.build(token_module)
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from chaindag.kernel.domain.futures import (
    ContractAtFuture,
    ContractCallFuture,
    ContractDeploymentFuture,
    Future,
    FutureType,
    LibraryDeploymentFuture,
    ReadEventArgumentFuture,
    SendDataFuture,
    Sender,
    StaticCallFuture,
    is_contract_future,
)
from chaindag.kernel.domain.module import DeploymentModule, ModuleDefinition
from chaindag.kernel.domain.runtime_values import (
    MISSING,
    AccountRuntimeValue,
    ModuleParameterRuntimeValue,
)
from chaindag.kernel.exceptions import (
    BuildError,
    DuplicateFutureError,
    ModuleRedefinitionError,
)
from chaindag.kernel.logging import get_logger

logger = get_logger(__name__)

# Futures whose result may be used as an argument value
_VALUE_FUTURE_TYPES = frozenset(
    {
        FutureType.DEPLOY_CONTRACT,
        FutureType.LIBRARY_DEPLOY,
        FutureType.CONTRACT_AT,
        FutureType.STATIC_CALL,
        FutureType.READ_EVENT_ARGUMENT,
    }
)


class _ModuleFrame:
    """Mutable bookkeeping for the module currently being built."""

    __slots__ = ("module_id", "futures", "local_ids", "submodules")

    def __init__(self, module_id: str) -> None:
        self.module_id = module_id
        self.futures: list[Future] = []
        self.local_ids: set[str] = set()
        self.submodules: list[DeploymentModule] = []


class ModuleBuilder:
    """Declares futures and nested modules.

    Included modules are memoized in a registry keyed by module id that
    stores the definition fingerprint with the built module: including the
    same definition again returns the same outputs, while a different
    definition under an id already in use is a build error.
    """

    def __init__(self) -> None:
        self._registry: dict[str, tuple[str, DeploymentModule]] = {}
        self._stack: list[_ModuleFrame] = []

    @classmethod
    def build(cls, definition: ModuleDefinition) -> DeploymentModule:
        """Build *definition* and every module it includes."""
        return cls()._build(definition)

    # ------------------------------------------------------------------
    # Module composition
    # ------------------------------------------------------------------

    def use_module(self, definition: ModuleDefinition) -> Mapping[str, Any]:
        """Include another module and return its outputs.

        Raises
        ------
        ModuleRedefinitionError
            If a different definition was already built under the same id.
        """
        module = self._build(definition)
        self._frame.submodules.append(module)
        return module.results

    def _build(self, definition: ModuleDefinition) -> DeploymentModule:
        known = self._registry.get(definition.id)
        if known is not None:
            fingerprint, module = known
            if fingerprint != definition.fingerprint:
                raise ModuleRedefinitionError(definition.id)
            return module

        if any(frame.module_id == definition.id for frame in self._stack):
            raise BuildError(f"Module '{definition.id}' includes itself")

        self._stack.append(_ModuleFrame(definition.id))
        try:
            results = definition.definition(self) or {}
        finally:
            frame = self._stack.pop()

        if not isinstance(results, Mapping):
            raise BuildError(
                f"Module '{definition.id}' must return a mapping of outputs, "
                f"got {type(results).__name__}"
            )

        module = DeploymentModule(
            id=definition.id,
            futures=tuple(frame.futures),
            results=results,
            submodules=tuple(frame.submodules),
        )
        self._registry[definition.id] = (definition.fingerprint, module)
        logger.debug(f"Built module '{definition.id}' with {len(frame.futures)} futures")
        return module

    @property
    def _frame(self) -> _ModuleFrame:
        if not self._stack:
            raise BuildError("No module is being built")
        return self._stack[-1]

    @property
    def module_id(self) -> str:
        return self._frame.module_id

    # ------------------------------------------------------------------
    # Runtime values
    # ------------------------------------------------------------------

    def get_account(self, index: int) -> AccountRuntimeValue:
        if index < 0:
            raise BuildError(f"Account index must be non-negative, got {index}")
        return AccountRuntimeValue(index)

    def get_parameter(self, name: str, default: Any = MISSING) -> ModuleParameterRuntimeValue:
        return ModuleParameterRuntimeValue(self.module_id, name, default)

    # ------------------------------------------------------------------
    # Future declarations
    # ------------------------------------------------------------------

    def contract(
        self,
        contract_name: str,
        args: Sequence[Any] = (),
        *,
        id: str | None = None,
        libraries: Mapping[str, Future] | None = None,
        value: Any = 0,
        sender: Sender = None,
        after: Sequence[Future] = (),
    ) -> ContractDeploymentFuture:
        """Declare a contract deployment."""
        self._check_libraries(libraries)
        self._check_values(args)
        return self._add(
            ContractDeploymentFuture(
                id=self._future_id(id or contract_name),
                module_id=self.module_id,
                contract_name=contract_name,
                args=tuple(args),
                libraries=dict(libraries or {}),
                value=value,
                sender=sender,
                after=tuple(after),
            )
        )

    def library(
        self,
        contract_name: str,
        *,
        id: str | None = None,
        libraries: Mapping[str, Future] | None = None,
        sender: Sender = None,
        after: Sequence[Future] = (),
    ) -> LibraryDeploymentFuture:
        """Declare a library deployment."""
        self._check_libraries(libraries)
        return self._add(
            LibraryDeploymentFuture(
                id=self._future_id(id or contract_name),
                module_id=self.module_id,
                contract_name=contract_name,
                libraries=dict(libraries or {}),
                sender=sender,
                after=tuple(after),
            )
        )

    def call(
        self,
        contract: Future,
        method: str,
        args: Sequence[Any] = (),
        *,
        id: str | None = None,
        value: Any = 0,
        sender: Sender = None,
        after: Sequence[Future] = (),
    ) -> ContractCallFuture:
        """Declare a state-changing method call on a contract future."""
        self._check_contract(contract, "call")
        self._check_values(args)
        return self._add(
            ContractCallFuture(
                id=self._future_id(id or f"{self._local_name(contract)}.{method}"),
                module_id=self.module_id,
                contract=contract,
                method=method,
                args=tuple(args),
                value=value,
                sender=sender,
                after=tuple(after),
            )
        )

    def static_call(
        self,
        contract: Future,
        method: str,
        args: Sequence[Any] = (),
        *,
        id: str | None = None,
        name_or_index: str | int = 0,
        sender: Sender = None,
        after: Sequence[Future] = (),
    ) -> StaticCallFuture:
        """Declare a read-only call whose output can feed later futures."""
        self._check_contract(contract, "static_call")
        self._check_values(args)
        return self._add(
            StaticCallFuture(
                id=self._future_id(id or f"{self._local_name(contract)}.{method}"),
                module_id=self.module_id,
                contract=contract,
                method=method,
                args=tuple(args),
                name_or_index=name_or_index,
                sender=sender,
                after=tuple(after),
            )
        )

    def send(
        self,
        id: str,
        to: str | Future | AccountRuntimeValue | ModuleParameterRuntimeValue,
        *,
        value: Any = 0,
        data: str | Future | None = None,
        sender: Sender = None,
        after: Sequence[Future] = (),
    ) -> SendDataFuture:
        """Declare a raw data/funds send."""
        self._check_values([to, data])
        return self._add(
            SendDataFuture(
                id=self._future_id(id),
                module_id=self.module_id,
                to=to,
                data=data,
                value=value,
                sender=sender,
                after=tuple(after),
            )
        )

    def read_event_argument(
        self,
        emitter: Future,
        event_name: str,
        name_or_index: str | int = 0,
        *,
        id: str | None = None,
        event_index: int = 0,
        after: Sequence[Future] = (),
    ) -> ReadEventArgumentFuture:
        """Declare a read of an argument of an event emitted by *emitter*."""
        if not isinstance(emitter, (ContractDeploymentFuture, ContractCallFuture)):
            raise BuildError(
                f"read_event_argument needs a deployment or call future, got {emitter!r}"
            )
        return self._add(
            ReadEventArgumentFuture(
                id=self._future_id(
                    id or f"{self._local_name(emitter)}.{event_name}.{name_or_index}.{event_index}"
                ),
                module_id=self.module_id,
                emitter=emitter,
                event_name=event_name,
                name_or_index=name_or_index,
                event_index=event_index,
                after=tuple(after),
            )
        )

    def contract_at(
        self,
        contract_name: str,
        address: str | Future | ModuleParameterRuntimeValue,
        *,
        id: str | None = None,
        after: Sequence[Future] = (),
    ) -> ContractAtFuture:
        """Bind an existing contract by address."""
        if isinstance(address, Future) and address.future_type not in _VALUE_FUTURE_TYPES:
            raise BuildError(f"Cannot use the result of {address!r} as an address")
        return self._add(
            ContractAtFuture(
                id=self._future_id(id or contract_name),
                module_id=self.module_id,
                contract_name=contract_name,
                address=address,
                after=tuple(after),
            )
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _future_id(self, local_id: str) -> str:
        frame = self._frame
        if local_id in frame.local_ids:
            raise DuplicateFutureError(f"{frame.module_id}#{local_id}")
        frame.local_ids.add(local_id)
        return f"{frame.module_id}#{local_id}"

    def _add(self, future: Any) -> Any:
        self._frame.futures.append(future)
        return future

    @staticmethod
    def _local_name(future: Future) -> str:
        return future.id.split("#", 1)[-1]

    @staticmethod
    def _check_contract(contract: Any, action: str) -> None:
        if not is_contract_future(contract):
            raise BuildError(f"{action} needs a contract future, got {contract!r}")

    @staticmethod
    def _check_libraries(libraries: Mapping[str, Future] | None) -> None:
        for name, library in (libraries or {}).items():
            if not is_contract_future(library):
                raise BuildError(f"Library '{name}' must be a contract future, got {library!r}")

    def _check_values(self, values: Any) -> None:
        """Reject futures with no usable result embedded as arguments."""
        if isinstance(values, Future):
            if values.future_type not in _VALUE_FUTURE_TYPES:
                raise BuildError(f"Cannot use the result of {values!r} as a value")
        elif isinstance(values, Mapping):
            for item in values.values():
                self._check_values(item)
        elif isinstance(values, (list, tuple)):
            for item in values:
                self._check_values(item)
