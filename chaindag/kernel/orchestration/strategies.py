"""Execution strategies: how deployment operations are shaped.

``basic`` sends plain deployment transactions. ``create2`` makes deployments
deterministic by attaching a salt derived from the strategy salt and the
future id, so the same plan lands at the same addresses on every chain.
A deployment keeps the strategy it was started with.
"""

from __future__ import annotations

import hashlib
from typing import Protocol, runtime_checkable

from chaindag.kernel.exceptions import ConfigurationError
from chaindag.kernel.ports.network import NetworkOperation, OperationKind

DEFAULT_CREATE2_SALT = "0x" + "00" * 32


@runtime_checkable
class ExecutionStrategy(Protocol):
    name: str

    def prepare_operation(self, future_id: str, operation: NetworkOperation) -> NetworkOperation:
        """Return the operation to submit for *future_id*."""
        ...


class BasicStrategy:
    name = "basic"

    def prepare_operation(self, future_id: str, operation: NetworkOperation) -> NetworkOperation:
        return operation


class Create2Strategy:
    """Deterministic deployments through a per-future salt.

    Examples
    --------
    >>> s = Create2Strategy()
    >>> s.derive_salt("Token#Token") == s.derive_salt("Token#Token")
    True
    >>> s.derive_salt("Token#Token") == s.derive_salt("Token#Other")
    False
    """

    name = "create2"

    def __init__(self, salt: str = DEFAULT_CREATE2_SALT) -> None:
        self.salt = salt

    def derive_salt(self, future_id: str) -> str:
        digest = hashlib.sha256(f"{self.salt}:{future_id}".encode()).hexdigest()
        return f"0x{digest}"

    def prepare_operation(self, future_id: str, operation: NetworkOperation) -> NetworkOperation:
        if operation.kind != OperationKind.DEPLOY:
            return operation
        return operation.model_copy(update={"salt": self.derive_salt(future_id)})


STRATEGIES: dict[str, type[BasicStrategy] | type[Create2Strategy]] = {
    BasicStrategy.name: BasicStrategy,
    Create2Strategy.name: Create2Strategy,
}


def get_strategy(name: str) -> ExecutionStrategy:
    """Instantiate a strategy by name.

    Raises
    ------
    ConfigurationError
        If *name* is not a known strategy.
    """
    try:
        return STRATEGIES[name]()
    except KeyError:
        raise ConfigurationError(
            "strategy", f"unknown strategy '{name}' (available: {', '.join(STRATEGIES)})"
        ) from None
