"""Deferred values embedded in future arguments.

Three kinds of value are resolved after a module is declared rather than
while it is declared:

- :class:`AccountRuntimeValue` - an index into the signing accounts
- :class:`ModuleParameterRuntimeValue` - a named deployment parameter
- a :class:`~chaindag.kernel.domain.futures.Future` embedded as an argument,
  standing for that future's result

:func:`collect_runtime_values` walks nested argument structures and returns
every deferred value it finds.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Final, TypeAlias

from chaindag.kernel.exceptions import InvariantViolationError

if TYPE_CHECKING:
    from chaindag.kernel.domain.futures import Future


class _MissingType:
    """Sentinel type for a module parameter declared without a default."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Final = _MissingType()


@dataclass(frozen=True, slots=True)
class AccountRuntimeValue:
    """Reference to one of the accounts available at deployment time."""

    account_index: int

    def __repr__(self) -> str:
        return f"AccountRuntimeValue({self.account_index})"


@dataclass(frozen=True, slots=True)
class ModuleParameterRuntimeValue:
    """Named parameter looked up in ``parameters[module_id][name]``.

    Two references to the same module/name pair are equal regardless of the
    declared default.
    """

    module_id: str
    name: str
    default_value: Any = field(default=MISSING, compare=False, hash=False)

    @property
    def has_default(self) -> bool:
        return self.default_value is not MISSING

    def __repr__(self) -> str:
        return f"ModuleParameterRuntimeValue({self.module_id!r}, {self.name!r})"


RuntimeValue: TypeAlias = "AccountRuntimeValue | ModuleParameterRuntimeValue | Future"


def is_runtime_value(value: Any) -> bool:
    """Return True if *value* is any deferred value, futures included."""
    from chaindag.kernel.domain.futures import Future  # noqa: PLC0415

    return isinstance(value, (AccountRuntimeValue, ModuleParameterRuntimeValue, Future))


def collect_runtime_values(args: Any, *, follow_futures: bool = False) -> list[Any]:
    """Collect every runtime value embedded in an argument structure.

    Walks lists, tuples and mapping values to any depth. Duplicates are
    dropped; the first occurrence wins, so the result is in discovery order.

    Parameters
    ----------
    args : Any
        Literal, runtime value or nested structure of them
    follow_futures : bool, default=False
        Also descend into the reference fields of every future found

    Returns
    -------
    list
        Account references, module parameters and futures

    Raises
    ------
    InvariantViolationError
        If a container or future is reached again while it is still being
        walked. Futures form a DAG, so this only happens on corrupted input.

    Examples
    --------
    >>> acct = AccountRuntimeValue(1)
    >>> param = ModuleParameterRuntimeValue("Token", "supply")
    >>> collect_runtime_values([1, {"owner": acct}, [[param, "x"]]])
    [AccountRuntimeValue(1), ModuleParameterRuntimeValue('Token', 'supply')]
    """
    from chaindag.kernel.domain.futures import Future  # noqa: PLC0415

    found: list[Any] = []
    seen: set[Any] = set()
    on_path: set[int] = set()

    def visit(value: Any) -> None:
        if isinstance(value, (AccountRuntimeValue, ModuleParameterRuntimeValue)):
            if value not in seen:
                seen.add(value)
                found.append(value)
            return

        if isinstance(value, Future):
            if value not in seen:
                seen.add(value)
                found.append(value)
            if follow_futures:
                _enter(value, value.reference_values())
            return

        if isinstance(value, Mapping):
            _enter(value, value.values())
        elif isinstance(value, (list, tuple)):
            _enter(value, value)

    def _enter(container: Any, children: Any) -> None:
        marker = id(container)
        if marker in on_path:
            raise InvariantViolationError(
                "Cycle detected while collecting runtime values through a "
                f"{type(container).__name__}"
            )
        on_path.add(marker)
        try:
            for child in children:
                visit(child)
        finally:
            on_path.discard(marker)

    visit(args)
    return found
