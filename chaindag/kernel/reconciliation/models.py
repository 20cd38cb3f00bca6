"""Reconciliation result types. Derived on every run, never persisted."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class ReconciliationKind(StrEnum):
    UNCHANGED = "unchanged"
    TO_EXECUTE = "to-execute"
    FAILURE = "failure"


@dataclass(frozen=True, slots=True)
class ReconciliationResult:
    """Decision for one future.

    ``resume`` marks a future that was interrupted (or is held) in a previous
    run; its prior network interactions are checked before anything is resent.
    """

    future_id: str
    kind: ReconciliationKind
    reason: str | None = None
    resume: bool = False


@dataclass(frozen=True, slots=True)
class ReconciliationReport:
    results: dict[str, ReconciliationResult] = field(default_factory=dict)
    missing_executed_futures: list[str] = field(default_factory=list)

    def _of_kind(self, kind: ReconciliationKind) -> list[str]:
        return [fid for fid, result in self.results.items() if result.kind == kind]

    @property
    def failures(self) -> dict[str, str]:
        return {
            fid: result.reason or ""
            for fid, result in self.results.items()
            if result.kind == ReconciliationKind.FAILURE
        }

    @property
    def unchanged(self) -> list[str]:
        return self._of_kind(ReconciliationKind.UNCHANGED)

    @property
    def to_execute(self) -> list[str]:
        return self._of_kind(ReconciliationKind.TO_EXECUTE)

    @property
    def ok(self) -> bool:
        return not self.failures
