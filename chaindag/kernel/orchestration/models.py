"""Outcome types of one orchestrated run."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class OutcomeKind(StrEnum):
    SUCCESS = "success"
    UNCHANGED = "unchanged"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    HELD = "held"
    BLOCKED = "blocked"


SUCCESSFUL_OUTCOMES = frozenset({OutcomeKind.SUCCESS, OutcomeKind.UNCHANGED})


@dataclass(frozen=True, slots=True)
class FutureOutcome:
    """What happened to one future during a run.

    ``error`` carries the failure detail, the hold reason, or (for blocked
    futures) the ids of the failed dependencies.
    """

    future_id: str
    kind: OutcomeKind
    result: Any = None
    error: str | None = None

    @property
    def successful(self) -> bool:
        return self.kind in SUCCESSFUL_OUTCOMES


@dataclass(slots=True)
class ExecutionSummary:
    outcomes: dict[str, FutureOutcome] = field(default_factory=dict)

    def add(self, outcome: FutureOutcome) -> None:
        self.outcomes[outcome.future_id] = outcome

    def _errors(self, kind: OutcomeKind) -> dict[str, str]:
        return {
            fid: outcome.error or ""
            for fid, outcome in self.outcomes.items()
            if outcome.kind == kind
        }

    @property
    def successful(self) -> bool:
        return all(outcome.successful for outcome in self.outcomes.values())

    @property
    def results(self) -> dict[str, Any]:
        return {fid: o.result for fid, o in self.outcomes.items() if o.successful}

    @property
    def executed(self) -> list[str]:
        return [fid for fid, o in self.outcomes.items() if o.kind == OutcomeKind.SUCCESS]

    @property
    def failed(self) -> dict[str, str]:
        return self._errors(OutcomeKind.FAILED)

    @property
    def timed_out(self) -> dict[str, str]:
        return self._errors(OutcomeKind.TIMED_OUT)

    @property
    def held(self) -> dict[str, str]:
        return self._errors(OutcomeKind.HELD)

    @property
    def blocked(self) -> dict[str, str]:
        return self._errors(OutcomeKind.BLOCKED)
