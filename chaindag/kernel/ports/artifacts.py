"""Port interface for contract artifacts (ABI and bytecode)."""

from __future__ import annotations

from abc import abstractmethod
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field


class Artifact(BaseModel):
    """Compiled contract as supplied by the build system."""

    contract_name: str
    abi: list[dict[str, Any]] = Field(default_factory=list)
    bytecode: str = "0x"

    def get_function(self, name: str) -> dict[str, Any] | None:
        return next(
            (e for e in self.abi if e.get("type") == "function" and e.get("name") == name),
            None,
        )

    def get_event(self, name: str) -> dict[str, Any] | None:
        return next(
            (e for e in self.abi if e.get("type") == "event" and e.get("name") == name),
            None,
        )

    def constructor_input_count(self) -> int:
        constructor = next((e for e in self.abi if e.get("type") == "constructor"), None)
        return len(constructor.get("inputs", [])) if constructor else 0


@runtime_checkable
class ArtifactResolver(Protocol):
    """Resolves a contract name to its artifact.

    Used during validation and execution, never while planning.
    """

    @abstractmethod
    def load_artifact(self, contract_name: str) -> Artifact:
        """Return the artifact for *contract_name*.

        Raises
        ------
        ResourceNotFoundError
            If no artifact exists under that name.
        """
        ...
