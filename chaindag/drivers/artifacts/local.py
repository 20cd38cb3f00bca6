"""Artifact resolver reading JSON artifact files from a directory.

Artifacts are looked up as ``<ContractName>.json`` anywhere below the base
directory, which matches the layout most contract build tools produce::

    artifacts/
        contracts/Token.sol/Token.json

Each file holds at least ``abi`` and ``bytecode``; ``contractName`` is
optional and defaults to the file stem.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from chaindag.kernel.exceptions import ConfigurationError, ResourceNotFoundError
from chaindag.kernel.logging import get_logger
from chaindag.kernel.ports.artifacts import Artifact

logger = get_logger(__name__)


class LocalArtifactResolver:
    """Resolve artifacts from JSON files below ``base_dir``.

    Parameters
    ----------
    base_dir : str | Path
        Root directory searched recursively for ``<name>.json``
    """

    def __init__(self, base_dir: str | Path = "artifacts") -> None:
        self.base_dir = Path(base_dir)
        self._cache: dict[str, Artifact] = {}

    def available(self) -> list[str]:
        if not self.base_dir.exists():
            return []
        return sorted(
            {p.stem for p in self.base_dir.rglob("*.json") if not p.name.endswith(".dbg.json")}
        )

    def load_artifact(self, contract_name: str) -> Artifact:
        if contract_name in self._cache:
            return self._cache[contract_name]

        path = next(iter(sorted(self.base_dir.rglob(f"{contract_name}.json"))), None)
        if path is None:
            raise ResourceNotFoundError("artifact", contract_name, self.available())

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            artifact = Artifact.model_validate(
                {
                    "contract_name": data.get("contractName", contract_name),
                    "abi": data.get("abi", []),
                    "bytecode": data.get("bytecode", "0x"),
                }
            )
        except (json.JSONDecodeError, PydanticValidationError, AttributeError) as e:
            raise ConfigurationError(
                f"artifact '{contract_name}'", f"invalid file {path}: {e}"
            ) from e

        logger.debug(f"Loaded artifact '{contract_name}' from {path}")
        self._cache[contract_name] = artifact
        return artifact
