"""Tests for LocalArtifactResolver."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from chaindag.drivers.artifacts import LocalArtifactResolver
from chaindag.kernel.exceptions import ConfigurationError, ResourceNotFoundError
from chaindag.kernel.ports.artifacts import ArtifactResolver

if TYPE_CHECKING:
    from pathlib import Path

TOKEN_ABI = [
    {"type": "constructor", "inputs": [{"name": "supply", "type": "uint256"}]},
    {"type": "function", "name": "mint", "inputs": []},
    {"type": "event", "name": "Transfer", "inputs": []},
]


@pytest.fixture
def artifacts_dir(tmp_path: Path) -> Path:
    nested = tmp_path / "contracts" / "Token.sol"
    nested.mkdir(parents=True)
    (nested / "Token.json").write_text(
        json.dumps({"contractName": "Token", "abi": TOKEN_ABI, "bytecode": "0x6000"})
    )
    (nested / "Token.dbg.json").write_text("{}")
    (tmp_path / "Plain.json").write_text(json.dumps({"abi": []}))
    return tmp_path


class TestLocalArtifactResolver:
    def test_implements_port(self, artifacts_dir: Path) -> None:
        assert isinstance(LocalArtifactResolver(artifacts_dir), ArtifactResolver)

    def test_loads_nested_artifact(self, artifacts_dir: Path) -> None:
        artifact = LocalArtifactResolver(artifacts_dir).load_artifact("Token")

        assert artifact.contract_name == "Token"
        assert artifact.bytecode == "0x6000"
        assert artifact.constructor_input_count() == 1
        assert artifact.get_function("mint") is not None
        assert artifact.get_function("burn") is None
        assert artifact.get_event("Transfer") is not None

    def test_defaults_for_sparse_files(self, artifacts_dir: Path) -> None:
        artifact = LocalArtifactResolver(artifacts_dir).load_artifact("Plain")
        assert artifact.contract_name == "Plain"
        assert artifact.bytecode == "0x"
        assert artifact.constructor_input_count() == 0

    def test_missing_artifact_lists_available(self, artifacts_dir: Path) -> None:
        with pytest.raises(ResourceNotFoundError) as exc_info:
            LocalArtifactResolver(artifacts_dir).load_artifact("Vault")
        assert exc_info.value.available == ["Plain", "Token"]

    def test_invalid_file(self, tmp_path: Path) -> None:
        (tmp_path / "Broken.json").write_text("{not json")
        with pytest.raises(ConfigurationError, match="Broken"):
            LocalArtifactResolver(tmp_path).load_artifact("Broken")

    def test_results_are_cached(self, artifacts_dir: Path) -> None:
        resolver = LocalArtifactResolver(artifacts_dir)
        first = resolver.load_artifact("Token")
        (artifacts_dir / "contracts" / "Token.sol" / "Token.json").unlink()
        assert resolver.load_artifact("Token") is first
