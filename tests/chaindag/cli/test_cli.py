"""Tests for the chaindag command line."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest
from typer.testing import CliRunner

from chaindag.cli.main import app
from chaindag.kernel.config import clear_config_cache

if TYPE_CHECKING:
    from pathlib import Path

MODULE_SOURCE = """
from chaindag import build_module


@build_module("Token")
def token_module(m):
    token = m.contract("Token", args=[m.get_parameter("supply", 1000)])
    m.call(token, "mint", [100])
    return {"token": token}
"""


@pytest.fixture
def runner():
    """Fixture providing a Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "token_module.py").write_text(MODULE_SOURCE)
    (tmp_path / "chaindag.yaml").write_text(
        "kind: Config\n"
        "spec:\n"
        f"  deployments_dir: {tmp_path / 'deployments'}\n"
        "  execution:\n"
        "    poll_interval: 0.001\n"
        "    retry_delay: 0\n"
    )
    clear_config_cache()
    yield tmp_path
    clear_config_cache()


def invoke(runner: CliRunner, workspace: Path, *args: str, **kwargs):
    return runner.invoke(
        app, ["-q", "--config", str(workspace / "chaindag.yaml"), *args], **kwargs
    )


class TestMainApp:
    def test_help_lists_commands(self, runner) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("deploy", "plan", "status", "transactions", "wipe", "resolve"):
            assert command in result.stdout

    def test_version(self, runner) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "version" in result.stdout

    def test_missing_config_file(self, runner, tmp_path) -> None:
        result = runner.invoke(app, ["--config", str(tmp_path / "absent.yaml"), "status", "x"])
        assert result.exit_code == 1
        assert "Error" in result.stdout


class TestPlan:
    def test_plan_json(self, runner, workspace) -> None:
        result = invoke(runner, workspace, "--json", "plan", "token_module.py")

        assert result.exit_code == 0
        assert json.loads(result.stdout) == [
            {"id": "Token#Token", "type": "deploy-contract", "dependencies": []},
            {"id": "Token#Token.mint", "type": "call-method", "dependencies": ["Token#Token"]},
        ]

    def test_plan_table(self, runner, workspace) -> None:
        result = invoke(runner, workspace, "plan", "token_module.py")
        assert result.exit_code == 0
        assert "Plan: Token" in result.stdout

    def test_file_without_module(self, runner, workspace) -> None:
        (workspace / "empty.py").write_text("VALUE = 1\n")
        result = invoke(runner, workspace, "plan", "empty.py")
        assert result.exit_code == 1
        assert "--module" in result.stdout


class TestDeploy:
    """Tests for deploy and the commands inspecting its journal."""

    def test_deploy_then_inspect(self, runner, workspace) -> None:
        result = invoke(runner, workspace, "deploy", "token_module.py", "-d", "dev")
        assert result.exit_code == 0, result.stdout
        assert "Deployment 'dev' complete" in result.stdout
        assert (workspace / "deployments" / "dev" / "journal.jsonl").exists()

        status = invoke(runner, workspace, "--json", "status", "dev")
        assert status.exit_code == 0
        assert json.loads(status.stdout)["futures"] == {
            "Token#Token": "success",
            "Token#Token.mint": "success",
        }

        transactions = invoke(runner, workspace, "--json", "transactions", "dev")
        assert transactions.exit_code == 0
        assert [op["kind"] for op in json.loads(transactions.stdout)] == ["deploy", "call"]

    def test_rerun_resumes_from_journal(self, runner, workspace) -> None:
        invoke(runner, workspace, "deploy", "token_module.py", "-d", "dev")

        result = invoke(runner, workspace, "--json", "deploy", "token_module.py", "-d", "dev")

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["kind"] == "successful-deployment"
        assert list(payload["contracts"]) == ["Token#Token"]
        transactions = invoke(runner, workspace, "--json", "transactions", "dev")
        assert len(json.loads(transactions.stdout)) == 2

    def test_changed_parameters_fail_reconciliation(self, runner, workspace) -> None:
        invoke(runner, workspace, "deploy", "token_module.py", "-d", "dev")
        (workspace / "params.json").write_text(json.dumps({"Token": {"supply": 5}}))

        result = invoke(
            runner, workspace, "deploy", "token_module.py", "-d", "dev", "-p", "params.json"
        )

        assert result.exit_code == 1
        assert "Reconciliation failed" in result.stdout

    def test_reset_requires_confirmation(self, runner, workspace) -> None:
        invoke(runner, workspace, "deploy", "token_module.py", "-d", "dev")

        declined = invoke(
            runner, workspace, "deploy", "token_module.py", "-d", "dev", "--reset", input="n\n"
        )
        assert declined.exit_code == 1

        accepted = invoke(
            runner, workspace, "deploy", "token_module.py", "-d", "dev", "--reset", "-y"
        )
        assert accepted.exit_code == 0

    def test_invalid_deployment_id(self, runner, workspace) -> None:
        result = invoke(runner, workspace, "deploy", "token_module.py", "-d", "../up")
        assert result.exit_code == 1
        assert "deployment_id" in result.stdout


class TestOperatorCommands:
    def test_wipe(self, runner, workspace) -> None:
        invoke(runner, workspace, "deploy", "token_module.py", "-d", "dev")

        result = invoke(runner, workspace, "wipe", "dev", "Token#Token.mint", "--yes")

        assert result.exit_code == 0
        assert "Wiped 'Token#Token.mint'" in result.stdout
        status = invoke(runner, workspace, "--json", "status", "dev")
        assert list(json.loads(status.stdout)["futures"]) == ["Token#Token"]

    def test_wipe_dependency_fails(self, runner, workspace) -> None:
        invoke(runner, workspace, "deploy", "token_module.py", "-d", "dev")
        result = invoke(runner, workspace, "wipe", "dev", "Token#Token", "--yes")
        assert result.exit_code == 1

    def test_resolve_rejects_both_outcomes(self, runner, workspace) -> None:
        result = invoke(
            runner, workspace, "resolve", "dev", "Token#Token", "--result", "1", "--error", "no"
        )
        assert result.exit_code == 1
        assert "mutually exclusive" in result.stdout

    def test_resolve_requires_held_future(self, runner, workspace) -> None:
        invoke(runner, workspace, "deploy", "token_module.py", "-d", "dev")
        result = invoke(runner, workspace, "resolve", "dev", "Token#Token", "--error", "no")
        assert result.exit_code == 1

    def test_unknown_deployment(self, runner, workspace) -> None:
        result = invoke(runner, workspace, "status", "nowhere")
        assert result.exit_code == 1
        assert "not found" in result.stdout
