"""Tests for centralized logging configuration using Loguru."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from chaindag.kernel.logging import (
    configure_logging,
    get_deployment_id,
    get_logger,
    reset_deployment_id,
    set_deployment_id,
)

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def log_file(tmp_path: Path):
    path = tmp_path / "logs" / "chaindag.jsonl"
    configure_logging(level="DEBUG", format="console", output_file=path, force_reconfigure=True)
    yield path
    configure_logging(force_reconfigure=True)


def read_records(path: Path) -> list[dict]:
    return [json.loads(line)["record"] for line in path.read_text().splitlines()]


class TestGetLogger:
    def test_get_logger_caches_results(self) -> None:
        assert get_logger("test.cache") is get_logger("test.cache")

    def test_records_carry_module_and_deployment_id(self, log_file: Path) -> None:
        log = get_logger("chaindag.tests")

        token = set_deployment_id("chain-5")
        try:
            log.info("inside")
        finally:
            reset_deployment_id(token)
        log.info("outside")

        inside, outside = read_records(log_file)
        assert inside["message"] == "inside"
        assert inside["extra"] == {"module": "chaindag.tests", "deployment_id": "chain-5"}
        assert outside["extra"]["deployment_id"] == "-"


class TestConfigureLogging:
    def test_level_filters_records(self, tmp_path: Path) -> None:
        path = tmp_path / "warn.jsonl"
        configure_logging(level="WARNING", output_file=path, force_reconfigure=True)
        try:
            log = get_logger("chaindag.tests.level")
            log.info("dropped")
            log.warning("kept")
        finally:
            configure_logging(force_reconfigure=True)

        assert [r["message"] for r in read_records(path)] == ["kept"]

    def test_reconfiguring_with_same_settings_is_idempotent(self, log_file: Path) -> None:
        configure_logging(level="DEBUG", format="console", output_file=log_file)
        get_logger("chaindag.tests.once").debug("once")

        assert [r["message"] for r in read_records(log_file)] == ["once"]


def test_default_deployment_id() -> None:
    assert get_deployment_id() == "-"
