"""Tests for the depgraph command line."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from depgraph.cli import cli

SHOP_DIR = Path(__file__).parent / "fixtures" / "shop"


def shop_args() -> list[str]:
    args: list[str] = []
    for name in ("gateway", "orders", "users", "payments"):
        args += ["--service", f"{name}={SHOP_DIR / name}"]
    return args


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestAnalyzeCommand:
    """depgraph analyze"""

    def test_json_output(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["analyze", *shop_args()])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["services"] == ["gateway", "orders", "users", "payments"]
        assert data["impactAnalysis"][0]["service"] == "users"

    def test_mermaid_output(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["analyze", *shop_args(), "--format", "mermaid"])

        assert result.exit_code == 0, result.output
        assert result.output.startswith("graph TD")
        assert "gateway -->|API| orders" in result.output

    def test_table_output(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["analyze", *shop_args(), "--format", "table"])

        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[0].startswith("NODE")
        assert lines[1].split()[:2] == ["users", "55"]

    def test_write_to_file(self, runner: CliRunner, tmp_path: Path) -> None:
        target = tmp_path / "out" / "report.json"

        result = runner.invoke(
            cli, ["analyze", *shop_args(), "--database", "mysql", "-o", str(target)]
        )

        assert result.exit_code == 0, result.output
        data = json.loads(target.read_text())
        assert {"name": "mysql-db", "type": "mysql"} in data["databases"]

    def test_placeholders_flag(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["analyze", *shop_args(), "--placeholders"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["externalServices"] == ["hooks.example.com"]

    def test_malformed_service_option(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["analyze", "--service", "no-path"])

        assert result.exit_code != 0
        assert "NAME=PATH" in result.output

    def test_duplicate_service_reported(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli, ["analyze", "--service", "a=./a", "--service", "a=./b"]
        )

        assert result.exit_code == 1
        assert "duplicate service name" in result.output
