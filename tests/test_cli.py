"""Tests for the plancheck CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from plancheck import __version__
from plancheck.cli.main import app, load_plan_file
from plancheck.models import BackendKind

from conftest import POSTGRES_INDEX_SCAN, POSTGRES_SEQ_SCAN, mysql_row


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def seq_scan_plan(tmp_path: Path) -> Path:
    path = tmp_path / "seq.txt"
    path.write_text(POSTGRES_SEQ_SCAN)
    return path


@pytest.fixture
def index_scan_plan(tmp_path: Path) -> Path:
    path = tmp_path / "index.txt"
    path.write_text(POSTGRES_INDEX_SCAN)
    return path


@pytest.fixture
def mysql_rows_plan(tmp_path: Path) -> Path:
    path = tmp_path / "rows.json"
    path.write_text(json.dumps([mysql_row(rows=500)]))
    return path


class TestCheckCommand:
    """plancheck check"""

    def test_full_scan_fails(self, runner, seq_scan_plan):
        result = runner.invoke(app, ["check", str(seq_scan_plan), "-b", "postgres", "-r", "full_scan"])

        assert result.exit_code == 1
        assert "FAIL" in result.output

    def test_index_scan_passes(self, runner, index_scan_plan):
        result = runner.invoke(
            app,
            ["check", str(index_scan_plan), "-b", "postgres", "-r", "full_scan", "-r", "index_usage"],
        )

        assert result.exit_code == 0
        assert "PASS" in result.output
        assert "Plan passed every check." in result.output

    def test_mysql_rows_with_threshold(self, runner, mysql_rows_plan):
        failing = runner.invoke(
            app, ["check", str(mysql_rows_plan), "-b", "mysql", "-r", "row_count", "-t", "10"]
        )
        passing = runner.invoke(
            app, ["check", str(mysql_rows_plan), "-b", "mysql", "-r", "row_count", "-t", "1000"]
        )

        assert failing.exit_code == 1
        assert passing.exit_code == 0

    def test_json_output(self, runner, mysql_rows_plan):
        result = runner.invoke(
            app,
            ["check", str(mysql_rows_plan), "-b", "mysql", "-r", "row_count", "-t", "10", "--json"],
        )

        assert result.exit_code == 1
        assert '"rule_id": "ROW_COUNT"' in result.output
        assert '"observed_rows": 500' in result.output
        assert '"passed": false' in result.output

    def test_unknown_rule_is_invalid_input(self, runner, seq_scan_plan):
        result = runner.invoke(app, ["check", str(seq_scan_plan), "-r", "nope"])

        assert result.exit_code == 2

    def test_non_positive_threshold_is_invalid_input(self, runner, mysql_rows_plan):
        result = runner.invoke(
            app, ["check", str(mysql_rows_plan), "-b", "mysql", "-r", "row_count", "-t", "0"]
        )

        assert result.exit_code == 2

    def test_threshold_ignored_by_rules_without_one(self, runner, index_scan_plan):
        result = runner.invoke(
            app, ["check", str(index_scan_plan), "-b", "postgres", "-r", "full_scan", "-t", "5"]
        )

        assert result.exit_code == 0

    def test_missing_file_is_invalid_input(self, runner, tmp_path):
        result = runner.invoke(app, ["check", str(tmp_path / "absent.txt")])

        assert result.exit_code == 2

    def test_disabled_rules_are_skipped(self, runner, seq_scan_plan, monkeypatch):
        for rule_id in ("FULL_SCAN", "ACCESS_TYPE", "INDEX_USAGE"):
            monkeypatch.setenv(f"PLANCHECK_RULE_{rule_id}_ENABLED", "false")

        result = runner.invoke(app, ["check", str(seq_scan_plan), "-b", "postgres"])

        assert result.exit_code == 0


class TestRulesCommand:
    """plancheck rules"""

    def test_lists_rules(self, runner):
        result = runner.invoke(app, ["rules"])

        assert result.exit_code == 0
        assert "FULL_SCAN" in result.output
        assert "ROW_COUNT" in result.output


def test_version(runner):
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


class TestLoadPlanFile:
    """Plan file parsing."""

    def test_text_file(self, seq_scan_plan):
        raw = load_plan_file(seq_scan_plan, BackendKind.POSTGRES)

        assert raw.rows is None
        assert raw.text == POSTGRES_SEQ_SCAN

    def test_json_rows(self, mysql_rows_plan):
        raw = load_plan_file(mysql_rows_plan, BackendKind.MYSQL)

        assert raw.rows == [mysql_row(rows=500)]
        assert "type: ref" in raw.text

    def test_json_that_is_not_rows_is_text(self, tmp_path):
        path = tmp_path / "plan.json"
        path.write_text(json.dumps({"Plan": {"Node Type": "Seq Scan"}}))

        raw = load_plan_file(path, BackendKind.POSTGRES)

        assert raw.rows is None
        assert "Seq Scan" in raw.text
