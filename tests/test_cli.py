"""
Tests for the soil-dashboard CLI.

What we test
------------
- --rate parsing: well-formed pairs, unknown rules, bad numbers.
- init-db → import-report → list-reports → show-report → runs end to end.
- A dry run writes no database, so list-reports still reports it missing.
- Error exits for missing workbooks, databases, report ids and run slugs.
- ranges accepts lab-sheet labels as well as range-table names.
"""

from __future__ import annotations

import logging
import re

import pytest
import typer
from openpyxl import Workbook
from typer.testing import CliRunner

from soil_dashboard.cli import app, parse_rate_overrides

runner = CliRunner()


@pytest.fixture(autouse=True)
def _restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def cli_config(tmp_path):
    path = tmp_path / "cli.toml"
    path.write_text(
        f"""
[database]
db_path = "{(tmp_path / 'db' / 'cli.db').as_posix()}"

[logging]
level = "ERROR"
log_file = ""
""",
        encoding="utf-8",
    )
    return str(path)


@pytest.fixture
def workbook(tmp_path, sample_raw_sheet):
    wb = Workbook()
    sheet = wb.create_sheet("Report")
    for coordinate, value in sample_raw_sheet.items():
        sheet[coordinate] = value
    path = tmp_path / "report.xlsx"
    wb.save(path)
    return str(path)


# ── parse_rate_overrides ──────────────────────────────────────────────────────


class TestParseRateOverrides:
    def test_none_is_empty(self):
        assert parse_rate_overrides(None) == {}

    def test_pairs(self):
        assert parse_rate_overrides(
            ["lime-application=180", " dap-application-acidic = 30.5"]
        ) == {"lime-application": 180.0, "dap-application-acidic": 30.5}

    @pytest.mark.parametrize(
        "value",
        ["lime-application", "=200", "compost=5", "lime-application=lots", "lime-application=0"],
    )
    def test_rejected(self, value):
        with pytest.raises(typer.BadParameter):
            parse_rate_overrides([value])


# ── Commands ──────────────────────────────────────────────────────────────────


class TestCommands:
    def test_full_flow(self, cli_config, workbook):
        result = runner.invoke(app, ["init-db", "--config", cli_config])
        assert result.exit_code == 0, result.output
        assert "[OK] Database ready." in result.output

        result = runner.invoke(app, ["import-report", workbook, "--config", cli_config])
        assert result.exit_code == 0, result.output
        assert "Report ID: SR-1042-LAB7" in result.output
        assert "[OK] Report imported." in result.output
        slug = re.search(r"Run:\s+(\S+)", result.output).group(1)

        result = runner.invoke(app, ["import-report", workbook, "--config", cli_config])
        assert result.exit_code == 0, result.output
        assert "[SKIPPED]" in result.output

        result = runner.invoke(app, ["list-reports", "--config", cli_config])
        assert result.exit_code == 0, result.output
        assert "SR-1042-LAB7" in result.output
        assert "1 report(s)" in result.output

        result = runner.invoke(
            app,
            ["show-report", "SR-1042-LAB7", "--rate", "dap-application-acidic=10",
             "--config", cli_config],
        )
        assert result.exit_code == 0, result.output
        assert "=== Soil Report SR-1042-LAB7 ===" in result.output
        assert "Imported From:       report.xlsx" in result.output
        assert "[Acidic]" in result.output
        # (100 - 12) * 10
        assert "DAP Application: 880 kg/ac" in result.output
        # (65 - 60) * 0.1 * 200
        assert "Lime Application: 100 kg/ac" in result.output

        result = runner.invoke(app, ["runs", "--config", cli_config])
        assert result.exit_code == 0, result.output
        assert "=== Import Runs ===" in result.output
        assert "success" in result.output
        assert "skipped" in result.output

        result = runner.invoke(app, ["runs", "--slug", slug, "--config", cli_config])
        assert result.exit_code == 0, result.output
        assert f"=== Import Run {slug} ===" in result.output
        assert "Status:        success" in result.output
        assert "Rows:          5" in result.output

    def test_dry_run_prints_report(self, cli_config, workbook):
        result = runner.invoke(
            app, ["import-report", workbook, "--dry-run", "--config", cli_config]
        )
        assert result.exit_code == 0, result.output
        assert "[DRY RUN]" in result.output
        assert "[AVAILABLE NUTRIENTS]" in result.output

    def test_dry_run_leaves_no_database(self, cli_config, workbook, tmp_path):
        result = runner.invoke(
            app, ["import-report", workbook, "--dry-run", "--config", cli_config]
        )
        assert result.exit_code == 0, result.output
        assert not (tmp_path / "db" / "cli.db").exists()

        result = runner.invoke(app, ["list-reports", "--config", cli_config])
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)

    def test_list_on_database_without_tables(self, cli_config, tmp_path):
        db_file = tmp_path / "db" / "cli.db"
        db_file.parent.mkdir(parents=True)
        db_file.touch()

        for command in (["list-reports"], ["show-report", "SR-1042-LAB7"], ["runs"]):
            result = runner.invoke(app, [*command, "--config", cli_config])
            assert result.exit_code == 1, command
            assert isinstance(result.exception, SystemExit), command

    def test_failed_import_is_listed_in_runs(self, cli_config, tmp_path):
        wb = Workbook()
        wb.create_sheet("Report")["A23"] = 1
        path = tmp_path / "blank.xlsx"
        wb.save(path)

        result = runner.invoke(app, ["import-report", str(path), "--config", cli_config])
        assert result.exit_code == 1

        result = runner.invoke(app, ["runs", "--config", cli_config])
        assert result.exit_code == 0, result.output
        assert "failed" in result.output

    def test_runs_unknown_slug(self, cli_config):
        runner.invoke(app, ["init-db", "--config", cli_config])
        result = runner.invoke(app, ["runs", "--slug", "nope", "--config", cli_config])
        assert result.exit_code == 1

    def test_missing_workbook(self, cli_config, tmp_path):
        result = runner.invoke(
            app, ["import-report", str(tmp_path / "nope.xlsx"), "--config", cli_config]
        )
        assert result.exit_code == 1

    def test_list_without_database(self, cli_config):
        result = runner.invoke(app, ["list-reports", "--config", cli_config])
        assert result.exit_code == 1

    def test_show_unknown_report(self, cli_config):
        runner.invoke(app, ["init-db", "--config", cli_config])
        result = runner.invoke(app, ["show-report", "NOPE-1", "--config", cli_config])
        assert result.exit_code == 1

    def test_show_bad_rate(self, cli_config):
        result = runner.invoke(
            app, ["show-report", "SR-1042-LAB7", "--rate", "compost=3", "--config", cli_config]
        )
        assert result.exit_code == 1

    def test_validate_config(self, cli_config):
        result = runner.invoke(app, ["validate-config", "--config", cli_config])
        assert result.exit_code == 0, result.output
        assert "[OK] Config valid." in result.output

    def test_missing_config(self, tmp_path):
        result = runner.invoke(app, ["validate-config", "--config", str(tmp_path / "x.toml")])
        assert result.exit_code == 1


class TestRangesCommand:
    def test_sheet_label_is_aliased(self):
        result = runner.invoke(app, ["ranges", "Available Zinc"])
        assert result.exit_code == 0, result.output
        assert "Zinc Available Zn" in result.output

    def test_all(self):
        result = runner.invoke(app, ["ranges"])
        assert result.exit_code == 0
        assert "Na Saturation" in result.output

    def test_unknown(self):
        result = runner.invoke(app, ["ranges", "Unobtainium"])
        assert result.exit_code == 1
