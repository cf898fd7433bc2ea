"""
Soil Analysis Dashboard — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Execute action (DB init, workbook import, report lookup, ...).
  5. Report result to stdout.

Install and run::

    pip install -e .
    soil-dashboard --help
    soil-dashboard init-db
    soil-dashboard import-report uploads/report-1042.xlsx
    soil-dashboard list-reports
    soil-dashboard show-report SR-1042-LAB7 --rate lime-application=180
    soil-dashboard runs --limit 5
    soil-dashboard ranges "Available Phosphorus"

The Streamlit dashboard is started separately::

    streamlit run dashboard/app.py
"""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="soil-dashboard",
    help="Soil-test report dashboard: import lab workbooks, rate readings, recommend amendments.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from soil_dashboard.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from soil_dashboard.utils.logging import configure_logging
    configure_logging(config.logging)


def _require_report_store(conn, target_path: str) -> None:
    """Exit with an error unless the database at ``target_path`` has the schema."""
    from soil_dashboard.db.schema import is_initialized

    if not is_initialized(conn):
        typer.echo(
            f"[ERROR] No report store at {target_path}; run 'init-db' or import a report first.",
            err=True,
        )
        raise typer.Exit(code=1)


def parse_rate_overrides(values: Optional[list[str]]) -> dict[str, float]:
    """Parse repeated ``RULE=RATE`` options into ``{rule_id: rate}``.

    Raises:
        typer.BadParameter: On malformed pairs, unknown rule ids, or rates
            that are not positive finite numbers.
    """
    from soil_dashboard.recommendations.rules import default_rates, get_rule

    overrides: dict[str, float] = {}
    for item in values or []:
        rule_id, sep, raw_rate = item.partition("=")
        rule_id = rule_id.strip()
        if not sep or not rule_id:
            raise typer.BadParameter(f"Expected RULE=RATE, got '{item}'.")
        if get_rule(rule_id) is None:
            raise typer.BadParameter(
                f"Unknown rule '{rule_id}'. Known rules: {', '.join(default_rates())}."
            )
        try:
            rate = float(raw_rate)
        except ValueError:
            raise typer.BadParameter(f"Rate for '{rule_id}' is not a number: '{raw_rate}'.")
        if not math.isfinite(rate) or rate <= 0:
            raise typer.BadParameter(f"Rate for '{rule_id}' must be positive, got {raw_rate}.")
        overrides[rule_id] = rate
    return overrides


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("init-db")
def init_db(
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config (e.g. data/db/test.db).",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Initialize the SQLite report store and apply the schema.

    Safe to run multiple times; all DDL uses IF NOT EXISTS.
    """
    from soil_dashboard.db.connection import get_connection
    from soil_dashboard.db.schema import (
        apply_schema,
        get_existing_indexes,
        get_existing_tables,
    )

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    target_path = db_path or config.database.db_path
    typer.echo(f"Initializing database at: {target_path}")

    with get_connection(
        target_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        apply_schema(conn)
        tables = [name for name in get_existing_tables(conn) if not name.startswith("sqlite_")]
        indexes = [name for name in get_existing_indexes(conn) if name.startswith("idx_")]

    typer.echo(f"  Tables:  {', '.join(tables)}")
    typer.echo(f"  Indexes: {', '.join(indexes)}")
    typer.echo("[OK] Database ready.")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Database path:    {config.database.db_path}")
    typer.echo(f"  Report sheet:     index {config.ingestion.sheet_index}")
    typer.echo(f"  Result rows:      {config.ingestion.first_row}-{config.ingestion.last_row}")
    typer.echo(f"  Rate overrides:   {config.recommendations.rate_overrides or 'none'}")
    typer.echo(f"  Upload dir:       {config.dashboard.upload_dir}")
    typer.echo(f"  Log level:        {config.logging.level}")
    typer.echo(f"  Debug mode:       {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("import-report")
def import_report(
    workbook: str = typer.Argument(..., help="Path to the lab's .xlsx report workbook."),
    sheet: Optional[int] = typer.Option(
        None,
        "--sheet",
        help="Zero-based worksheet index (default: config ingestion.sheet_index).",
    ),
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Extract and rate readings but do not write to the database.",
    ),
) -> None:
    """Import one lab soil-test workbook into the report store.

    A report whose "<report number>-<lab id>" is already stored is left as
    is; the import is reported as skipped.
    """
    from soil_dashboard.ingestion.spreadsheet import SpreadsheetFormatError
    from soil_dashboard.pipeline.ingest import IngestReportStage
    from soil_dashboard.reporting.formatters import format_metadata, format_readings_table

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    source = Path(workbook)
    if not source.exists():
        typer.echo(f"[ERROR] Workbook not found: {source}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Importing report from: {source}")
    stage = IngestReportStage(config=config, db_path=db_path)
    try:
        run = stage.run(source_path=source, sheet_index=sheet, dry_run=dry_run)
    except (FileNotFoundError, SpreadsheetFormatError) as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"  Report ID: {run.report_id}")
    typer.echo(f"  Readings:  {run.rows_processed}")

    if dry_run:
        typer.echo("[DRY RUN] Report not written to database.")
        if stage.report is not None:
            typer.echo(format_metadata(stage.report))
            typer.echo(format_readings_table(stage.report))
        return

    typer.echo(f"  Run:       {run.run_slug}")
    if run.status == "skipped":
        typer.echo("[SKIPPED] Report already stored; existing copy kept.")
    else:
        typer.echo("[OK] Report imported.")


@app.command("list-reports")
def list_reports(
    lab_id: Optional[str] = typer.Option(
        None,
        "--lab-id",
        help="Only list reports from this lab id.",
    ),
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """List stored reports, newest first."""
    from soil_dashboard.db.connection import get_connection
    from soil_dashboard.db.repositories.report_repo import ReportRepository
    from soil_dashboard.reporting.formatters import format_report_list

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    target_path = db_path or config.database.db_path
    if not Path(target_path).exists():
        typer.echo(f"[ERROR] Database not found at {target_path}; run 'init-db' first.", err=True)
        raise typer.Exit(code=1)

    with get_connection(
        target_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        _require_report_store(conn, target_path)
        summaries = ReportRepository(conn).list_reports(lab_id=lab_id)

    typer.echo(format_report_list(summaries))


@app.command("show-report")
def show_report(
    report_id: str = typer.Argument(..., help="Report id: '<report number>-<lab id>'."),
    rate: Optional[list[str]] = typer.Option(
        None,
        "--rate",
        help="Application rate override as RULE=RATE (repeatable).",
    ),
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Show a stored report with rated readings and recommendations.

    Rates come from config ``[recommendations.rate_overrides]``, then any
    --rate options, then each rule's default.
    """
    from soil_dashboard.db.connection import get_connection
    from soil_dashboard.db.repositories.report_repo import ReportRepository
    from soil_dashboard.recommendations.engine import recommend
    from soil_dashboard.reporting.formatters import (
        format_metadata,
        format_rate_table,
        format_readings_table,
        format_recommendations,
    )
    from soil_dashboard.reports.assembly import all_readings

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        overrides = {**config.recommendations.rate_overrides, **parse_rate_overrides(rate)}
    except typer.BadParameter as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    target_path = db_path or config.database.db_path
    if not Path(target_path).exists():
        typer.echo(f"[ERROR] Database not found at {target_path}; run 'init-db' first.", err=True)
        raise typer.Exit(code=1)

    with get_connection(
        target_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        _require_report_store(conn, target_path)
        repo = ReportRepository(conn)
        report = repo.load_report(report_id)
        source_file = repo.source_file(report_id)

    if report is None:
        typer.echo(f"[ERROR] No report with id '{report_id}'.", err=True)
        raise typer.Exit(code=1)

    typer.echo(format_metadata(report, source_file=source_file))
    typer.echo(format_readings_table(report))
    typer.echo(format_recommendations(recommend(all_readings(report), overrides)))
    typer.echo(format_rate_table())


@app.command("runs")
def runs(
    limit: int = typer.Option(20, "--limit", min=1, help="Number of runs to list."),
    slug: Optional[str] = typer.Option(
        None,
        "--slug",
        help="Show one run in full instead of the list.",
    ),
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """List recent import runs, or show one run by its slug."""
    from soil_dashboard.db.connection import get_connection
    from soil_dashboard.db.repositories.run_repo import RunMetadataRepository
    from soil_dashboard.reporting.formatters import format_run_detail, format_run_list

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    target_path = db_path or config.database.db_path
    if not Path(target_path).exists():
        typer.echo(f"[ERROR] Database not found at {target_path}; run 'init-db' first.", err=True)
        raise typer.Exit(code=1)

    with get_connection(
        target_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        _require_report_store(conn, target_path)
        repo = RunMetadataRepository(conn)
        if slug:
            run = repo.get_run_by_slug(slug)
        else:
            recent = repo.get_recent_runs(limit=limit)

    if not slug:
        typer.echo(format_run_list(recent))
        return
    if run is None:
        typer.echo(f"[ERROR] No import run with slug '{slug}'.", err=True)
        raise typer.Exit(code=1)
    typer.echo(format_run_detail(run))


@app.command("ranges")
def ranges(
    parameter: Optional[str] = typer.Argument(
        None,
        help="Parameter name (range-table or lab-sheet label). Omit to list all.",
    ),
) -> None:
    """Print the reference bands used to rate readings."""
    from soil_dashboard.classification.classifier import canonical_parameter_name
    from soil_dashboard.reporting.formatters import format_ranges_table
    from soil_dashboard.taxonomy.parameter_ranges import PARAMETER_RANGES

    name = canonical_parameter_name(parameter) if parameter else None
    try:
        typer.echo(format_ranges_table(name))
    except KeyError:
        typer.echo(f"[ERROR] No reference range for '{parameter}'.", err=True)
        typer.echo(f"  Known parameters: {', '.join(PARAMETER_RANGES)}", err=True)
        raise typer.Exit(code=1)


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app()
