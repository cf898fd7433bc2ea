"""
ASCII terminal formatters for the CLI.

All formatters take models and return plain multi-line strings suitable for
``typer.echo()``. No third-party dependencies (no ``rich``, no ``colorama``).

Ratings are shown as bracketed tags so they survive copy/paste into email::

    S.No.  Parameter                        Result  Unit        Rating
    ------------------------------------------------------------------
        1  pH                                 6.20  -           [Acidic]
        5  Available Phosphorus              42.00  ppm         [Low]
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Optional

from soil_dashboard.classification.classifier import range_bounds, visible_bands
from soil_dashboard.models.meta import RunMetadata
from soil_dashboard.models.reading import ParameterReading
from soil_dashboard.models.recommendation import Recommendation
from soil_dashboard.models.report import REPORT_CATEGORIES, Report, ReportSummary
from soil_dashboard.recommendations.rules import RECOMMENDATION_RULES
from soil_dashboard.taxonomy.parameter_ranges import PARAMETER_RANGES, SoilAcidityClass
from soil_dashboard.utils.time_utils import age_hours

_CATEGORY_TITLES = {
    "misc": "General",
    "available": "Available Nutrients",
    "exchangeable": "Exchangeable Cations",
    "saturation": "Base Saturation",
}


def _truncate(text: str, width: int) -> str:
    return text if len(text) <= width else text[: width - 3] + "..."


def _format_result(reading: ParameterReading) -> str:
    value = reading.numeric_result
    if value is None:
        return str(reading.result) or "-"
    return f"{value:.2f}"


def _format_age(created_at: datetime, now: Optional[datetime] = None) -> str:
    hours = age_hours(created_at, now)
    if hours < 48:
        return f"{hours:.1f}h ago"
    return f"{hours / 24:.0f}d ago"


# ── Report list ───────────────────────────────────────────────────────────────


def format_report_list(
    summaries: Sequence[ReportSummary],
    now: Optional[datetime] = None,
) -> str:
    """One row per stored report, newest first as given."""
    lines: list[str] = ["", "=== Stored Soil Reports ==="]
    if not summaries:
        lines.append("")
        lines.append("  (no reports stored; import one with 'import-report')")
        return "\n".join(lines)

    lines.append("")
    header = (
        f"  {'Report ID':<24}  {'Issued To':<28}  {'Report Date':<12}  {'Stored':>10}"
    )
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for summary in summaries:
        issued_to = summary.metadata.issued_to.splitlines()[0] if summary.metadata.issued_to else "-"
        lines.append(
            f"  {_truncate(summary.report_id, 24):<24}  "
            f"{_truncate(issued_to, 28):<28}  "
            f"{summary.metadata.report_date or '-':<12}  "
            f"{_format_age(summary.created_at, now):>10}"
        )
    lines.append("")
    lines.append(f"  {len(summaries)} report(s)")
    return "\n".join(lines)


# ── Report detail ─────────────────────────────────────────────────────────────


def format_metadata(report: Report, source_file: Optional[str] = None) -> str:
    """Header block of one report, with the workbook it was imported from if known."""
    meta = report.metadata
    fields = [
        ("Report ID", report.report_id),
        ("Issued To", meta.issued_to.replace("\n", ", ")),
        ("Sample", meta.sample_description),
        ("Report Number", meta.report_number),
        ("Report Date", meta.report_date),
        ("Lab ID", meta.lab_id),
        ("Lab Report No.", meta.unique_lab_report_no),
        ("Sample ID", meta.sample_id),
        ("Sample Drawn By", meta.sample_drawn_by),
        ("Received On", meta.sample_received_on),
        ("Analysis Started", meta.analysis_started_on),
        ("Analysis Completed", meta.analysis_completed_on),
        ("Discipline", meta.discipline),
        ("Group", meta.group),
        ("Imported From", source_file),
    ]
    lines = ["", f"=== Soil Report {report.report_id} ==="]
    for label, value in fields:
        if value:
            lines.append(f"  {label + ':':<20} {value}")
    return "\n".join(lines)


def format_readings_table(report: Report) -> str:
    """Readings grouped by report section, with rating tags."""
    lines: list[str] = []
    for category in REPORT_CATEGORIES:
        readings: list[ParameterReading] = getattr(report.categories, category)
        if not readings:
            continue
        lines.append("")
        lines.append(f"  [{_CATEGORY_TITLES[category].upper()}]")
        header = (
            f"    {'S.No.':>5}  {'Parameter':<32}  {'Result':>8}  {'Unit':<10}  Rating"
        )
        lines.append(header)
        lines.append("    " + "-" * (len(header) - 4 + 8))
        for r in readings:
            rating = f"[{r.rating}]" if r.rating else ""
            lines.append(
                f"    {r.sequence_number:>5}  "
                f"{_truncate(r.parameter_name, 32):<32}  "
                f"{_format_result(r):>8}  "
                f"{_truncate(r.unit or '-', 10):<10}  "
                f"{rating}"
            )

    if not lines:
        return "\n  (report has no readings)"
    return "\n".join(lines)


def format_recommendations(recommendations: Sequence[Recommendation]) -> str:
    """Triggered recommendations with the rate each was computed at."""
    lines = ["", "=== Recommendations ==="]
    if not recommendations:
        lines.append("  No amendments needed for this report.")
        return "\n".join(lines)

    for rec in recommendations:
        lines.append("")
        lines.append(f"  {rec.title}: {rec.value} {rec.unit}")
        lines.append(f"    {rec.description}")
        lines.append(f"    Rate: {rec.applied_rate:g} {rec.rate_unit}  (rule {rec.rule_id})")
    return "\n".join(lines)


def format_rate_table() -> str:
    """Default application rates, one line per rule id."""
    lines = ["", "  Default rates (override with --rate RULE=RATE):"]
    for rule in RECOMMENDATION_RULES:
        lines.append(f"    {rule.rule_id:<26} {rule.default_rate:>7g}  {rule.rate_unit}")
    return "\n".join(lines)


# ── Import runs ───────────────────────────────────────────────────────────────


def format_run_list(runs: Sequence[RunMetadata]) -> str:
    """Recent ingestion runs, newest first as given."""
    lines: list[str] = ["", "=== Import Runs ==="]
    if not runs:
        lines.append("")
        lines.append("  (no import runs recorded)")
        return "\n".join(lines)

    lines.append("")
    header = (
        f"  {'Started':<20}  {'Status':<8}  {'Report ID':<24}  {'Rows':>4}  Run"
    )
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for run in runs:
        lines.append(
            f"  {run.started_at.strftime('%Y-%m-%d %H:%M:%S'):<20}  "
            f"{run.status:<8}  "
            f"{_truncate(run.report_id or '-', 24):<24}  "
            f"{run.rows_processed:>4}  "
            f"{run.run_slug[:8]}"
        )
    return "\n".join(lines)


def format_run_detail(run: RunMetadata) -> str:
    """Every recorded field of one run, error message included."""
    fields = [
        ("Run", run.run_slug),
        ("Stage", run.pipeline_stage),
        ("Status", run.status),
        ("Report ID", run.report_id),
        ("Source File", run.source_file),
        ("Rows", str(run.rows_processed)),
        ("Started", run.started_at.isoformat()),
        ("Finished", run.finished_at.isoformat() if run.finished_at else None),
        ("Error", run.error_message),
    ]
    lines = ["", f"=== Import Run {run.run_slug} ==="]
    for label, value in fields:
        if value:
            lines.append(f"  {label + ':':<14} {value}")
    return "\n".join(lines)


# ── Reference ranges ──────────────────────────────────────────────────────────


def _band_rows(parameter_name: str) -> list[str]:
    rows: list[str] = []
    bands = PARAMETER_RANGES[parameter_name]
    conditions = [None] + [
        c for c in SoilAcidityClass if any(b.soil_acidity_condition == c for b in bands)
    ]
    for condition in conditions:
        selected = [b for b in bands if b.soil_acidity_condition == condition]
        if not selected:
            continue
        if condition is not None:
            rows.append(f"      ({condition.value} soils)")
        for band in selected:
            rows.append(f"      {band.label:<14} {band.describe():<16} {band.color_tag}")
    return rows


def format_ranges_table(parameter_name: Optional[str] = None) -> str:
    """Reference bands for one parameter, or for all of them.

    Raises:
        KeyError: If ``parameter_name`` has no reference range.
    """
    if parameter_name is not None:
        name = parameter_name.strip()
        if name not in PARAMETER_RANGES:
            raise KeyError(name)
        names = [name]
    else:
        names = list(PARAMETER_RANGES)

    lines = ["", "=== Reference Ranges ==="]
    for name in names:
        low, high = range_bounds(name)
        lines.append("")
        lines.append(f"  {name}  (scale {low:g} - {high:g})")
        lines.extend(_band_rows(name))
    return "\n".join(lines)


def format_visible_scale(parameter_name: str, ph_value: Optional[float] = None) -> str:
    """Inline ``Label: range`` summary of the bands a scale would draw."""
    bands = visible_bands(parameter_name, ph_value)
    return " | ".join(f"{b.label}: {b.describe()}" for b in bands)
