"""
Soil Analysis Dashboard — Streamlit UI
======================================

Optional local UI over the report store. Upload a lab workbook to import it,
or pick a stored report to see its header, rated readings, range scales and
fertilizer recommendations.

Why optional?
-------------
- Streamlit and pandas are not needed for headless imports.
- Everything shown here is also available via ``soil-dashboard show-report``.

Layout
------
  Sidebar   — report selector, workbook upload, cache reset.
  Header    — report metadata.
  Tabs      1. Readings         — results table with rating badges.
            2. Parameter Ranges — one scale per parameter, grouped by S.No.
            3. Recommendations  — triggered rules with adjustable rates.

Usage
-----
    pip install -e ".[dashboard]"
    streamlit run dashboard/app.py
"""

from __future__ import annotations

import sys
from pathlib import Path

# ── Ensure project root is importable ────────────────────────────────────────
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import streamlit as st

# ── Must be the first Streamlit call ─────────────────────────────────────────
st.set_page_config(
    page_title="Soil Analysis Dashboard",
    layout="wide",
    initial_sidebar_state="expanded",
)

import pandas as pd

from dashboard.data_loader import (
    import_workbook,
    load_recent_runs,
    load_report,
    load_report_summaries,
)
from soil_dashboard.config import load_config
from soil_dashboard.ingestion.spreadsheet import SpreadsheetFormatError
from soil_dashboard.models.report import REPORT_CATEGORIES
from soil_dashboard.recommendations.engine import recommend
from soil_dashboard.recommendations.rules import RECOMMENDATION_RULES
from soil_dashboard.reporting.scales import (
    ScaleView,
    badge_color,
    badge_css,
    group_scale_views,
)
from soil_dashboard.reports.assembly import all_readings
from soil_dashboard.utils.logging import configure_logging

try:
    config = load_config()
except Exception as exc:
    st.error(f"Configuration failed to load: {exc}")
    st.stop()

configure_logging(config.logging)
_DB_PATH = config.database.db_path

_CATEGORY_TITLES = {
    "misc": "General",
    "available": "Available Nutrients",
    "exchangeable": "Exchangeable Cations",
    "saturation": "Base Saturation",
}


# ── Sidebar ───────────────────────────────────────────────────────────────────

with st.sidebar:
    st.title(config.dashboard.title)
    st.caption(f"Report store: {_DB_PATH}")
    st.divider()

    uploaded = st.file_uploader(
        "Import lab workbook",
        type=["xlsx"],
        help="The lab's report template; the report is read from its second sheet.",
    )
    if uploaded is not None and st.button("Import report", type="primary"):
        try:
            run, imported = import_workbook(config, uploaded.name, uploaded.getvalue())
        except (FileNotFoundError, SpreadsheetFormatError) as exc:
            st.error(f"Import failed: {exc}")
        else:
            if run.status == "skipped":
                st.info(f"Report {run.report_id} is already stored.")
            else:
                st.success(f"Imported report {run.report_id} ({run.rows_processed} readings).")
            st.session_state["selected_report"] = run.report_id

    st.divider()
    summaries = load_report_summaries(_DB_PATH)
    report_ids = [s.report_id for s in summaries]
    labels = {
        s.report_id: f"{s.report_id}  ({s.metadata.report_date or 'undated'})"
        for s in summaries
    }
    selected_id = None
    if report_ids:
        preselected = st.session_state.get("selected_report")
        selected_id = st.selectbox(
            "Report",
            options=report_ids,
            index=report_ids.index(preselected) if preselected in report_ids else 0,
            format_func=lambda rid: labels.get(rid, rid),
        )

    recent_runs = load_recent_runs(_DB_PATH)
    if recent_runs:
        with st.expander("Recent imports"):
            for recent in recent_runs:
                st.caption(
                    f"{recent.started_at:%Y-%m-%d %H:%M}  {recent.status}  "
                    f"{recent.report_id or Path(recent.source_file or '-').name}"
                )

    if st.button("Clear cache", help="Force re-read the report store."):
        st.cache_data.clear()
        st.rerun()


# ── Render helpers ────────────────────────────────────────────────────────────

def _badge(label: str, color_tag: str) -> str:
    return (
        f"<span style='{badge_css(color_tag)}; padding: 2px 8px; "
        f"border-radius: 6px; font-size: 0.8em'>{label}</span>"
    )


def _render_scale(view: ScaleView) -> None:
    value_text = "-" if view.value is None else f"{view.value:g}"
    st.markdown(
        f"**{view.parameter_name}** &nbsp; {value_text} {view.display_unit} &nbsp; "
        + _badge(view.label, view.color_tag),
        unsafe_allow_html=True,
    )
    if not view.segments:
        return
    cells = []
    for segment in view.segments:
        border = "2px solid #111827" if segment.is_current else "1px solid #e5e7eb"
        cells.append(
            f"<div style='flex: 1; text-align: center; {badge_css(segment.band.color_tag)}; "
            f"border: {border}; padding: 4px 0; font-size: 0.75em'>"
            f"{segment.band.label}<br/><span style='opacity: 0.8'>"
            f"{segment.band.describe()}</span></div>"
        )
    st.markdown(
        f"<div style='display: flex; width: 100%; margin-bottom: 12px'>{''.join(cells)}</div>",
        unsafe_allow_html=True,
    )


# ── Main panel ────────────────────────────────────────────────────────────────

if selected_id is None:
    st.header(config.dashboard.title)
    st.info("No reports stored yet. Import a lab workbook from the sidebar.")
    st.stop()

report = load_report(_DB_PATH, selected_id)
if report is None:
    st.error(f"Report {selected_id} could not be loaded.")
    st.stop()

meta = report.metadata
st.header(f"Soil Report {report.report_id}")
m1, m2, m3 = st.columns(3)
with m1:
    st.markdown(f"**Issued to**  \n{meta.issued_to or '-'}".replace("\n", "  \n"))
    st.markdown(f"**Sample**  \n{meta.sample_description or '-'}")
    st.markdown(f"**Sample drawn by**  \n{meta.sample_drawn_by or '-'}")
with m2:
    st.markdown(f"**Report number**  \n{meta.report_number}")
    st.markdown(f"**Report date**  \n{meta.report_date or '-'}")
    st.markdown(f"**Lab ID**  \n{meta.lab_id}")
    st.markdown(f"**Lab report no.**  \n{meta.unique_lab_report_no or '-'}")
with m3:
    st.markdown(f"**Sample received**  \n{meta.sample_received_on or '-'}")
    st.markdown(
        f"**Analysis**  \n{meta.analysis_started_on or '-'} to {meta.analysis_completed_on or '-'}"
    )
    st.markdown(f"**Discipline / group**  \n{meta.discipline or '-'} / {meta.group or '-'}")

tab_readings, tab_ranges, tab_recs = st.tabs(
    ["Readings", "Parameter Ranges", "Recommendations"]
)

with tab_readings:
    for category in REPORT_CATEGORIES:
        readings = getattr(report.categories, category)
        if not readings:
            continue
        st.subheader(_CATEGORY_TITLES[category])
        df = pd.DataFrame(
            [
                {
                    "S.No.": r.sequence_number,
                    "Parameter": r.parameter_name,
                    "Unit": r.unit,
                    "Result": str(r.result),
                    "Rating": r.rating or "",
                    "Test Method": r.test_method or "",
                }
                for r in readings
            ]
        )
        styled = df.style.map(
            lambda rating: badge_css(badge_color(rating)) if rating else "",
            subset=["Rating"],
        )
        st.dataframe(styled, use_container_width=True, hide_index=True)

with tab_ranges:
    groups = group_scale_views(all_readings(report))
    group_tabs = st.tabs(list(groups))
    for group_tab, views in zip(group_tabs, groups.values()):
        with group_tab:
            if not views:
                st.caption("No parameters in this group.")
                continue
            left, right = st.columns(2)
            for i, view in enumerate(views):
                with left if i % 2 == 0 else right:
                    _render_scale(view)

with tab_recs:
    st.caption(
        "Quantities are computed from this report's readings and the application "
        "rates below. Adjust a rate to match your product or local practice."
    )
    overrides: dict[str, float] = {}
    rate_cols = st.columns(len(RECOMMENDATION_RULES))
    for col, rule in zip(rate_cols, RECOMMENDATION_RULES):
        with col:
            default = config.recommendations.rate_overrides.get(rule.rule_id, rule.default_rate)
            overrides[rule.rule_id] = st.number_input(
                f"{rule.title} ({rule.rule_id})",
                min_value=0.1,
                value=float(default),
                step=5.0,
                help=rule.rate_unit,
                key=f"rate-{rule.rule_id}",
            )

    recommendations = recommend(all_readings(report), overrides)
    if not recommendations:
        st.success("No recommendations for the current soil parameters.")
    for rec in recommendations:
        with st.expander(f"{rec.title}: {rec.value} {rec.unit}", expanded=True):
            st.write(rec.description)
            st.caption(
                f"Recommended application: {rec.value} {rec.unit} "
                f"at {rec.applied_rate:g} {rec.rate_unit}."
            )
