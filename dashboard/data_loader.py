"""
Dashboard data loader.

Read functions are decorated with ``@st.cache_data`` so Streamlit only
re-queries SQLite when the cache is cleared (after an upload, or from the
sidebar button), not on every widget interaction.

Functions return empty results (rather than raising) when the database
does not exist yet or has no tables, so every view can show a graceful "no reports" message.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import streamlit as st

from soil_dashboard.config import AppConfig
from soil_dashboard.db.connection import get_connection
from soil_dashboard.db.repositories.report_repo import ReportRepository
from soil_dashboard.db.repositories.run_repo import RunMetadataRepository
from soil_dashboard.db.schema import is_initialized
from soil_dashboard.models.meta import RunMetadata
from soil_dashboard.models.report import Report, ReportSummary
from soil_dashboard.pipeline.ingest import IngestReportStage

logger = logging.getLogger(__name__)


@st.cache_data(ttl=300)
def load_report_summaries(db_path: str) -> list[ReportSummary]:
    """Every stored report's id and header, newest first."""
    if not Path(db_path).exists():
        return []
    with get_connection(db_path) as conn:
        if not is_initialized(conn):
            return []
        return ReportRepository(conn).list_reports()


@st.cache_data(ttl=300)
def load_report(db_path: str, report_id: str) -> Optional[Report]:
    """One stored report, or ``None``."""
    if not Path(db_path).exists():
        return None
    with get_connection(db_path) as conn:
        if not is_initialized(conn):
            return None
        return ReportRepository(conn).load_report(report_id)


@st.cache_data(ttl=300)
def load_recent_runs(db_path: str, limit: int = 5) -> list[RunMetadata]:
    """The latest import runs, newest first."""
    if not Path(db_path).exists():
        return []
    with get_connection(db_path) as conn:
        if not is_initialized(conn):
            return []
        return RunMetadataRepository(conn).get_recent_runs(limit=limit)


def save_upload(upload_dir: str, filename: str, data: bytes) -> Path:
    """Write an uploaded workbook into ``upload_dir`` and return its path."""
    target_dir = Path(upload_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    target = target_dir / Path(filename).name
    target.write_bytes(data)
    logger.info("Saved upload %s (%d bytes)", target, len(data))
    return target


def import_workbook(
    config: AppConfig, filename: str, data: bytes
) -> tuple[RunMetadata, Optional[Report]]:
    """Save an uploaded workbook and ingest it into the report store.

    Clears cached reads so the selector picks up the new report.

    Raises:
        SpreadsheetFormatError: If the workbook is not a lab report.
    """
    path = save_upload(config.dashboard.upload_dir, filename, data)
    stage = IngestReportStage(config=config)
    run = stage.run(source_path=path)
    st.cache_data.clear()
    return run, stage.report
