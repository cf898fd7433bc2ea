"""
Ingest stage: lab workbook → stored ``Report``.

Steps:
  1. Read the report sheet with openpyxl (``read_sheet``).
  2. Extract the header block and results table (``extract_readings``).
  3. Check the header carries a report number and lab id.
  4. Rate and group the readings (``assemble_report``).
  5. Store the report unless one with the same id exists already.

Re-importing a workbook whose report is stored finishes with
``status="skipped"``; the stored document is never replaced.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from soil_dashboard.config import AppConfig
from soil_dashboard.db.connection import get_connection
from soil_dashboard.db.repositories.report_repo import ReportRepository
from soil_dashboard.db.schema import apply_schema
from soil_dashboard.ingestion.spreadsheet import (
    extract_readings,
    read_sheet,
    validate_metadata,
)
from soil_dashboard.models.meta import RunMetadata
from soil_dashboard.models.report import Report
from soil_dashboard.pipeline.base import PipelineStage
from soil_dashboard.reports.assembly import assemble_report

logger = logging.getLogger(__name__)


class IngestReportStage(PipelineStage):
    """Import one lab soil-test workbook into the report store.

    After ``run()``, ``self.report`` holds the assembled report (also on
    dry runs and skipped imports).
    """

    stage_name = "ingest"

    def __init__(self, config: AppConfig, db_path: str | None = None) -> None:
        super().__init__(config, db_path)
        self.report: Optional[Report] = None

    def _execute(
        self,
        run: RunMetadata,
        source_path: str | Path,
        sheet_index: Optional[int] = None,
        dry_run: bool = False,
        **kwargs,
    ) -> int:
        """Import the workbook at ``source_path``.

        Args:
            run:         In-progress run record.
            source_path: Path to the ``.xlsx`` workbook.
            sheet_index: Override for ``config.ingestion.sheet_index``.
            dry_run:     Extract and assemble, but do not store.

        Returns:
            Number of readings extracted.
        """
        path = Path(source_path)
        run.source_file = str(path)
        if sheet_index is None:
            sheet_index = self.config.ingestion.sheet_index

        sheet = read_sheet(path, sheet_index=sheet_index)
        metadata, readings = extract_readings(sheet, self.config.ingestion)
        validate_metadata(metadata)

        report = assemble_report(metadata, readings)
        self.report = report
        run.report_id = report.report_id

        if dry_run:
            logger.info(
                "Dry run: report %s extracted from %s, not stored.",
                report.report_id, path.name,
            )
            return len(readings)

        with get_connection(
            self.db_path,
            wal_mode=self.config.database.wal_mode,
            busy_timeout_ms=self.config.database.busy_timeout_ms,
        ) as conn:
            apply_schema(conn)
            repo = ReportRepository(conn)
            if repo.exists(report.report_id):
                run.status = "skipped"
                logger.info(
                    "Report %s already stored; %s not re-imported.",
                    report.report_id, path.name,
                )
            else:
                repo.save_report(report, source_file=path.name)

        return len(readings)
