"""
Repository for stored soil reports.

Reports are written once and never updated: ``save_report()`` on an id that
already exists leaves the stored document untouched and returns the id.
Each row keeps the report's header and categories as JSON documents
(``model_dump(mode="json")``) and reads them back with ``model_validate``.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from typing import Optional

from soil_dashboard.db.repositories.base import BaseRepository
from soil_dashboard.models.report import (
    Report,
    ReportCategories,
    ReportMetadata,
    ReportSummary,
)

logger = logging.getLogger(__name__)


class ReportRepository(BaseRepository):
    """Read/write access to ``soil_reports``."""

    def exists(self, report_id: str) -> bool:
        row = self.fetchone(
            "SELECT 1 FROM soil_reports WHERE report_id = ?;", (report_id,)
        )
        return row is not None

    def save_report(self, report: Report, source_file: Optional[str] = None) -> str:
        """Insert ``report`` unless a report with the same id is stored.

        Args:
            report:      The assembled report.
            source_file: Workbook the report was imported from, if any.

        Returns:
            The report id (stored or pre-existing).
        """
        cursor = self.execute(
            """
            INSERT INTO soil_reports (
                report_id, report_number, lab_id,
                metadata_json, categories_json, source_file, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(report_id) DO NOTHING;
            """,
            (
                report.report_id,
                report.metadata.report_number,
                report.metadata.lab_id,
                json.dumps(report.metadata.model_dump(mode="json")),
                json.dumps(report.categories.model_dump(mode="json")),
                source_file,
                report.created_at.isoformat(),
            ),
        )
        if cursor.rowcount == 0:
            logger.info("Report %s already stored; keeping existing copy.", report.report_id)
        else:
            logger.info("Stored report %s", report.report_id)
        return report.report_id

    def load_report(self, report_id: str) -> Optional[Report]:
        """Fetch a full report by id, or ``None`` if unknown."""
        row = self.fetchone(
            "SELECT * FROM soil_reports WHERE report_id = ?;", (report_id,)
        )
        return _row_to_report(row) if row else None

    def list_reports(self, lab_id: Optional[str] = None) -> list[ReportSummary]:
        """Every stored report's id and header, newest first.

        Args:
            lab_id: If provided, only reports from this lab id.
        """
        if lab_id:
            rows = self.fetchall(
                """
                SELECT report_id, metadata_json, created_at FROM soil_reports
                WHERE lab_id = ?
                ORDER BY created_at DESC, report_id;
                """,
                (lab_id,),
            )
        else:
            rows = self.fetchall(
                """
                SELECT report_id, metadata_json, created_at FROM soil_reports
                ORDER BY created_at DESC, report_id;
                """
            )
        return [_row_to_summary(r) for r in rows]

    def count(self) -> int:
        row = self.fetchone("SELECT COUNT(*) AS n FROM soil_reports;")
        return int(row["n"]) if row else 0

    def source_file(self, report_id: str) -> Optional[str]:
        """Workbook path recorded when the report was imported."""
        row = self.fetchone(
            "SELECT source_file FROM soil_reports WHERE report_id = ?;", (report_id,)
        )
        return row["source_file"] if row else None


# ── Private helpers ────────────────────────────────────────────────────────────

def _row_to_summary(row: sqlite3.Row) -> ReportSummary:
    return ReportSummary(
        report_id=row["report_id"],
        metadata=ReportMetadata.model_validate(json.loads(row["metadata_json"])),
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def _row_to_report(row: sqlite3.Row) -> Report:
    return Report(
        report_id=row["report_id"],
        metadata=ReportMetadata.model_validate(json.loads(row["metadata_json"])),
        categories=ReportCategories.model_validate(json.loads(row["categories_json"])),
        created_at=datetime.fromisoformat(row["created_at"]),
    )
