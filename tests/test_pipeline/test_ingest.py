"""
Tests for the pipeline base class and IngestReportStage.

What we test
------------
- PipelineStage is abstract; run() records success / failure / skip.
- A workbook import stores the report and an audit row.
- Re-importing the same report is skipped and keeps the stored copy.
- Dry runs assemble the report without creating the database file.
- Bad workbooks fail the run, re-raise, and still leave a failed audit row
  in a fresh database.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from openpyxl import Workbook

from soil_dashboard.db.connection import get_connection
from soil_dashboard.db.repositories.report_repo import ReportRepository
from soil_dashboard.db.repositories.run_repo import RunMetadataRepository
from soil_dashboard.db.schema import is_initialized
from soil_dashboard.ingestion.spreadsheet import SpreadsheetFormatError
from soil_dashboard.pipeline.base import PipelineStage
from soil_dashboard.pipeline.ingest import IngestReportStage


def _write_workbook(path, cells: dict) -> None:
    wb = Workbook()
    sheet = wb.create_sheet("Report")
    for coordinate, value in cells.items():
        sheet[coordinate] = value
    wb.save(path)


@pytest.fixture
def workbook_path(tmp_path, sample_raw_sheet):
    path = tmp_path / "SR-1042.xlsx"
    _write_workbook(path, sample_raw_sheet)
    return path


class TestPipelineStageABC:
    def test_cannot_instantiate_base_directly(self):
        with pytest.raises(TypeError):
            PipelineStage(config=None)  # type: ignore[abstract]

    def test_run_records_failure_and_reraises(self, app_config):
        class Exploding(PipelineStage):
            stage_name = "ingest"

            def _execute(self, run, **kwargs) -> int:
                raise ValueError("bad input")

        stage = Exploding(config=app_config)
        with pytest.raises(ValueError, match="bad input"):
            stage.run()

        with get_connection(app_config.database.db_path) as conn:
            runs = RunMetadataRepository(conn).get_recent_runs()
        assert runs[0].status == "failed"
        assert runs[0].error_message == "bad input"


class TestIngestReportStage:
    def test_import_stores_report(self, app_config, workbook_path):
        stage = IngestReportStage(config=app_config)
        run = stage.run(source_path=workbook_path)

        assert run.status == "success"
        assert run.rows_processed == 5
        assert run.report_id == "SR-1042-LAB7"
        assert run.run_id is not None

        with get_connection(app_config.database.db_path) as conn:
            repo = ReportRepository(conn)
            report = repo.load_report("SR-1042-LAB7")
            assert repo.source_file("SR-1042-LAB7") == "SR-1042.xlsx"
            stored_run = RunMetadataRepository(conn).get_run_by_slug(run.run_slug)

        assert report is not None
        assert report.categories.count() == 5
        ratings = {r.parameter_name: r.rating for r in report.categories.all_readings()}
        assert ratings["pH"] == "Acidic"
        assert ratings["Available Phosphorus"] == "Low"
        assert ratings["Mg Saturation"] is None
        assert stored_run.source_file == str(workbook_path)

    def test_reimport_is_skipped(self, app_config, workbook_path):
        IngestReportStage(config=app_config).run(source_path=workbook_path)
        run = IngestReportStage(config=app_config).run(source_path=workbook_path)

        assert run.status == "skipped"
        with get_connection(app_config.database.db_path) as conn:
            assert ReportRepository(conn).count() == 1

    def test_dry_run_does_not_store(self, app_config, workbook_path):
        stage = IngestReportStage(config=app_config)
        run = stage.run(source_path=workbook_path, dry_run=True)

        assert run.status == "success"
        assert stage.report is not None
        assert stage.report.report_id == "SR-1042-LAB7"
        assert not Path(app_config.database.db_path).exists()

    def test_missing_identity_fails(self, app_config, tmp_path):
        path = tmp_path / "blank.xlsx"
        _write_workbook(path, {"A23": 1, "B23": "pH", "E23": 6.5})
        with pytest.raises(SpreadsheetFormatError):
            IngestReportStage(config=app_config).run(source_path=path)

        with get_connection(app_config.database.db_path) as conn:
            assert is_initialized(conn)
            runs = RunMetadataRepository(conn).get_recent_runs()
            assert ReportRepository(conn).count() == 0
        assert runs[0].status == "failed"
        assert runs[0].source_file == str(path)

    def test_missing_file_fails(self, app_config, tmp_path):
        with pytest.raises(FileNotFoundError):
            IngestReportStage(config=app_config).run(source_path=tmp_path / "nope.xlsx")
