"""
Shared pytest fixtures for the soil dashboard test suite.

Provides:
  - ``in_memory_db``: A fresh in-memory SQLite connection with the schema
    applied. Created anew for each test that requests it.
  - ``app_config``: An ``AppConfig`` pointing at a per-test database file.
  - Sample domain objects (readings, metadata, report, raw sheet) shared by
    several test modules.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Any, Generator

import pytest

from soil_dashboard.config import AppConfig, DashboardConfig, DatabaseConfig
from soil_dashboard.db.schema import apply_schema
from soil_dashboard.models.reading import ParameterReading
from soil_dashboard.models.report import Report, ReportMetadata
from soil_dashboard.reports.assembly import assemble_report


# ── Database fixture ──────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Yield a fresh in-memory SQLite connection with the full schema applied."""
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    apply_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    """Default config with the database and uploads under ``tmp_path``."""
    return AppConfig(
        database=DatabaseConfig(db_path=str(tmp_path / "db" / "soil.db")),
        dashboard=DashboardConfig(upload_dir=str(tmp_path / "uploads")),
    )


# ── Sample domain objects ─────────────────────────────────────────────────────

def _reading(
    sno: int,
    name: str,
    result: float | str,
    unit: str = "",
    rating: str | None = None,
) -> ParameterReading:
    return ParameterReading(
        sequence_number=sno,
        parameter_name=name,
        unit=unit,
        result=result,
        test_method="IS 14767" if sno == 1 else None,
        rating=rating,
    )


@pytest.fixture
def acidic_readings() -> list[ParameterReading]:
    """An acidic, calcium-poor soil as printed on the lab template (pH first)."""
    return [
        _reading(1, "pH", 6.0, "-"),
        _reading(2, "EC", 0.45, "dS/m"),
        _reading(3, "Organic Carbon", 1.2, "%"),
        _reading(4, "Available Nitrogen", 35.0, "ppm"),
        _reading(5, "Available Phosphorus", 12.0, "ppm"),
        _reading(6, "Available Potassium", 180.0, "ppm"),
        _reading(7, "Available Calcium", 1400.0, "ppm"),
        _reading(8, "Available Magnesium", 500.0, "ppm"),
        _reading(10, "Available Sulphur", 25.0, "ppm"),
        _reading(11, "Available Zinc", 2.2, "ppm"),
        _reading(14, "Available Copper", 3.2, "ppm"),
        _reading(17, "K Saturation", 4.0, "%"),
        _reading(18, "Ca Saturation", 60.0, "%"),
        _reading(19, "Mg Saturation", 27.0, "%"),
        _reading(20, "Na Saturation", 1.5, "%"),
    ]


@pytest.fixture
def sample_metadata() -> ReportMetadata:
    return ReportMetadata(
        issued_to="Green Acres Farm\nPlot 7, Nashik",
        sample_description="Topsoil 0-15 cm",
        report_number="SR-1042",
        report_date="2024-03-18",
        lab_id="LAB7",
        unique_lab_report_no="ULR-2024-0042",
        sample_received_on="2024-03-02",
        analysis_started_on="2024-03-04",
        analysis_completed_on="2024-03-12",
        sample_id="S-88",
        discipline="Chemical",
        group="Soil",
        sample_drawn_by="Customer",
    )


@pytest.fixture
def sample_report(sample_metadata, acidic_readings) -> Report:
    return assemble_report(
        sample_metadata,
        acidic_readings,
        created_at=datetime(2024, 3, 20, 9, 30, tzinfo=timezone.utc),
    )


@pytest.fixture
def sample_raw_sheet() -> dict[str, Any]:
    """Cell map of a lab report sheet, as ``read_sheet()`` would return it."""
    return {
        "A1": "SOIL TESTING LABORATORY",
        "A11": "Green Acres Farm",
        "A12": "Plot 7, Nashik",
        "D11": "Topsoil",
        "D12": "0-15 cm",
        "F13": "Customer",
        "C15": "SR-1042",
        "F15": datetime(2024, 3, 2),
        "C16": datetime(2024, 3, 18),
        "F16": datetime(2024, 3, 4),
        "B17": "ULR-2024-0042",
        "F17": datetime(2024, 3, 12),
        "C18": "LAB7",
        "F18": "S-88",
        "B19": "Chemical",
        "F19": "Soil",
        # results table header and rows
        "A22": "S.No.", "B22": "Parameter", "D22": "Unit", "E22": "Result", "F22": "Method",
        "A23": 1, "B23": "pH ", "D23": "-", "E23": 6.0, "F23": "IS 14767",
        "A24": 2, "B24": "EC", "D24": "dS/m", "E24": "0.45",
        "A25": "Available Nutrients",
        "A26": 5, "B26": "Available Phosphorus", "D26": "ppm", "E26": 12,
        "A27": 9, "B27": "Sodium Exchangeable Na", "D27": "ppm", "E27": 80,
        "A28": 16, "B28": "Cation Exchange Capacity (by addition)", "E28": 12.5,
        "A29": 18, "B29": "Ca Saturation", "D29": "%", "E29": 60,
        "A30": 19, "B30": "Mg Saturation", "D30": "%", "E30": "ND",
        "A43": 20, "B43": "Na Saturation", "E43": 1.5,
    }
