"""
Spreadsheet extraction for the lab's soil-test report template.

The lab ships one workbook per report; the report itself lives on the second
sheet (index 1). ``read_sheet()`` loads that sheet into a plain mapping of
A1-style coordinates to cell values, and the ``extract_*`` functions read
fixed cells from that mapping. Keeping the mapping as the seam means the
extraction rules are testable with a dict literal, no workbook required.

Header cells
------------
    issued_to              A11 + newline + A12
    sample_description     D11 + " " + D12
    report_number          C15        report_date           C16
    lab_id                 C18        unique_lab_report_no  B17
    sample_received_on     F15        analysis_started_on   F16
    analysis_completed_on  F17        sample_id             F18
    discipline             B19        group                 F19
    sample_drawn_by        F13

Results table (rows 23–42 by default)
-------------------------------------
    A = S.No.   B = parameter   D = unit   E = result   F = test method

Rows without a numeric S.No. are layout rows (section headings, blanks) and
are skipped, as are the parameters listed in
``IngestionConfig.skipped_parameters``.
"""

from __future__ import annotations

import logging
import zipfile
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Optional, Union

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from soil_dashboard.config import IngestionConfig
from soil_dashboard.models.reading import ParameterReading, parse_numeric
from soil_dashboard.models.report import ReportMetadata
from soil_dashboard.utils.time_utils import format_cell_value

logger = logging.getLogger(__name__)

RawSheet = Mapping[str, Any]

_METADATA_CELLS: dict[str, str] = {
    "report_number": "C15",
    "report_date": "C16",
    "lab_id": "C18",
    "unique_lab_report_no": "B17",
    "sample_received_on": "F15",
    "analysis_started_on": "F16",
    "analysis_completed_on": "F17",
    "sample_id": "F18",
    "discipline": "B19",
    "group": "F19",
    "sample_drawn_by": "F13",
}


class SpreadsheetFormatError(ValueError):
    """The workbook does not look like a lab soil-test report."""


# ── Workbook loading ──────────────────────────────────────────────────────────


def read_sheet(path: Union[str, Path], sheet_index: int = 1) -> dict[str, Any]:
    """Load one worksheet as ``{"A1": value, ...}`` (non-empty cells only).

    Formula cells yield their cached values, as saved by the spreadsheet
    application.

    Args:
        path:        Path to an ``.xlsx`` workbook.
        sheet_index: Zero-based worksheet index.

    Returns:
        Mapping of cell coordinate to value.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        SpreadsheetFormatError: If the file is not a readable workbook or has
            no sheet at ``sheet_index``.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Workbook not found: {path}")

    try:
        workbook = load_workbook(path, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise SpreadsheetFormatError(f"Cannot read workbook {path.name}: {exc}") from exc

    try:
        sheets = workbook.worksheets
        if not 0 <= sheet_index < len(sheets):
            raise SpreadsheetFormatError(
                f"{path.name} has {len(sheets)} sheet(s); "
                f"expected the report on sheet index {sheet_index}."
            )
        cells = sheet_to_cells(sheets[sheet_index].iter_rows())
    finally:
        workbook.close()

    logger.info(
        "Read %d non-empty cells from %s (sheet %d)", len(cells), path.name, sheet_index
    )
    return cells


def sheet_to_cells(rows: Iterable[Iterable[Any]]) -> dict[str, Any]:
    """Flatten openpyxl cell rows into a coordinate → value mapping."""
    cells: dict[str, Any] = {}
    for row in rows:
        for cell in row:
            if cell.value is not None:
                cells[cell.coordinate] = cell.value
    return cells


# ── Extraction ────────────────────────────────────────────────────────────────


def _text(sheet: RawSheet, coordinate: str) -> str:
    return format_cell_value(sheet.get(coordinate))


def extract_metadata(sheet: RawSheet) -> ReportMetadata:
    """Read the report header block; missing cells become ``""``."""
    issued_to = "\n".join(
        part for part in (_text(sheet, "A11"), _text(sheet, "A12")) if part
    )
    sample_description = f"{_text(sheet, 'D11')} {_text(sheet, 'D12')}".strip()

    fields = {name: _text(sheet, coord) for name, coord in _METADATA_CELLS.items()}
    return ReportMetadata(
        issued_to=issued_to,
        sample_description=sample_description,
        **fields,
    )


def _result_value(raw: Any) -> Union[float, str]:
    if raw is None:
        return ""
    if isinstance(raw, bool):
        return str(raw)
    if isinstance(raw, (int, float)):
        return float(raw)
    return format_cell_value(raw)


def _sequence_number(raw: Any) -> Optional[int]:
    """Whole-number S.No. of a results row, or ``None`` for layout rows.

    Categorisation and display order key on the integer serial, so a
    fractional value such as ``5.5`` marks a sub-heading or note row and
    is not read as a parameter.
    """
    number = parse_numeric(raw)
    if number is None:
        return None
    if not number.is_integer():
        logger.debug("Fractional S.No. %r treated as a layout row", raw)
        return None
    return int(number)


def extract_parameter_rows(
    sheet: RawSheet,
    config: Optional[IngestionConfig] = None,
) -> list[ParameterReading]:
    """Read the results table into ``ParameterReading`` objects, in row order.

    Args:
        sheet:  Coordinate → value mapping from ``read_sheet()``.
        config: Row window and skip list; defaults to ``IngestionConfig()``.

    Returns:
        Unrated readings.
    """
    config = config or IngestionConfig()
    skipped = {name.strip() for name in config.skipped_parameters}

    readings: list[ParameterReading] = []
    for row in range(config.first_row, config.last_row + 1):
        sno = _sequence_number(sheet.get(f"A{row}"))
        if sno is None:
            continue

        name = _text(sheet, f"B{row}")
        if not name:
            logger.debug("Row %d has S.No. %d but no parameter name; skipping", row, sno)
            continue
        if name in skipped:
            logger.debug("Skipping excluded parameter %r (row %d)", name, row)
            continue

        readings.append(
            ParameterReading(
                sequence_number=sno,
                parameter_name=name,
                unit=_text(sheet, f"D{row}"),
                result=_result_value(sheet.get(f"E{row}")),
                test_method=_text(sheet, f"F{row}") or None,
            )
        )
    return readings


def extract_readings(
    sheet: RawSheet,
    config: Optional[IngestionConfig] = None,
) -> tuple[ReportMetadata, list[ParameterReading]]:
    """Extract the header block and results table from one report sheet."""
    metadata = extract_metadata(sheet)
    readings = extract_parameter_rows(sheet, config)
    logger.info(
        "Extracted report %s with %d readings", metadata.report_id, len(readings)
    )
    return metadata, readings


def validate_metadata(metadata: ReportMetadata) -> None:
    """Ensure the header carries the fields that make up the report id.

    Raises:
        SpreadsheetFormatError: If the report number or lab id is empty.
    """
    missing = [
        label
        for label, value in (
            ("report number (C15)", metadata.report_number),
            ("lab id (C18)", metadata.lab_id),
        )
        if not value
    ]
    if missing:
        raise SpreadsheetFormatError(
            f"Report sheet is missing {' and '.join(missing)}; cannot identify the report."
        )
