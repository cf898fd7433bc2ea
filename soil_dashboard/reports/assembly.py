"""
Report assembly: extracted metadata + readings → persisted ``Report`` shape.

Every reading is rated against its reference range before storage, using the
report's own pH as context so pH-conditioned parameters (Available
Phosphorus) pick the right scale. Readings are then bucketed by the lab's
serial number:

    S.No. 17–20        → saturation
    S.No. 5, 10–15     → available
    S.No. 6–8          → exchangeable
    anything else      → misc
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Optional

from soil_dashboard.classification.classifier import ph_from_readings, rate_reading
from soil_dashboard.models.reading import ParameterReading
from soil_dashboard.models.report import (
    Report,
    ReportCategories,
    ReportCategory,
    ReportMetadata,
)
from soil_dashboard.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


def categorize_reading(sequence_number: int) -> ReportCategory:
    """Report section for a lab serial number."""
    if 17 <= sequence_number <= 20:
        return "saturation"
    if sequence_number == 5 or 10 <= sequence_number <= 15:
        return "available"
    if 6 <= sequence_number <= 8:
        return "exchangeable"
    return "misc"


def rate_readings(
    readings: Sequence[ParameterReading],
    ph_value: Optional[float] = None,
) -> list[ParameterReading]:
    """Return copies of ``readings`` with ``rating`` filled in.

    Readings whose result is not numeric keep ``rating=None``: there is
    nothing to place on a scale.

    Args:
        readings: Extracted readings.
        ph_value: pH context; defaults to the pH found among ``readings``.
    """
    if ph_value is None:
        ph_value = ph_from_readings(list(readings))

    rated: list[ParameterReading] = []
    for reading in readings:
        rating = None
        if reading.numeric_result is not None:
            rating = rate_reading(reading, ph_value).label
        rated.append(reading.model_copy(update={"rating": rating}))
    return rated


def group_readings(readings: Sequence[ParameterReading]) -> ReportCategories:
    """Bucket readings into report sections, preserving input order."""
    buckets: dict[ReportCategory, list[ParameterReading]] = {
        "available": [], "exchangeable": [], "misc": [], "saturation": [],
    }
    for reading in readings:
        buckets[categorize_reading(reading.sequence_number)].append(reading)
    return ReportCategories(**buckets)


def assemble_report(
    metadata: ReportMetadata,
    readings: Sequence[ParameterReading],
    created_at: Optional[datetime] = None,
) -> Report:
    """Build the persisted report document.

    Args:
        metadata:   Header block extracted from the sheet.
        readings:   Extracted (unrated) readings.
        created_at: Storage timestamp; defaults to now (UTC).

    Returns:
        A frozen ``Report`` keyed by ``"<report_number>-<lab_id>"``.
    """
    categories = group_readings(rate_readings(readings))
    report = Report(
        report_id=metadata.report_id,
        metadata=metadata,
        categories=categories,
        created_at=created_at or utcnow(),
    )
    logger.debug(
        "Assembled report %s: %d readings (%d available, %d exchangeable, "
        "%d saturation, %d misc)",
        report.report_id,
        categories.count(),
        len(categories.available),
        len(categories.exchangeable),
        len(categories.saturation),
        len(categories.misc),
    )
    return report


def all_readings(report: Report) -> list[ParameterReading]:
    """Flattened readings of a report, ordered by serial number."""
    return report.categories.all_readings()


def report_ph(report: Report) -> Optional[float]:
    """Numeric pH of a stored report, if it has one."""
    return ph_from_readings(all_readings(report))
