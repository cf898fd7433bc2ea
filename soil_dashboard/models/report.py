"""
Soil report models.

``ReportMetadata`` holds the lab sheet's header block (who the report was
issued to, report/lab numbers, sampling and analysis dates).

``ReportCategories`` groups readings into the four sections the lab prints:
available nutrients, exchangeable cations, saturation percentages, and
everything else (pH, EC, organic carbon, ...).

``Report`` is the persisted document. Its identity is
``"<report_number>-<lab_id>"``: deterministic, so re-importing the same lab
report resolves to the same document instead of creating a duplicate.
Reports are frozen: there is no update path.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from soil_dashboard.models.reading import ParameterReading

ReportCategory = Literal["available", "exchangeable", "misc", "saturation"]
REPORT_CATEGORIES: tuple[ReportCategory, ...] = (
    "misc", "available", "exchangeable", "saturation",
)


def build_report_id(report_number: str, lab_id: str) -> str:
    """Return the natural key of a report: ``"<report_number>-<lab_id>"``."""
    return f"{report_number}-{lab_id}"


class ReportMetadata(BaseModel):
    """Header fields of a lab soil-test report.

    All fields are kept as display strings; dates are whatever the lab
    printed (ISO-formatted when the sheet stored a real date).
    """

    model_config = ConfigDict(frozen=True)

    issued_to: str = ""
    sample_description: str = ""
    report_number: str = ""
    report_date: str = ""
    lab_id: str = ""
    unique_lab_report_no: str = ""
    sample_received_on: str = ""
    analysis_started_on: str = ""
    analysis_completed_on: str = ""
    sample_id: str = ""
    discipline: str = ""
    group: str = ""
    sample_drawn_by: str = ""

    @property
    def report_id(self) -> str:
        return build_report_id(self.report_number, self.lab_id)


class ReportCategories(BaseModel):
    """Readings bucketed by report section, each in sheet order."""

    model_config = ConfigDict(frozen=True)

    available: list[ParameterReading] = Field(default_factory=list)
    exchangeable: list[ParameterReading] = Field(default_factory=list)
    misc: list[ParameterReading] = Field(default_factory=list)
    saturation: list[ParameterReading] = Field(default_factory=list)

    def all_readings(self) -> list[ParameterReading]:
        """Every reading across categories, ordered by sequence number."""
        readings = [r for name in REPORT_CATEGORIES for r in getattr(self, name)]
        return sorted(readings, key=lambda r: r.sequence_number)

    def count(self) -> int:
        return sum(len(getattr(self, name)) for name in REPORT_CATEGORIES)


class Report(BaseModel):
    """A persisted soil-test report.

    Attributes:
        report_id:  ``"<report_number>-<lab_id>"``; must match ``metadata``.
        metadata:   Header block.
        categories: Rated readings grouped by section.
        created_at: UTC time the report was first stored.
    """

    model_config = ConfigDict(frozen=True)

    report_id: str
    metadata: ReportMetadata
    categories: ReportCategories = Field(default_factory=ReportCategories)
    created_at: datetime

    @model_validator(mode="after")
    def validate_identity(self) -> "Report":
        expected = self.metadata.report_id
        if self.report_id != expected:
            raise ValueError(
                f"report_id '{self.report_id}' does not match metadata "
                f"(expected '{expected}')."
            )
        return self


class ReportSummary(BaseModel):
    """Listing shape for the report selector: identity and header only."""

    model_config = ConfigDict(frozen=True)

    report_id: str
    metadata: ReportMetadata
    created_at: datetime
