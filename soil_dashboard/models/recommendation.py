"""
Fertilizer recommendation output model.

A ``Recommendation`` is produced fresh every time a report is viewed; it is
never persisted, because it depends on the application rates the viewer
chooses as much as on the report itself.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator


class Recommendation(BaseModel):
    """One triggered recommendation rule with its computed quantity.

    Attributes:
        rule_id:      Stable rule identifier, e.g. ``"lime-application"``.
        title:        Display title.
        description:  What to apply and why.
        value:        Rounded quantity to apply; always > 0.
        unit:         Unit of ``value``, e.g. ``"kg/ac"``.
        rate_unit:    Unit of ``applied_rate``.
        applied_rate: The rate used for this calculation (override or default).
    """

    model_config = ConfigDict(frozen=True)

    rule_id: str
    title: str
    description: str
    value: int
    unit: str
    rate_unit: str
    applied_rate: float

    @field_validator("value")
    @classmethod
    def validate_value(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"Recommendation value must be positive, got {v}.")
        return v
