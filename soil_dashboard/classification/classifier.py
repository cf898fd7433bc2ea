"""
Range classification: parameter + value (+ optional pH) → labelled band.

Selection rules
---------------
  1. Look up the parameter's bands by exact (trimmed) name.
     Unknown parameter → ``Rating("Unknown", "gray")``.
  2. If a pH is supplied, derive its ``SoilAcidityClass``. For Available
     Phosphorus only, *neutral* is treated as *alkaline*.
  3. Skip bands whose ``soil_acidity_condition`` is set and differs from the
     current class. Without a pH, every conditioned band is skipped.
  4. The first remaining band containing the value wins.
     No match → ``Rating("Out of range", "gray")``.

Every function here is pure and total: bad input degrades to a sentinel
label, never an exception.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from soil_dashboard.models.reading import ParameterReading, parse_numeric
from soil_dashboard.taxonomy.parameter_ranges import (
    ACIDIC_PH_BELOW,
    ALKALINE_PH_ABOVE,
    PARAMETER_ALIASES,
    PARAMETER_RANGES,
    PH_PARAMETER,
    PHOSPHORUS_PARAMETER,
    RangeBand,
    SoilAcidityClass,
)

UNKNOWN_LABEL = "Unknown"
OUT_OF_RANGE_LABEL = "Out of range"
FALLBACK_COLOR = "gray"

DEFAULT_SCALE_MIN = 0.0
DEFAULT_SCALE_MAX = 100.0


@dataclass(frozen=True)
class Rating:
    """Classification result used for badge rendering."""

    label: str
    color_tag: str


UNKNOWN = Rating(UNKNOWN_LABEL, FALLBACK_COLOR)
OUT_OF_RANGE = Rating(OUT_OF_RANGE_LABEL, FALLBACK_COLOR)


def soil_acidity_class(ph_value: float) -> SoilAcidityClass:
    """Bucket a pH reading: ``< 6.5`` acidic, ``> 7.6`` alkaline, else neutral."""
    if ph_value < ACIDIC_PH_BELOW:
        return SoilAcidityClass.ACIDIC
    if ph_value > ALKALINE_PH_ABOVE:
        return SoilAcidityClass.ALKALINE
    return SoilAcidityClass.NEUTRAL


def _effective_acidity(
    parameter_name: str, ph_value: Optional[float]
) -> Optional[SoilAcidityClass]:
    if ph_value is None:
        return None
    acidity = soil_acidity_class(ph_value)
    if parameter_name == PHOSPHORUS_PARAMETER and acidity is SoilAcidityClass.NEUTRAL:
        return SoilAcidityClass.ALKALINE
    return acidity


def band_for_value(
    parameter_name: str,
    value: Optional[float],
    ph_value: Optional[float] = None,
) -> Optional[RangeBand]:
    """Return the band ``value`` falls in, or ``None``.

    Args:
        parameter_name: Canonical range-table name (surrounding whitespace ignored).
        value:          Numeric reading; ``None`` never matches.
        ph_value:       Soil pH, used to pick pH-conditioned bands.

    Returns:
        The first eligible matching ``RangeBand``, or ``None`` when the
        parameter is unknown or no band contains the value.
    """
    name = parameter_name.strip()
    bands = PARAMETER_RANGES.get(name)
    if not bands:
        return None

    acidity = _effective_acidity(name, ph_value)
    for band in bands:
        if band.soil_acidity_condition is not None and band.soil_acidity_condition != acidity:
            continue
        if band.contains(value):
            return band
    return None


def classify(
    parameter_name: str,
    value: Optional[float],
    ph_value: Optional[float] = None,
) -> Rating:
    """Classify a reading against its reference range.

    Examples::

        classify("pH", 6.4).label                          # "Acidic"
        classify("Available Phosphorus", 120, 6.0).label   # "Medium"
        classify("Available Phosphorus", 120, 8.0).label   # "High"
        classify("Unobtainium", 1.0).label                 # "Unknown"
    """
    if parameter_name.strip() not in PARAMETER_RANGES:
        return UNKNOWN
    band = band_for_value(parameter_name, value, ph_value)
    if band is None:
        return OUT_OF_RANGE
    return Rating(band.label, band.color_tag)


def range_bounds(parameter_name: str) -> tuple[float, float]:
    """Overall ``(min, max)`` across a parameter's band bounds, for scales.

    Open ends contribute nothing; a side with no bound at all falls back to
    0 (min) or 100 (max). Unknown parameters give ``(0, 100)``.
    """
    bands = PARAMETER_RANGES.get(parameter_name.strip(), ())
    lowers = [b.lower_bound for b in bands if b.lower_bound is not None]
    uppers = [b.upper_bound for b in bands if b.upper_bound is not None]
    low = min(lowers) if lowers else DEFAULT_SCALE_MIN
    high = max(uppers) if uppers else DEFAULT_SCALE_MAX
    return low, high


def visible_bands(
    parameter_name: str, ph_value: Optional[float] = None
) -> tuple[RangeBand, ...]:
    """Bands a range scale should draw for this parameter.

    Phosphorus with a known pH shows the scale for its (remapped) acidity
    class; everything else shows its unconditioned bands.
    """
    name = parameter_name.strip()
    bands = PARAMETER_RANGES.get(name, ())
    if name == PHOSPHORUS_PARAMETER and ph_value is not None:
        acidity = _effective_acidity(name, ph_value)
        return tuple(b for b in bands if b.soil_acidity_condition == acidity)
    return tuple(b for b in bands if b.soil_acidity_condition is None)


def canonical_parameter_name(sheet_name: str) -> str:
    """Map a lab-sheet parameter label to its range-table name.

    Unmapped labels pass through (trimmed), so a sheet that already uses the
    canonical names classifies without an alias entry.
    """
    name = sheet_name.strip()
    return PARAMETER_ALIASES.get(name, name)


def has_reference_range(sheet_name: str) -> bool:
    """True if the (aliased) parameter has bands to classify against."""
    return canonical_parameter_name(sheet_name) in PARAMETER_RANGES


def ph_from_readings(readings: list[ParameterReading]) -> Optional[float]:
    """Numeric pH of a reading set, or ``None`` if absent or non-numeric."""
    for reading in readings:
        if canonical_parameter_name(reading.parameter_name) == PH_PARAMETER:
            return reading.numeric_result
    return None


def rate_reading(
    reading: ParameterReading, ph_value: Optional[float] = None
) -> Rating:
    """Classify a sheet reading through the alias map."""
    return classify(
        canonical_parameter_name(reading.parameter_name),
        parse_numeric(reading.result),
        ph_value,
    )
