"""
Reference ranges for soil-test parameters.

Each canonical parameter name maps to an **ordered** tuple of ``RangeBand``
objects. Bands are half-open intervals: a value belongs to a band when
``value >= lower_bound`` and ``value < upper_bound``; a missing bound leaves
that side open. The first matching band wins, so order is the tie-break if a
table is ever misconfigured with overlapping bands.

Available Phosphorus is the only pH-conditioned parameter: it carries one set
of bands for acidic soils and another for alkaline soils, selected through
``SoilAcidityClass``.

Lab sheets label parameters differently from this table (``"EC"`` rather
than ``"Electrical Conductivity"``); ``PARAMETER_ALIASES`` bridges the two.

This module has NO imports from any other ``soil_dashboard`` package.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import Mapping, Optional


class SoilAcidityClass(StrEnum):
    """Soil reaction bucket derived from a pH reading."""

    ACIDIC = "acidic"
    NEUTRAL = "neutral"
    ALKALINE = "alkaline"


# pH < ACIDIC_PH_BELOW → acidic; pH > ALKALINE_PH_ABOVE → alkaline.
ACIDIC_PH_BELOW = 6.5
ALKALINE_PH_ABOVE = 7.6

PH_PARAMETER = "pH"
PHOSPHORUS_PARAMETER = "Available Phosphorus"


@dataclass(frozen=True)
class RangeBand:
    """One labelled interval of a parameter's reference scale.

    Attributes:
        label:                  Display label, e.g. ``"Ideal"``.
        color_tag:              Badge colour, e.g. ``"green"``.
        lower_bound:            Inclusive lower bound; ``None`` = unbounded.
        upper_bound:            Exclusive upper bound; ``None`` = unbounded.
        soil_acidity_condition: Only eligible for this acidity class when set.
    """

    label: str
    color_tag: str
    lower_bound: Optional[float] = None
    upper_bound: Optional[float] = None
    soil_acidity_condition: Optional[SoilAcidityClass] = None

    def contains(self, value: Optional[float]) -> bool:
        """Half-open membership test. ``None`` and NaN are never contained."""
        if value is None or math.isnan(value):
            return False
        if self.lower_bound is not None and value < self.lower_bound:
            return False
        if self.upper_bound is not None and value >= self.upper_bound:
            return False
        return True

    def describe(self) -> str:
        """Human-readable bound text, e.g. ``"1.0 - 2.0"``, ``"< 6.5"``, ``">= 7.6"``."""
        if self.lower_bound is not None and self.upper_bound is not None:
            return f"{self.lower_bound:g} - {self.upper_bound:g}"
        if self.lower_bound is not None:
            return f">= {self.lower_bound:g}"
        if self.upper_bound is not None:
            return f"< {self.upper_bound:g}"
        return "any"


def _scale(
    bounds: tuple[float, ...],
    labels: tuple[str, ...],
    colors: tuple[str, ...],
    condition: Optional[SoilAcidityClass] = None,
) -> tuple[RangeBand, ...]:
    """Build a contiguous scale from interior cut points.

    ``bounds`` holds the ``len(labels) - 1`` cut points; the first band is
    open below and the last open above, so the scale covers the whole line.
    """
    if len(bounds) != len(labels) - 1 or len(labels) != len(colors):
        raise ValueError("A scale needs one more label/colour than cut points.")
    edges: list[Optional[float]] = [None, *bounds, None]
    return tuple(
        RangeBand(
            label=label,
            color_tag=color,
            lower_bound=edges[i],
            upper_bound=edges[i + 1],
            soil_acidity_condition=condition,
        )
        for i, (label, color) in enumerate(zip(labels, colors))
    )


_LMIH = ("Low", "Medium", "Ideal", "High")
_LMIH_COLORS = ("red", "yellow", "green", "amber")
_LIH = ("Low", "Ideal", "High")
_LIH_COLORS = ("red", "green", "amber")


# ── Range table ───────────────────────────────────────────────────────────────

PARAMETER_RANGES: Mapping[str, tuple[RangeBand, ...]] = MappingProxyType({
    PH_PARAMETER: _scale(
        (ACIDIC_PH_BELOW, ALKALINE_PH_ABOVE),
        ("Acidic", "Neutral", "Alkaline"),
        ("red", "green", "orange"),
    ),
    "Electrical Conductivity": _scale(
        (1.0, 2.0, 3.0),
        ("Harmless", "Tolerable", "Semicritical", "Critical"),
        ("green", "yellow", "orange", "red"),
    ),
    "Organic Matter": _scale((1.5,), ("Low", "Ideal"), ("orange", "green")),
    "Nitrate Nitrogen": _scale((30, 40, 50), _LMIH, _LMIH_COLORS),
    PHOSPHORUS_PARAMETER: (
        _scale((100, 150, 200), _LMIH, _LMIH_COLORS, SoilAcidityClass.ACIDIC)
        + _scale((15, 22, 27), _LMIH, _LMIH_COLORS, SoilAcidityClass.ALKALINE)
    ),
    "Potassium Exchangeable K": _scale((150, 200, 250), _LMIH, _LMIH_COLORS),
    "Calcium Exchangeable Ca": _scale((1500, 2000, 2500), _LMIH, _LMIH_COLORS),
    "Magnesium Exchangeable Mg": _scale((450, 550, 600), _LMIH, _LMIH_COLORS),
    "Sulfur Available S": _scale((20, 30, 40), _LMIH, _LMIH_COLORS),
    "Zinc Available Zn": _scale((2.0, 2.5, 3.0), _LMIH, _LMIH_COLORS),
    "Manganese Available Mn": _scale((10, 15, 20), _LMIH, _LMIH_COLORS),
    "Iron Available Fe": _scale((9, 15, 20), _LMIH, _LMIH_COLORS),
    "Copper Available Cu": _scale((2, 3, 3.5), _LMIH, _LMIH_COLORS),
    "Boron Available B": _scale((0.8, 1.2, 1.8), _LMIH, _LMIH_COLORS),
    "K Saturation": _scale((3, 5), _LIH, _LIH_COLORS),
    "Ca Saturation": _scale((65, 70), _LIH, _LIH_COLORS),
    "Mg Saturation": _scale((25, 30), _LIH, _LIH_COLORS),
    "Na Saturation": _scale(
        (2, 7), ("Ideal", "Tolerable", "High"), ("green", "yellow", "amber")
    ),
})


# ── Lab sheet label → canonical range-table name ─────────────────────────────

PARAMETER_ALIASES: Mapping[str, str] = MappingProxyType({
    "pH": PH_PARAMETER,
    "EC": "Electrical Conductivity",
    "Organic Carbon": "Organic Matter",
    "Available Nitrogen": "Nitrate Nitrogen",
    "Available Phosphorus": PHOSPHORUS_PARAMETER,
    "Available Potassium": "Potassium Exchangeable K",
    "Available Calcium": "Calcium Exchangeable Ca",
    "Available Magnesium": "Magnesium Exchangeable Mg",
    "Available Sulphur": "Sulfur Available S",
    "Available Zinc": "Zinc Available Zn",
    "Available Manganese": "Manganese Available Mn",
    "Available Iron": "Iron Available Fe",
    "Available Copper": "Copper Available Cu",
    "Available Boron": "Boron Available B",
    "K Saturation": "K Saturation",
    "Ca Saturation": "Ca Saturation",
    "Mg Saturation": "Mg Saturation",
    "Na Saturation": "Na Saturation",
})
