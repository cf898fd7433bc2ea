"""
Range-scale views for the dashboard's parameter panels.

Each reading with a reference range becomes a ``ScaleView``: the bands the
scale draws (equal-width segments, one per band), which of them holds the
reading, and the reading's rating. Panels are grouped into tabs by the lab's
serial number:

    Primary Macronutrients     S.No. 4, 5, 6
    Secondary Macronutrients   S.No. 7, 8, 10
    Micronutrients             S.No. 11–15
    Other Essentials           everything else
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional

from soil_dashboard.classification.classifier import (
    canonical_parameter_name,
    classify,
    has_reference_range,
    ph_from_readings,
    visible_bands,
)
from soil_dashboard.models.reading import ParameterReading
from soil_dashboard.taxonomy.parameter_ranges import RangeBand

DISPLAY_GROUPS: tuple[tuple[str, frozenset[int]], ...] = (
    ("Primary Macronutrients", frozenset({4, 5, 6})),
    ("Secondary Macronutrients", frozenset({7, 8, 10})),
    ("Micronutrients", frozenset({11, 12, 13, 14, 15})),
)
OTHER_GROUP = "Other Essentials"


def display_group(sequence_number: int) -> str:
    for name, members in DISPLAY_GROUPS:
        if sequence_number in members:
            return name
    return OTHER_GROUP


def display_group_names() -> list[str]:
    return [name for name, _ in DISPLAY_GROUPS] + [OTHER_GROUP]


@dataclass(frozen=True)
class ScaleSegment:
    band: RangeBand
    is_current: bool


@dataclass(frozen=True)
class ScaleView:
    """Everything one parameter panel renders."""

    parameter_name: str
    value: Optional[float]
    unit: str
    label: str
    color_tag: str
    segments: tuple[ScaleSegment, ...]

    @property
    def display_unit(self) -> str:
        return "" if self.unit == "-" else self.unit


def build_scale_view(
    reading: ParameterReading, ph_value: Optional[float] = None
) -> ScaleView:
    """Scale panel for one reading (the parameter is looked up via its alias)."""
    name = canonical_parameter_name(reading.parameter_name)
    value = reading.numeric_result
    rating = classify(name, value, ph_value)
    segments = tuple(
        ScaleSegment(band=band, is_current=band.contains(value))
        for band in visible_bands(name, ph_value)
    )
    return ScaleView(
        parameter_name=name,
        value=value,
        unit=reading.unit,
        label=rating.label,
        color_tag=rating.color_tag,
        segments=segments,
    )


def group_scale_views(
    readings: Sequence[ParameterReading],
) -> dict[str, list[ScaleView]]:
    """Scale views for every ranged reading, keyed by display group.

    Every group name is present (possibly with an empty list), in tab order.
    Readings are taken in the order given.
    """
    ph_value = ph_from_readings(list(readings))
    groups: dict[str, list[ScaleView]] = {name: [] for name in display_group_names()}
    for reading in readings:
        if not has_reference_range(reading.parameter_name):
            continue
        groups[display_group(reading.sequence_number)].append(
            build_scale_view(reading, ph_value)
        )
    return groups


# ── Badge colours ─────────────────────────────────────────────────────────────

RATING_BADGE_COLORS: dict[str, str] = {
    "Low": "red",
    "Medium": "yellow",
    "Tolerable": "yellow",
    "Semicritical": "orange",
    "Critical": "red",
    "Acidic": "red",
    "Neutral": "green",
    "Alkaline": "orange",
    "Ideal": "green",
    "High": "amber",
    "Harmless": "green",
}

# color_tag -> (background, text)
COLOR_STYLES: dict[str, tuple[str, str]] = {
    "red": ("#fee2e2", "#991b1b"),
    "yellow": ("#fef9c3", "#854d0e"),
    "orange": ("#ffedd5", "#9a3412"),
    "green": ("#dcfce7", "#166534"),
    "amber": ("#d97706", "#000000"),
    "gray": ("#f3f4f6", "#1f2937"),
}


def badge_color(rating: Optional[str]) -> str:
    """Colour tag for a stored rating label; unrated or unknown labels are gray."""
    if not rating:
        return "gray"
    return RATING_BADGE_COLORS.get(rating, "gray")


def badge_css(color_tag: str) -> str:
    background, text = COLOR_STYLES.get(color_tag, COLOR_STYLES["gray"])
    return f"background-color: {background}; color: {text}"
