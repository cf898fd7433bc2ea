"""
Tests for soil_dashboard.reporting.scales.

What we test
------------
- Serial numbers map to the dashboard's display groups.
- Scale views carry the rating, visible bands and the current segment.
- Grouping keeps every tab and skips readings without a reference range.
- Badge colours fall back to gray.
"""

from __future__ import annotations

from soil_dashboard.models.reading import ParameterReading
from soil_dashboard.reporting.scales import (
    OTHER_GROUP,
    badge_color,
    badge_css,
    build_scale_view,
    display_group,
    display_group_names,
    group_scale_views,
)


def _reading(sno: int, name: str, result, unit: str = "ppm") -> ParameterReading:
    return ParameterReading(sequence_number=sno, parameter_name=name, unit=unit, result=result)


class TestDisplayGroups:
    def test_primary_macronutrients(self):
        for sno in (4, 5, 6):
            assert display_group(sno) == "Primary Macronutrients"

    def test_secondary_skips_nine(self):
        assert display_group(7) == "Secondary Macronutrients"
        assert display_group(10) == "Secondary Macronutrients"
        assert display_group(9) == OTHER_GROUP

    def test_micronutrients(self):
        assert display_group(11) == "Micronutrients"
        assert display_group(15) == "Micronutrients"

    def test_everything_else(self):
        for sno in (1, 2, 3, 16, 17, 20):
            assert display_group(sno) == OTHER_GROUP

    def test_tab_order(self):
        assert display_group_names() == [
            "Primary Macronutrients",
            "Secondary Macronutrients",
            "Micronutrients",
            "Other Essentials",
        ]


class TestBuildScaleView:
    def test_alias_and_current_segment(self):
        view = build_scale_view(_reading(11, "Available Zinc", 2.2))
        assert view.parameter_name == "Zinc Available Zn"
        assert view.label == "Medium"
        assert view.color_tag == "yellow"
        current = [s.band.label for s in view.segments if s.is_current]
        assert current == ["Medium"]
        assert len(view.segments) == 4

    def test_phosphorus_uses_ph_scale(self):
        view = build_scale_view(_reading(5, "Available Phosphorus", 20), ph_value=8.0)
        assert view.label == "Medium"
        assert view.segments[0].band.upper_bound == 15

    def test_non_numeric_value(self):
        view = build_scale_view(_reading(11, "Available Zinc", "ND"))
        assert view.value is None
        assert view.label == "Out of range"
        assert not any(s.is_current for s in view.segments)

    def test_dash_unit_hidden(self):
        view = build_scale_view(_reading(1, "pH", 6.0, unit="-"))
        assert view.display_unit == ""


class TestGroupScaleViews:
    def test_groups_and_ph_context(self, acidic_readings):
        groups = group_scale_views(acidic_readings)
        assert list(groups) == display_group_names()

        primary = {v.parameter_name: v for v in groups["Primary Macronutrients"]}
        assert set(primary) == {
            "Nitrate Nitrogen",
            "Available Phosphorus",
            "Potassium Exchangeable K",
        }
        # pH 6.0 puts phosphorus on the acidic scale
        assert primary["Available Phosphorus"].label == "Low"

    def test_unranged_readings_skipped(self):
        readings = [
            _reading(1, "pH", 7.0, unit="-"),
            _reading(16, "Cation Exchange Capacity", 12.5),
        ]
        groups = group_scale_views(readings)
        other = [v.parameter_name for v in groups[OTHER_GROUP]]
        assert other == ["pH"]
        assert groups["Micronutrients"] == []


class TestBadges:
    def test_known_rating(self):
        assert badge_color("Ideal") == "green"
        assert badge_color("Semicritical") == "orange"

    def test_unrated_is_gray(self):
        assert badge_color(None) == "gray"
        assert badge_color("Out of range") == "gray"

    def test_css_unknown_tag_falls_back(self):
        assert badge_css("ultraviolet") == badge_css("gray")
        assert "background-color: #dcfce7" in badge_css("green")
