"""
Fertilizer recommendation rules.

Each rule pairs a **condition** over the full reading set with a **dosage
formula** that is linear in a nutrient deficit and scaled by an application
rate the viewer may adjust.

Rule table (evaluated in this order)
------------------------------------
    lime-application          pH < 6.5  and Ca Saturation < 65
                              (65 - CaSat) * 0.1 * rate      rate 200
    gypsum-application        pH > 7.6  and Ca Saturation < 65
                              (65 - CaSat) * 0.1 * rate      rate 250
    dap-application-acidic    pH < 7.6  and Available Phosphorus < 15
                              (100 - P) * rate               rate 25
    dap-application-alkaline  pH > 7.6  and Available Phosphorus < 15
                              (15 - P) * rate                rate 25

Lime and gypsum are mutually exclusive on pH, as are the two DAP rules.
Both DAP rules trigger below 15 ppm phosphorus and share the deficit
formula; only the dose baseline differs (the Low/Medium boundary of the
acidic vs. alkaline phosphorus scale), so a pH 7.0 soil at 10 ppm gets
(100 - 10) * rate. At exactly pH 7.6 neither DAP rule fires.

Parameter lookup
----------------
``find_parameter()`` matches case-insensitively on exact name **or
substring** and returns the first hit in input order. That means
``"pH"`` also matches ``"Phosphorus ..."`` if such a row precedes the pH
row. Lab sheets list pH first; the loose contract is kept as-is.

A missing or non-numeric dependency makes a condition false; formulas
return ``None`` in the same situation. No rule raises.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Optional

from soil_dashboard.models.reading import ParameterReading
from soil_dashboard.taxonomy.parameter_ranges import ACIDIC_PH_BELOW, ALKALINE_PH_ABOVE

Readings = Sequence[ParameterReading]

PH = "pH"
CA_SATURATION = "Ca Saturation"
PHOSPHORUS = "Available Phosphorus"

CA_SATURATION_TARGET = 65.0
PHOSPHORUS_BASELINE_ACIDIC = 100.0
PHOSPHORUS_BASELINE_ALKALINE = 15.0
# Both DAP rules fire below this, whichever baseline they dose towards.
PHOSPHORUS_TRIGGER = 15.0
# DAP switches scale at the alkaline cut-off, not the acidic one.
DAP_PH_SPLIT = ALKALINE_PH_ABOVE

APPLICATION_UNIT = "kg/ac"


@dataclass(frozen=True)
class RecommendationRule:
    """A condition + formula pair producing a treatment quantity.

    Attributes:
        rule_id:      Stable identifier; key for rate overrides.
        title:        Display title.
        description:  What to apply and why.
        unit:         Unit of the computed quantity.
        default_rate: Rate used when no override is supplied.
        rate_unit:    Unit of the rate.
        condition:    ``readings -> bool``; false when data is missing.
        calculate:    ``(readings, rate) -> quantity | None`` (unrounded).
    """

    rule_id: str
    title: str
    description: str
    unit: str
    default_rate: float
    rate_unit: str
    condition: Callable[[Readings], bool]
    calculate: Callable[[Readings, float], Optional[float]]


def find_parameter(readings: Readings, name: str) -> Optional[ParameterReading]:
    """First reading whose name equals or contains ``name``, case-insensitively."""
    query = name.lower()
    for reading in readings:
        candidate = reading.parameter_name.lower()
        if candidate == query or query in candidate:
            return reading
    return None


def parameter_value(readings: Readings, name: str) -> Optional[float]:
    """Numeric result of the parameter matched by ``find_parameter()``."""
    reading = find_parameter(readings, name)
    return reading.numeric_result if reading is not None else None


# ── Conditions ────────────────────────────────────────────────────────────────

def _lime_needed(readings: Readings) -> bool:
    ph = parameter_value(readings, PH)
    ca = parameter_value(readings, CA_SATURATION)
    if ph is None or ca is None:
        return False
    return ph < ACIDIC_PH_BELOW and ca < CA_SATURATION_TARGET


def _gypsum_needed(readings: Readings) -> bool:
    ph = parameter_value(readings, PH)
    ca = parameter_value(readings, CA_SATURATION)
    if ph is None or ca is None:
        return False
    return ph > ALKALINE_PH_ABOVE and ca < CA_SATURATION_TARGET


def _dap_needed_acidic(readings: Readings) -> bool:
    ph = parameter_value(readings, PH)
    p = parameter_value(readings, PHOSPHORUS)
    if ph is None or p is None:
        return False
    return ph < DAP_PH_SPLIT and p < PHOSPHORUS_TRIGGER


def _dap_needed_alkaline(readings: Readings) -> bool:
    ph = parameter_value(readings, PH)
    p = parameter_value(readings, PHOSPHORUS)
    if ph is None or p is None:
        return False
    return ph > DAP_PH_SPLIT and p < PHOSPHORUS_TRIGGER


# ── Formulas ──────────────────────────────────────────────────────────────────

def _calcium_deficit_dose(readings: Readings, rate: float) -> Optional[float]:
    # rate is per 10 percentage points of Ca saturation deficit
    ca = parameter_value(readings, CA_SATURATION)
    if ca is None:
        return None
    return (CA_SATURATION_TARGET - ca) * 0.1 * rate


def _phosphorus_deficit_dose(baseline: float) -> Callable[[Readings, float], Optional[float]]:
    def dose(readings: Readings, rate: float) -> Optional[float]:
        p = parameter_value(readings, PHOSPHORUS)
        if p is None:
            return None
        return (baseline - p) * rate

    return dose


# ── Rule table ────────────────────────────────────────────────────────────────

RECOMMENDATION_RULES: tuple[RecommendationRule, ...] = (
    RecommendationRule(
        rule_id="lime-application",
        title="Lime Application",
        description=(
            "Apply agricultural lime to correct soil acidity and improve calcium levels."
        ),
        unit=APPLICATION_UNIT,
        default_rate=200.0,
        rate_unit="kg/ac per 10% Ca saturation deficit",
        condition=_lime_needed,
        calculate=_calcium_deficit_dose,
    ),
    RecommendationRule(
        rule_id="gypsum-application",
        title="Gypsum Application",
        description=(
            "Apply gypsum to improve soil structure and calcium levels in alkaline soils."
        ),
        unit=APPLICATION_UNIT,
        default_rate=250.0,
        rate_unit="kg/ac per 10% Ca saturation deficit",
        condition=_gypsum_needed,
        calculate=_calcium_deficit_dose,
    ),
    RecommendationRule(
        rule_id="dap-application-acidic",
        title="DAP Application",
        description=(
            "Apply diammonium phosphate (DAP) to raise available phosphorus "
            "towards the acidic-soil target."
        ),
        unit=APPLICATION_UNIT,
        default_rate=25.0,
        rate_unit="kg/ac per ppm P deficit",
        condition=_dap_needed_acidic,
        calculate=_phosphorus_deficit_dose(PHOSPHORUS_BASELINE_ACIDIC),
    ),
    RecommendationRule(
        rule_id="dap-application-alkaline",
        title="DAP Application",
        description=(
            "Apply diammonium phosphate (DAP) to raise available phosphorus "
            "towards the alkaline-soil target."
        ),
        unit=APPLICATION_UNIT,
        default_rate=25.0,
        rate_unit="kg/ac per ppm P deficit",
        condition=_dap_needed_alkaline,
        calculate=_phosphorus_deficit_dose(PHOSPHORUS_BASELINE_ALKALINE),
    ),
)


def recommendation_rules() -> tuple[RecommendationRule, ...]:
    """The static rule table, in evaluation order."""
    return RECOMMENDATION_RULES


def default_rates() -> dict[str, float]:
    """``{rule_id: default_rate}`` for every rule, in table order."""
    return {rule.rule_id: rule.default_rate for rule in RECOMMENDATION_RULES}


def get_rule(rule_id: str) -> Optional[RecommendationRule]:
    for rule in RECOMMENDATION_RULES:
        if rule.rule_id == rule_id:
            return rule
    return None
