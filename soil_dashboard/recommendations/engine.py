"""
Recommendation engine: evaluates the static rule table over one report's
readings and returns the triggered recommendations.

Per rule, in table order:
  1. ``condition(readings)``: false (or missing data) → skip.
  2. Effective rate = override for the rule id if given and finite,
     else the rule's default rate.
  3. ``calculate(readings, rate)`` rounded half-up to an integer.
  4. Kept only when the rounded value is strictly positive.

Output order is rule order, not magnitude. The engine holds no state, so
identical inputs always give identical outputs.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from typing import Optional

from soil_dashboard.models.reading import ParameterReading
from soil_dashboard.models.recommendation import Recommendation
from soil_dashboard.recommendations.rules import (
    RECOMMENDATION_RULES,
    RecommendationRule,
)

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves rounding towards +infinity."""
    return math.floor(value + 0.5)


def effective_rate(
    rule: RecommendationRule,
    rate_overrides: Optional[Mapping[str, float]] = None,
) -> float:
    """Override for ``rule`` when present and finite, else its default rate."""
    if rate_overrides and rule.rule_id in rate_overrides:
        override = rate_overrides[rule.rule_id]
        try:
            rate = float(override)
        except (TypeError, ValueError):
            rate = math.nan
        if math.isfinite(rate):
            return rate
        logger.debug(
            "Ignoring non-numeric rate override %r for rule %s", override, rule.rule_id
        )
    return rule.default_rate


def evaluate_rule(
    rule: RecommendationRule,
    readings: Sequence[ParameterReading],
    rate_overrides: Optional[Mapping[str, float]] = None,
) -> Optional[Recommendation]:
    """Evaluate one rule; ``None`` when not triggered or not positive."""
    if not rule.condition(readings):
        return None

    rate = effective_rate(rule, rate_overrides)
    raw = rule.calculate(readings, rate)
    if raw is None or not math.isfinite(raw):
        return None

    value = round_half_up(raw)
    if value <= 0:
        return None

    return Recommendation(
        rule_id=rule.rule_id,
        title=rule.title,
        description=rule.description,
        value=value,
        unit=rule.unit,
        rate_unit=rule.rate_unit,
        applied_rate=rate,
    )


def recommend(
    readings: Sequence[ParameterReading],
    rate_overrides: Optional[Mapping[str, float]] = None,
) -> list[Recommendation]:
    """Compute the recommendations for a full reading set.

    Args:
        readings:       Every reading of one report (any order; lookup is by name).
        rate_overrides: Optional ``{rule_id: rate}``; unknown ids are ignored.

    Returns:
        Triggered recommendations in rule-table order.
    """
    results: list[Recommendation] = []
    for rule in RECOMMENDATION_RULES:
        rec = evaluate_rule(rule, readings, rate_overrides)
        if rec is not None:
            results.append(rec)

    logger.debug(
        "Evaluated %d rules over %d readings: %d triggered",
        len(RECOMMENDATION_RULES), len(readings), len(results),
    )
    return results
