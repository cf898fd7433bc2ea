"""
Recommendation engine: turns a report's readings into fertilizer
application quantities.

Modules
-------
rules  : RecommendationRule dataclass + RECOMMENDATION_RULES table +
         find_parameter() fuzzy lookup; pure data and functions.
engine : recommend() + evaluate_rule() + effective_rate(); evaluates the
         table with optional per-rule rate overrides; no DB or I/O.
"""
