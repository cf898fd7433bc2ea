"""
Soil parameter classification against fixed reference ranges.

Modules
-------
classifier : Rating dataclass + classify() + band_for_value() + range_bounds()
             + visible_bands() + alias helpers; pure functions, no DB or I/O.

Reference tables live in ``soil_dashboard.taxonomy.parameter_ranges``.
"""
