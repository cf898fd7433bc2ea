"""
Report assembly: combines extracted metadata with rated, categorised
readings into the document shape that is persisted and displayed.

Modules
-------
assembly : assemble_report() + rate_readings() + group_readings() +
           categorize_reading(); pure functions, no DB or I/O.
"""
