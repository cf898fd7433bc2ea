"""
Report rendering helpers for the CLI and the Streamlit dashboard.

Modules
-------
formatters : ASCII formatters for report listings, report detail
             (header, readings, recommendations) and reference ranges.
scales     : ScaleView / group_scale_views() for the dashboard range panels.
"""
