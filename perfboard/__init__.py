"""Performance Board: spreadsheet-fed ads performance dashboard."""

__version__ = "0.3.0"
