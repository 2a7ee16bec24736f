"""Japanese holiday calendar: day-of-week and national holiday lookup."""

__version__ = "1.0.0"
