"""Tangerine reporting: flattens assessment and workflow results for CSV export."""

__version__ = "0.3.0"
