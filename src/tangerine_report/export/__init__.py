"""Tabular export of processed results."""

from tangerine_report.export.csv_writer import write_csv, write_rows

__all__ = ["write_csv", "write_rows"]
