"""CSV serializer for header sets and processed result records.

The header set fixes the column order; each processed result becomes one
row. Keys a result lacks become empty cells and keys outside the header set
are dropped.

Usage:
    from tangerine_report.export.csv_writer import write_csv

    write_csv(header_doc["column_headers"], [record["processed_results"]], Path("out.csv"))
"""

import csv
import logging
import re
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, TextIO

logger = logging.getLogger(__name__)

FORMULA_PREFIXES = ("=", "+", "-", "@", "|", "\t", "\r", "\n")
NUMERIC_TEXT = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


def _sanitize_csv_value(value: Any) -> str:
    """Render a cell, neutralizing text that spreadsheets would evaluate."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if not isinstance(value, str):
        return str(value)
    if NUMERIC_TEXT.fullmatch(value):
        return value
    if value and value[0] in FORMULA_PREFIXES:
        return f"'{value}"
    return value


def _descriptor(header: Any) -> tuple[str, str]:
    if isinstance(header, Mapping):
        return str(header.get("header", header.get("key", ""))), str(header.get("key", ""))
    return str(header.header), str(header.key)


def write_rows(
    stream: TextIO,
    headers: Iterable[Any],
    rows: Iterable[Mapping[str, Any]],
) -> int:
    """Write the header line and one line per row to an open stream.

    Args:
        stream: Text stream opened with ``newline=""``.
        headers: ColumnHeader instances or ``{header, key}`` dicts.
        rows: Processed result mappings.

    Returns:
        Number of data rows written.

    """
    descriptors = [_descriptor(h) for h in headers]
    writer = csv.writer(stream, quoting=csv.QUOTE_MINIMAL)
    writer.writerow([_sanitize_csv_value(label) for label, _ in descriptors])

    written = 0
    for row in rows:
        writer.writerow([_sanitize_csv_value(row.get(key)) for _, key in descriptors])
        written += 1
    return written


def write_csv(
    headers: Iterable[Any],
    rows: Iterable[Mapping[str, Any]],
    path: Path,
) -> int:
    """Write a CSV file of processed results.

    Returns:
        Number of data rows written.

    Raises:
        OSError: If the file cannot be written.

    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8") as f:
        written = write_rows(f, headers, rows)
    logger.info("Wrote %d rows to %s", written, path)
    return written
