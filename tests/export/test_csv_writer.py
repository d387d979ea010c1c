"""Tests for the CSV serializer."""

import csv
import io
from pathlib import Path

import pytest

from tangerine_report.engine.types import ColumnHeader
from tangerine_report.export.csv_writer import _sanitize_csv_value, write_csv, write_rows

HEADERS = [
    {"header": "consent", "key": "s1.consent"},
    {"header": "County", "key": "s2.county"},
]


class TestSanitize:
    """Cell rendering."""

    @pytest.mark.parametrize("value", ["=SUM(A1:A9)", "+A1", "-2+3+cmd|x", "@cmd", "|pipe", "-"])
    def test_formula_prefixes_neutralized(self, value: str) -> None:
        """Text that spreadsheets would evaluate is prefixed with a quote."""
        assert _sanitize_csv_value(value) == f"'{value}"

    def test_numbers_untouched(self) -> None:
        """Negative numbers are data, not formulas."""
        assert _sanitize_csv_value(-1.28) == "-1.28"

    @pytest.mark.parametrize("value", ["-1.28", "-36", "+254", "-.5", "1.5e-3", "-2E4"])
    def test_numeric_text_untouched(self, value: str) -> None:
        """Numbers stored as text, such as GPS readings, keep their sign."""
        assert _sanitize_csv_value(value) == value

    def test_none_and_bool(self) -> None:
        """None is an empty cell; booleans are lowercase."""
        assert _sanitize_csv_value(None) == ""
        assert _sanitize_csv_value(True) == "true"

    def test_plain_text(self) -> None:
        """Ordinary text passes through."""
        assert _sanitize_csv_value("Hill School") == "Hill School"


class TestWriteRows:
    """Row layout."""

    def test_header_order_drives_columns(self) -> None:
        """Columns follow the header set; missing keys are blank, extra keys dropped."""
        stream = io.StringIO()
        written = write_rows(
            stream,
            HEADERS,
            [
                {"s2.county": "Nairobi", "s1.consent": "yes", "other": "dropped"},
                {"s1.consent": "no"},
            ],
        )
        assert written == 2
        assert list(csv.reader(io.StringIO(stream.getvalue()))) == [
            ["consent", "County"],
            ["yes", "Nairobi"],
            ["no", ""],
        ]

    def test_column_header_objects(self) -> None:
        """ColumnHeader instances work like descriptor dicts."""
        stream = io.StringIO()
        write_rows(stream, [ColumnHeader("id", "s1.id")], [{"s1.id": "P-001"}])
        assert stream.getvalue().splitlines() == ["id", "P-001"]

    def test_header_only(self) -> None:
        """Without rows only the header line is written."""
        stream = io.StringIO()
        assert write_rows(stream, HEADERS, []) == 0
        assert stream.getvalue().splitlines() == ["consent,County"]


class TestWriteCsv:
    """File output."""

    def test_writes_file(self, tmp_path: Path) -> None:
        """Parent directories are created and the row count returned."""
        path = tmp_path / "out" / "report.csv"
        assert write_csv(HEADERS, [{"s1.consent": "yes"}], path) == 1
        assert path.read_text(encoding="utf-8").splitlines() == ["consent,County", "yes,"]
