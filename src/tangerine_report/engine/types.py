"""Type definitions shared by the header and result engines.

This module provides the closed Prototype enum, the structured column key
builder, header descriptors and the per-pass occurrence counters.

Usage:
    from tangerine_report.engine.types import ColumnKey, Prototype, SubtestCounts

    counts = SubtestCounts()
    suffix = counts.suffix(Prototype.CONSENT)
    key = ColumnKey("subtest-1", "consent", suffix)
    print(key.render())  # subtest-1.consent
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Prototype(Enum):
    """Declared type of a subtest.

    Attributes:
        LOCATION: Location picker with configured level labels.
        DATETIME: Assessment date and time capture.
        CONSENT: Consent question.
        ID: Participant identifier.
        SURVEY: Question list.
        GRID: Timed item grid.
        GPS: Device geolocation.
        CAMERA: Photo capture.

    """

    LOCATION = "location"
    DATETIME = "datetime"
    CONSENT = "consent"
    ID = "id"
    SURVEY = "survey"
    GRID = "grid"
    GPS = "gps"
    CAMERA = "camera"

    @classmethod
    def parse(cls, tag: Any) -> "Prototype | None":
        """Return the prototype for a tag, or None when the tag is unknown."""
        try:
            return cls(tag)
        except ValueError:
            return None


def occurrence_suffix(count: int) -> str:
    """Return the key suffix for the (count+1)-th occurrence.

    Examples:
        >>> occurrence_suffix(0)
        ''
        >>> occurrence_suffix(2)
        '_2'

    """
    return f"_{count}" if count > 0 else ""


@dataclass(frozen=True)
class ColumnKey:
    """Structured column key rendered as ``<subtest_id>.<field><suffix>``.

    Attributes:
        subtest_id: Owning subtest (or assessment/workflow) id.
        field: Field name within the subtest.
        suffix: Occurrence suffix, empty for the first occurrence.

    """

    subtest_id: str
    field: str
    suffix: str = ""

    def render(self) -> str:
        """Render the dotted key string."""
        return f"{self.subtest_id}.{self.field}{self.suffix}"

    @property
    def label(self) -> str:
        """Display label: the suffixed field name without the owner prefix."""
        return f"{self.field}{self.suffix}"

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True)
class ColumnHeader:
    """One column descriptor of a header set.

    Attributes:
        header: Display label written to the CSV header line.
        key: Key of the value in a processed result record.

    """

    header: str
    key: str

    @classmethod
    def from_key(cls, key: ColumnKey, header: str | None = None) -> "ColumnHeader":
        """Build a descriptor from a structured key, labelled by its field."""
        return cls(header=header if header is not None else key.label, key=key.render())

    def to_dict(self) -> dict[str, str]:
        """Convert to the persisted ``{header, key}`` layout."""
        return {"header": self.header, "key": self.key}


@dataclass
class SubtestCounts:
    """Occurrence counters for one flattening pass.

    One counter per prototype plus a shared timestamp counter. A fresh
    instance must be created for every assessment pass; instances are never
    shared between the header and result engines.

    """

    counts: dict[Prototype, int] = field(default_factory=lambda: dict.fromkeys(Prototype, 0))
    timestamp_count: int = 0

    def count(self, prototype: Prototype) -> int:
        """Occurrences of the prototype seen so far."""
        return self.counts[prototype]

    def suffix(self, prototype: Prototype) -> str:
        """Suffix for the current occurrence of the prototype."""
        return occurrence_suffix(self.counts[prototype])

    @property
    def next_timestamp(self) -> int:
        """Index ``k`` used for the next ``timestamp_k`` key."""
        return self.timestamp_count

    def increment(self, prototype: Prototype, timestamp_cost: int = 1) -> str:
        """Advance counters past the current occurrence.

        Args:
            prototype: Prototype just processed.
            timestamp_cost: Amount the shared timestamp counter advances.

        Returns:
            The suffix that applied to the occurrence just processed.

        """
        if timestamp_cost < 0:
            raise ValueError(f"timestamp_cost must be non-negative, got {timestamp_cost}")
        current = self.suffix(prototype)
        self.counts[prototype] += 1
        self.timestamp_count += timestamp_cost
        return current


def timestamp_key(subtest_id: str, index: int) -> ColumnKey:
    """Key for the ``index``-th shared timestamp of an assessment pass."""
    return ColumnKey(subtest_id, f"timestamp_{index}")


__all__ = [
    "ColumnHeader",
    "ColumnKey",
    "Prototype",
    "SubtestCounts",
    "occurrence_suffix",
    "timestamp_key",
]
