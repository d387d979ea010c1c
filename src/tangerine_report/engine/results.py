"""Result Engine: flattens a result document into one spreadsheet row.

Mirrors the Header Engine's dispatch and suffixing so every produced key
appears in the header set of the same assessment. After the walk, all
subtest timestamps are validated together to decide the row's start and
end time, its validity and its partition keys.

Usage:
    from tangerine_report.engine.results import ResultEngine

    engine = ResultEngine(store, validator)
    flat = engine.flatten_result(result_doc)
    store.save_result_record(flat.ref, flat.to_record())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Any

from tangerine_report.core.config.models import EngineConfig
from tangerine_report.core.exceptions import MalformedInputError
from tangerine_report.engine.handlers import ResultContext, handler_for
from tangerine_report.engine.headers import ASSESSMENT_FIELDS
from tangerine_report.engine.locations import LocationResolver
from tangerine_report.engine.types import ColumnKey, Prototype, SubtestCounts, occurrence_suffix
from tangerine_report.engine.validation import SchoolHoursValidator, TimeWindowValidator
from tangerine_report.engine.values import format_timestamp, resolve_zone, to_datetime
from tangerine_report.store.base import DocumentStore

logger = logging.getLogger(__name__)

COMPLETE_PROTOTYPE = "complete"


def collection_id_of(doc: dict[str, Any]) -> str:
    """Assessment or curriculum id a result document belongs to."""
    collection_id = doc.get("assessmentId") or doc.get("curriculumId")
    if not collection_id:
        raise MalformedInputError(
            f"Result {doc.get('_id', '<unknown>')} has neither assessmentId nor curriculumId"
        )
    return str(collection_id)


def subtest_entries(doc: dict[str, Any]) -> list[dict[str, Any]]:
    """``subtestData`` of a result document as a list of entries."""
    entries = doc.get("subtestData") or []
    if isinstance(entries, dict):
        entries = [entries]
    if not isinstance(entries, list):
        return []
    return [entry for entry in entries if isinstance(entry, dict)]


@dataclass
class FlatResult:
    """One flattened report row with its validation outcome.

    Attributes:
        collection_id: Assessment, curriculum or workflow id (partition parent).
        ref: Id the processed record is saved under.
        values: Flat key/value mapping in processing order.
        timestamps: Every parsed subtest timestamp, ascending.
        time_zone: Zone the row's times are rendered in.
        is_valid: Outcome of time-window validation.
        is_valid_reason: Failure reasons, empty when valid.
        start_time: Earliest timestamp.
        end_time: Latest timestamp.

    """

    collection_id: str
    ref: str
    values: dict[str, Any] = field(default_factory=dict)
    timestamps: list[datetime] = field(default_factory=list)
    time_zone: str = "UTC"
    is_valid: bool = False
    is_valid_reason: str = ""
    start_time: datetime | None = None
    end_time: datetime | None = None

    def partition_keys(self) -> dict[str, Any]:
        """Keys the result store shards processed records by."""
        start = self.start_time
        return {
            "parent_id": self.collection_id,
            "year": start.year if start else None,
            "month": start.strftime("%b") if start else None,
            "day": start.day if start else None,
        }

    def to_record(self) -> dict[str, Any]:
        """Convert to the persisted processed-result layout."""
        keys = self.partition_keys()
        processed = dict(self.values)
        processed["isValid"] = self.is_valid
        processed["isValidReason"] = self.is_valid_reason
        return {
            "parent_id": keys["parent_id"],
            "result_year": keys["year"],
            "result_month": keys["month"],
            "result_day": keys["day"],
            "processed_results": processed,
        }


class ResultEngine:
    """Flattens result documents.

    Attributes:
        store: Optional store used for the location list.
        validator: Time-window validator applied to each row.
        config: Engine settings (time zone, timestamp format, strictness).

    """

    def __init__(
        self,
        store: DocumentStore | None = None,
        validator: TimeWindowValidator | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self.store = store
        self.validator = validator or SchoolHoursValidator()
        self.config = config or EngineConfig()

    def _location_resolver(self, entries: list[dict[str, Any]]) -> LocationResolver | None:
        if self.store is None:
            return None
        if not any(entry.get("prototype") == Prototype.LOCATION.value for entry in entries):
            return None
        location_list = self.store.get_location_list()
        return LocationResolver(location_list) if location_list else None

    def flatten_result(
        self,
        result_doc: dict[str, Any],
        count: int = 0,
        validate: bool = True,
    ) -> FlatResult:
        """Flatten one result document.

        Args:
            result_doc: Result document with ``subtestData`` entries.
            count: Occurrence of the assessment within an enclosing workflow;
                suffixes the assessment-level keys.
            validate: Run time-window validation. Workflow composition
                validates the whole trip once instead.

        Returns:
            FlatResult with values, timestamps and validation outcome.

        Raises:
            MalformedInputError: If the document names no assessment.
            UnknownPrototypeError: In strict mode, for unknown prototypes.

        """
        collection_id = collection_id_of(result_doc)
        suffix = occurrence_suffix(count)
        time_zone = result_doc.get("groupTimeZone") or self.config.time_zone
        tz = resolve_zone(time_zone, self.config.time_zone)
        entries = subtest_entries(result_doc)

        def key(name: str) -> str:
            return ColumnKey(collection_id, name, suffix).render()

        order_map = result_doc.get("order_map")
        metadata = {
            "assessment_id": collection_id,
            "assessment_name": result_doc.get("assessmentName") or result_doc.get("name"),
            "enumerator": result_doc.get("enumerator"),
            "start_time": format_timestamp(result_doc.get("start_time"), tz, self.config.time_format),
            "order_map": ",".join(str(v) for v in order_map) if isinstance(order_map, list) else "",
        }
        values: dict[str, Any] = {key(name): metadata[name] for name in ASSESSMENT_FIELDS}

        ctx = ResultContext(
            collection_id=collection_id,
            tz=tz,
            time_format=self.config.time_format,
            locations=self._location_resolver(entries),
        )
        counts = SubtestCounts()

        for entry in entries:
            tag = entry.get("prototype")
            subtest_id = str(entry.get("subtestId", ""))
            if tag == COMPLETE_PROTOTYPE:
                completed_at = to_datetime((entry.get("data") or {}).get("end_time"), tz)
                if completed_at is not None:
                    ctx.timestamps.append(completed_at)
                continue
            handler = handler_for(tag, subtest_id, self.config.strict_prototypes)
            if handler is None:
                continue
            values.update(handler.process_result(entry, counts, ctx))

        flat = FlatResult(
            collection_id=collection_id,
            ref=str(result_doc.get("_id", "")),
            values=values,
            timestamps=sorted(ctx.timestamps),
            time_zone=time_zone,
        )
        if flat.timestamps:
            flat.start_time = flat.timestamps[0]
            flat.end_time = flat.timestamps[-1]
        else:
            flat.start_time = to_datetime(result_doc.get("start_time"), tz)

        if validate:
            self.apply_validation(flat)
        self._write_times(flat, key("start_time"), key("end_time"), tz)
        logger.debug("Flattened result %s into %d values", flat.ref, len(flat.values))
        return flat

    def apply_validation(self, flat: FlatResult) -> None:
        """Validate a flattened row in place.

        Sets validity, reason, and start/end times from the validator; the
        start time keeps its previous value when there are no timestamps.
        """
        outcome = self.validator.validate(flat.collection_id, flat.time_zone, flat.timestamps)
        flat.is_valid = outcome.is_valid
        flat.is_valid_reason = outcome.reason
        if outcome.start_time is not None:
            flat.start_time = outcome.start_time
        if outcome.end_time is not None:
            flat.end_time = outcome.end_time

    def _write_times(self, flat: FlatResult, start_key: str, end_key: str, tz: tzinfo) -> None:
        fmt = self.config.time_format
        if flat.start_time is not None:
            flat.values[start_key] = flat.start_time.astimezone(tz).strftime(fmt)
        flat.values[end_key] = flat.end_time.astimezone(tz).strftime(fmt) if flat.end_time else None
