"""Tests for the Result Engine."""

from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

import pytest

from tangerine_report.core.config.models import EngineConfig, ValidationWindowConfig
from tangerine_report.core.exceptions import MalformedInputError
from tangerine_report.engine.headers import HeaderEngine
from tangerine_report.engine.results import FlatResult, ResultEngine, collection_id_of, subtest_entries
from tangerine_report.engine.validation import SchoolHoursValidator
from tangerine_report.store import InMemoryDocumentStore

NAIROBI = ZoneInfo("Africa/Nairobi")


class TestFlattenResult:
    """Single result flattening."""

    def test_keys_subset_of_headers(self, store: InMemoryDocumentStore, result_doc: dict[str, Any]) -> None:
        """Every produced key has a column in the assessment's header set."""
        header_keys = {h.key for h in HeaderEngine(store).build_assessment_headers("a1")}
        flat = ResultEngine(store).flatten_result(result_doc)
        assert set(flat.values) <= header_keys

    def test_metadata_values(self, store: InMemoryDocumentStore, result_doc: dict[str, Any]) -> None:
        """Assessment-level values come from the result document."""
        values = ResultEngine(store).flatten_result(result_doc).values
        assert values["a1.assessment_id"] == "a1"
        assert values["a1.assessment_name"] == "Early Grade Reading"
        assert values["a1.enumerator"] == "enum-jane"
        assert values["a1.order_map"] == "0,1,2,3,4,5,6,7"

    def test_start_and_end_times(self, store: InMemoryDocumentStore, result_doc: dict[str, Any]) -> None:
        """Start and end come from the earliest and latest timestamps, local time."""
        flat = ResultEngine(store).flatten_result(result_doc)
        assert flat.values["a1.start_time"] == "08:00"
        assert flat.values["a1.end_time"] == "08:40"
        assert flat.end_time == datetime(2025, 3, 3, 8, 40, tzinfo=NAIROBI)

    def test_locations_resolved(self, store: InMemoryDocumentStore, result_doc: dict[str, Any]) -> None:
        """Location ids resolve through the group's location list."""
        values = ResultEngine(store).flatten_result(result_doc).values
        assert values["s-loc.school"] == "Hill School"

    def test_without_store_keeps_location_ids(self, result_doc: dict[str, Any]) -> None:
        """The engine works without a store; locations stay as ids."""
        values = ResultEngine().flatten_result(result_doc).values
        assert values["s-loc.school"] == "sch-hill"

    def test_timestamp_keys_follow_header_numbering(
        self, store: InMemoryDocumentStore, result_doc: dict[str, Any]
    ) -> None:
        """The grid advances the counter by its item count; one key per subtest."""
        values = ResultEngine(store).flatten_result(result_doc).values
        stamps = [k for k in values if ".timestamp_" in k]
        assert stamps == [
            "s-loc.timestamp_0",
            "s-dt.timestamp_1",
            "s-consent.timestamp_2",
            "s-id.timestamp_3",
            "s-survey.timestamp_4",
            "s-grid.timestamp_5",
            "s-gps.timestamp_8",
            "s-camera.timestamp_9",
        ]

    def test_valid_school_day(self, store: InMemoryDocumentStore, result_doc: dict[str, Any]) -> None:
        """A 40 minute Monday morning session is valid."""
        flat = ResultEngine(store).flatten_result(result_doc)
        assert flat.is_valid is True
        assert flat.is_valid_reason == ""

    def test_invalid_reason_recorded(self, store: InMemoryDocumentStore, result_doc: dict[str, Any]) -> None:
        """Validation failures are data, not exceptions."""
        window = ValidationWindowConfig(min_duration_minutes=60)
        flat = ResultEngine(store, SchoolHoursValidator(window)).flatten_result(result_doc)
        assert flat.is_valid is False
        assert flat.is_valid_reason == "shorter than 60 minutes"

    def test_validate_false_skips_validation(self, result_doc: dict[str, Any]) -> None:
        """Workflow children are flattened without their own validation."""
        flat = ResultEngine().flatten_result(result_doc, validate=False)
        assert flat.is_valid is False
        assert flat.is_valid_reason == ""
        assert flat.values["a1.end_time"] == "08:40"

    def test_group_time_zone_fallback(self, result_doc: dict[str, Any]) -> None:
        """Without groupTimeZone the configured default zone is used."""
        del result_doc["groupTimeZone"]
        engine = ResultEngine(config=EngineConfig(time_zone="UTC"))
        flat = engine.flatten_result(result_doc)
        assert flat.time_zone == "UTC"
        assert flat.values["a1.start_time"] == "05:00"

    def test_custom_time_format(self, result_doc: dict[str, Any]) -> None:
        """Timestamp cells use the configured format."""
        engine = ResultEngine(config=EngineConfig(time_format="%Y-%m-%d %H:%M"))
        values = engine.flatten_result(result_doc).values
        assert values["s-consent.timestamp_2"] == "2025-03-03 08:03"

    def test_no_timestamps(self) -> None:
        """Without timestamps the row is invalid and end_time is empty."""
        doc = {"_id": "r0", "assessmentId": "x", "start_time": "2025-03-03T08:00:00+03:00", "subtestData": []}
        flat = ResultEngine().flatten_result(doc)
        assert flat.is_valid is False
        assert flat.is_valid_reason == "no timestamps"
        assert flat.values["x.end_time"] is None
        assert flat.start_time is not None

    def test_curriculum_result(self) -> None:
        """Curriculum results are keyed by curriculumId."""
        doc = {"_id": "r0", "curriculumId": "c1", "subtestData": []}
        assert ResultEngine().flatten_result(doc).collection_id == "c1"

    def test_missing_collection_id(self) -> None:
        """A result without assessment or curriculum cannot be flattened."""
        with pytest.raises(MalformedInputError):
            ResultEngine().flatten_result({"_id": "r0", "subtestData": []})

    def test_unknown_prototype_skipped(self, result_doc: dict[str, Any]) -> None:
        """Unknown entries are skipped without consuming a timestamp."""
        result_doc["subtestData"].insert(0, {"subtestId": "s-timer", "prototype": "timer", "data": {}})
        values = ResultEngine().flatten_result(result_doc).values
        assert not any(k.startswith("s-timer.") for k in values)
        assert "s-loc.timestamp_0" in values


class TestFlatResult:
    """Persisted record layout."""

    def test_partition_keys(self, store: InMemoryDocumentStore, result_doc: dict[str, Any]) -> None:
        """Records are partitioned by parent id and start date."""
        flat = ResultEngine(store).flatten_result(result_doc)
        assert flat.partition_keys() == {"parent_id": "a1", "year": 2025, "month": "Mar", "day": 3}

    def test_to_record(self, store: InMemoryDocumentStore, result_doc: dict[str, Any]) -> None:
        """Validity is stored inside processed_results."""
        record = ResultEngine(store).flatten_result(result_doc).to_record()
        assert record["parent_id"] == "a1"
        assert record["result_month"] == "Mar"
        assert record["processed_results"]["isValid"] is True
        assert record["processed_results"]["isValidReason"] == ""
        assert record["processed_results"]["s-id.id"] == "P-001"

    def test_record_without_start(self) -> None:
        """Partition date fields are None without a start time."""
        record = FlatResult(collection_id="a1", ref="r0").to_record()
        assert record["result_year"] is None
        assert record["result_day"] is None


class TestHelpers:
    """Module helpers."""

    def test_collection_id_prefers_assessment(self) -> None:
        """assessmentId wins over curriculumId."""
        assert collection_id_of({"assessmentId": "a", "curriculumId": "c"}) == "a"

    def test_subtest_entries_normalizes(self) -> None:
        """A single entry dict becomes a list; junk entries are dropped."""
        assert subtest_entries({"subtestData": {"subtestId": "s"}}) == [{"subtestId": "s"}]
        assert subtest_entries({"subtestData": [{"subtestId": "s"}, "junk"]}) == [{"subtestId": "s"}]
        assert subtest_entries({}) == []
