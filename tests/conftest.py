"""Pytest configuration and fixtures for tangerine-report tests.

The sample group holds one assessment (``a1``) exercising every prototype,
one curriculum (``c1``), a workflow (``wf1``) chaining both with messages,
one standalone result (``r1``) and one workflow trip (``t1``). All times are
Monday 2025-03-03 in Africa/Nairobi (UTC+3).
"""

from typing import Any

import pytest

from tangerine_report.store import InMemoryDocumentStore

NAIROBI = "Africa/Nairobi"


def at(clock: str) -> str:
    """ISO timestamp on the sample day at a Nairobi wall-clock time."""
    return f"2025-03-03T{clock}:00+03:00"


@pytest.fixture(autouse=True)
def reset_config_singleton():
    """Reset config singleton before and after each test."""
    from tangerine_report.core.config import _reset_config

    _reset_config()
    yield
    _reset_config()


def _assessment_docs() -> list[dict[str, Any]]:
    return [
        {"_id": "a1", "collection": "assessment", "name": "Early Grade Reading"},
        {
            "_id": "s-loc",
            "collection": "subtest",
            "assessmentId": "a1",
            "order": 0,
            "prototype": "location",
            "name": "School Location",
            "labels": ["County", "Sub County", "School"],
        },
        {
            "_id": "s-dt",
            "collection": "subtest",
            "assessmentId": "a1",
            "order": 1,
            "prototype": "datetime",
            "name": "Date and Time",
        },
        {
            "_id": "s-consent",
            "collection": "subtest",
            "assessmentId": "a1",
            "order": 2,
            "prototype": "consent",
            "name": "Consent",
        },
        {
            "_id": "s-id",
            "collection": "subtest",
            "assessmentId": "a1",
            "order": 3,
            "prototype": "id",
            "name": "Student ID",
        },
        {
            "_id": "s-survey",
            "collection": "subtest",
            "assessmentId": "a1",
            "order": 4,
            "prototype": "survey",
            "name": "Student Background",
        },
        # Questions stored out of order on purpose
        {"_id": "q-gender", "collection": "question", "subtestId": "s-survey", "order": 1, "name": "gender"},
        {"_id": "q-lang", "collection": "question", "subtestId": "s-survey", "order": 2, "name": "languages"},
        {"_id": "q-age", "collection": "question", "subtestId": "s-survey", "order": 0, "name": "age"},
        {
            "_id": "s-grid",
            "collection": "subtest",
            "assessmentId": "a1",
            "order": 5,
            "prototype": "grid",
            "name": "Letter Sounds",
            "variableName": "letters",
        },
        {
            "_id": "s-gps",
            "collection": "subtest",
            "assessmentId": "a1",
            "order": 6,
            "prototype": "gps",
            "name": "GPS",
        },
        {
            "_id": "s-camera",
            "collection": "subtest",
            "assessmentId": "a1",
            "order": 7,
            "prototype": "camera",
            "name": "School Photo",
            "variableName": "school_photo",
        },
    ]


def _curriculum_docs() -> list[dict[str, Any]]:
    return [
        {"_id": "c1", "collection": "curriculum", "name": "Class Observation"},
        {
            "_id": "s-c-consent",
            "collection": "subtest",
            "assessmentId": "c1",
            "order": 0,
            "prototype": "consent",
            "name": "Teacher Consent",
        },
        {
            "_id": "s-c-survey",
            "collection": "subtest",
            "assessmentId": "c1",
            "order": 1,
            "prototype": "survey",
            "name": "Lesson",
        },
        {
            "_id": "q-lesson",
            "collection": "question",
            "subtestId": "s-c-survey",
            "order": 0,
            "name": "lesson_observed",
        },
    ]


def sample_result() -> dict[str, Any]:
    """Standalone result of ``a1`` touching every prototype."""
    return {
        "_id": "r1",
        "collection": "result",
        "assessmentId": "a1",
        "assessmentName": "Early Grade Reading",
        "enumerator": "enum-jane",
        "start_time": at("08:00"),
        "order_map": [0, 1, 2, 3, 4, 5, 6, 7],
        "groupTimeZone": NAIROBI,
        "subtestData": [
            {
                "subtestId": "s-loc",
                "prototype": "location",
                "name": "School Location",
                "timestamp": at("08:00"),
                "data": {
                    "labels": ["County", "Sub County", "School"],
                    "location": ["c-nbi", "sc-west", "sch-hill"],
                },
            },
            {
                "subtestId": "s-dt",
                "prototype": "datetime",
                "name": "Date and Time",
                "timestamp": at("08:02"),
                "data": {"year": "2025", "month": "mar", "day": "3", "time": "08:02"},
            },
            {
                "subtestId": "s-consent",
                "prototype": "consent",
                "name": "Consent",
                "timestamp": at("08:03"),
                "data": {"consent": "yes"},
            },
            {
                "subtestId": "s-id",
                "prototype": "id",
                "name": "Student ID",
                "timestamp": at("08:04"),
                "data": {"participant_id": "P-001"},
            },
            {
                "subtestId": "s-survey",
                "prototype": "survey",
                "name": "Student Background",
                "timestamp": at("08:10"),
                "data": {
                    "age": "9",
                    "gender": "female",
                    "languages": {"english": "checked", "swahili": "unchecked"},
                },
            },
            {
                "subtestId": "s-grid",
                "prototype": "grid",
                "name": "Letter Sounds",
                "timestamp": at("08:20"),
                "data": {
                    "variable_name": "letters",
                    "auto_stop": False,
                    "time_remain": 10,
                    "capture_item_at_time": 30,
                    "attempted": 3,
                    "time_intermediate_captured": 30,
                    "time_allowed": 60,
                    "items": [
                        {"itemLabel": "a", "itemResult": "correct"},
                        {"itemLabel": "b", "itemResult": "incorrect"},
                        {"itemLabel": "c", "itemResult": "missing"},
                    ],
                },
            },
            {
                "subtestId": "s-gps",
                "prototype": "gps",
                "name": "GPS",
                "timestamp": at("08:26"),
                "data": {
                    "lat": -1.2667,
                    "long": 36.8,
                    "acc": 5,
                    "alt": 1700,
                    "altAcc": 3,
                    "heading": None,
                    "speed": None,
                    "timestamp": at("08:25"),
                },
            },
            {
                "subtestId": "s-camera",
                "prototype": "camera",
                "name": "School Photo",
                "timestamp": at("08:30"),
                "data": {"variableName": "school_photo", "imageBase64": "data:image/png;base64,AAAA"},
            },
            {
                "subtestId": "result",
                "prototype": "complete",
                "data": {"end_time": at("08:40")},
            },
        ],
    }


def _workflow_docs() -> list[dict[str, Any]]:
    return [
        {
            "_id": "wf1",
            "collection": "workflow",
            "name": "School Visit",
            "children": [
                {"type": "assessment", "typesId": "a1"},
                {"type": "message", "message": "Take a break"},
                {"type": "curriculum", "typesId": "c1"},
                {"type": "message", "message": "Visit complete"},
            ],
        },
        {
            "_id": "rt-a",
            "collection": "result",
            "assessmentId": "a1",
            "workflowId": "wf1",
            "tripId": "t1",
            "enumerator": "enum-jane",
            "start_time": at("09:00"),
            "groupTimeZone": NAIROBI,
            "subtestData": [
                {
                    "subtestId": "s-consent",
                    "prototype": "consent",
                    "timestamp": at("09:00"),
                    "data": {"consent": "yes"},
                },
                {
                    "subtestId": "s-id",
                    "prototype": "id",
                    "timestamp": at("09:05"),
                    "data": {"participant_id": "P-002"},
                },
            ],
        },
        {
            "_id": "rt-c",
            "collection": "result",
            "curriculumId": "c1",
            "workflowId": "wf1",
            "tripId": "t1",
            "enumerator": "enum-jane",
            "start_time": at("09:10"),
            "groupTimeZone": NAIROBI,
            "subtestData": [
                {
                    "subtestId": "s-c-consent",
                    "prototype": "consent",
                    "timestamp": at("09:10"),
                    "data": {"consent": "yes"},
                },
                {
                    "subtestId": "s-c-survey",
                    "prototype": "survey",
                    "timestamp": at("09:30"),
                    "data": {"lesson_observed": "checked"},
                },
            ],
        },
    ]


def _location_list() -> dict[str, Any]:
    return {
        "_id": "location-list",
        "locations": {
            "c-nbi": {
                "id": "c-nbi",
                "label": "Nairobi",
                "children": {
                    "sc-west": {
                        "id": "sc-west",
                        "label": "Westlands",
                        "children": {"sch-hill": {"id": "sch-hill", "label": "Hill School"}},
                    }
                },
            }
        },
    }


def sample_documents() -> list[dict[str, Any]]:
    """Every document of the sample group."""
    return [
        *_assessment_docs(),
        *_curriculum_docs(),
        *_workflow_docs(),
        sample_result(),
        _location_list(),
    ]


@pytest.fixture
def store() -> InMemoryDocumentStore:
    """In-memory source store holding the sample group."""
    return InMemoryDocumentStore(sample_documents())


@pytest.fixture
def result_store() -> InMemoryDocumentStore:
    """Empty in-memory store receiving header sets and processed results."""
    return InMemoryDocumentStore()


@pytest.fixture
def result_doc() -> dict[str, Any]:
    """The standalone sample result ``r1``."""
    return sample_result()
