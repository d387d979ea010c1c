"""Flattening engines: header sets, result rows and workflow composition.

Usage:
    from tangerine_report.engine import HeaderEngine, ResultEngine, WorkflowComposer

    headers = HeaderEngine(store).build_assessment_headers(assessment_id)
    flat = ResultEngine(store).flatten_result(result_doc)
"""

from tangerine_report.engine.headers import HeaderEngine, result_grid_items
from tangerine_report.engine.results import FlatResult, ResultEngine
from tangerine_report.engine.types import (
    ColumnHeader,
    ColumnKey,
    Prototype,
    SubtestCounts,
    occurrence_suffix,
)
from tangerine_report.engine.validation import (
    SchoolHoursValidator,
    TimeWindowValidator,
    ValidationResult,
)
from tangerine_report.engine.workflow import WorkflowComposer

__all__ = [
    "ColumnHeader",
    "ColumnKey",
    "FlatResult",
    "HeaderEngine",
    "Prototype",
    "ResultEngine",
    "SchoolHoursValidator",
    "SubtestCounts",
    "TimeWindowValidator",
    "ValidationResult",
    "WorkflowComposer",
    "occurrence_suffix",
    "result_grid_items",
]
