"""Survey prototype: one column per question."""

import logging
from typing import Any

from tangerine_report.engine.handlers.base import (
    HeaderContext,
    PrototypeHandler,
    ResultContext,
)
from tangerine_report.engine.types import Prototype
from tangerine_report.engine.values import translate_survey_value
from tangerine_report.store.base import order_rank

logger = logging.getLogger(__name__)


class SurveyHandler(PrototypeHandler):
    """Handler for ``survey`` subtests.

    Headers come from the subtest's question documents in rank order. Results
    copy every answered field of the subtest data, translating answer codes.
    Multi-option answers (checkbox groups) are joined with commas.
    """

    prototype = Prototype.SURVEY

    def header_fields(
        self,
        subtest: dict[str, Any],
        ctx: HeaderContext,
    ) -> list[tuple[str, str | None]]:
        subtest_id = str(subtest.get("_id", ""))
        questions = sorted(ctx.store.get_questions_by_subtest(subtest_id), key=order_rank)
        fields: list[tuple[str, str | None]] = []
        for question in questions:
            name = question.get("name")
            if not name:
                logger.warning("Question %s of subtest %s has no name", question.get("_id"), subtest_id)
                continue
            fields.append((str(name), None))
        return fields

    def result_values(
        self,
        entry: dict[str, Any],
        data: dict[str, Any],
        ctx: ResultContext,
    ) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for name, answer in data.items():
            if isinstance(answer, dict):
                values[name] = ",".join(translate_survey_value(v) for v in answer.values())
            elif isinstance(answer, list):
                values[name] = ",".join(translate_survey_value(v) for v in answer)
            else:
                values[name] = translate_survey_value(answer)
        return values
