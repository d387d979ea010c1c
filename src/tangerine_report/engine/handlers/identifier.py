"""Participant id prototype."""

from typing import Any

from tangerine_report.engine.handlers.base import (
    HeaderContext,
    PrototypeHandler,
    ResultContext,
)
from tangerine_report.engine.types import Prototype


class IdHandler(PrototypeHandler):
    """Handler for ``id`` subtests."""

    prototype = Prototype.ID

    def header_fields(
        self,
        subtest: dict[str, Any],
        ctx: HeaderContext,
    ) -> list[tuple[str, str | None]]:
        return [("id", None)]

    def result_values(
        self,
        entry: dict[str, Any],
        data: dict[str, Any],
        ctx: ResultContext,
    ) -> dict[str, Any]:
        return {"id": data.get("participant_id")}
