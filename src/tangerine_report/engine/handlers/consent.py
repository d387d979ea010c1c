"""Consent prototype."""

from typing import Any

from tangerine_report.engine.handlers.base import (
    HeaderContext,
    PrototypeHandler,
    ResultContext,
)
from tangerine_report.engine.types import Prototype


class ConsentHandler(PrototypeHandler):
    """Handler for ``consent`` subtests."""

    prototype = Prototype.CONSENT

    def header_fields(
        self,
        subtest: dict[str, Any],
        ctx: HeaderContext,
    ) -> list[tuple[str, str | None]]:
        return [("consent", None)]

    def result_values(
        self,
        entry: dict[str, Any],
        data: dict[str, Any],
        ctx: ResultContext,
    ) -> dict[str, Any]:
        return {"consent": data.get("consent")}
