"""Camera prototype: captured photo."""

from typing import Any

from tangerine_report.engine.handlers.base import (
    HeaderContext,
    PrototypeHandler,
    ResultContext,
)
from tangerine_report.engine.types import Prototype
from tangerine_report.engine.values import variable_name


class CameraHandler(PrototypeHandler):
    """Handler for ``camera`` subtests."""

    prototype = Prototype.CAMERA

    def header_fields(
        self,
        subtest: dict[str, Any],
        ctx: HeaderContext,
    ) -> list[tuple[str, str | None]]:
        var = variable_name(subtest.get("variableName"), subtest.get("name"))
        return [(f"{var}_photo_captured", None), (f"{var}_photo_url", None)]

    def result_values(
        self,
        entry: dict[str, Any],
        data: dict[str, Any],
        ctx: ResultContext,
    ) -> dict[str, Any]:
        var = variable_name(data.get("variableName"), entry.get("name"))
        image = data.get("imageBase64")
        return {f"{var}_photo_captured": image, f"{var}_photo_url": image}
