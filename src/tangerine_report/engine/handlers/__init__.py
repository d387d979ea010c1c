"""Prototype handler registry.

One handler per Prototype. ``handler_for`` maps a raw subtest tag to its
handler and is the only dispatch point used by the engines.

Usage:
    from tangerine_report.engine.handlers import get_handler
    from tangerine_report.engine.types import Prototype

    handler = get_handler(Prototype.GPS)
"""

import logging
from types import MappingProxyType

from tangerine_report.core.exceptions import UnknownPrototypeError
from tangerine_report.engine.handlers.base import (
    GridItemLookup,
    HeaderContext,
    PrototypeHandler,
    ResultContext,
)
from tangerine_report.engine.handlers.camera import CameraHandler
from tangerine_report.engine.handlers.consent import ConsentHandler
from tangerine_report.engine.handlers.date_time import DatetimeHandler
from tangerine_report.engine.handlers.gps import GpsHandler
from tangerine_report.engine.handlers.grid import GridHandler
from tangerine_report.engine.handlers.identifier import IdHandler
from tangerine_report.engine.handlers.location import LocationHandler
from tangerine_report.engine.handlers.survey import SurveyHandler
from tangerine_report.engine.types import Prototype

logger = logging.getLogger(__name__)

HANDLERS: MappingProxyType[Prototype, PrototypeHandler] = MappingProxyType(
    {
        handler.prototype: handler
        for handler in (
            LocationHandler(),
            DatetimeHandler(),
            ConsentHandler(),
            IdHandler(),
            SurveyHandler(),
            GridHandler(),
            GpsHandler(),
            CameraHandler(),
        )
    }
)


def get_handler(prototype: Prototype) -> PrototypeHandler:
    """Return the handler registered for a prototype."""
    return HANDLERS[prototype]


def handler_for(tag: object, subtest_id: str = "", strict: bool = False) -> PrototypeHandler | None:
    """Return the handler for a raw prototype tag.

    Args:
        tag: ``prototype`` field of a subtest or result entry.
        subtest_id: Subtest id, for logging.
        strict: Raise on unknown tags instead of skipping them.

    Returns:
        The registered handler, or None when the tag is unknown and
        ``strict`` is False.

    Raises:
        UnknownPrototypeError: If the tag is unknown and ``strict`` is True.

    """
    prototype = Prototype.parse(tag)
    if prototype is None:
        if strict:
            raise UnknownPrototypeError(str(tag), subtest_id)
        logger.warning("Skipping subtest %s with unknown prototype '%s'", subtest_id, tag)
        return None
    return HANDLERS[prototype]


__all__ = [
    "HANDLERS",
    "CameraHandler",
    "ConsentHandler",
    "DatetimeHandler",
    "GpsHandler",
    "GridHandler",
    "GridItemLookup",
    "HeaderContext",
    "IdHandler",
    "LocationHandler",
    "PrototypeHandler",
    "ResultContext",
    "SurveyHandler",
    "get_handler",
    "handler_for",
]
