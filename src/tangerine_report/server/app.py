"""Starlette application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from starlette.applications import Starlette

from tangerine_report.server.routes import routes
from tangerine_report.service import ReportService

logger = logging.getLogger(__name__)


def create_app(service: ReportService) -> Starlette:
    """Create the HTTP application around a report service.

    The service's stores are closed when the application shuts down.
    """

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        yield
        service.close()

    app = Starlette(routes=routes, lifespan=lifespan)
    app.state.report_service = service
    logger.debug("Created app with %d routes", len(routes))
    return app
