"""HTTP interface for triggering report passes."""

from tangerine_report.server.app import create_app
from tangerine_report.server.routes import routes

__all__ = ["create_app", "routes"]
