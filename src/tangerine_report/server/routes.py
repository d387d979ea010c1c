"""Report route handlers.

Provides endpoints that trigger report passes:
- /assessment/headers/all, /assessment/headers/{id} - Regenerate header sets
- /assessment/result/all, /assessment/result/{id} - Reprocess results
- /workflow/headers/all, /workflow/headers/{id} - Regenerate workflow header sets
- /workflow/result/{id} - Reprocess one workflow trip
- /generate_csv - Write saved results to a CSV file

Passes are blocking store round-trips and run in a worker thread.
"""

import logging
from collections.abc import Callable
from functools import partial
from pathlib import Path
from typing import Any

import anyio.to_thread
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from tangerine_report.core.exceptions import (
    DocumentNotFoundError,
    MalformedInputError,
    StoreError,
    TangerineReportError,
)
from tangerine_report.service import BatchSummary, ReportService

logger = logging.getLogger(__name__)


def _get_service(request: Request) -> ReportService:
    """Get report service from app state."""
    return request.app.state.report_service


async def _run(request: Request, operation: Callable[[], Any]) -> JSONResponse:
    """Run a blocking pass and map its outcome to a JSON response."""
    try:
        outcome = await anyio.to_thread.run_sync(operation)
    except DocumentNotFoundError as e:
        return JSONResponse({"error": str(e), "id": e.doc_id}, status_code=404)
    except MalformedInputError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    except StoreError as e:
        logger.error("Store failure on %s: %s", request.url.path, e)
        return JSONResponse({"error": str(e)}, status_code=502)
    except TangerineReportError as e:
        logger.exception("Report pass failed on %s", request.url.path)
        return JSONResponse({"error": str(e)}, status_code=500)

    if isinstance(outcome, BatchSummary):
        return JSONResponse({"ok": not outcome.failed, **outcome.to_dict()})
    return JSONResponse({"ok": True, "result": outcome})


async def assessment_headers(request: Request) -> JSONResponse:
    """POST /assessment/headers/{id} - Regenerate one assessment's header set."""
    service = _get_service(request)
    return await _run(request, partial(service.generate_assessment_headers, request.path_params["id"]))


async def all_assessment_headers(request: Request) -> JSONResponse:
    """POST /assessment/headers/all - Regenerate every assessment header set."""
    return await _run(request, _get_service(request).generate_all_assessment_headers)


async def assessment_result(request: Request) -> JSONResponse:
    """POST /assessment/result/{id} - Reprocess one result document."""
    service = _get_service(request)
    return await _run(request, partial(service.process_assessment_result, request.path_params["id"]))


async def all_assessment_results(request: Request) -> JSONResponse:
    """POST /assessment/result/all - Reprocess every result document."""
    return await _run(request, _get_service(request).process_all_results)


async def workflow_headers(request: Request) -> JSONResponse:
    """POST /workflow/headers/{id} - Regenerate one workflow's header set."""
    service = _get_service(request)
    return await _run(request, partial(service.generate_workflow_headers, request.path_params["id"]))


async def all_workflow_headers(request: Request) -> JSONResponse:
    """POST /workflow/headers/all - Regenerate every workflow header set."""
    return await _run(request, _get_service(request).generate_all_workflow_headers)


async def workflow_result(request: Request) -> JSONResponse:
    """POST /workflow/result/{id} - Reprocess one workflow trip.

    The path id is the trip id shared by the trip's result documents.
    """
    service = _get_service(request)
    return await _run(request, partial(service.process_workflow_result, request.path_params["id"]))


def _export_path(export_dir: Path, requested: str) -> Path | None:
    """Resolve a requested output path inside the export directory.

    Returns None for absolute or home-relative paths and for paths that
    leave the directory, including through symlinks.
    """
    relative = Path(requested)
    if relative.is_absolute() or requested.startswith("~") or ".." in relative.parts:
        return None
    base = export_dir.resolve()
    target = (base / relative).resolve()
    if target == base or not target.is_relative_to(base):
        return None
    return target


async def generate_csv(request: Request) -> JSONResponse:
    """POST /generate_csv - Write saved results as CSV.

    ``path`` is resolved inside ``server.export_dir``; absolute paths and
    ``..`` segments are rejected.

    Body:
        {
            "headerId": "assessment-or-workflow-id",
            "resultIds": ["result-1", "trip-2"],
            "path": "reports/assessment-1.csv"
        }

    Returns:
        200: Number of rows written and the output path.
        400: Invalid body, or a path outside server.export_dir.
        404: Header set or result record missing.

    """
    service = _get_service(request)

    try:
        body = await request.json()
    except ValueError:
        return JSONResponse({"error": "Invalid JSON body"}, status_code=400)
    if not isinstance(body, dict):
        return JSONResponse({"error": "Body must be a JSON object"}, status_code=400)

    header_id = body.get("headerId")
    if not header_id:
        return JSONResponse({"error": "Missing 'headerId' field"}, status_code=400)
    result_ids = body.get("resultIds") or ([body["resultId"]] if body.get("resultId") else [])
    if not isinstance(result_ids, list):
        return JSONResponse({"error": "'resultIds' must be a list"}, status_code=400)
    output = body.get("path")
    if not output:
        return JSONResponse({"error": "Missing 'path' field"}, status_code=400)

    path = _export_path(service.config.server.export_dir, str(output))
    if path is None:
        return JSONResponse(
            {"error": "'path' must be a relative path inside the export directory"},
            status_code=400,
        )
    response = await _run(
        request,
        partial(service.export_csv, str(header_id), [str(r) for r in result_ids], path),
    )
    if response.status_code == 200:
        logger.info("Exported %d results of %s to %s", len(result_ids), header_id, path)
    return response


# Fixed "/all" paths precede the "{id}" paths they would otherwise match.
routes = [
    Route("/assessment/headers/all", all_assessment_headers, methods=["POST"]),
    Route("/assessment/headers/{id}", assessment_headers, methods=["POST"]),
    Route("/assessment/result/all", all_assessment_results, methods=["POST"]),
    Route("/assessment/result/{id}", assessment_result, methods=["POST"]),
    Route("/workflow/headers/all", all_workflow_headers, methods=["POST"]),
    Route("/workflow/headers/{id}", workflow_headers, methods=["POST"]),
    Route("/workflow/result/{id}", workflow_result, methods=["POST"]),
    Route("/generate_csv", generate_csv, methods=["POST"]),
]
