"""tangerine-report command line interface.

Commands run one report pass against the configured CouchDB databases, or
against a JSON/YAML dump when ``--source-file`` is given (results are then
kept in memory and printed).

Examples:
    tangerine-report assessment headers assessment-1
    tangerine-report --source-file dump.json assessment result result-42
    tangerine-report workflow result trip-7
    tangerine-report csv assessment-1 report.csv -r result-42 -r result-43
    tangerine-report serve --port 5555

"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import typer
from rich.table import Table

from tangerine_report.changes import ChangeProcessor, follow_changes
from tangerine_report.cli_utils import (
    EXIT_CONFIG_ERROR,
    EXIT_ERROR,
    EXIT_SUCCESS,
    _error,
    _info,
    _setup_logging,
    _success,
    _warning,
    console,
)
from tangerine_report.core.config import load_config
from tangerine_report.core.config.models import ReportConfig
from tangerine_report.core.exceptions import ConfigError, DocumentNotFoundError, TangerineReportError
from tangerine_report.service import BatchSummary, ReportService, build_service
from tangerine_report.store import InMemoryDocumentStore

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="tangerine-report",
    help="Flatten Tangerine assessments and results into spreadsheet rows",
    no_args_is_help=True,
)
assessment_app = typer.Typer(
    name="assessment",
    help="Assessment and curriculum header sets and results",
    no_args_is_help=True,
)
workflow_app = typer.Typer(
    name="workflow",
    help="Workflow header sets and trip results",
    no_args_is_help=True,
)
app.add_typer(assessment_app)
app.add_typer(workflow_app)


@dataclass(frozen=True)
class CliState:
    """Options shared by every command."""

    config: ReportConfig
    source_file: Path | None = None


def _state(ctx: typer.Context) -> CliState:
    return ctx.find_root().obj


def _build_service(state: CliState) -> ReportService:
    if state.source_file is not None:
        return ReportService(
            InMemoryDocumentStore.from_file(state.source_file),
            InMemoryDocumentStore(),
            state.config,
        )
    return build_service(state.config)


@contextmanager
def _service(ctx: typer.Context) -> Iterator[ReportService]:
    """Open a report service and turn report errors into exit codes."""
    state = _state(ctx)
    try:
        with _build_service(state) as service:
            yield service
    except DocumentNotFoundError as e:
        _error(f"Not found: {e}")
        raise typer.Exit(code=EXIT_ERROR) from None
    except TangerineReportError as e:
        _error(str(e))
        logger.debug("Command failed", exc_info=True)
        raise typer.Exit(code=EXIT_ERROR) from None


def _print_headers(service: ReportService, doc_id: str) -> None:
    header_doc = service.result_store.get_document(doc_id)
    table = Table(title=f"Headers: {doc_id}")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Header")
    table.add_column("Key", style="cyan")
    for index, column in enumerate(header_doc.get("column_headers") or [], start=1):
        table.add_row(str(index), column.get("header", ""), column.get("key", ""))
    console.print(table)


def _report_summary(summary: BatchSummary, what: str) -> None:
    for doc_id, message in summary.failed.items():
        _warning(f"{doc_id}: {message}")
    if summary.failed:
        _error(f"{len(summary.failed)} of {len(summary.processed) + len(summary.failed)} {what} failed")
        raise typer.Exit(code=EXIT_ERROR)
    _success(f"Processed {len(summary.processed)} {what}")


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to tangerine-report.yaml (default: ./tangerine-report.yaml if present)",
    ),
    source_file: Path | None = typer.Option(
        None,
        "--source-file",
        "-s",
        help="Read documents from a JSON/YAML dump instead of CouchDB",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Only log warnings and errors",
    ),
) -> None:
    """Flatten Tangerine assessments and results into spreadsheet rows."""
    _setup_logging(verbose=verbose, quiet=quiet)
    try:
        loaded = load_config(config)
    except ConfigError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from None
    if source_file is not None and not source_file.is_file():
        _error(f"Source file not found: {source_file}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR)
    ctx.obj = CliState(config=loaded, source_file=source_file)


@assessment_app.command("headers")
def assessment_headers(
    ctx: typer.Context,
    assessment_id: str = typer.Argument(..., help="Assessment or curriculum id"),
    show: bool = typer.Option(False, "--show", help="Print the generated columns"),
) -> None:
    """Generate and save the header set of one assessment."""
    with _service(ctx) as service:
        service.generate_assessment_headers(assessment_id)
        if show:
            _print_headers(service, assessment_id)
    _success(f"Saved header set for {assessment_id}")


@assessment_app.command("headers-all")
def assessment_headers_all(ctx: typer.Context) -> None:
    """Regenerate the header sets of every assessment and curriculum."""
    with _service(ctx) as service:
        summary = service.generate_all_assessment_headers()
    _report_summary(summary, "header sets")


@assessment_app.command("result")
def assessment_result(
    ctx: typer.Context,
    result_id: str = typer.Argument(..., help="Result document id"),
) -> None:
    """Flatten and save one result document, printing the saved record."""
    with _service(ctx) as service:
        response = service.process_assessment_result(result_id)
        record = service.result_store.get_document(str(response.get("id", result_id)))
    console.print_json(data=record.get("processed_results") or {})


@workflow_app.command("headers")
def workflow_headers(
    ctx: typer.Context,
    workflow_id: str = typer.Argument(..., help="Workflow id"),
    show: bool = typer.Option(False, "--show", help="Print the generated columns"),
) -> None:
    """Generate and save the header set of one workflow."""
    with _service(ctx) as service:
        service.generate_workflow_headers(workflow_id)
        if show:
            _print_headers(service, workflow_id)
    _success(f"Saved header set for workflow {workflow_id}")


@workflow_app.command("headers-all")
def workflow_headers_all(ctx: typer.Context) -> None:
    """Regenerate the header sets of every workflow."""
    with _service(ctx) as service:
        summary = service.generate_all_workflow_headers()
    _report_summary(summary, "workflow header sets")


@workflow_app.command("result")
def workflow_result(
    ctx: typer.Context,
    trip_id: str = typer.Argument(..., help="Trip id shared by the trip's results"),
) -> None:
    """Compose and save the combined row of one workflow trip."""
    with _service(ctx) as service:
        service.process_workflow_result(trip_id)
        record = service.result_store.get_document(trip_id)
    console.print_json(data=record.get("processed_results") or {})


@app.command("process-all")
def process_all(ctx: typer.Context) -> None:
    """Reprocess every result document; workflow trips once each."""
    with _service(ctx) as service:
        summary = service.process_all_results()
    _report_summary(summary, "results")


@app.command("csv")
def export_csv(
    ctx: typer.Context,
    header_id: str = typer.Argument(..., help="Assessment or workflow id of the header set"),
    output: Path = typer.Argument(..., help="CSV file to write"),
    result_ids: list[str] = typer.Option(
        [],
        "--result",
        "-r",
        help="Processed result id (result id, or trip id for workflows); repeatable",
    ),
    refresh: bool = typer.Option(
        False,
        "--refresh",
        help="Regenerate the header set and reprocess the results first",
    ),
) -> None:
    """Write processed results as CSV in header-set column order."""
    if not result_ids:
        _warning("No --result given, writing the header row only")
    with _service(ctx) as service:
        if refresh:
            source = service.store.get_document(header_id)
            if source.get("collection") == "workflow":
                service.generate_workflow_headers(header_id)
                for trip_id in result_ids:
                    service.process_workflow_result(trip_id)
            else:
                service.generate_assessment_headers(header_id)
                for result_id in result_ids:
                    service.process_assessment_result(result_id)
        rows = service.export_csv(header_id, result_ids, output)
    _success(f"Wrote {rows} rows to {output}")


@app.command("changes")
def changes(
    ctx: typer.Context,
    since: str | None = typer.Option(
        None,
        "--since",
        help="Change sequence to start from (default: changes.since from config)",
    ),
    max_polls: int | None = typer.Option(
        None,
        "--max-polls",
        help="Stop after this many long-poll requests",
    ),
) -> None:
    """Follow the source database's change feed and keep reports current."""
    state = _state(ctx)
    if state.source_file is not None:
        _error("The change feed needs a CouchDB source; drop --source-file")
        raise typer.Exit(code=EXIT_CONFIG_ERROR)

    feed_config = state.config.changes
    if since is not None:
        feed_config = feed_config.model_copy(update={"since": since})
    _info(f"Following changes of {state.config.database.base_db}")
    with _service(ctx) as service:
        try:
            last_seq = follow_changes(
                state.config.database.base_db,
                ChangeProcessor(service),
                feed_config,
                max_polls=max_polls,
            )
        except KeyboardInterrupt:
            console.print("\n[yellow]Stopped[/yellow]")
            raise typer.Exit(code=EXIT_SUCCESS) from None
    _info(f"Stopped at sequence {last_seq}")


@app.command("serve")
def serve(
    ctx: typer.Context,
    host: str | None = typer.Option(None, "--host", help="Bind address (default: server.host)"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port (default: server.port)"),
) -> None:
    """Serve the HTTP trigger endpoints."""
    import uvicorn

    from tangerine_report.server import create_app

    state = _state(ctx)
    service = _build_service(state)
    bind_host = host or state.config.server.host
    bind_port = port or state.config.server.port
    _info(f"Serving on http://{bind_host}:{bind_port}")
    uvicorn.run(create_app(service), host=bind_host, port=bind_port, log_config=None)


if __name__ == "__main__":
    app()
