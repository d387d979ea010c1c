"""Shared CLI helpers: console, exit codes, logging setup and message output."""

import logging

from rich.console import Console
from rich.logging import RichHandler

console = Console()
err_console = Console(stderr=True)

EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2


def _setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Route log records through rich.

    Args:
        verbose: Log at DEBUG level.
        quiet: Only log warnings and errors.

    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=verbose, show_path=verbose)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _error(message: str) -> None:
    err_console.print(f"[red]Error:[/red] {message}")


def _warning(message: str) -> None:
    err_console.print(f"[yellow]Warning:[/yellow] {message}")


def _info(message: str) -> None:
    console.print(f"[blue]{message}[/blue]")


def _success(message: str) -> None:
    console.print(f"[green]{message}[/green]")
