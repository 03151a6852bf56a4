# src/logdna_shipper/cli.py
"""logdna-shipper command line interface.

Ships lines from a file or stdin through a buffered logger, then waits for
every batch to be delivered before exiting.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any, TextIO

import typer

from logdna_shipper import __version__
from logdna_shipper.config import load_settings
from logdna_shipper.errors import LoggerConfigError
from logdna_shipper.logging import configure_logging, get_logger
from logdna_shipper.records import LogResult
from logdna_shipper.registry import LoggerRegistry

app = typer.Typer(
    name="logdna-shipper",
    help="Ship log lines to a LogDNA-compatible ingestion endpoint.",
    no_args_is_help=True,
)

EXIT_DELIVERY_FAILED = 1
EXIT_BAD_CONFIG = 2


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"logdna-shipper version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """logdna-shipper: buffered log shipping."""


@app.command()
def ship(
    source: Path | None = typer.Argument(
        None,
        exists=True,
        dir_okay=False,
        readable=True,
        help="File to ship line by line. Reads stdin when omitted.",
    ),
    key: str | None = typer.Option(
        None,
        "--key",
        "-k",
        envvar="LOGDNA_INGESTION_KEY",
        help="Ingestion key (overrides the settings file).",
    ),
    settings: Path | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
    level: str | None = typer.Option(
        None,
        "--level",
        "-l",
        help="Level for every shipped line (logger default when omitted).",
    ),
    app_name: str | None = typer.Option(
        None,
        "--app",
        "-a",
        help="App name (overrides the settings file).",
    ),
    wait: float = typer.Option(
        30.0,
        "--wait",
        help="Seconds to wait for delivery before giving up.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug diagnostics.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Emit diagnostics as JSON.",
    ),
) -> None:
    """Ship each non-empty line as one log record."""
    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "WARNING")
    log = get_logger(__name__)

    options: dict[str, object] = {}
    ingestion_key = key
    if settings is not None:
        try:
            loaded = load_settings(settings)
        except (FileNotFoundError, LoggerConfigError) as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(EXIT_BAD_CONFIG) from None
        options.update(loaded.logger)
        ingestion_key = ingestion_key or loaded.ingestion_key
    if app_name:
        options["app"] = app_name

    if not ingestion_key:
        typer.echo("Error: an ingestion key is required (--key or LOGDNA_INGESTION_KEY).", err=True)
        raise typer.Exit(EXIT_BAD_CONFIG)

    registry = LoggerRegistry()
    try:
        shipper = registry.create_logger(ingestion_key, options)
    except LoggerConfigError as e:
        registry.close()
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(EXIT_BAD_CONFIG) from None

    if source is None:
        buffered = _ship_lines(shipper.log, typer.get_text_stream("stdin"), level)
    else:
        with source.open(encoding="utf-8") as stream:
            buffered = _ship_lines(shipper.log, stream, level)

    try:
        registry.close(timeout=wait)
    except TimeoutError:
        typer.echo(f"Error: delivery did not finish within {wait}s.", err=True)
        raise typer.Exit(EXIT_DELIVERY_FAILED) from None
    metrics = shipper.health_metrics
    log.debug("Shipping finished", buffered=buffered, **metrics)

    if metrics["failed_flushes"]:
        typer.echo(f"Delivery failed for {metrics['lines_dropped']} of {buffered} line(s).", err=True)
        raise typer.Exit(EXIT_DELIVERY_FAILED)
    typer.echo(f"Shipped {metrics['lines_sent']} line(s) in {metrics['batches_sent']} batch(es).")


def _ship_lines(log_fn: Callable[[Any, Any], LogResult], stream: TextIO, level: str | None) -> int:
    buffered = 0
    for raw in stream:
        line = raw.rstrip("\r\n")
        if not line.strip():
            continue
        result = log_fn(line, level)
        if result.buffered:
            buffered += 1
    return buffered
