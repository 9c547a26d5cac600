# src/cwlog/cli.py
"""cwlog Command Line Interface.

A tee(1)-like command for piping output to CloudWatch Logs. Reads
line-oriented data from standard input, copies it to standard output
(unless --no-tee) and sends each line as a log event.

If the log group or log stream does not exist, cwlog creates them. The
common case is an existing-but-empty stream, so cwlog writes first and
only provisions when the write reports the destination missing.
"""

from __future__ import annotations

from pathlib import Path
from typing import IO

import typer
from botocore.exceptions import BotoCoreError
from pydantic import ValidationError

from cwlog import __version__
from cwlog.core.config import WriterSettings, load_settings
from cwlog.core.logging import configure_logging
from cwlog.writer.errors import CwlogError
from cwlog.writer.factory import create_writer

__all__ = [
    "app",
    "run",
]

app = typer.Typer(
    name="cwlog",
    help="A tee(1)-like command for piping output to CloudWatch Logs.",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"cwlog version {__version__}")
        raise typer.Exit()


def run(settings: WriterSettings, source: IO[bytes], *, tee: IO[bytes] | None = None) -> None:
    """Ship source to CloudWatch Logs and flush everything before returning.

    Args:
        settings: Validated writer settings
        source: Binary input stream
        tee: Optional stream receiving a copy of the input

    Raises:
        CwlogError: If reading the input or delivering the logs failed
    """
    writer = create_writer(settings)
    try:
        writer.copy_from(source, tee=tee)
    except OSError as e:
        # tee side failed (e.g. closed stdout); stop reading, keep what we have
        writer.close_input(e)
    writer.close()


@app.command()
def main(
    log_group: str | None = typer.Option(
        None,
        "--log-group",
        "-g",
        envvar="CWLOG_LOG_GROUP",
        help="(Required) Log group to send logs to. Created if it does not exist.",
    ),
    log_stream: str | None = typer.Option(
        None,
        "--log-stream",
        "-s",
        envvar="CWLOG_LOG_STREAM",
        help="(Required) Log stream to send logs to. Created if it does not exist.",
    ),
    tee: bool = typer.Option(
        True,
        "--tee/--no-tee",
        envvar="CWLOG_TEE",
        help="Copy input to stdout.",
    ),
    settings_file: Path | None = typer.Option(
        None,
        "--settings",
        "-c",
        help="YAML settings file (region, batching, retry options).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Read lines from stdin and send them to CloudWatch Logs."""
    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "WARNING")

    try:
        settings = load_settings(settings_file, log_group=log_group, log_stream=log_stream)
    except FileNotFoundError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(2) from None
    except ValidationError as e:
        typer.secho("Error: invalid configuration (log-group and log-stream are required):", fg=typer.colors.RED, err=True)
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"])
            typer.secho(f"  - {location}: {error['msg']}", fg=typer.colors.RED, err=True)
        raise typer.Exit(2) from None

    try:
        run(
            settings,
            typer.get_binary_stream("stdin"),
            tee=typer.get_binary_stream("stdout") if tee else None,
        )
    except (CwlogError, BotoCoreError) as e:
        typer.secho(f"error: failed to write logs: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from None


if __name__ == "__main__":
    app()
