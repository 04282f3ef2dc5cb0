"""Typer CLI for the Droonga dump client."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import structlog
import typer
from rich.console import Console

from drndump import __version__
from drndump.config.loader import load_client_config
from drndump.config.models import ClientConfig
from drndump.dump.progress import ProgressEstimator
from drndump.dump.session import DumpSession
from drndump.observability.log import configure_logging
from drndump.observability.reporter import ProgressReporter
from drndump.transport.forward import ForwardTransport

logger = structlog.get_logger()
console = Console(stderr=True)
app = typer.Typer(name="drndump", help="Dump a Droonga dataset as Groonga commands")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """Droonga dump client."""


def _without_none(data: dict[str, Any]) -> dict[str, Any]:
    cleaned: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, dict):
            value = _without_none(value)
            if not value:
                continue
        elif value is None:
            continue
        cleaned[key] = value
    return cleaned


def _load(config_path: str | None, overrides: dict[str, Any]) -> ClientConfig:
    try:
        return load_client_config(
            Path(config_path) if config_path else None, _without_none(overrides)
        )
    except (ValueError, TypeError, FileNotFoundError) as exc:
        console.print(f"[red]Config error:[/red] {exc}", highlight=False)
        raise typer.Exit(1) from exc


def _print_command(command: dict[str, Any]) -> None:
    typer.echo(json.dumps(command, indent=2, ensure_ascii=False))


async def _dump(config: ClientConfig) -> DumpSession:
    transport = ForwardTransport(config.connection)
    estimator = ProgressEstimator(config.dump.messages_per_second)
    reporter: ProgressReporter | None = None
    if config.progress.enabled:
        reporter = ProgressReporter(
            estimator, console, interval_seconds=config.progress.interval_seconds
        )

    session = DumpSession(
        transport,
        _print_command,
        dataset=config.dump.dataset,
        messages_per_second=config.dump.messages_per_second,
        progress=estimator,
        on_progress=reporter,
        on_finish=reporter.finish if reporter is not None else None,
    )
    session.start()
    await transport.wait_closed()
    return session


@app.command()
def dump(
    config_path: str | None = typer.Option(
        None, "--config", "-c", help="Client config YAML"
    ),
    host: str | None = typer.Option(
        None, "--host", help="Host name of the Droonga engine."
    ),
    port: int | None = typer.Option(
        None, "--port", help="Port number of the Droonga engine."
    ),
    tag: str | None = typer.Option(
        None, "--tag", help="Tag name used to talk to the Droonga system."
    ),
    dataset: str | None = typer.Option(None, "--dataset", help="Dataset to dump."),
    receiver_host: str | None = typer.Option(
        None,
        "--receiver-host",
        help="Host name the Droonga engine sends dump messages to.",
    ),
    receiver_port: int | None = typer.Option(
        None,
        "--receiver-port",
        help="Port number the Droonga engine sends dump messages to (0: any).",
    ),
    messages_per_second: int | None = typer.Option(
        None,
        "--messages-per-second",
        help="Ask the engine to throttle the dump to this rate.",
    ),
    progress: bool | None = typer.Option(
        None, "--progress/--no-progress", help="Report progress on stderr."
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Log level."),
) -> None:
    """Dump a dataset and print it as Groonga commands (JSON) on stdout."""
    config = _load(
        config_path,
        {
            "connection": {
                "host": host,
                "port": port,
                "tag": tag,
                "receiver_host": receiver_host,
                "receiver_port": receiver_port,
            },
            "dump": {
                "dataset": dataset,
                "messages_per_second": messages_per_second,
            },
            "progress": {"enabled": progress},
            "log_level": log_level,
        },
    )
    configure_logging(config.log_level)

    try:
        session = asyncio.run(_dump(config))
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted[/yellow]")
        raise typer.Exit(1) from None

    if session.failed:
        console.print(session.error_message, markup=False, highlight=False)
        raise typer.Exit(1)


@app.command()
def validate(
    config_path: str | None = typer.Option(
        None, "--config", "-c", help="Client config YAML"
    ),
) -> None:
    """Validate a client configuration file."""
    config = _load(config_path, {})
    conn = config.connection
    console.print("[green]Valid[/green]")
    console.print(f"  engine:   {conn.host}:{conn.port} (tag {conn.tag})")
    receiver = conn.receiver_host or "(local host name)"
    console.print(f"  receiver: {receiver}:{conn.receiver_port or '(any)'}")
    console.print(f"  dataset:  {config.dump.dataset}")
    rate = config.dump.messages_per_second
    console.print(f"  throttle: {rate if rate is not None else '(engine default)'}")
    console.print(f"  config:   {config_path or '(defaults)'}")
