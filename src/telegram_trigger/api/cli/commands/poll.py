"""Run the polling trigger from the command line.

Updates are written to stdout as JSON lines; status and logs go to stderr.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import structlog
import typer
from rich.console import Console

from telegram_trigger.application.trigger import TelegramTrigger
from telegram_trigger.core.domain.config_schema import TriggerParameters
from telegram_trigger.core.domain.errors import ConfigError, TriggerError
from telegram_trigger.core.interfaces.credentials import CredentialProviderProtocol
from telegram_trigger.infrastructure.config.settings_loader import load_trigger_settings
from telegram_trigger.infrastructure.sinks.update_sinks import (
    CallbackUpdateSink,
    JsonLinesUpdateSink,
)

console = Console(stderr=True)


def configure_logging(debug: bool) -> None:
    """Route structlog output to stderr at INFO, or DEBUG with --debug."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(level=level, format="%(message)s", stream=sys.stderr)
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def poll(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="YAML settings file"
    ),
    token: Optional[str] = typer.Option(
        None, "--token", help="Bot token (default: $TELEGRAM_BOT_TOKEN)"
    ),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="Bot API origin"),
    offset: Optional[int] = typer.Option(None, "--offset", help="First update id"),
    limit: Optional[int] = typer.Option(None, "--limit", help="Updates per call (1-100)"),
    timeout: Optional[int] = typer.Option(
        None, "--timeout", help="Long polling timeout in seconds"
    ),
    updates: Optional[list[str]] = typer.Option(
        None, "--updates", "-u", help="Update type to forward (repeatable, '*' for all)"
    ),
    drop_webhook: Optional[bool] = typer.Option(
        None, "--drop-webhook/--keep-webhook", help="Delete a registered webhook first"
    ),
    max_batches: Optional[int] = typer.Option(
        None, "--max-batches", min=1, help="Stop after this many emitted batches"
    ),
) -> None:
    """Poll getUpdates and print forwarded updates as JSON lines."""
    global_opts = ctx.obj or {}
    configure_logging(global_opts.get("debug", False))

    try:
        settings = load_trigger_settings(config).with_overrides(
            offset=offset,
            limit=limit,
            timeout=timeout,
            updates=updates or None,
            drop_webhook=drop_webhook,
        )
    except ConfigError as exc:
        _print_error(exc)
        raise typer.Exit(code=2)

    credential_overrides: dict[str, Any] = {}
    if token:
        credential_overrides["access_token"] = token
    if base_url:
        credential_overrides["base_url"] = base_url
    credentials = settings.credentials.model_copy(update=credential_overrides)

    try:
        provider = credentials.build_provider()
        console.print(
            "[bold green]Polling getUpdates[/bold green] "
            f"(updates: {', '.join(settings.parameters.updates)}). Press Ctrl+C to stop."
        )
        asyncio.run(_run_trigger(settings.parameters, provider, max_batches))
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped.[/yellow]")
    except ConfigError as exc:
        _print_error(exc)
        raise typer.Exit(code=2)
    except TriggerError as exc:
        _print_error(exc)
        raise typer.Exit(code=1)


async def _run_trigger(
    parameters: TriggerParameters,
    provider: CredentialProviderProtocol,
    max_batches: int | None,
) -> None:
    """Run until interrupted, the batch limit is reached, or a fatal error."""
    writer = JsonLinesUpdateSink()
    limit_reached = asyncio.Event()

    def _emit(batch: list[dict[str, Any]]) -> None:
        writer.emit(batch)
        if max_batches is not None and writer.batches >= max_batches:
            limit_reached.set()

    trigger = TelegramTrigger(parameters, provider, CallbackUpdateSink(_emit))
    handle = await trigger.start()

    run_task = asyncio.create_task(handle.wait())
    limit_task = asyncio.create_task(limit_reached.wait())
    try:
        await asyncio.wait({run_task, limit_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        limit_task.cancel()
        await handle.stop()
        await asyncio.wait({run_task})
        if not run_task.cancelled():
            run_task.exception()

    error = handle.exception()
    if error is not None:
        raise error
    console.print(
        f"[green]Done.[/green] {writer.updates} updates in {writer.batches} batches, "
        f"next offset {handle.cursor}."
    )


def _print_error(exc: TriggerError) -> None:
    console.print(f"[red]{exc.code}:[/red] {exc.message}")
    for item in (exc.details or {}).get("errors", []):
        console.print(f"  [dim]{item['field']}[/dim]: {item['message']}")
