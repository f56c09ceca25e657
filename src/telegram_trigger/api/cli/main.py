"""Telegram trigger CLI entry point."""

import typer
from rich.console import Console
from rich.table import Table

from telegram_trigger.api.cli.commands import poll

app = typer.Typer(
    name="telegram-trigger",
    help="Telegram Bot API long-polling trigger",
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

app.command("poll")(poll.poll)


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """Telegram trigger CLI."""
    ctx.obj = {"debug": debug}


@app.command("update-types")
def update_types():
    """List the update types accepted by --updates."""
    from telegram_trigger.core.domain.updates import UPDATE_TYPES, WILDCARD

    table = Table(title="Update Types")
    table.add_column("Name", style="cyan")
    table.add_row(f"{WILDCARD} (all)")
    for name in UPDATE_TYPES:
        table.add_row(name)
    console.print(table)


@app.command()
def version():
    """Show the telegram-trigger version."""
    from telegram_trigger import __version__

    console.print(f"[bold blue]Version:[/bold blue] [cyan]{__version__}[/cyan]")


if __name__ == "__main__":
    app()
