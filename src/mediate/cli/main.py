"""
mediate CLI - Main entry point.

Sends requests through a composed transport pipeline so retry, rate
limit and body buffering settings can be tried from the terminal.
"""

from __future__ import annotations

from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console

from mediate import __app_name__, __version__

# Load environment variables from .env (if present)
load_dotenv()

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name=__app_name__,
    help="Composable retry, rate limit and reliable body transports for httpx",
    rich_markup_mode="rich",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]{__app_name__}[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """mediate - resilient httpx transports."""
    pass


# =============================================================================
# Import and register subcommand modules
# =============================================================================

from .commands import config, request  # noqa: E402

app.add_typer(config.app, name="config", help="Show or create configuration")
app.command("get")(request.get)


if __name__ == "__main__":
    app()
