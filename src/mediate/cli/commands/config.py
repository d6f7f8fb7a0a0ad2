"""
Configuration commands.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Show or create configuration",
    no_args_is_help=True,
)


@app.command("show")
def show_config(
    path: Optional[Path] = typer.Argument(
        None,
        help="Config file (default: $MEDIATE_CONFIG or mediate.yaml)",
    ),
) -> None:
    """Show the effective transport pipeline configuration."""
    from mediate.core.config.loader import ConfigError, load_app_config

    try:
        config = load_app_config(path)
    except ConfigError as e:
        err_console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1)

    pipeline = config.pipeline

    table = Table(title="Transport pipeline (outermost first)", show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Layer", style="cyan")
    table.add_column("Settings")

    for index, layer in enumerate(pipeline.layers, start=1):
        if layer.value == "retry":
            settings = f"attempts={pipeline.retry.attempts}"
        elif layer.value == "rate_limit":
            rate = pipeline.rate_limit
            settings = f"{rate.limit} per {rate.window_seconds:g}s ({rate.strategy.value})"
        else:
            settings = "enabled" if pipeline.reliable_body.enabled else "[dim]disabled[/dim]"
        table.add_row(str(index), layer.value, settings)

    console.print(table)
    console.print(f"Timeout: {config.timeout_seconds:g}s  Log level: {config.logging.level}")


@app.command("init")
def init_config(
    path: Path = typer.Argument(
        Path("mediate.yaml"),
        help="Where to write the config file",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing configuration",
    ),
) -> None:
    """Write a default configuration file."""
    from mediate.core.config.loader import ConfigError, write_default_config

    try:
        written = write_default_config(path, force=force)
    except ConfigError as e:
        err_console.print(f"[red]{e}[/red] (use --force to overwrite)")
        raise typer.Exit(1)

    console.print(f"[green]OK[/green] Wrote {written}")
