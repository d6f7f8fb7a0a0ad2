"""
Request command - send GET requests through the transport pipeline.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Optional

import httpx
import typer
from rich.console import Console
from rich.table import Table

from mediate.core.config.models import AppConfig
from mediate.core.transports.throttling import RateLimitStrategy

console = Console()
err_console = Console(stderr=True)


def _base_transport() -> httpx.BaseTransport | None:
    """Base transport hook for `get`.

    The composed pipeline wraps whatever this returns; None selects
    httpx.HTTPTransport. Replace it (e.g. with monkeypatch) to send CLI
    requests through an in-process transport instead of the network.
    """
    return None


def _apply_overrides(
    config: AppConfig,
    attempts: int | None,
    limit: int | None,
    window: float | None,
    strategy: RateLimitStrategy | None,
    reliable_body: bool | None,
) -> AppConfig:
    """Return a copy of config with command-line overrides applied."""
    pipeline = config.pipeline
    retry = pipeline.retry
    rate = pipeline.rate_limit
    body = pipeline.reliable_body

    if attempts is not None:
        retry = retry.model_copy(update={"attempts": attempts})
    rate_updates: dict = {}
    if limit is not None:
        rate_updates["limit"] = limit
    if window is not None:
        rate_updates["window_seconds"] = window
    if strategy is not None:
        rate_updates["strategy"] = strategy
    if rate_updates:
        rate = rate.model_copy(update=rate_updates)
    if reliable_body is not None:
        body = body.model_copy(update={"enabled": reliable_body})

    pipeline = pipeline.model_copy(
        update={"retry": retry, "rate_limit": rate, "reliable_body": body}
    )
    # Re-validate so overrides get the same checks as file settings
    return AppConfig.model_validate(
        config.model_copy(update={"pipeline": pipeline}).model_dump()
    )


def get(
    url: str = typer.Argument(..., help="URL to fetch"),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Config file (default: $MEDIATE_CONFIG or mediate.yaml)",
    ),
    attempts: Optional[int] = typer.Option(
        None,
        "--attempts",
        "-a",
        help="Total attempts per request",
    ),
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        "-l",
        help="Requests permitted per window",
    ),
    window: Optional[float] = typer.Option(
        None,
        "--window",
        "-w",
        help="Rate limit window in seconds",
    ),
    strategy: Optional[RateLimitStrategy] = typer.Option(
        None,
        "--strategy",
        help="Rate limit admission strategy",
    ),
    reliable_body: Optional[bool] = typer.Option(
        None,
        "--reliable-body/--no-reliable-body",
        help="Buffer response bodies in memory",
    ),
    count: int = typer.Option(
        1,
        "--count",
        "-n",
        min=1,
        help="Number of requests to send",
    ),
    show_body: bool = typer.Option(
        False,
        "--show-body",
        help="Print the last response body",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Override the configured log level",
    ),
) -> None:
    """Send GET requests to URL through the configured pipeline."""
    from pydantic import ValidationError

    from mediate.core.config.loader import ConfigError, load_app_config
    from mediate.core.logging import get_contextual_logger, setup_logging
    from mediate.core.transports.compose import create_client

    try:
        config = load_app_config(config_path)
        config = _apply_overrides(config, attempts, limit, window, strategy, reliable_body)
    except (ConfigError, ValidationError) as e:
        err_console.print(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(1)

    setup_logging(
        level=log_level or config.logging.level,
        log_file=config.logging.file,
        json_format=config.logging.json_format,
        rich_console=config.logging.rich_console,
    )
    log = get_contextual_logger("cli", transport="get").with_context(method="GET", url=url)

    table = Table(title=f"GET {url}", show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Status", justify="center")
    table.add_column("Bytes", justify="right")
    table.add_column("Elapsed", justify="right")

    failed = False
    last_body = b""
    started = time.perf_counter()

    with create_client(config, inner=_base_transport()) as client:
        for index in range(1, count + 1):
            sent = time.perf_counter()
            try:
                response = client.get(url)
            except Exception as e:
                log.error(f"Request {index} failed: {type(e).__name__}: {e}")
                table.add_row(str(index), "[red]ERROR[/red]", "-", f"{time.perf_counter() - sent:.3f}s")
                failed = True
                continue

            last_body = response.content
            style = "green" if response.is_success else "yellow"
            table.add_row(
                str(index),
                f"[{style}]{response.status_code}[/{style}]",
                str(len(last_body)),
                f"{time.perf_counter() - sent:.3f}s",
            )
            log.debug(f"Request {index} -> {response.status_code}")

    console.print(table)
    console.print(f"Total: {time.perf_counter() - started:.3f}s for {count} request(s)")

    if show_body and last_body:
        console.print(last_body.decode("utf-8", errors="replace"), markup=False, highlight=False)

    if failed:
        raise typer.Exit(1)
