"""CLI command for printing the current primary.

Usage:
    litefs-monitor status
    litefs-monitor status --url http://node-1:20202 --timeout 2 --format json
"""

from __future__ import annotations

import asyncio

import orjson
import typer
from rich.console import Console
from rich.markup import escape

from litefs_monitor.cli import _common
from litefs_monitor.config import settings
from litefs_monitor.errors import LiteFSError
from litefs_monitor.monitor import PrimaryStatus

app = typer.Typer(help="Print the current primary of a LiteFS cluster")


async def _fetch_status(url: str, timeout: float) -> PrimaryStatus:
    async with _common.make_client(url) as client:
        monitor = await client.monitor_primary()
        try:
            await monitor.wait_ready(timeout=timeout)
            return monitor.status()
        finally:
            await monitor.close()


@app.callback(invoke_without_command=True)
def status(
    url: str = typer.Option(
        settings.url,
        "--url",
        "-u",
        help="Base URL of the LiteFS node",
    ),
    timeout: float = typer.Option(
        5.0,
        "--timeout",
        "-t",
        min=0,
        help="Seconds to wait for the first event",
    ),
    output_format: str = typer.Option(
        "text",
        "--format",
        "-f",
        help="Output format: text, json",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Log level: debug, info, warning, error",
    ),
) -> None:
    """Wait for the first event from a node and print who is primary."""
    _common.setup_logging(log_level)
    console = Console()

    try:
        result = asyncio.run(_fetch_status(url, timeout))
    except TimeoutError:
        console.print(f"[red]No event from {escape(url)} within {timeout}s[/red]")
        raise typer.Exit(code=1) from None
    except LiteFSError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(code=1) from None

    if output_format == "json":
        payload = {"isPrimary": result.is_primary, "hostname": result.hostname}
        console.print_json(orjson.dumps(payload).decode())
    else:
        role = "primary" if result.is_primary else "replica"
        console.print(f"This node is a [bold]{role}[/bold]")
        console.print(f"Primary: {escape(result.hostname) or '-'}")
