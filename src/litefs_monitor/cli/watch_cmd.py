"""CLI command for following a node's event stream.

Usage:
    litefs-monitor watch
    litefs-monitor watch --url http://node-1:20202 --all
    litefs-monitor watch --json --count 1
"""

from __future__ import annotations

import asyncio

import orjson
import typer
from rich.console import Console
from rich.markup import escape

from litefs_monitor.cli import _common
from litefs_monitor.config import settings
from litefs_monitor.errors import SubscriptionClosedError, SubscriptionError
from litefs_monitor.events import Event, InitEventData, PrimaryChangeEventData, TxEventData

app = typer.Typer(help="Follow leadership changes on a LiteFS node")


def _describe(event: Event) -> str | None:
    data = event.data
    if isinstance(data, InitEventData):
        role = "primary" if data.is_primary else "replica"
        return f"[bold]init[/bold] {role}, primary={escape(data.hostname) or '-'}"
    if isinstance(data, PrimaryChangeEventData):
        role = "primary" if data.is_primary else "replica"
        return f"[bold]primary change[/bold] {role}, primary={escape(data.hostname) or '-'}"
    if isinstance(data, TxEventData):
        db = escape(event.db or "-")
        return f"[dim]tx[/dim] db={db} txid={escape(data.txid)} commit={data.commit}"
    return None


async def _watch(
    url: str,
    console: Console,
    include_all: bool,
    json_output: bool,
    count: int | None,
    retry_backoff: float,
) -> None:
    printed = 0
    async with _common.make_client(url) as client:
        async with client.subscribe_events() as subscription:
            while count is None or printed < count:
                try:
                    event = await subscription.next()
                except SubscriptionClosedError:
                    break
                except SubscriptionError as e:
                    console.print(f"[red]Event stream error:[/red] {escape(str(e))}")
                    await asyncio.sleep(retry_backoff)
                    continue

                if not include_all and not isinstance(
                    event.data, (InitEventData, PrimaryChangeEventData)
                ):
                    continue

                if json_output:
                    console.print_json(orjson.dumps(event.to_dict()).decode())
                else:
                    line = _describe(event)
                    if line is None:
                        line = f"[dim]{escape(event.type or 'unknown')}[/dim]"
                    console.print(line)
                printed += 1


@app.callback(invoke_without_command=True)
def watch(
    url: str = typer.Option(
        settings.url,
        "--url",
        "-u",
        help="Base URL of the LiteFS node",
    ),
    include_all: bool = typer.Option(
        False,
        "--all",
        "-a",
        help="Also print transaction and unknown events",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Print events as JSON",
    ),
    count: int | None = typer.Option(
        None,
        "--count",
        "-n",
        min=1,
        help="Exit after printing this many events",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Log level: debug, info, warning, error",
    ),
) -> None:
    """Print events from a LiteFS node as they arrive.

    Reconnects after errors until interrupted.
    """
    _common.setup_logging(log_level)
    console = Console()
    try:
        asyncio.run(
            _watch(url, console, include_all, json_output, count, settings.retry_backoff)
        )
    except KeyboardInterrupt:
        raise typer.Exit(code=130) from None
