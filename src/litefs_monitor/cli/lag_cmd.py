"""CLI command for reading replication lag.

Usage:
    litefs-monitor lag /litefs/app.db
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from litefs_monitor.errors import NotReplicatedError
from litefs_monitor.lag import lag

app = typer.Typer(help="Print the replication lag of a LiteFS replica")


@app.callback(invoke_without_command=True)
def lag_command(
    database_path: Path = typer.Argument(
        ...,
        help="Path of a database inside the LiteFS mount",
    ),
) -> None:
    """Print how far this node lags behind the primary, in milliseconds."""
    console = Console()

    try:
        delay = lag(database_path)
    except NotReplicatedError as e:
        console.print(f"[yellow]{escape(str(e))}[/yellow]")
        raise typer.Exit(code=1) from None
    except (OSError, ValueError) as e:
        console.print(f"[red]Cannot read lag:[/red] {escape(str(e))}")
        raise typer.Exit(code=1) from None

    console.print(f"{delay // timedelta(milliseconds=1)} ms")
