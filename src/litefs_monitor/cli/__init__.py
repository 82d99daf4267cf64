"""CLI commands for the LiteFS client.

Provides command-line interface using Typer:
- litefs-monitor watch: Follow leadership changes on a node
- litefs-monitor status: Print the current primary
- litefs-monitor lag: Print a replica's replication lag

Usage:
    litefs-monitor --help
    litefs-monitor watch --url http://localhost:20202
    litefs-monitor status --timeout 5
    litefs-monitor lag /litefs/app.db
"""

import typer

from litefs_monitor.cli.lag_cmd import app as lag_app
from litefs_monitor.cli.status_cmd import app as status_app
from litefs_monitor.cli.watch_cmd import app as watch_app

# Main CLI application
app = typer.Typer(
    name="litefs-monitor",
    help="Monitor the leadership and replication state of a LiteFS node",
    no_args_is_help=True,
)

app.add_typer(watch_app, name="watch")
app.add_typer(status_app, name="status")
app.add_typer(lag_app, name="lag")


@app.callback()
def callback() -> None:
    """Monitor the leadership and replication state of a LiteFS node."""
    pass


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
