"""Replication lag of a LiteFS replica.

LiteFS writes the lag in milliseconds to a ``.lag`` file in the mount
directory as a signed 32-bit integer (e.g. ``+0000000123``). The lag is 0 on
the primary. In the absence of new transactions, the primary sends heartbeats
at one second intervals, so a healthy replica reports a small lag.
"""

from __future__ import annotations

import os
import re
from datetime import timedelta
from pathlib import Path

from litefs_monitor.errors import NotReplicatedError

LAG_FILENAME = ".lag"

# Written until the initial replication from the primary has completed
NOT_REPLICATED = 2**31 - 1
_INT32_MIN = -(2**31)
_LAG_RE = re.compile(r"[+-]?[0-9]+", re.ASCII)


def lag_path(database_path: str | os.PathLike[str]) -> Path:
    return Path(database_path).parent / LAG_FILENAME


def lag(database_path: str | os.PathLike[str]) -> timedelta:
    """Report how far this node is lagging behind the primary.

    Args:
        database_path: Path of a database inside the LiteFS mount

    Raises:
        FileNotFoundError: No lag file next to the database.
        ValueError: The lag file does not hold a 32-bit integer.
        NotReplicatedError: Initial replication has not finished yet.
    """
    content = lag_path(database_path).read_text().strip()

    if not _LAG_RE.fullmatch(content):
        raise ValueError(f"invalid lag: {content!r}")
    value = int(content)
    if not _INT32_MIN <= value <= NOT_REPLICATED:
        raise ValueError(f"lag out of range: {content!r}")

    if value == NOT_REPLICATED:
        raise NotReplicatedError()

    return timedelta(milliseconds=value)
