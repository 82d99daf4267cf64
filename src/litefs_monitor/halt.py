"""HALT lock helpers for writing from a LiteFS replica.

Holding the HALT lock on a database's lock file pauses writes on the primary
so that a replica can perform writes of its own, which LiteFS forwards to the
primary. The lock is an open file description (OFD) lock on a single byte,
so it belongs to the open file rather than the process and is released
automatically when the file is closed.

Example:
    with halted("/litefs/app.db"):
        conn.execute("INSERT INTO migrations ...")

This stops all writes on the primary and costs two round trips, so it should
only be used for periodic migrations or low-write workloads.
"""

from __future__ import annotations

import asyncio
import errno
import fcntl
import logging
import os
import struct
from collections.abc import AsyncIterator, Callable, Iterator
from contextlib import asynccontextmanager, contextmanager
from typing import IO, Any, TypeVar

logger = logging.getLogger(__name__)

# Linux open file description lock commands
F_OFD_SETLK = getattr(fcntl, "F_OFD_SETLK", 37)
F_OFD_SETLKW = getattr(fcntl, "F_OFD_SETLKW", 38)

# Offset of the HALT byte in a LiteFS lock file
HALT_BYTE = 72

# struct flock: l_type, l_whence, l_start, l_len, l_pid (must be 0 for OFD locks)
_FLOCK = struct.Struct("hhqqi4x")

R = TypeVar("R")


def _lock_file_path(database_path: str | os.PathLike[str]) -> str:
    return os.fspath(database_path) + "-lock"


def _set_halt_lock(f: IO[Any], lock_type: int, command: int = F_OFD_SETLKW) -> None:
    flock = _FLOCK.pack(lock_type, os.SEEK_SET, HALT_BYTE, 1, 0)
    # EINTR is retried by the fcntl module
    fcntl.fcntl(f.fileno(), command, flock)


def halt(f: IO[Any]) -> None:
    """Acquire the HALT lock on an open LiteFS database lock file.

    Blocks until the lock is granted. Writes on the primary are paused until
    ``unhalt()`` is called or the file is closed.
    """
    _set_halt_lock(f, fcntl.F_WRLCK)


def try_halt(f: IO[Any]) -> bool:
    """Acquire the HALT lock without blocking.

    Returns:
        True if the lock was acquired, False if another open file holds it.
    """
    try:
        _set_halt_lock(f, fcntl.F_WRLCK, F_OFD_SETLK)
    except OSError as e:
        if e.errno in (errno.EAGAIN, errno.EACCES):
            return False
        raise
    return True


def unhalt(f: IO[Any]) -> None:
    """Release the HALT lock, allowing writes to resume on the primary."""
    _set_halt_lock(f, fcntl.F_UNLCK)


@contextmanager
def halted(database_path: str | os.PathLike[str]) -> Iterator[None]:
    """Hold the HALT lock for ``database_path`` for the duration of the block.

    If the block raises, the lock is released by closing the lock file.

    Raises:
        FileNotFoundError: The database has no lock file (not a LiteFS mount).
    """
    lock_path = _lock_file_path(database_path)
    with open(lock_path, "r+b") as f:
        halt(f)
        logger.debug(f"Acquired HALT lock on {lock_path}")
        yield
        unhalt(f)
        logger.debug(f"Released HALT lock on {lock_path}")


def with_halt(database_path: str | os.PathLike[str], fn: Callable[[], R]) -> R:
    """Run ``fn`` while holding the HALT lock and return its result."""
    with halted(database_path):
        return fn()


@asynccontextmanager
async def ahalted(database_path: str | os.PathLike[str]) -> AsyncIterator[None]:
    """Async variant of ``halted``; the blocking lock calls run in a worker thread."""
    lock_path = _lock_file_path(database_path)
    f = await asyncio.to_thread(open, lock_path, "r+b")
    try:
        await asyncio.to_thread(halt, f)
        logger.debug(f"Acquired HALT lock on {lock_path}")
        yield
        await asyncio.to_thread(unhalt, f)
        logger.debug(f"Released HALT lock on {lock_path}")
    finally:
        f.close()
