"""Scripted LiteFS node served through ``httpx.MockTransport``.

Commands queued with ``FakeNode.send`` are consumed in order by whichever
connection is currently open, so one script can span reconnects:

    node.send(INIT_JSON, HANGUP, INIT_JSON)

- a JSON string is written to the body followed by a newline
- raw ``bytes`` are written as-is
- STATUS_500 answers a new request with HTTP 500 (ends an open body)
- HANGUP drops the connection (mid-body: truncated stream)
- END finishes the body cleanly
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable

import httpx
import pytest

STATUS_500 = "status500"
HANGUP = "hangup"
END = "end"

NODE_URL = "http://litefs.test"

INIT_JSON = '{"type":"init","data":{"isPrimary":true,"hostname":"node-1"}}'
TX_JSON = (
    '{"type":"tx","db":"db","data":{"txID":"0000000000000027",'
    '"postApplyChecksum":"83b05248774ce767","pageSize":4096,"commit":2,'
    '"timestamp":"0001-01-01T00:00:00Z"}}'
)
PRIMARY_CHANGE_NODE2_JSON = (
    '{"type":"primaryChange","data":{"isPrimary":false,"hostname":"node-2"}}'
)
PRIMARY_CHANGE_NODE1_JSON = (
    '{"type":"primaryChange","data":{"isPrimary":true,"hostname":"node-1"}}'
)


class FakeNode:
    """Scripted LiteFS event stream endpoint."""

    def __init__(self) -> None:
        self.commands: asyncio.Queue[str | bytes] = asyncio.Queue()
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def send(self, *commands: str | bytes) -> None:
        for command in commands:
            self.commands.put_nowait(command)

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        first = await self.commands.get()
        if first == STATUS_500:
            return httpx.Response(500, request=request)
        if first == HANGUP:
            raise httpx.RemoteProtocolError(
                "Server disconnected without sending a response.", request=request
            )
        if first == END:
            return httpx.Response(200, content=b"", request=request)

        return httpx.Response(200, content=self._body(first, request), request=request)

    async def _body(self, first: str | bytes, request: httpx.Request) -> AsyncIterator[bytes]:
        command = first
        while True:
            if command in (END, STATUS_500):
                return
            if command == HANGUP:
                raise httpx.RemoteProtocolError(
                    "peer closed connection without sending complete message body",
                    request=request,
                )
            if isinstance(command, bytes):
                yield command
            else:
                yield (command + "\n").encode()
            command = await self.commands.get()


async def eventually(
    predicate: Callable[[], bool] | Callable[[], Awaitable[bool]],
    timeout: float = 2.0,
    interval: float = 0.005,
) -> None:
    """Poll until ``predicate`` holds, failing the test after ``timeout``."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        result = predicate()
        if asyncio.iscoroutine(result):
            result = await result
        if result:
            return
        if loop.time() >= deadline:
            pytest.fail(f"condition not met within {timeout}s")
        await asyncio.sleep(interval)
