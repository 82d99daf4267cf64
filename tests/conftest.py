"""Global pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest

from litefs_monitor.client import LiteFSClient
from tests.fakes import NODE_URL, FakeNode


@pytest.fixture
def node() -> FakeNode:
    """Create a fresh scripted LiteFS node."""
    return FakeNode()


@pytest.fixture
async def client(node: FakeNode) -> AsyncIterator[LiteFSClient]:
    """Create a client talking to the scripted node."""
    http = httpx.AsyncClient(transport=node.transport)
    yield LiteFSClient(NODE_URL, http, retry_backoff=0.01)
    await http.aclose()
