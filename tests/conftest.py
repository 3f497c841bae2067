import asyncio
from unittest.mock import AsyncMock

import pytest

from dca_chat.bridge.sse import AgentStream


async def _chunks(parts, hang):
    for part in parts:
        yield part
    if hang:
        await asyncio.Event().wait()


class FakeClock:
    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def make_stream():
    """Build an AgentStream over fixed chunks; returns (stream, on_close mock)."""

    def factory(*parts: bytes, hang: bool = False):
        on_close = AsyncMock()
        return AgentStream(_chunks(parts, hang), on_close=on_close), on_close

    return factory


@pytest.fixture
def clock():
    return FakeClock()
