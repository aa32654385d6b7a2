"""
Shared pytest fixtures for designbridge tests.

This module provides:
- FakeClock: a controllable monotonic clock for timeout tests
- Broker fixtures wired to the fake clock
- An HTTP client bound to the FastAPI app in-process
"""

import asyncio
import os
import sys

import httpx
import pytest
import pytest_asyncio

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from designbridge.main import create_app
from designbridge.modules.broker import CommandBroker


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def wait_for_pending(broker: CommandBroker, count: int = 1) -> None:
    """Yield to the loop until the broker holds at least `count` commands."""
    for _ in range(100):
        if broker.pending_count >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"expected {count} pending commands, found {broker.pending_count}")


@pytest.fixture
def clock():
    """Create a fake clock."""
    return FakeClock()


@pytest.fixture
def broker(clock):
    """Create a broker with small limits and the fake clock."""
    return CommandBroker(capacity=3, timeout_ms=30_000, sweep_interval_ms=5_000, clock=clock)


@pytest.fixture
def app(broker):
    """Create the HTTP app around the broker."""
    return create_app(broker)


@pytest_asyncio.fixture
async def client(app):
    """Async HTTP client talking to the app in-process."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c
