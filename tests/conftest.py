"""Shared test fixtures."""

import asyncio
from collections.abc import Callable
from datetime import datetime

import pytest


class FakeClock:
    """Callable clock whose wall time only moves when a test moves it."""

    def __init__(self, hour: int = 12, minute: int = 0, second: int = 0) -> None:
        self.now = datetime(2025, 1, 1, hour, minute, second)

    def __call__(self) -> datetime:
        return self.now

    def set(self, hour: int, minute: int, second: int = 0) -> None:
        self.now = self.now.replace(hour=hour, minute=minute, second=second)


@pytest.fixture
def clock() -> FakeClock:
    """A clock parked at 12:00:00, so the minute alignment is immediate."""
    return FakeClock()


async def _wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll *predicate* on the event loop until it holds or *timeout* passes."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            msg = "condition not met in time"
            raise AssertionError(msg)
        await asyncio.sleep(0.005)


@pytest.fixture
def wait_for() -> Callable:
    """Return an awaitable poller: ``await wait_for(lambda: cond)``."""
    return _wait_for
