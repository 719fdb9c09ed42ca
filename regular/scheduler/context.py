"""RunContext — hierarchical cancellation passed to every task run."""

from __future__ import annotations

import asyncio


class Cancelled(Exception):
    """Raised when work observes that its RunContext has been cancelled."""


class RunContext:
    """Cancellation token shared between the engine and a running task.

    Contexts form a tree: cancelling one cancels all of its descendants,
    never its parent. A context created under an already-cancelled parent
    starts out cancelled.

    Not thread-safe; cancel from the event loop that awaits it (use
    ``loop.call_soon_threadsafe`` from other threads).

    Example:
        >>> session = RunContext()
        >>> window = session.child()
        >>> session.cancel("shutdown")
        >>> window.cancelled
        True
    """

    def __init__(self, parent: RunContext | None = None) -> None:
        self._parent = parent
        self._event = asyncio.Event()
        self._children: set[RunContext] = set()
        self._reason: str | None = None
        if parent is not None:
            if parent.cancelled:
                self._reason = parent.reason
                self._event.set()
            else:
                parent._children.add(self)

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def child(self) -> RunContext:
        """Derive a context that is cancelled together with this one."""
        return RunContext(self)

    def cancel(self, reason: str = "context cancelled") -> None:
        """Cancel this context and every context derived from it."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        for child in list(self._children):
            child.cancel(reason)
        self._children.clear()
        if self._parent is not None:
            self._parent._children.discard(self)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Cancelled(self._reason)

    async def wait(self, timeout: float | None = None) -> bool:
        """Wait until cancelled or *timeout* seconds pass.

        Returns True if the context was cancelled.
        """
        if self._event.is_set():
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout)
        except TimeoutError:
            return False
        return True

    async def sleep(self, seconds: float) -> None:
        """Sleep for *seconds*, waking early if the context is cancelled.

        A non-positive duration only yields to the event loop.
        """
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        await self.wait(seconds)
