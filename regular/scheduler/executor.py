"""Task abstraction — what the engine runs on every iteration."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
import shlex
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from regular.scheduler.context import Cancelled

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from pathlib import Path

    from regular.scheduler.context import RunContext

logger = logging.getLogger(__name__)


class TaskError(RuntimeError):
    """A task reported failure without a more specific exception."""


@runtime_checkable
class Task(Protocol):
    """A unit of work the engine invokes repeatedly.

    ``run`` returns normally on success and raises on failure. It receives
    the RunContext of the current execution and may stop early once the
    context is cancelled.
    """

    async def run(self, ctx: RunContext) -> None: ...


class TaskFunc:
    """Adapt a plain callable ``func(ctx)`` to the Task protocol.

    Coroutine functions are awaited on the event loop. Regular functions run
    in a worker thread so a blocking body does not stall the scheduler.
    """

    def __init__(self, func: Callable[[RunContext], Any]) -> None:
        self._func = func
        self._is_async = inspect.iscoroutinefunction(func) or inspect.iscoroutinefunction(
            getattr(func, "__call__", None)
        )

    async def run(self, ctx: RunContext) -> None:
        if self._is_async:
            await self._func(ctx)
            return
        result = await asyncio.to_thread(self._func, ctx)
        if inspect.isawaitable(result):
            await result

    def __repr__(self) -> str:
        return f"TaskFunc({getattr(self._func, '__qualname__', self._func)!r})"


def as_task(task: Task | Callable[[RunContext], Any]) -> Task:
    """Return *task* unchanged if its ``run`` is a coroutine, otherwise wrap it.

    Objects with a synchronous ``run`` method are adapted like plain callables.
    """
    if isinstance(task, Task):
        if inspect.iscoroutinefunction(task.run):
            return task
        return TaskFunc(task.run)
    if callable(task):
        return TaskFunc(task)
    msg = f"Not a task: {task!r}"
    raise TypeError(msg)


class CommandTask:
    """Run an external command; a non-zero exit status is a failure.

    Args:
        argv: Program and arguments (no shell).
        cwd: Working directory for the child process.
        env: Environment for the child process (None inherits ours).
    """

    def __init__(
        self,
        argv: Sequence[str],
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        if not argv:
            msg = "CommandTask needs at least a program name"
            raise ValueError(msg)
        self._argv = list(argv)
        self._cwd = cwd
        self._env = dict(env) if env is not None else None

    @property
    def command(self) -> str:
        return shlex.join(self._argv)

    async def run(self, ctx: RunContext) -> None:
        logger.info("Running command: %s", self.command)
        proc = await asyncio.create_subprocess_exec(*self._argv, cwd=self._cwd, env=self._env)

        exited = asyncio.ensure_future(proc.wait())
        cancelled = asyncio.ensure_future(ctx.wait())
        try:
            await asyncio.wait({exited, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancelled.cancel()

        if not exited.done():
            logger.info("Terminating command (pid=%d): %s", proc.pid, ctx.reason)
            with contextlib.suppress(ProcessLookupError):
                proc.terminate()
            await exited
            raise Cancelled(ctx.reason)

        returncode = exited.result()
        if returncode != 0:
            msg = f"command {self.command!r} exited with status {returncode}"
            raise TaskError(msg)
        logger.debug("Command finished: %s", self.command)

    def __repr__(self) -> str:
        return f"CommandTask({self.command!r})"
