"""Engine — time-window polling loop and the task run loop."""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from regular.scheduler.context import Cancelled, RunContext
from regular.scheduler.executor import as_task
from regular.scheduler.models import DEFAULT_NAME, Config, TimeWindow

if TYPE_CHECKING:
    from collections.abc import Callable

    from regular.scheduler.executor import Task

logger = logging.getLogger(__name__)


@dataclass
class _ActiveRun:
    """The single window whose run loop is currently executing."""

    window: TimeWindow
    ctx: RunContext


class Engine:
    """Runs one task repeatedly, optionally confined to daily time windows.

    Without windows, :meth:`start` runs the task loop until it stops by
    policy or the engine is shut down. With windows, :meth:`start` checks
    the clock once per tick, launches the task loop when a window opens and
    cancels it when the window ends. Only one window is active at a time.

    The active-run slot is written only by the polling loop; config access
    goes through a lock and may happen from any thread.

    Args:
        config: Initial configuration (validated like :meth:`set_config`).
        log: Logger for engine messages. Defaults to this module's logger.
        clock: Returns the current local time (injectable for tests).
        tick_seconds: Polling period. Window edges are only detected at
            minute resolution, so this should stay at 60 outside tests.
    """

    def __init__(
        self,
        config: Config | None = None,
        log: logging.Logger | logging.LoggerAdapter | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
        tick_seconds: float = 60.0,
    ) -> None:
        self._lock = threading.Lock()
        self._config = Config(name=DEFAULT_NAME)
        self._windows: tuple[TimeWindow, ...] = ()
        self._log = log or logger
        self._clock = clock or datetime.now
        self._tick_seconds = tick_seconds

        self._session: RunContext | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._shutdown_requested = False
        self._active: _ActiveRun | None = None
        self._background: set[asyncio.Task] = set()

        self.set_config(config)

    # -- Configuration ---------------------------------------------------------

    def set_config(self, config: Config | None) -> None:
        """Validate and install *config*; ``None`` is ignored.

        Raises ConfigError if any period fails to parse, in which case the
        previously installed config stays in effect.
        """
        if config is None:
            return
        windows = config.parse_windows()
        if not config.name.strip():
            config = config.model_copy(update={"name": DEFAULT_NAME})

        with self._lock:
            self._config = config
            self._windows = windows
        self._log.debug("[%s] Config installed with %d time period(s)", config.name, len(windows))

    def get_config(self) -> Config:
        with self._lock:
            return self._config

    def _snapshot(self) -> tuple[Config, tuple[TimeWindow, ...]]:
        with self._lock:
            return self._config, self._windows

    @property
    def _name(self) -> str:
        return self.get_config().name

    # -- State -----------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._session is not None

    @property
    def active_window(self) -> TimeWindow | None:
        return self._active.window if self._active else None

    # -- Lifecycle -------------------------------------------------------------

    async def start(
        self,
        task: Task | Callable[[RunContext], Any],
        ctx: RunContext | None = None,
    ) -> None:
        """Run *task* according to the installed config until stopped.

        Returns None after :meth:`shutdown` or when a windowless loop stops
        by policy. Raises the task's exception when a windowless loop fails
        with a negative fail interval, and Cancelled when *ctx* is cancelled.
        """
        if self._session is not None:
            msg = f"Engine {self._name!r} is already running"
            raise RuntimeError(msg)
        task = as_task(task)
        session = ctx.child() if ctx is not None else RunContext()
        self._loop = asyncio.get_running_loop()
        self._session = session
        self._shutdown_requested = False
        self._active = None
        name = self._name
        self._log.info("[%s] Scheduler started", name)

        try:
            await self._align_to_minute(session)
            session.raise_if_cancelled()
            if not self._snapshot()[1]:
                self._log.debug("[%s] No time periods configured, running continuously", name)
                await self._run(session, task)
                return
            await self._poll(session, task)
        except Cancelled:
            if not self._shutdown_requested:
                raise
            self._log.debug("[%s] task stopped", self._name)
        finally:
            self._session = None
            self._loop = None
            self._log.info("[%s] Scheduler stopped", self._name)

    def shutdown(self) -> None:
        """Signal the running :meth:`start` to stop.

        Safe to call before start, after it returned, more than once, and
        from another thread. Does not wait for the task to finish; use
        :meth:`join` for that.
        """
        session, loop = self._session, self._loop
        if session is None or loop is None:
            self._log.debug("[%s] Shutdown requested with no schedule running", self._name)
            return
        self._shutdown_requested = True
        try:
            current = asyncio.get_running_loop()
        except RuntimeError:
            current = None
        if current is loop:
            session.cancel("shutdown")
        else:
            loop.call_soon_threadsafe(session.cancel, "shutdown")

    async def join(self, timeout: float | None = None) -> bool:
        """Wait for window runs left behind by a shutdown to finish.

        Returns True if nothing is left running.
        """
        pending = set(self._background)
        if not pending:
            return True
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        return not still_running

    # -- Polling loop ----------------------------------------------------------

    async def _align_to_minute(self, session: RunContext) -> None:
        """Hold the first scheduling decision until the clock's second is 0."""
        while True:
            second = self._clock().second
            if second == 0:
                return
            wait = 60 - second
            self._log.warning(
                "[%s] The current second is not 0, waiting %ds before scheduling starts",
                self._name,
                wait,
            )
            if await session.wait(wait):
                session.raise_if_cancelled()

    async def _poll(self, session: RunContext, task: Task) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while True:
            config, windows = self._snapshot()
            if self._active is None:
                self._log.debug("[%s] Checking time periods", config.name)
            now = self._clock()
            self._evaluate(session, task, windows, now.hour, now.minute)

            next_tick += self._tick_seconds
            if await session.wait(max(0.0, next_tick - loop.time())):
                break

        self._close_active(session.reason or "shutdown")
        session.raise_if_cancelled()

    def _evaluate(
        self,
        session: RunContext,
        task: Task,
        windows: tuple[TimeWindow, ...],
        hour: int,
        minute: int,
    ) -> None:
        """Open or close windows for the given clock time."""
        if self._active is not None and self._active.window not in windows:
            self._close_active(f"time period {self._active.window} is no longer configured")

        for window in windows:
            if self._active is not None and self._active.window != window:
                continue

            start, end = window.check(hour, minute)
            if start and not end and self._active is None:
                self._launch(session, task, window)
                break
            if end and self._active is not None:
                self._close_active(f"time period {window} ended")

    def _launch(self, session: RunContext, task: Task, window: TimeWindow) -> None:
        ctx = session.child()
        runner = asyncio.create_task(self._run_window(ctx, task, window), name=f"regular-{window}")
        self._background.add(runner)
        runner.add_done_callback(self._background.discard)
        self._active = _ActiveRun(window=window, ctx=ctx)
        self._log.info("[%s] Time period %s started", self._name, window)

    def _close_active(self, reason: str) -> None:
        active = self._active
        if active is None:
            return
        active.ctx.cancel(reason)
        self._active = None
        self._log.info("[%s] Time period %s closed: %s", self._name, active.window, reason)

    async def _run_window(self, ctx: RunContext, task: Task, window: TimeWindow) -> None:
        try:
            await self._run(ctx, task)
        except Cancelled:
            self._log.debug(
                "[%s] Execution of time period %s cancelled: %s", self._name, window, ctx.reason
            )
        except Exception:
            self._log.exception("[%s] Execution ends with error", self._name)
        self._log.debug("[%s] Time period run is over, waiting for the next one", self._name)

    # -- Run loop --------------------------------------------------------------

    async def _run(self, ctx: RunContext, task: Task) -> None:
        """Invoke *task* until cancelled or stopped by a negative interval."""
        while True:
            ctx.raise_if_cancelled()

            try:
                await task.run(ctx)
            except Cancelled:
                raise
            except Exception as exc:
                config = self.get_config()
                if config.fail_interval < 0:
                    raise
                self._log.error("[%s] Execution ends with error: %s", config.name, exc)
                self._log.warning(
                    "[%s] Will continue after %dms", config.name, config.fail_interval
                )
                await ctx.sleep(config.fail_interval / 1000)
                continue

            config = self.get_config()
            if config.success_interval < 0:
                return
            self._log.debug(
                "[%s] Executed successfully, will continue after %dms",
                config.name,
                config.success_interval,
            )
            await ctx.sleep(config.success_interval / 1000)
