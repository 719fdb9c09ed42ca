"""Recurring task engine — time windows, run loop, and cancellation."""

from regular.scheduler.context import Cancelled, RunContext
from regular.scheduler.engine import Engine
from regular.scheduler.executor import CommandTask, Task, TaskError, TaskFunc, as_task
from regular.scheduler.models import (
    DEFAULT_NAME,
    Config,
    ConfigError,
    Period,
    TimeWindow,
    check_time,
    parse_clock,
)

__all__ = [
    "DEFAULT_NAME",
    "Cancelled",
    "CommandTask",
    "Config",
    "ConfigError",
    "Engine",
    "Period",
    "RunContext",
    "Task",
    "TaskError",
    "TaskFunc",
    "TimeWindow",
    "as_task",
    "check_time",
    "parse_clock",
]
