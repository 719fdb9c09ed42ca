"""Schedule data model — time windows and engine configuration."""

from __future__ import annotations

import re
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_NAME = "regular"

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


class ConfigError(ValueError):
    """A configuration could not be installed (e.g. an unparseable period)."""


def parse_clock(value: str) -> tuple[int, int]:
    """Parse an ``"HH:MM"`` string into ``(hour, minute)``."""
    match = _CLOCK_RE.match(value.strip())
    if match is None:
        msg = f"invalid clock time {value!r}, expected HH:MM"
        raise ValueError(msg)
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        msg = f"clock time {value!r} out of range"
        raise ValueError(msg)
    return hour, minute


def check_time(
    start_hour: int,
    start_minute: int,
    end_hour: int,
    end_minute: int,
    current_hour: int,
    current_minute: int,
) -> tuple[bool, bool]:
    """Decide whether the current clock time has reached a window's edges.

    Returns ``(start, end)``. All values are compared as minutes of a single
    day. A window whose start equals its end always reports
    ``(True, False)``. A window whose start is later than its end wraps past
    midnight; in that case ``start`` also holds while the end has not been
    reached yet, and ``start`` and ``end`` are never both true.
    """
    start_at = start_hour * 60 + start_minute
    end_at = end_hour * 60 + end_minute
    now = current_hour * 60 + current_minute

    if start_at == end_at:
        return True, False
    if start_at < end_at:
        return now >= start_at, now >= end_at

    end = now >= end_at
    if now >= start_at or not end:
        return True, False
    return False, end


@dataclass(frozen=True)
class TimeWindow:
    """A parsed daily window, e.g. 09:00–17:00 or 22:00–06:00."""

    start_hour: int
    start_minute: int
    end_hour: int
    end_minute: int

    @classmethod
    def parse(cls, start: str, end: str) -> TimeWindow:
        start_hour, start_minute = parse_clock(start)
        end_hour, end_minute = parse_clock(end)
        return cls(start_hour, start_minute, end_hour, end_minute)

    @property
    def wraps(self) -> bool:
        return (self.start_hour, self.start_minute) > (self.end_hour, self.end_minute)

    def check(self, hour: int, minute: int) -> tuple[bool, bool]:
        return check_time(
            self.start_hour,
            self.start_minute,
            self.end_hour,
            self.end_minute,
            hour,
            minute,
        )

    def __str__(self) -> str:
        return (
            f"{self.start_hour:02d}:{self.start_minute:02d}"
            f"-{self.end_hour:02d}:{self.end_minute:02d}"
        )


class Period(BaseModel):
    """Raw window as it appears in configuration input."""

    model_config = ConfigDict(frozen=True)

    start: str = Field(description="Window start, HH:MM")
    end: str = Field(description="Window end, HH:MM")

    def parse(self) -> TimeWindow:
        return TimeWindow.parse(self.start, self.end)


class Config(BaseModel):
    """Engine configuration.

    Attributes:
        name: Label used as the prefix of every log line.
        periods: Daily windows the task is confined to. Empty means the
            task runs for the whole lifetime of the engine.
        success_interval: Milliseconds to wait after a successful run.
            Negative stops the loop after the first success.
        fail_interval: Milliseconds to wait after a failed run before
            retrying. Negative makes the first failure fatal.
    """

    model_config = ConfigDict(frozen=True)

    name: str = ""
    periods: tuple[Period, ...] = ()
    success_interval: int = 0
    fail_interval: int = 0

    def parse_windows(self) -> tuple[TimeWindow, ...]:
        """Parse every period in order, failing on the first bad one."""
        windows = []
        for index, period in enumerate(self.periods):
            try:
                windows.append(period.parse())
            except ValueError as exc:
                msg = f"analysis of time period {index} failed: {exc}"
                raise ConfigError(msg) from exc
        return tuple(windows)
