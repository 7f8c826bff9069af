"""Timer state of a tracker entry and the transitions between states.

Storage keeps a single ``duration`` column where ``RUNNING_DURATION`` marks a
running timer. This module is the only place that reads or produces that
sentinel: rows are turned into a ``TimerState`` with ``state_of`` and written
back with ``to_columns``.
"""

import math
from dataclasses import dataclass
from datetime import UTC, datetime

from app.modules.tracker.exceptions import InvalidTimerStateError, TrackerValidationError
from app.modules.tracker.models.tracker import RUNNING_DURATION


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def whole_seconds_between(start: datetime, end: datetime) -> int:
    """Floor of the seconds elapsed from ``start`` to ``end``."""
    return math.floor((ensure_utc(end) - ensure_utc(start)).total_seconds())


@dataclass(frozen=True)
class Running:
    """Timer is running since ``start``."""

    start: datetime

    name = "running"
    is_running = True

    def finish(self, at: datetime) -> "Stopped":
        return Stopped(self.start, at, self._duration_until(at, "stop"))

    def pause(self, at: datetime) -> "Paused":
        return Paused(self.start, at, self._duration_until(at, "pause"))

    def resume(self) -> "Running":
        raise InvalidTimerStateError(
            "Cannot resume: entry is already running", transition="resume", state=self.name
        )

    def elapsed(self, now: datetime) -> int:
        return max(whole_seconds_between(self.start, now), 0)

    def to_columns(self) -> tuple[datetime | None, int]:
        return None, RUNNING_DURATION

    def _duration_until(self, at: datetime, transition: str) -> int:
        duration = whole_seconds_between(self.start, at)
        if duration < 0:
            raise TrackerValidationError(
                f"Cannot {transition}: {at.isoformat()} is before the timer start",
                {"transition": transition, "start": self.start.isoformat()},
            )
        return duration


@dataclass(frozen=True)
class Stopped:
    """Timer finished at ``stop`` after ``duration`` seconds."""

    start: datetime
    stop: datetime
    duration: int

    name = "stopped"
    is_running = False

    def finish(self, at: datetime) -> "Stopped":
        raise InvalidTimerStateError(
            "Cannot stop: entry is not running", transition="stop", state=self.name
        )

    def pause(self, at: datetime) -> "Paused":
        raise InvalidTimerStateError(
            "Cannot pause: entry is not running", transition="pause", state=self.name
        )

    def resume(self) -> Running:
        # The finished duration is discarded; the entry keeps its original start
        return Running(self.start)

    def elapsed(self, now: datetime) -> int:
        return 0

    def to_columns(self) -> tuple[datetime | None, int]:
        return self.stop, self.duration


@dataclass(frozen=True)
class Paused(Stopped):
    """Timer interrupted at ``stop``, expected to be resumed later."""

    name = "paused"


TimerState = Running | Stopped | Paused


def state_of(start: datetime, stop: datetime | None, duration: int | None) -> TimerState:
    """Read the timer state persisted in a tracker entry row.

    Paused and stopped rows share one representation in storage, so a
    finished row always reads back as ``Stopped``; both can be resumed.

    Raises:
        InvalidTimerStateError: If the row breaks the running sentinel invariant.
    """
    if duration == RUNNING_DURATION and stop is None:
        return Running(start)
    if stop is not None and duration is not None and duration >= 0:
        return Stopped(start, stop, duration)
    raise InvalidTimerStateError(
        f"Inconsistent timer columns (stop={stop}, duration={duration})",
        transition="read",
        state="corrupt",
    )
