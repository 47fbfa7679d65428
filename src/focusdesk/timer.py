"""Focus timer engine. Pure logic, no I/O.

All time values are integer seconds. The engine does not keep time itself:
whoever drives it calls tick() once per elapsed second while it runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .config import BREAK_MINUTES_RANGE, WORK_MINUTES_RANGE


class TimerMode(str, Enum):
    WORK = "work"
    BREAK = "break"


class TimerEvent(Enum):
    CYCLE_COMPLETE = "cycle_complete"


@dataclass
class TickResult:
    events: list[TimerEvent] = field(default_factory=list)
    finished_mode: TimerMode | None = None

    @property
    def cycle_complete(self) -> bool:
        return TimerEvent.CYCLE_COMPLETE in self.events


DEFAULT_WORK_MINUTES = 25
DEFAULT_BREAK_MINUTES = 5


def format_countdown(seconds: int) -> str:
    """Format seconds as 'MM:SS'."""
    seconds = max(0, seconds)
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def _check_minutes(minutes: int, bounds: tuple[int, int], label: str) -> int:
    low, high = bounds
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise ValueError(f"{label} duration must be a whole number of minutes")
    if not low <= minutes <= high:
        raise ValueError(f"{label} duration must be between {low} and {high} minutes")
    return minutes


class TimerEngine:
    """Work/break countdown state.

    Pure computation with no I/O or globals, so it is deterministically testable.
    """

    def __init__(self, work_minutes: int = DEFAULT_WORK_MINUTES, break_minutes: int = DEFAULT_BREAK_MINUTES):
        self._work_minutes: int = _check_minutes(work_minutes, WORK_MINUTES_RANGE, "Work")
        self._break_minutes: int = _check_minutes(break_minutes, BREAK_MINUTES_RANGE, "Break")
        self._mode: TimerMode = TimerMode.WORK
        self._running: bool = False
        self._remaining_seconds: int = self._duration_seconds(TimerMode.WORK)
        self._completed_sessions: int = 0

    # ---- Read-only properties ----

    @property
    def mode(self) -> TimerMode:
        return self._mode

    @property
    def running(self) -> bool:
        return self._running

    @property
    def remaining_seconds(self) -> int:
        return self._remaining_seconds

    @property
    def completed_sessions(self) -> int:
        return self._completed_sessions

    @property
    def work_minutes(self) -> int:
        return self._work_minutes

    @property
    def break_minutes(self) -> int:
        return self._break_minutes

    @property
    def progress(self) -> float:
        """Percent of the current period already elapsed."""
        total = self._duration_seconds(self._mode)
        return (total - self._remaining_seconds) / total * 100

    # ---- Transitions ----

    def start(self) -> bool:
        """Returns True if the timer was stopped and is now running."""
        if self._running:
            return False
        self._running = True
        return True

    def pause(self) -> bool:
        if not self._running:
            return False
        self._running = False
        return True

    def reset(self) -> None:
        self._running = False
        self._remaining_seconds = self._duration_seconds(self._mode)

    def switch_mode(self, mode: TimerMode) -> None:
        self._mode = TimerMode(mode)
        self._running = False
        self._remaining_seconds = self._duration_seconds(self._mode)

    def set_durations(self, work_minutes: int | None = None, break_minutes: int | None = None) -> None:
        """Change configured durations.

        While stopped, a change to the active mode's duration resets the
        countdown at once. While running it waits for the next reset or
        completion.
        """
        if work_minutes is not None:
            work_minutes = _check_minutes(work_minutes, WORK_MINUTES_RANGE, "Work")
        if break_minutes is not None:
            break_minutes = _check_minutes(break_minutes, BREAK_MINUTES_RANGE, "Break")

        touched = set()
        if work_minutes is not None:
            self._work_minutes = work_minutes
            touched.add(TimerMode.WORK)
        if break_minutes is not None:
            self._break_minutes = break_minutes
            touched.add(TimerMode.BREAK)

        if not self._running and self._mode in touched:
            self._remaining_seconds = self._duration_seconds(self._mode)

    def tick(self) -> TickResult:
        """Advance one second. Does nothing while stopped."""
        result = TickResult()
        if not self._running:
            return result

        self._remaining_seconds = max(0, self._remaining_seconds - 1)
        if self._remaining_seconds > 0:
            return result

        finished = self._mode
        result.events.append(TimerEvent.CYCLE_COMPLETE)
        result.finished_mode = finished

        if finished == TimerMode.WORK:
            self._completed_sessions += 1
            self._mode = TimerMode.BREAK
        else:
            self._mode = TimerMode.WORK
        self._running = False
        self._remaining_seconds = self._duration_seconds(self._mode)
        return result

    # ---- Serialization ----

    def to_export_dict(self) -> dict:
        """CamelCase dict for the HTTP API."""
        return {
            "mode": self._mode.value,
            "isRunning": self._running,
            "remainingSeconds": self._remaining_seconds,
            "display": format_countdown(self._remaining_seconds),
            "progress": round(self.progress, 2),
            "completedSessions": self._completed_sessions,
            "workMinutes": self._work_minutes,
            "breakMinutes": self._break_minutes,
        }

    # ---- Internal ----

    def _duration_seconds(self, mode: TimerMode) -> int:
        minutes = self._work_minutes if mode == TimerMode.WORK else self._break_minutes
        return minutes * 60
