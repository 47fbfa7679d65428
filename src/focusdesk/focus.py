"""Focus timer runner: drives a TimerEngine from a one-second APScheduler job.

The runner owns at most one tick job. Starting installs it; pausing,
resetting, switching mode and finishing a cycle remove it.
"""

from __future__ import annotations

import logging
from typing import Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .notify import Notifier, NullNotifier
from .timer import TickResult, TimerEngine, TimerMode

logger = logging.getLogger("focusdesk.focus")

COMPLETION_MESSAGES: dict[TimerMode, tuple[str, str]] = {
    TimerMode.WORK: ("Work session complete!", "Time for a break!"),
    TimerMode.BREAK: ("Break time over!", "Ready to focus again?"),
}


class FocusTimer:
    """A TimerEngine plus its tick job and completion notifications."""

    def __init__(
        self,
        scheduler: AsyncIOScheduler,
        engine: Optional[TimerEngine] = None,
        notifier: Optional[Notifier] = None,
        job_id: str = "focus_timer_tick",
    ):
        self.scheduler = scheduler
        self.engine = engine or TimerEngine()
        self.notifier = notifier or NullNotifier(enabled=False)
        self.job_id = job_id
        self._job = None

    @property
    def ticking(self) -> bool:
        """Whether a tick job is installed."""
        return self._job is not None

    # ---- Transitions ----

    def start(self) -> bool:
        # Permission is requested on the first start, before the countdown runs
        self.notifier.request_permission()
        started = self.engine.start()
        if started:
            self._install()
            logger.info(f"Timer started ({self.engine.mode.value}, {self.engine.remaining_seconds}s left)")
        return started

    def pause(self) -> bool:
        paused = self.engine.pause()
        self._cancel()
        if paused:
            logger.info(f"Timer paused ({self.engine.remaining_seconds}s left)")
        return paused

    def toggle(self) -> bool:
        """Start when stopped, pause when running. Returns the new running state."""
        if self.engine.running:
            self.pause()
        else:
            self.start()
        return self.engine.running

    def reset(self) -> None:
        self.engine.reset()
        self._cancel()

    def switch_mode(self, mode: TimerMode) -> None:
        self.engine.switch_mode(mode)
        self._cancel()
        logger.info(f"Timer switched to {self.engine.mode.value}")

    def set_durations(self, work_minutes: Optional[int] = None, break_minutes: Optional[int] = None) -> None:
        self.engine.set_durations(work_minutes, break_minutes)

    # ---- Tick ----

    async def _on_tick(self) -> TickResult:
        """Scheduler entry point. A coroutine so it runs on the event loop thread."""
        result = self.engine.tick()
        if not self.engine.running:
            self._cancel()
        if result.cycle_complete:
            self._announce(result.finished_mode)
        return result

    def _announce(self, finished: TimerMode) -> None:
        if finished == TimerMode.WORK:
            logger.info(f"Work session complete ({self.engine.completed_sessions} today)")
        else:
            logger.info("Break complete")
        title, body = COMPLETION_MESSAGES[finished]
        try:
            self.notifier.notify(title, body)
        except Exception as e:
            logger.warning(f"Notifier raised: {e}")

    # ---- Job handle ----

    def _install(self) -> None:
        self._cancel()
        self._job = self.scheduler.add_job(
            self._on_tick,
            trigger=IntervalTrigger(seconds=1),
            id=self.job_id,
            replace_existing=True,
            name="focus timer tick",
            max_instances=1,
        )

    def _cancel(self) -> None:
        if self._job is None:
            return
        try:
            self.scheduler.remove_job(self.job_id)
        except JobLookupError:
            pass
        self._job = None
