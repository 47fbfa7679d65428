"""Habits with a one-week completion grid and a derived streak."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Union

from .auth import AuthProvider
from .models import DEFAULT_HABIT_COLOR, Habit, day_key, parse_day, utc_now
from .store import RemoteStore
from .sync import EntityKind, Outcome, SyncEngine

HABITS = EntityKind(table="habits", entity=Habit, sort_column="created_at", sort_attr="created_at")

WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


@dataclass(frozen=True)
class WeekDay:
    day: date
    label: str

    @property
    def key(self) -> str:
        return day_key(self.day)


def last_seven_days(today: Optional[date] = None) -> list[WeekDay]:
    """The seven days ending today, oldest first."""
    today = today or date.today()
    days = [today - timedelta(days=offset) for offset in range(6, -1, -1)]
    return [WeekDay(day=d, label=WEEKDAY_LABELS[d.weekday()]) for d in days]


class HabitTracker:
    """The signed-in user's habits."""

    def __init__(self, store: RemoteStore, auth: AuthProvider, clock: Callable[[], datetime] = utc_now):
        self.auth = auth
        self.engine: SyncEngine[Habit] = SyncEngine(HABITS, store, clock)

    @property
    def habits(self) -> list[Habit]:
        return self.engine.items

    async def refresh(self) -> list[Habit]:
        return await self.engine.load(self.auth.current_owner_id())

    async def add(self, name: str, color: str = DEFAULT_HABIT_COLOR) -> Outcome:
        return await self.engine.create(self.auth.current_owner_id(), {"name": name, "color": color})

    async def toggle(self, habit_id: str, day: Union[date, str]) -> Outcome:
        """Flip `day` in the habit's completion dates, locally first."""
        try:
            parsed = parse_day(day)
        except ValueError:
            parsed = None
        if parsed is None:
            self.engine.last_error = f"Invalid day: {day!r}"
            return Outcome.REJECTED

        habit = self.engine.get(habit_id)
        dates = habit.toggled_dates(parsed) if habit else [day_key(parsed)]
        return await self.engine.update(
            self.auth.current_owner_id(), habit_id, {"completed_dates": dates}, optimistic=True
        )

    async def remove(self, habit_id: str) -> Outcome:
        return await self.engine.delete(self.auth.current_owner_id(), habit_id)
