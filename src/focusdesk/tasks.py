"""Tasks: completion toggles are optimistic, field edits are deferred."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Callable, Optional, Union

from .auth import AuthProvider
from .models import Category, Priority, Task, utc_now
from .store import RemoteStore
from .sync import EntityKind, Outcome, SyncEngine

TASKS = EntityKind(table="tasks", entity=Task, sort_column="created_at", sort_attr="created_at")


class TaskFilter(str, Enum):
    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"


class TaskList:
    """The signed-in user's tasks."""

    def __init__(self, store: RemoteStore, auth: AuthProvider, clock: Callable[[], datetime] = utc_now):
        self.auth = auth
        self.engine: SyncEngine[Task] = SyncEngine(TASKS, store, clock)

    @property
    def tasks(self) -> list[Task]:
        return self.engine.items

    async def refresh(self) -> list[Task]:
        return await self.engine.load(self.auth.current_owner_id())

    async def add(
        self,
        text: str,
        priority: Union[Priority, str] = Priority.MEDIUM,
        category: Union[Category, str] = Category.PERSONAL,
        due_date: Union[date, str, None] = None,
    ) -> Outcome:
        fields = {"text": text, "priority": priority, "category": category, "due_date": due_date}
        return await self.engine.create(self.auth.current_owner_id(), fields)

    async def toggle(self, task_id: str) -> Outcome:
        task = self.engine.get(task_id)
        completed = not task.completed if task else True
        return await self.engine.update(
            self.auth.current_owner_id(), task_id, {"completed": completed}, optimistic=True
        )

    async def edit(self, task_id: str, **changes) -> Outcome:
        """Change text, priority, category or due date once the store accepts."""
        return await self.engine.update(self.auth.current_owner_id(), task_id, changes)

    async def remove(self, task_id: str) -> Outcome:
        return await self.engine.delete(self.auth.current_owner_id(), task_id)

    # ---- Views ----

    def filtered(self, task_filter: Union[TaskFilter, str] = TaskFilter.ALL) -> list[Task]:
        task_filter = TaskFilter(task_filter)
        if task_filter is TaskFilter.ACTIVE:
            return [t for t in self.engine.items if not t.completed]
        if task_filter is TaskFilter.COMPLETED:
            return [t for t in self.engine.items if t.completed]
        return self.engine.items

    def counts(self) -> dict[str, int]:
        tasks = self.engine.items
        done = sum(1 for t in tasks if t.completed)
        return {
            TaskFilter.ALL.value: len(tasks),
            TaskFilter.ACTIVE.value: len(tasks) - done,
            TaskFilter.COMPLETED.value: done,
        }

    def overdue(self, today: Optional[date] = None) -> list[Task]:
        return [t for t in self.engine.items if t.is_overdue(today)]
