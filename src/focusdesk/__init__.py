"""focusdesk: tasks, notes, habits and a focus timer over a user-scoped store."""

from .auth import AuthProvider, SessionAuth, StaticAuth
from .habits import HabitTracker
from .models import Category, Habit, Note, Priority, Task
from .notes import NoteBook
from .store import RemoteStore, RestStore, SqliteStore, StoreResult
from .sync import EntityKind, Outcome, SyncEngine
from .tasks import TaskFilter, TaskList
from .timer import TimerEngine, TimerEvent, TimerMode

__all__ = [
    "AuthProvider",
    "Category",
    "EntityKind",
    "Habit",
    "HabitTracker",
    "Note",
    "NoteBook",
    "Outcome",
    "Priority",
    "RemoteStore",
    "RestStore",
    "SessionAuth",
    "SqliteStore",
    "StaticAuth",
    "StoreResult",
    "SyncEngine",
    "Task",
    "TaskFilter",
    "TaskList",
    "TimerEngine",
    "TimerEvent",
    "TimerMode",
]
