"""
focusdesk API: FastAPI server for tasks, notes, habits and the focus timer

This server provides:
- Sign-in of the owner whose collections are shown
- Task, note and habit collections synced with the configured store
- The focus timer, ticking on the server's scheduler
- Recent log access
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .auth import SessionAuth
from .config import Settings, load_settings
from .focus import FocusTimer
from .habits import HabitTracker, last_seven_days
from .log import recent_logs
from .models import DEFAULT_HABIT_COLOR, Category, Priority
from .notes import NoteBook
from .notify import DesktopNotifier
from .store import RemoteStore, RestStore, SqliteStore
from .sync import Outcome
from .tasks import TaskFilter, TaskList
from .timer import TimerEngine, TimerMode

logger = logging.getLogger("focusdesk.api")


# Pydantic Models
class SessionRequest(BaseModel):
    owner_id: str


class SessionResponse(BaseModel):
    owner_id: Optional[str]
    signed_in: bool


class TaskCreateRequest(BaseModel):
    text: str
    priority: Priority = Priority.MEDIUM
    category: Category = Category.PERSONAL
    due_date: Optional[date] = None


class TaskUpdateRequest(BaseModel):
    text: Optional[str] = None
    priority: Optional[Priority] = None
    category: Optional[Category] = None
    due_date: Optional[date] = None  # explicit null clears the due date


class NoteCreateRequest(BaseModel):
    title: str
    content: str = ""


class NoteUpdateRequest(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None


class HabitCreateRequest(BaseModel):
    name: str
    color: str = DEFAULT_HABIT_COLOR


class HabitToggleRequest(BaseModel):
    day: date


class TimerModeRequest(BaseModel):
    mode: TimerMode


class TimerDurationsRequest(BaseModel):
    work_minutes: Optional[int] = None
    break_minutes: Optional[int] = None


class LogsResponse(BaseModel):
    logs: List[dict]
    count: int


@dataclass
class Services:
    """Everything the routes work with."""

    store: RemoteStore
    auth: SessionAuth
    tasks: TaskList
    notes: NoteBook
    habits: HabitTracker
    timer: FocusTimer
    scheduler: AsyncIOScheduler


def build_store(settings: Settings) -> RemoteStore:
    if settings.backend == "rest":
        return RestStore(settings.rest_url, settings.rest_key, settings.access_token)
    return SqliteStore(settings.db_path)


def build_services(settings: Settings, store: Optional[RemoteStore] = None) -> Services:
    store = store or build_store(settings)
    auth = SessionAuth(settings.owner_id)
    scheduler = AsyncIOScheduler()
    timer = FocusTimer(
        scheduler,
        engine=TimerEngine(settings.work_minutes, settings.break_minutes),
        notifier=DesktopNotifier(enabled=settings.notifications),
    )
    return Services(
        store=store,
        auth=auth,
        tasks=TaskList(store, auth),
        notes=NoteBook(store, auth),
        habits=HabitTracker(store, auth),
        timer=timer,
        scheduler=scheduler,
    )


def _check(outcome: Outcome, error: Optional[str]) -> None:
    """Map a mutation outcome to an HTTP error."""
    if outcome.applied:
        return
    if outcome is Outcome.UNAUTHENTICATED:
        raise HTTPException(status_code=401, detail="Sign in first")
    if outcome is Outcome.NOT_FOUND:
        raise HTTPException(status_code=404, detail="Not found")
    if outcome is Outcome.REJECTED:
        raise HTTPException(status_code=400, detail=error or "Invalid input")
    raise HTTPException(status_code=502, detail=f"Operation did not take effect: {error or 'store error'}")


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    settings = settings or load_settings()
    services = services or build_services(settings)
    features = (services.tasks, services.notes, services.habits)

    async def ensure_loaded(feature) -> None:
        """Reload when the signed-in owner differs from the loaded one."""
        if feature.engine.owner_id != services.auth.current_owner_id():
            await feature.refresh()

    # Lifespan context manager
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if isinstance(services.store, SqliteStore):
            await services.store.init_tables()
        services.scheduler.start()
        logger.info("Scheduler started")
        if services.auth.current_owner_id():
            for feature in features:
                await feature.refresh()
        yield
        services.timer.pause()
        services.scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")

    app = FastAPI(
        title="focusdesk",
        description="Tasks, notes, habits and a focus timer",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.services = services

    # CORS Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ============ Session ============

    @app.get("/api/session", response_model=SessionResponse)
    async def get_session():
        owner_id = services.auth.current_owner_id()
        return SessionResponse(owner_id=owner_id, signed_in=owner_id is not None)

    @app.post("/api/session", response_model=SessionResponse)
    async def sign_in(request: SessionRequest):
        try:
            services.auth.sign_in(request.owner_id)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        for feature in features:
            await feature.refresh()
        return SessionResponse(owner_id=services.auth.current_owner_id(), signed_in=True)

    @app.delete("/api/session", response_model=SessionResponse)
    async def sign_out():
        services.auth.sign_out()
        for feature in features:
            await feature.refresh()
        return SessionResponse(owner_id=None, signed_in=False)

    # ============ Tasks ============

    @app.get("/api/tasks", response_model=List[dict])
    async def list_tasks(filter: TaskFilter = TaskFilter.ALL, refresh: bool = False):
        """List tasks, newest first."""
        if refresh:
            await services.tasks.refresh()
        else:
            await ensure_loaded(services.tasks)
        return [task.to_export_dict() for task in services.tasks.filtered(filter)]

    @app.get("/api/tasks/summary")
    async def task_summary():
        await ensure_loaded(services.tasks)
        return {
            "counts": services.tasks.counts(),
            "overdue": [task.id for task in services.tasks.overdue()],
        }

    @app.post("/api/tasks", response_model=List[dict], status_code=201)
    async def create_task(request: TaskCreateRequest):
        outcome = await services.tasks.add(
            request.text, request.priority, request.category, request.due_date
        )
        _check(outcome, services.tasks.engine.last_error)
        return [task.to_export_dict() for task in services.tasks.tasks]

    @app.post("/api/tasks/{task_id}/toggle", response_model=List[dict])
    async def toggle_task(task_id: str):
        await ensure_loaded(services.tasks)
        outcome = await services.tasks.toggle(task_id)
        _check(outcome, services.tasks.engine.last_error)
        return [task.to_export_dict() for task in services.tasks.tasks]

    @app.patch("/api/tasks/{task_id}", response_model=List[dict])
    async def update_task(task_id: str, request: TaskUpdateRequest):
        await ensure_loaded(services.tasks)
        outcome = await services.tasks.edit(task_id, **request.model_dump(exclude_unset=True))
        _check(outcome, services.tasks.engine.last_error)
        return [task.to_export_dict() for task in services.tasks.tasks]

    @app.delete("/api/tasks/{task_id}", response_model=List[dict])
    async def delete_task(task_id: str):
        await ensure_loaded(services.tasks)
        outcome = await services.tasks.remove(task_id)
        _check(outcome, services.tasks.engine.last_error)
        return [task.to_export_dict() for task in services.tasks.tasks]

    # ============ Notes ============

    @app.get("/api/notes", response_model=List[dict])
    async def list_notes(refresh: bool = False):
        """List notes, most recently edited first."""
        if refresh:
            await services.notes.refresh()
        else:
            await ensure_loaded(services.notes)
        return [note.to_export_dict() for note in services.notes.notes]

    @app.post("/api/notes", response_model=List[dict], status_code=201)
    async def create_note(request: NoteCreateRequest):
        outcome = await services.notes.add(request.title, request.content)
        _check(outcome, services.notes.engine.last_error)
        return [note.to_export_dict() for note in services.notes.notes]

    @app.patch("/api/notes/{note_id}", response_model=List[dict])
    async def update_note(note_id: str, request: NoteUpdateRequest):
        await ensure_loaded(services.notes)
        outcome = await services.notes.edit(note_id, request.title, request.content)
        _check(outcome, services.notes.engine.last_error)
        return [note.to_export_dict() for note in services.notes.notes]

    @app.delete("/api/notes/{note_id}", response_model=List[dict])
    async def delete_note(note_id: str):
        await ensure_loaded(services.notes)
        outcome = await services.notes.remove(note_id)
        _check(outcome, services.notes.engine.last_error)
        return [note.to_export_dict() for note in services.notes.notes]

    # ============ Habits ============

    @app.get("/api/habits", response_model=List[dict])
    async def list_habits(refresh: bool = False):
        if refresh:
            await services.habits.refresh()
        else:
            await ensure_loaded(services.habits)
        return [habit.to_export_dict() for habit in services.habits.habits]

    @app.get("/api/habits/week")
    async def habit_week():
        """Completion grid for the last seven days."""
        await ensure_loaded(services.habits)
        week = last_seven_days()
        return {
            "days": [{"date": d.key, "label": d.label} for d in week],
            "habits": [
                {
                    "id": habit.id,
                    "name": habit.name,
                    "color": habit.color,
                    "streak": habit.streak(),
                    "done": [habit.is_done(d.day) for d in week],
                }
                for habit in services.habits.habits
            ],
        }

    @app.post("/api/habits", response_model=List[dict], status_code=201)
    async def create_habit(request: HabitCreateRequest):
        outcome = await services.habits.add(request.name, request.color)
        _check(outcome, services.habits.engine.last_error)
        return [habit.to_export_dict() for habit in services.habits.habits]

    @app.post("/api/habits/{habit_id}/toggle", response_model=List[dict])
    async def toggle_habit(habit_id: str, request: HabitToggleRequest):
        await ensure_loaded(services.habits)
        outcome = await services.habits.toggle(habit_id, request.day)
        _check(outcome, services.habits.engine.last_error)
        return [habit.to_export_dict() for habit in services.habits.habits]

    @app.delete("/api/habits/{habit_id}", response_model=List[dict])
    async def delete_habit(habit_id: str):
        await ensure_loaded(services.habits)
        outcome = await services.habits.remove(habit_id)
        _check(outcome, services.habits.engine.last_error)
        return [habit.to_export_dict() for habit in services.habits.habits]

    # ============ Timer ============

    @app.get("/api/timer")
    async def get_timer():
        return services.timer.engine.to_export_dict()

    @app.post("/api/timer/start")
    async def start_timer():
        services.timer.start()
        return services.timer.engine.to_export_dict()

    @app.post("/api/timer/pause")
    async def pause_timer():
        services.timer.pause()
        return services.timer.engine.to_export_dict()

    @app.post("/api/timer/toggle")
    async def toggle_timer():
        services.timer.toggle()
        return services.timer.engine.to_export_dict()

    @app.post("/api/timer/reset")
    async def reset_timer():
        services.timer.reset()
        return services.timer.engine.to_export_dict()

    @app.post("/api/timer/mode")
    async def switch_timer_mode(request: TimerModeRequest):
        services.timer.switch_mode(request.mode)
        return services.timer.engine.to_export_dict()

    @app.patch("/api/timer/durations")
    async def set_timer_durations(request: TimerDurationsRequest):
        try:
            services.timer.set_durations(request.work_minutes, request.break_minutes)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return services.timer.engine.to_export_dict()

    # ============ Health & Logs ============

    @app.get("/health")
    async def health_check():
        return {"status": "ok", "backend": settings.backend}

    @app.get("/api/logs/recent", response_model=LogsResponse)
    async def get_recent_logs(limit: int = 50):
        logs = recent_logs(limit)
        return LogsResponse(logs=logs, count=len(logs))

    return app
