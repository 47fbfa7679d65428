#!/usr/bin/env python3
"""focusdesk command line.

Usage:
    focusdesk serve --port 7788
    focusdesk list tasks --owner alice --filter active
    focusdesk list habits --owner alice
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Optional

from rich.console import Console
from rich.table import Table

from .auth import StaticAuth
from .config import Settings, load_settings
from .habits import HabitTracker, last_seven_days
from .log import configure_logging
from .notes import NoteBook
from .store import RemoteStore, SqliteStore
from .tasks import TaskFilter, TaskList

console = Console()


def _render_tasks(tasks: TaskList, task_filter: str) -> Table:
    counts = tasks.counts()
    table = Table(title=f"Tasks ({task_filter}) - all {counts['all']}, active {counts['active']}, done {counts['completed']}")
    table.add_column("Done")
    table.add_column("Task")
    table.add_column("Priority")
    table.add_column("Category")
    table.add_column("Due")
    for task in tasks.filtered(task_filter):
        due = task.due_date.isoformat() if task.due_date else ""
        if task.is_overdue():
            due = f"[bold red]{due} (overdue)[/]"
        table.add_row(
            "x" if task.completed else "",
            task.text,
            f"[{task.priority_color}]{task.priority.value}[/]",
            task.category_label,
            due,
            style="dim" if task.completed else None,
        )
    return table


def _render_notes(notes: NoteBook) -> Table:
    table = Table(title="Notes")
    table.add_column("Title")
    table.add_column("Content")
    table.add_column("Updated")
    for note in notes.notes:
        preview = note.content if len(note.content) <= 60 else note.content[:57] + "..."
        table.add_row(note.title, preview, note.updated_at.astimezone().strftime("%Y-%m-%d %H:%M"))
    return table


def _render_habits(habits: HabitTracker) -> Table:
    week = last_seven_days()
    table = Table(title="Habits")
    table.add_column("Habit")
    for day in week:
        table.add_column(day.label, justify="center")
    table.add_column("Streak", justify="right")
    for habit in habits.habits:
        marks = ["[green]x[/]" if habit.is_done(day.day) else "." for day in week]
        table.add_row(f"[{habit.color}]{habit.name}[/]", *marks, str(habit.streak()))
    return table


async def _list(store: RemoteStore, owner_id: str, kind: str, task_filter: str) -> Table:
    auth = StaticAuth(owner_id)
    if isinstance(store, SqliteStore):
        await store.init_tables()
    if kind == "tasks":
        tasks = TaskList(store, auth)
        await tasks.refresh()
        return _render_tasks(tasks, task_filter)
    if kind == "notes":
        notes = NoteBook(store, auth)
        await notes.refresh()
        return _render_notes(notes)
    habits = HabitTracker(store, auth)
    await habits.refresh()
    return _render_habits(habits)


def cmd_list(args: argparse.Namespace, settings: Settings) -> int:
    """Print one of the signed-in user's collections."""
    from .api import build_store

    owner_id = args.owner or settings.owner_id
    if not owner_id:
        console.print("[red]Error:[/] no owner given (use --owner or FOCUSDESK_OWNER_ID)")
        return 1
    table = asyncio.run(_list(build_store(settings), owner_id, args.kind, args.filter))
    console.print(table)
    return 0


def cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    """Run the HTTP API."""
    import uvicorn

    from .api import create_app

    app = create_app(settings)
    uvicorn.run(app, host=args.host or settings.host, port=args.port or settings.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="focusdesk",
        description="Tasks, notes, habits and a focus timer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", help="Bind address (default: FOCUSDESK_HOST)")
    serve.add_argument("--port", type=int, help="Port (default: FOCUSDESK_PORT)")
    serve.set_defaults(func=cmd_serve)

    list_parser = subparsers.add_parser("list", help="Print a collection")
    list_parser.add_argument("kind", choices=["tasks", "notes", "habits"])
    list_parser.add_argument("--owner", help="Owner id (default: FOCUSDESK_OWNER_ID)")
    list_parser.add_argument(
        "--filter",
        choices=[f.value for f in TaskFilter],
        default=TaskFilter.ALL.value,
        help="Task filter (tasks only)",
    )
    list_parser.set_defaults(func=cmd_list)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = load_settings()
    except ValueError as e:
        console.print(f"[red]Configuration error:[/] {e}")
        return 2
    configure_logging(settings.log_level)
    return args.func(args, settings)


if __name__ == "__main__":
    sys.exit(main())
