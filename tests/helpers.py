"""Shared test helpers: event loop runner, fixed clocks, a failure-injecting store."""

import asyncio
import itertools
from datetime import datetime, timedelta, timezone

from focusdesk.store import RemoteStore, StoreResult

START = datetime(2026, 2, 11, 9, 0, tzinfo=timezone.utc)


def run(coro):
    """Run an async function in a fresh event loop."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def make_clock(start: datetime = START, step_seconds: int = 1):
    """Clock that advances `step_seconds` on every call."""
    ticks = itertools.count()
    return lambda: start + timedelta(seconds=next(ticks) * step_seconds)


class FlakyStore(RemoteStore):
    """Wraps a real store; operations named in `fail` report failure without touching it."""

    def __init__(self, inner: RemoteStore):
        self.inner = inner
        self.fail: set[str] = set()
        self.calls: list[str] = []

    def _injected(self, op: str):
        self.calls.append(op)
        if op in self.fail:
            return StoreResult(success=False, error=f"injected {op} failure")
        return None

    async def select(self, table, owner_id, order_by):
        return self._injected("select") or await self.inner.select(table, owner_id, order_by)

    async def insert(self, table, row):
        return self._injected("insert") or await self.inner.insert(table, row)

    async def update(self, table, row_id, owner_id, changes):
        return self._injected("update") or await self.inner.update(table, row_id, owner_id, changes)

    async def delete(self, table, row_id, owner_id):
        return self._injected("delete") or await self.inner.delete(table, row_id, owner_id)
