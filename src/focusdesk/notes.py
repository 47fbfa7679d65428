"""Notes, newest edit first. Edits wait for the store before showing."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from .auth import AuthProvider
from .models import Note, utc_now
from .store import RemoteStore
from .sync import EntityKind, Outcome, SyncEngine

NOTES = EntityKind(table="notes", entity=Note, sort_column="updated_at", sort_attr="updated_at")


class NoteBook:
    """The signed-in user's notes."""

    def __init__(self, store: RemoteStore, auth: AuthProvider, clock: Callable[[], datetime] = utc_now):
        self.auth = auth
        self._clock = clock
        self.engine: SyncEngine[Note] = SyncEngine(NOTES, store, clock)

    @property
    def notes(self) -> list[Note]:
        return self.engine.items

    async def refresh(self) -> list[Note]:
        return await self.engine.load(self.auth.current_owner_id())

    async def add(self, title: str, content: str = "") -> Outcome:
        return await self.engine.create(
            self.auth.current_owner_id(), {"title": title, "content": content}
        )

    async def edit(self, note_id: str, title: Optional[str] = None, content: Optional[str] = None) -> Outcome:
        changes = {}
        if title is not None:
            changes["title"] = title
        if content is not None:
            changes["content"] = content
        if changes:
            changes["updated_at"] = self._clock()
        return await self.engine.update(self.auth.current_owner_id(), note_id, changes)

    async def remove(self, note_id: str) -> Outcome:
        return await self.engine.delete(self.auth.current_owner_id(), note_id)
