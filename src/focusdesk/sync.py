"""Entity sync engine: an owner-scoped collection mirrored from a remote store.

The local list is what callers render. Mutations either change it first and
reconcile with a reload when the store refuses (optimistic), or wait for the
store and reload afterwards (deferred). Every store failure that follows a
local change is followed by a reload, so the list never stays diverged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar

from .models import Entity, utc_now
from .store import RemoteStore

logger = logging.getLogger("focusdesk.sync")

T = TypeVar("T", bound=Entity)


class Outcome(str, Enum):
    """What a mutation did. Only APPLIED means it took effect."""

    APPLIED = "applied"
    UNAUTHENTICATED = "unauthenticated"
    NOT_FOUND = "not_found"
    REJECTED = "rejected"
    FAILED = "failed"

    @property
    def applied(self) -> bool:
        return self is Outcome.APPLIED


@dataclass(frozen=True)
class EntityKind(Generic[T]):
    """How one feature's entities are stored and ordered."""

    table: str
    entity: type[T]
    sort_column: str
    sort_attr: str


class SyncEngine(Generic[T]):
    """Local-first collection for one entity kind."""

    def __init__(
        self,
        kind: EntityKind[T],
        store: RemoteStore,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.kind = kind
        self.store = store
        self._clock = clock
        self._items: list[T] = []
        self._owner_id: Optional[str] = None
        self.last_error: Optional[str] = None

    # ---- Read-only views ----

    @property
    def items(self) -> list[T]:
        return list(self._items)

    @property
    def owner_id(self) -> Optional[str]:
        """Owner of the last successful load."""
        return self._owner_id

    def get(self, entity_id: str) -> Optional[T]:
        for item in self._items:
            if item.id == entity_id:
                return item
        return None

    def _index(self, owner_id: str, entity_id: str) -> Optional[int]:
        for i, item in enumerate(self._items):
            if item.id == entity_id and item.owner_id == owner_id:
                return i
        return None

    # ---- Operations ----

    async def load(self, owner_id: Optional[str]) -> list[T]:
        """Replace the local collection with the owner's rows, newest first.

        Without an owner the collection is cleared and nothing is fetched.
        A failed reload for the same owner leaves the collection as it was;
        a failed load for a different owner clears it.
        """
        table = self.kind.table
        if not owner_id:
            self._items = []
            self._owner_id = None
            return []

        result = await self.store.select(table, owner_id, self.kind.sort_column)
        if not result.success:
            self.last_error = result.error
            logger.warning(f"Loading {table} failed: {result.error}")
            return self._load_failed(owner_id)

        try:
            entities = [self.kind.entity.from_row(row) for row in result.rows or []]
        except (KeyError, TypeError, ValueError) as e:
            self.last_error = f"Malformed {table} row: {e}"
            logger.warning(self.last_error)
            return self._load_failed(owner_id)

        # sorted() keeps store order for equal timestamps, reverse included
        self._items = sorted(entities, key=lambda e: getattr(e, self.kind.sort_attr), reverse=True)
        self._owner_id = owner_id
        logger.debug(f"Loaded {len(self._items)} {table} for {owner_id}")
        return self.items

    def _load_failed(self, owner_id: str) -> list[T]:
        # Another owner's rows must never stay visible
        if owner_id != self._owner_id:
            self._items = []
            self._owner_id = None
        return self.items

    async def create(self, owner_id: Optional[str], fields: dict[str, Any]) -> Outcome:
        """Insert a new entity, then reload to pick up its stored form."""
        table = self.kind.table
        if not owner_id:
            logger.info(f"Refusing to create {table} entry without a signed-in user")
            return Outcome.UNAUTHENTICATED

        try:
            row = self.kind.entity.new_row(owner_id, fields, self._clock())
        except ValueError as e:
            self.last_error = str(e)
            logger.info(f"Rejected new {table} entry: {e}")
            return Outcome.REJECTED

        result = await self.store.insert(table, row)
        if not result.success:
            self.last_error = result.error
            logger.warning(f"Creating {table} entry failed: {result.error}")
            return Outcome.FAILED

        await self.load(owner_id)
        return Outcome.APPLIED

    async def update(
        self,
        owner_id: Optional[str],
        entity_id: str,
        changes: dict[str, Any],
        optimistic: bool = False,
    ) -> Outcome:
        """Apply a partial update.

        Optimistic: the local entity changes now; a store failure triggers a
        reconciling reload. Deferred: nothing changes locally until the store
        accepts, then the collection is reloaded.
        """
        table = self.kind.table
        if not owner_id:
            logger.info(f"Refusing to update {table} entry without a signed-in user")
            return Outcome.UNAUTHENTICATED

        index = self._index(owner_id, entity_id)
        if index is None:
            return Outcome.NOT_FOUND

        try:
            if not changes:
                raise ValueError("No changes given")
            values = self.kind.entity.normalize(changes)
            columns = self.kind.entity.to_columns(values)
        except ValueError as e:
            self.last_error = str(e)
            logger.info(f"Rejected update of {table}/{entity_id}: {e}")
            return Outcome.REJECTED

        if optimistic:
            self._items[index] = replace(self._items[index], **values)

        result = await self.store.update(table, entity_id, owner_id, columns)
        if not result.success:
            self.last_error = result.error
            logger.warning(f"Updating {table}/{entity_id} failed: {result.error}")
            if optimistic:
                await self._reconcile(owner_id)
            return Outcome.FAILED

        if not optimistic:
            await self.load(owner_id)
        return Outcome.APPLIED

    async def delete(self, owner_id: Optional[str], entity_id: str) -> Outcome:
        """Remove locally right away, then from the store; reload if the store refuses."""
        table = self.kind.table
        if not owner_id:
            logger.info(f"Refusing to delete {table} entry without a signed-in user")
            return Outcome.UNAUTHENTICATED

        index = self._index(owner_id, entity_id)
        if index is None:
            return Outcome.NOT_FOUND

        del self._items[index]

        result = await self.store.delete(table, entity_id, owner_id)
        if not result.success:
            self.last_error = result.error
            logger.warning(f"Deleting {table}/{entity_id} failed: {result.error}")
            await self._reconcile(owner_id)
            return Outcome.FAILED
        return Outcome.APPLIED

    async def _reconcile(self, owner_id: str) -> None:
        logger.info(f"Reconciling {self.kind.table} with the store")
        await self.load(owner_id)
