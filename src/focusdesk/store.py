"""Remote collection gateways.

A store holds rows for the `tasks`, `notes` and `habits` tables, each row owned
by a `user_id`. Every call reports success or failure through `StoreResult`;
store errors never raise to the caller.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import aiosqlite
import requests

logger = logging.getLogger("focusdesk.store")


@dataclass
class StoreResult:
    """Result of a store call."""

    success: bool
    rows: list[dict[str, Any]] | None = None
    error: str | None = None


def _failure(error: str) -> StoreResult:
    return StoreResult(success=False, error=error)


class RemoteStore(ABC):
    """Row-level CRUD over owner-scoped tables. Ids are assigned by the store."""

    @abstractmethod
    async def select(self, table: str, owner_id: str, order_by: str) -> StoreResult:
        """Rows owned by `owner_id`, newest first by `order_by`."""

    @abstractmethod
    async def insert(self, table: str, row: dict[str, Any]) -> StoreResult:
        """Insert one row; the stored row (with its id) is returned in `rows`."""

    @abstractmethod
    async def update(self, table: str, row_id: str, owner_id: str, changes: dict[str, Any]) -> StoreResult:
        """Apply `changes` to the owner's row. Fails when no row matched."""

    @abstractmethod
    async def delete(self, table: str, row_id: str, owner_id: str) -> StoreResult:
        """Delete the owner's row. Deleting a missing row succeeds."""


# ============ SQLite ============

TABLE_SCHEMAS: dict[str, str] = {
    "tasks": """
        CREATE TABLE IF NOT EXISTS tasks (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            text TEXT NOT NULL,
            completed INTEGER DEFAULT 0,
            priority TEXT DEFAULT 'medium',
            category TEXT DEFAULT 'personal',
            due_date TEXT,
            created_at TEXT NOT NULL
        )
    """,
    "notes": """
        CREATE TABLE IF NOT EXISTS notes (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            title TEXT NOT NULL,
            content TEXT DEFAULT '',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """,
    "habits": """
        CREATE TABLE IF NOT EXISTS habits (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            name TEXT NOT NULL,
            color TEXT,
            streak INTEGER DEFAULT 0,
            completed_dates TEXT DEFAULT '[]',
            created_at TEXT NOT NULL
        )
    """,
}

TABLE_COLUMNS: dict[str, set[str]] = {
    "tasks": {"id", "user_id", "text", "completed", "priority", "category", "due_date", "created_at"},
    "notes": {"id", "user_id", "title", "content", "created_at", "updated_at"},
    "habits": {"id", "user_id", "name", "color", "streak", "completed_dates", "created_at"},
}

JSON_COLUMNS = {"completed_dates"}
BOOL_COLUMNS = {"completed"}


def _check_columns(table: str, columns) -> None:
    known = TABLE_COLUMNS.get(table)
    if known is None:
        raise ValueError(f"Unknown table: {table}")
    unknown = sorted(set(columns) - known)
    if unknown:
        raise ValueError(f"Unknown column(s) for {table}: {', '.join(unknown)}")


def _encode(row: dict[str, Any]) -> dict[str, Any]:
    encoded = {}
    for key, value in row.items():
        if key in JSON_COLUMNS:
            value = json.dumps(list(value or []))
        elif key in BOOL_COLUMNS:
            value = 1 if value else 0
        encoded[key] = value
    return encoded


def _decode(row: dict[str, Any]) -> dict[str, Any]:
    decoded = dict(row)
    for key in JSON_COLUMNS & decoded.keys():
        raw = decoded[key]
        decoded[key] = json.loads(raw) if raw else []
    for key in BOOL_COLUMNS & decoded.keys():
        decoded[key] = bool(decoded[key])
    return decoded


class SqliteStore(RemoteStore):
    """Store backed by a local SQLite file through aiosqlite."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)

    async def _connect(self) -> aiosqlite.Connection:
        db = await aiosqlite.connect(self.db_path)
        try:
            await db.execute("PRAGMA busy_timeout=5000")
        except aiosqlite.Error:
            await db.close()
            raise
        db.row_factory = aiosqlite.Row
        return db

    async def init_tables(self) -> None:
        """Create tables. Safe to call on every startup."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self.db_path) as db:
            # WAL keeps CLI reads from blocking server writes
            await db.execute("PRAGMA journal_mode=WAL")
            for table, ddl in TABLE_SCHEMAS.items():
                await db.execute(ddl)
                await db.execute(
                    f"CREATE INDEX IF NOT EXISTS idx_{table}_user ON {table}(user_id)"
                )
            await db.commit()
        logger.info(f"Database initialized at {self.db_path}")

    async def select(self, table: str, owner_id: str, order_by: str) -> StoreResult:
        try:
            _check_columns(table, [order_by])
            db = await self._connect()
            try:
                cursor = await db.execute(
                    f"SELECT * FROM {table} WHERE user_id = ? ORDER BY {order_by} DESC, rowid ASC",
                    (owner_id,),
                )
                rows = [_decode(dict(row)) for row in await cursor.fetchall()]
            finally:
                await db.close()
        except (aiosqlite.Error, ValueError) as e:
            logger.debug(f"select {table} failed: {e}")
            return _failure(str(e))
        return StoreResult(success=True, rows=rows)

    async def insert(self, table: str, row: dict[str, Any]) -> StoreResult:
        stored = {"id": str(uuid.uuid4()), **row}
        try:
            _check_columns(table, stored)
            encoded = _encode(stored)
            columns = ", ".join(encoded)
            placeholders = ", ".join("?" for _ in encoded)
            db = await self._connect()
            try:
                await db.execute(
                    f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
                    tuple(encoded.values()),
                )
                await db.commit()
            finally:
                await db.close()
        except (aiosqlite.Error, ValueError) as e:
            logger.debug(f"insert into {table} failed: {e}")
            return _failure(str(e))
        return StoreResult(success=True, rows=[stored])

    async def update(self, table: str, row_id: str, owner_id: str, changes: dict[str, Any]) -> StoreResult:
        if not changes:
            return _failure("No changes given")
        try:
            _check_columns(table, changes)
            encoded = _encode(changes)
            set_clause = ", ".join(f"{col} = ?" for col in encoded)
            db = await self._connect()
            try:
                cursor = await db.execute(
                    f"UPDATE {table} SET {set_clause} WHERE id = ? AND user_id = ?",
                    (*encoded.values(), row_id, owner_id),
                )
                await db.commit()
                matched = cursor.rowcount
            finally:
                await db.close()
        except (aiosqlite.Error, ValueError) as e:
            logger.debug(f"update {table}/{row_id} failed: {e}")
            return _failure(str(e))
        if matched == 0:
            return _failure(f"No {table} row {row_id} for this user")
        return StoreResult(success=True)

    async def delete(self, table: str, row_id: str, owner_id: str) -> StoreResult:
        try:
            _check_columns(table, [])
            db = await self._connect()
            try:
                await db.execute(
                    f"DELETE FROM {table} WHERE id = ? AND user_id = ?",
                    (row_id, owner_id),
                )
                await db.commit()
            finally:
                await db.close()
        except (aiosqlite.Error, ValueError) as e:
            logger.debug(f"delete {table}/{row_id} failed: {e}")
            return _failure(str(e))
        return StoreResult(success=True)


# ============ REST (PostgREST / Supabase) ============

class RestStore(RemoteStore):
    """Store reached over a PostgREST endpoint such as Supabase's `/rest/v1`.

    `requests` is blocking, so each call runs in a worker thread; results come
    back to the event loop as plain `StoreResult` values.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        access_token: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.access_token = access_token
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self, prefer: Optional[str] = None) -> dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.access_token or self.api_key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _request(
        self,
        method: str,
        table: str,
        params: dict[str, str],
        body: Any = None,
        prefer: Optional[str] = None,
    ) -> StoreResult:
        url = f"{self.base_url}/rest/v1/{table}"
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=body,
                headers=self._headers(prefer),
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            return _failure("timeout")
        except requests.exceptions.ConnectionError:
            return _failure("connection_refused")
        except requests.exceptions.RequestException as e:
            return _failure(str(e))

        if response.status_code >= 400:
            return _failure(f"HTTP {response.status_code}: {response.text[:200]}")

        if not response.content:
            return StoreResult(success=True, rows=[])
        try:
            data = response.json()
        except ValueError:
            return _failure("Invalid JSON in response")
        if isinstance(data, dict):
            data = [data]
        return StoreResult(success=True, rows=data)

    async def select(self, table: str, owner_id: str, order_by: str) -> StoreResult:
        params = {"select": "*", "user_id": f"eq.{owner_id}", "order": f"{order_by}.desc"}
        return await asyncio.to_thread(self._request, "GET", table, params)

    async def insert(self, table: str, row: dict[str, Any]) -> StoreResult:
        return await asyncio.to_thread(
            self._request, "POST", table, {}, [row], "return=representation"
        )

    async def update(self, table: str, row_id: str, owner_id: str, changes: dict[str, Any]) -> StoreResult:
        params = {"id": f"eq.{row_id}", "user_id": f"eq.{owner_id}"}
        result = await asyncio.to_thread(
            self._request, "PATCH", table, params, changes, "return=representation"
        )
        if result.success and not result.rows:
            return _failure(f"No {table} row {row_id} for this user")
        return result

    async def delete(self, table: str, row_id: str, owner_id: str) -> StoreResult:
        params = {"id": f"eq.{row_id}", "user_id": f"eq.{owner_id}"}
        return await asyncio.to_thread(self._request, "DELETE", table, params)
