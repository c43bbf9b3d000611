from __future__ import annotations

import json
import uuid
from typing import TYPE_CHECKING

from workctx_core.errors import StoreInUseError
from workctx_core.types import (
    MS_PER_MINUTE,
    ContextEntry,
    RecentQuery,
    SessionType,
    now_ms,
)

from workctx_runtime.backends.sqlite._db import get_connection, path_key

if TYPE_CHECKING:
    from collections.abc import Callable

    import aiosqlite
    from workctx_core.types import CreateEntryInput

SCHEMA_VERSION = 1

_CREATE_SCHEMA = """
CREATE TABLE IF NOT EXISTS context_entries (
    id TEXT PRIMARY KEY,
    session_key TEXT NOT NULL,
    session_type TEXT NOT NULL,
    summary TEXT NOT NULL,
    task_id TEXT,
    pinned INTEGER NOT NULL DEFAULT 0,
    created_at INTEGER NOT NULL,
    expires_at INTEGER NOT NULL,
    metadata TEXT
);
CREATE INDEX IF NOT EXISTS idx_entries_session_key ON context_entries(session_key);
CREATE INDEX IF NOT EXISTS idx_entries_task_id ON context_entries(task_id);
CREATE INDEX IF NOT EXISTS idx_entries_created_at ON context_entries(created_at);
CREATE INDEX IF NOT EXISTS idx_entries_expires_at ON context_entries(expires_at);

CREATE TABLE IF NOT EXISTS schema_meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""

# Paths held open by a live store in this process.
_open_paths: set[str] = set()


def _row_to_entry(row: aiosqlite.Row) -> ContextEntry:
    return ContextEntry(
        id=row["id"],
        session_key=row["session_key"],
        session_type=SessionType(row["session_type"]),
        summary=row["summary"],
        task_id=row["task_id"],
        pinned=row["pinned"] == 1,
        created_at=row["created_at"],
        expires_at=row["expires_at"],
        metadata=json.loads(row["metadata"]) if row["metadata"] else None,
    )


class SQLiteContextStore:
    """T1 context store: one SQLite table of entries plus a schema_meta table.

    Every mutation is a single statement followed by a commit, so a reader
    never sees a half-written row. Rows sharing a ``created_at`` are ordered
    by rowid, i.e. by insertion order.
    """

    def __init__(
        self,
        conn: aiosqlite.Connection,
        *,
        clock: Callable[[], int] = now_ms,
        path: str | None = None,
    ) -> None:
        self._conn = conn
        self._clock = clock
        self._path = path

    @classmethod
    async def create(
        cls, db_path: str, *, clock: Callable[[], int] = now_ms
    ) -> SQLiteContextStore:
        key = path_key(db_path)
        if key is not None:
            if key in _open_paths:
                raise StoreInUseError(
                    f"Context database {key!r} is already open in this process"
                )
            _open_paths.add(key)
        try:
            conn = await get_connection(db_path)
            try:
                await conn.executescript(_CREATE_SCHEMA)
                await conn.execute(
                    "INSERT OR IGNORE INTO schema_meta (key, value) VALUES (?, ?)",
                    ("schema_version", str(SCHEMA_VERSION)),
                )
                await conn.commit()
            except BaseException:
                await conn.close()
                raise
        except BaseException:
            if key is not None:
                _open_paths.discard(key)
            raise
        return cls(conn, clock=clock, path=key)

    async def insert(self, entry: CreateEntryInput, ttl_minutes: int) -> ContextEntry:
        now = self._clock()
        stored = ContextEntry(
            id=uuid.uuid4().hex,
            session_key=entry.session_key,
            session_type=SessionType(entry.session_type),
            summary=entry.summary,
            task_id=entry.task_id,
            pinned=False,
            created_at=now,
            expires_at=now + ttl_minutes * MS_PER_MINUTE,
            metadata=dict(entry.metadata) if entry.metadata is not None else None,
        )
        await self._conn.execute(
            "INSERT INTO context_entries"
            " (id, session_key, session_type, summary, task_id,"
            " pinned, created_at, expires_at, metadata)"
            " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                stored.id,
                stored.session_key,
                stored.session_type.value,
                stored.summary,
                stored.task_id,
                0,
                stored.created_at,
                stored.expires_at,
                json.dumps(stored.metadata) if stored.metadata is not None else None,
            ),
        )
        await self._conn.commit()
        return stored

    async def get_by_id(self, entry_id: str) -> ContextEntry | None:
        async with self._conn.execute(
            "SELECT * FROM context_entries WHERE id = ?", (entry_id,)
        ) as cursor:
            row = await cursor.fetchone()
            return _row_to_entry(row) if row else None

    async def get_recent(self, query: RecentQuery | None = None) -> list[ContextEntry]:
        query = query or RecentQuery()
        now = self._clock()

        # Expired rows stay visible while pinned.
        conditions = ["(expires_at > ? OR pinned = 1)"]
        params: list[str | int] = [now]

        if query.max_age_ms is not None:
            conditions.append("(created_at > ? OR pinned = 1)")
            params.append(now - query.max_age_ms)
        if query.session_type is not None:
            conditions.append("session_type = ?")
            params.append(SessionType(query.session_type).value)
        if query.task_id is not None:
            conditions.append("task_id = ?")
            params.append(query.task_id)

        params.append(query.limit)
        async with self._conn.execute(
            "SELECT * FROM context_entries"
            f" WHERE {' AND '.join(conditions)}"
            " ORDER BY pinned DESC, created_at DESC, rowid DESC"
            " LIMIT ?",
            params,
        ) as cursor:
            return [_row_to_entry(row) async for row in cursor]

    async def get_by_task_id(self, task_id: str) -> list[ContextEntry]:
        async with self._conn.execute(
            "SELECT * FROM context_entries WHERE task_id = ?"
            " ORDER BY created_at DESC, rowid DESC",
            (task_id,),
        ) as cursor:
            return [_row_to_entry(row) async for row in cursor]

    async def pin(self, entry_id: str) -> bool:
        return await self._set_pinned(entry_id, True)

    async def unpin(self, entry_id: str) -> bool:
        return await self._set_pinned(entry_id, False)

    async def _set_pinned(self, entry_id: str, pinned: bool) -> bool:
        cursor = await self._conn.execute(
            "UPDATE context_entries SET pinned = ? WHERE id = ?",
            (1 if pinned else 0, entry_id),
        )
        await self._conn.commit()
        return cursor.rowcount > 0

    async def delete(self, entry_id: str) -> bool:
        cursor = await self._conn.execute(
            "DELETE FROM context_entries WHERE id = ?", (entry_id,)
        )
        await self._conn.commit()
        return cursor.rowcount > 0

    async def delete_by_task_id(self, task_id: str) -> int:
        cursor = await self._conn.execute(
            "DELETE FROM context_entries WHERE task_id = ?", (task_id,)
        )
        await self._conn.commit()
        return cursor.rowcount

    async def prune_expired(self) -> int:
        cursor = await self._conn.execute(
            "DELETE FROM context_entries WHERE expires_at <= ? AND pinned = 0",
            (self._clock(),),
        )
        await self._conn.commit()
        return cursor.rowcount

    async def enforce_max_entries(self, max_entries: int) -> int:
        # LIMIT -1 OFFSET n selects every unpinned row past the newest n.
        cursor = await self._conn.execute(
            "DELETE FROM context_entries WHERE id IN ("
            " SELECT id FROM context_entries WHERE pinned = 0"
            " ORDER BY created_at DESC, rowid DESC"
            " LIMIT -1 OFFSET ?)",
            (max_entries,),
        )
        await self._conn.commit()
        return cursor.rowcount

    async def count(self) -> int:
        async with self._conn.execute(
            "SELECT COUNT(*) FROM context_entries"
        ) as cursor:
            row = await cursor.fetchone()
            return row[0] if row else 0

    async def schema_version(self) -> int:
        async with self._conn.execute(
            "SELECT value FROM schema_meta WHERE key = ?", ("schema_version",)
        ) as cursor:
            row = await cursor.fetchone()
            return int(row[0]) if row else 0

    async def close(self) -> None:
        try:
            await self._conn.close()
        finally:
            if self._path is not None:
                _open_paths.discard(self._path)
                self._path = None
