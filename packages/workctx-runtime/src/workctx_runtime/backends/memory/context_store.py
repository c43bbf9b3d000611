from __future__ import annotations

import dataclasses
import itertools
import uuid
from typing import TYPE_CHECKING

from workctx_core.types import (
    MS_PER_MINUTE,
    ContextEntry,
    RecentQuery,
    SessionType,
    now_ms,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from workctx_core.types import CreateEntryInput

SCHEMA_VERSION = 1


def _detached(entry: ContextEntry) -> ContextEntry:
    """Copy of *entry* whose metadata dict is not shared with the store."""
    if entry.metadata is None:
        return entry
    return dataclasses.replace(entry, metadata=dict(entry.metadata))


class InProcessContextStore:
    """T0 context store: dict of entries keyed by id.

    Entries go in and come out as copies; callers never hold a stored
    metadata dict. Each entry remembers an insertion sequence number, which
    plays the role of SQLite's rowid when two entries share a ``created_at``.
    """

    def __init__(self, *, clock: Callable[[], int] = now_ms) -> None:
        self._clock = clock
        self._entries: dict[str, ContextEntry] = {}
        self._seq: dict[str, int] = {}
        self._counter = itertools.count()

    def _newest_first(self, entry: ContextEntry) -> tuple[int, int]:
        return (-entry.created_at, -self._seq[entry.id])

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
        self._entries[stored.id] = stored
        self._seq[stored.id] = next(self._counter)
        return _detached(stored)

    async def get_by_id(self, entry_id: str) -> ContextEntry | None:
        entry = self._entries.get(entry_id)
        return _detached(entry) if entry is not None else None

    async def get_recent(self, query: RecentQuery | None = None) -> list[ContextEntry]:
        query = query or RecentQuery()
        now = self._clock()
        session_type = (
            SessionType(query.session_type) if query.session_type is not None else None
        )

        def _matches(entry: ContextEntry) -> bool:
            if not (entry.expires_at > now or entry.pinned):
                return False
            if query.max_age_ms is not None and not (
                entry.created_at > now - query.max_age_ms or entry.pinned
            ):
                return False
            if session_type is not None and entry.session_type is not session_type:
                return False
            return query.task_id is None or entry.task_id == query.task_id

        matched = [e for e in self._entries.values() if _matches(e)]
        matched.sort(key=lambda e: (not e.pinned, *self._newest_first(e)))
        return [_detached(e) for e in matched[: max(query.limit, 0)]]

    async def get_by_task_id(self, task_id: str) -> list[ContextEntry]:
        matched = [e for e in self._entries.values() if e.task_id == task_id]
        matched.sort(key=self._newest_first)
        return [_detached(e) for e in matched]

    async def pin(self, entry_id: str) -> bool:
        return self._set_pinned(entry_id, True)

    async def unpin(self, entry_id: str) -> bool:
        return self._set_pinned(entry_id, False)

    def _set_pinned(self, entry_id: str, pinned: bool) -> bool:
        entry = self._entries.get(entry_id)
        if entry is None:
            return False
        self._entries[entry_id] = dataclasses.replace(entry, pinned=pinned)
        return True

    async def delete(self, entry_id: str) -> bool:
        return self._remove([entry_id]) > 0

    async def delete_by_task_id(self, task_id: str) -> int:
        return self._remove(
            [e.id for e in self._entries.values() if e.task_id == task_id]
        )

    async def prune_expired(self) -> int:
        now = self._clock()
        return self._remove([
            e.id for e in self._entries.values()
            if e.expires_at <= now and not e.pinned
        ])

    async def enforce_max_entries(self, max_entries: int) -> int:
        unpinned = [e for e in self._entries.values() if not e.pinned]
        unpinned.sort(key=self._newest_first)
        return self._remove([e.id for e in unpinned[max(max_entries, 0):]])

    def _remove(self, entry_ids: list[str]) -> int:
        removed = 0
        for entry_id in entry_ids:
            if self._entries.pop(entry_id, None) is not None:
                self._seq.pop(entry_id, None)
                removed += 1
        return removed

    async def count(self) -> int:
        return len(self._entries)

    async def schema_version(self) -> int:
        return SCHEMA_VERSION

    async def close(self) -> None:
        self._entries.clear()
        self._seq.clear()
