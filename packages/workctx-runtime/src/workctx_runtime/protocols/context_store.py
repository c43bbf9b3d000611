from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from workctx_core.types import ContextEntry, CreateEntryInput, RecentQuery


@runtime_checkable
class ContextStore(Protocol):
    """Indexed storage of context entries. Carries no retention policy."""

    async def insert(self, entry: CreateEntryInput, ttl_minutes: int) -> ContextEntry: ...
    async def get_by_id(self, entry_id: str) -> ContextEntry | None: ...
    async def get_recent(self, query: RecentQuery | None = None) -> list[ContextEntry]: ...
    async def get_by_task_id(self, task_id: str) -> list[ContextEntry]: ...
    async def pin(self, entry_id: str) -> bool: ...
    async def unpin(self, entry_id: str) -> bool: ...
    async def delete(self, entry_id: str) -> bool: ...
    async def delete_by_task_id(self, task_id: str) -> int: ...
    async def prune_expired(self) -> int: ...
    async def enforce_max_entries(self, max_entries: int) -> int: ...
    async def count(self) -> int: ...
    async def schema_version(self) -> int: ...
    async def close(self) -> None: ...
