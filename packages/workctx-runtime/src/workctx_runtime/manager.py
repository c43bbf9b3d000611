"""Retention policy for working-context entries.

The manager is the only component that applies policy: it validates input,
prunes expired entries before each insert and trims the unpinned entries
to ``max_entries`` after it. Stores only execute what they are told.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from workctx_core.errors import ConfigError, EntryQueryError, EntryValidationError
from workctx_core.logging import get_logger
from workctx_core.types import (
    MS_PER_MINUTE,
    CreateEntryInput,
    RecentQuery,
    SessionType,
)

from workctx_runtime.injection import estimate_tokens, select_within_budget

if TYPE_CHECKING:
    from workctx_core.types import ContextEntry, ManagerConfig

    from workctx_runtime.injection import TokenEstimator
    from workctx_runtime.protocols.context_store import ContextStore

logger = get_logger("manager")

CLEAR_BATCH_LIMIT = 10_000


def validate_manager_config(config: ManagerConfig) -> None:
    """Raise ConfigError unless *config* is usable."""
    errors: list[str] = []
    if not config.db_path:
        errors.append("db_path is required")
    if (
        isinstance(config.max_entries, bool)
        or not isinstance(config.max_entries, int)
        or config.max_entries <= 0
    ):
        errors.append(
            f"max_entries must be a positive integer, got {config.max_entries!r}"
        )
    if (
        isinstance(config.default_ttl_minutes, bool)
        or not isinstance(config.default_ttl_minutes, int)
        or config.default_ttl_minutes < 0
    ):
        errors.append(
            "default_ttl_minutes must be a non-negative integer,"
            f" got {config.default_ttl_minutes!r}"
        )
    if errors:
        raise ConfigError("Invalid working context config: " + "; ".join(errors))


def validate_entry_input(entry: CreateEntryInput) -> CreateEntryInput:
    """Check *entry* and return it with ``session_type`` as a SessionType.

    Raises:
        EntryValidationError: With every problem found, joined.
    """
    errors: list[str] = []

    if not isinstance(entry.session_key, str) or not entry.session_key:
        errors.append("session_key must be a non-empty string")

    session_type: SessionType | None = None
    try:
        session_type = SessionType(entry.session_type)
    except ValueError:
        allowed = ", ".join(t.value for t in SessionType)
        errors.append(
            f"session_type must be one of {allowed}, got {entry.session_type!r}"
        )

    if not isinstance(entry.summary, str) or not entry.summary:
        errors.append("summary must be a non-empty string")

    if entry.task_id is not None and not isinstance(entry.task_id, str):
        errors.append("task_id must be a string")

    if entry.metadata is not None and (
        not isinstance(entry.metadata, dict)
        or not all(
            isinstance(k, str) and isinstance(v, str)
            for k, v in entry.metadata.items()
        )
    ):
        errors.append("metadata must map strings to strings")

    if errors:
        raise EntryValidationError("Invalid context entry: " + "; ".join(errors))

    return CreateEntryInput(
        session_key=entry.session_key,
        session_type=session_type,
        summary=entry.summary,
        task_id=entry.task_id,
        metadata=entry.metadata,
    )


def _non_negative_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def build_recent_query(
    *,
    limit: int,
    max_age: int | None,
    session_type: SessionType | str | None,
    task_id: str | None,
) -> RecentQuery:
    """Validate ``get_recent`` arguments and turn them into a RecentQuery.

    Raises:
        EntryQueryError: With every problem found, joined.
    """
    errors: list[str] = []

    if not _non_negative_int(limit):
        errors.append(f"limit must be a non-negative integer, got {limit!r}")
    if max_age is not None and not _non_negative_int(max_age):
        errors.append(f"max_age must be a non-negative integer, got {max_age!r}")

    resolved_type: SessionType | None = None
    if session_type is not None:
        try:
            resolved_type = SessionType(session_type)
        except ValueError:
            allowed = ", ".join(t.value for t in SessionType)
            errors.append(
                f"session_type must be one of {allowed}, got {session_type!r}"
            )

    if task_id is not None and not isinstance(task_id, str):
        errors.append("task_id must be a string")

    if errors:
        raise EntryQueryError("Invalid context query: " + "; ".join(errors))

    return RecentQuery(
        limit=limit,
        max_age_ms=max_age * MS_PER_MINUTE if max_age is not None else None,
        session_type=resolved_type,
        task_id=task_id,
    )


class WorkingContextManager:
    """Policy layer over a ContextStore.

    Usage:
        manager = await WorkingContextManager.create(config)
        await manager.add(CreateEntryInput("agent:main:main", "dm", "..."))
        recent = await manager.get_recent(max_tokens=500)
    """

    def __init__(
        self,
        config: ManagerConfig,
        store: ContextStore,
        *,
        estimate: TokenEstimator = estimate_tokens,
    ) -> None:
        validate_manager_config(config)
        self._config = config
        self._store = store
        self._estimate = estimate

    @classmethod
    async def create(cls, config: ManagerConfig) -> WorkingContextManager:
        """Validate *config* and open a SQLite store at ``config.db_path``."""
        from workctx_runtime.backends.sqlite import SQLiteContextStore

        validate_manager_config(config)
        store = await SQLiteContextStore.create(config.db_path)
        return cls(config, store)

    @property
    def config(self) -> ManagerConfig:
        return self._config

    @property
    def store(self) -> ContextStore:
        return self._store

    async def add(self, entry: CreateEntryInput) -> ContextEntry:
        validated = validate_entry_input(entry)
        await self.prune_expired()
        stored = await self._store.insert(validated, self._config.default_ttl_minutes)
        evicted = await self._store.enforce_max_entries(self._config.max_entries)
        if evicted:
            logger.debug(
                "Evicted %d entries over the %d-entry cap",
                evicted, self._config.max_entries,
            )
        return stored

    async def get_by_id(self, entry_id: str) -> ContextEntry | None:
        return await self._store.get_by_id(entry_id)

    async def get_recent(
        self,
        *,
        max_tokens: int | None = None,
        max_age: int | None = None,
        session_type: SessionType | str | None = None,
        task_id: str | None = None,
        limit: int | None = None,
    ) -> list[ContextEntry]:
        """Live entries, pinned first then newest first.

        Args:
            max_tokens: Keep only the prefix whose summaries fit this budget.
            max_age: Minutes; older unpinned entries are left out.
            session_type: Only entries of this session type.
            task_id: Only entries of this task.
            limit: Row cap, defaults to ``max_entries``.

        Raises:
            EntryQueryError: If a filter or the limit is invalid.
        """
        query = build_recent_query(
            limit=self._config.max_entries if limit is None else limit,
            max_age=max_age,
            session_type=session_type,
            task_id=task_id,
        )
        entries = await self._store.get_recent(query)
        if max_tokens is not None:
            return select_within_budget(entries, max_tokens, self._estimate)
        return entries

    async def get_by_task_id(self, task_id: str) -> list[ContextEntry]:
        return await self._store.get_by_task_id(task_id)

    async def pin(self, entry_id: str) -> bool:
        return await self._store.pin(entry_id)

    async def unpin(self, entry_id: str) -> bool:
        return await self._store.unpin(entry_id)

    async def delete(self, entry_id: str) -> bool:
        return await self._store.delete(entry_id)

    async def clear_by_task_id(self, task_id: str) -> int:
        return await self._store.delete_by_task_id(task_id)

    async def clear(self) -> int:
        """Delete every visible entry one id at a time; return how many went.

        Goes through ``delete`` rather than a bulk statement so the count
        comes from the same path as individual deletes. Expired unpinned
        rows are not visible here; ``prune_expired`` handles those.
        """
        entries = await self._store.get_recent(RecentQuery(limit=CLEAR_BATCH_LIMIT))
        removed = 0
        for entry in entries:
            if await self._store.delete(entry.id):
                removed += 1
        return removed

    async def prune_expired(self) -> int:
        pruned = await self._store.prune_expired()
        if pruned:
            logger.debug("Pruned %d expired entries", pruned)
        return pruned

    async def count(self) -> int:
        return await self._store.count()

    async def close(self) -> None:
        await self._store.close()
