"""Data types shared by the store, the manager and the formatter.

Timestamps are integer milliseconds since the Unix epoch throughout.
"""
from __future__ import annotations

import enum
import time
from dataclasses import dataclass
from typing import Any

MS_PER_MINUTE = 60_000

DEFAULT_RECENT_LIMIT = 100


# ── Session Types ────────────────────────────────────────────────────

class SessionType(enum.Enum):
    """Kind of conversation an entry originated from."""
    DM = "dm"
    WEBHOOK = "webhook"
    CRON = "cron"
    GROUP = "group"

    @property
    def label(self) -> str:
        return _SESSION_TYPE_LABELS[self]


_SESSION_TYPE_LABELS = {
    SessionType.DM: "DM",
    SessionType.WEBHOOK: "Webhook",
    SessionType.CRON: "Cron",
    SessionType.GROUP: "Group",
}


# ── Entries ──────────────────────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class ContextEntry:
    """One remembered piece of recent activity.

    Attributes:
        id: Unique identifier, assigned by the store on insert
        session_key: Conversation/channel the entry came from
        session_type: Kind of that conversation
        summary: Short text shown back to the agent
        task_id: Optional key grouping entries of one logical task
        pinned: Pinned entries survive TTL pruning and the entry cap
        created_at: Creation time (ms epoch)
        expires_at: ``created_at`` plus the TTL (ms epoch)
        metadata: Opaque string mapping carried along with the entry
    """
    id: str
    session_key: str
    session_type: SessionType
    summary: str
    created_at: int
    expires_at: int
    task_id: str | None = None
    pinned: bool = False
    metadata: dict[str, str] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary for JSON serialization."""
        return {
            "id": self.id,
            "session_key": self.session_key,
            "session_type": self.session_type.value,
            "summary": self.summary,
            "task_id": self.task_id,
            "pinned": self.pinned,
            "created_at": self.created_at,
            "expires_at": self.expires_at,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContextEntry:
        """Create a ContextEntry from a dictionary."""
        return cls(
            id=data["id"],
            session_key=data["session_key"],
            session_type=SessionType(data["session_type"]),
            summary=data["summary"],
            task_id=data.get("task_id"),
            pinned=bool(data.get("pinned", False)),
            created_at=int(data["created_at"]),
            expires_at=int(data["expires_at"]),
            metadata=data.get("metadata"),
        )


@dataclass(frozen=True, slots=True)
class CreateEntryInput:
    """Caller-supplied fields for a new entry.

    ``session_type`` may be given as a SessionType or its string value;
    the manager validates and normalizes it before anything is written.
    """
    session_key: str
    session_type: SessionType | str
    summary: str
    task_id: str | None = None
    metadata: dict[str, str] | None = None


@dataclass(frozen=True, slots=True)
class RecentQuery:
    """Filter for ``ContextStore.get_recent``."""
    limit: int = DEFAULT_RECENT_LIMIT
    max_age_ms: int | None = None
    session_type: SessionType | None = None
    task_id: str | None = None


# ── Manager Config ───────────────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class ManagerConfig:
    """Settings fixed for the lifetime of one WorkingContextManager."""
    db_path: str
    max_entries: int = 20
    default_ttl_minutes: int = 120


def now_ms() -> int:
    """Current wall-clock time in ms epoch."""
    return time.time_ns() // 1_000_000
