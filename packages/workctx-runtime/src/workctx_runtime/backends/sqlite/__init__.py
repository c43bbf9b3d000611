"""T1 SQLite backend: durable, zero external infrastructure."""
from __future__ import annotations

from workctx_runtime.backends.sqlite.context_store import SQLiteContextStore

__all__ = ["SQLiteContextStore"]
