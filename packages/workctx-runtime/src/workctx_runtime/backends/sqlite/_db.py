from __future__ import annotations

from pathlib import Path

import aiosqlite

MEMORY_PATH = ":memory:"


async def get_connection(db_path: str) -> aiosqlite.Connection:
    """Open a WAL-mode SQLite connection, creating the directory if needed."""
    if db_path == MEMORY_PATH:
        conn = await aiosqlite.connect(MEMORY_PATH)
    else:
        path = Path(db_path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA journal_mode=WAL")
    await conn.execute("PRAGMA busy_timeout=5000")
    await conn.execute("PRAGMA synchronous=NORMAL")
    conn.row_factory = aiosqlite.Row
    return conn


def path_key(db_path: str) -> str | None:
    """Canonical identity of a database file; None for in-memory databases."""
    if db_path == MEMORY_PATH:
        return None
    return str(Path(db_path).expanduser().resolve())
