from __future__ import annotations

from pathlib import Path

import pytest
import pytest_asyncio
from workctx_core.types import ManagerConfig

from tests.helpers import FakeClock


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def sqlite_db_path(tmp_path: Path) -> str:
    return str(tmp_path / "working-context" / "context.db")


@pytest_asyncio.fixture
async def memory_context_store(clock):
    from workctx_runtime.backends.memory import InProcessContextStore
    store = InProcessContextStore(clock=clock)
    yield store
    await store.close()


@pytest_asyncio.fixture
async def sqlite_context_store(sqlite_db_path, clock):
    from workctx_runtime.backends.sqlite import SQLiteContextStore
    store = await SQLiteContextStore.create(sqlite_db_path, clock=clock)
    yield store
    await store.close()


@pytest.fixture()
def manager_config(sqlite_db_path) -> ManagerConfig:
    return ManagerConfig(db_path=sqlite_db_path, max_entries=20, default_ttl_minutes=120)


@pytest_asyncio.fixture
async def manager(manager_config, sqlite_context_store):
    from workctx_runtime.manager import WorkingContextManager
    return WorkingContextManager(manager_config, sqlite_context_store)


@pytest.fixture()
def fake_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Redirect Path.home() to a temp directory."""
    home = tmp_path / "home"
    (home / ".workctx").mkdir(parents=True)
    monkeypatch.setattr(Path, "home", lambda: home)
    return home
