from __future__ import annotations

import pytest
from workctx_core.config import BackendConfig, WorkctxConfig, WorkingContextConfig
from workctx_core.errors import ConfigError, StoreInUseError
from workctx_runtime.backends.memory import InProcessContextStore
from workctx_runtime.backends.sqlite import SQLiteContextStore
from workctx_runtime.builder import RuntimeBuilder
from workctx_runtime.context import WorkctxRuntime
from workctx_runtime.injection import HEADER

from tests.helpers import make_input


def _sqlite_config(db_path: str, **working_context) -> WorkctxConfig:
    return WorkctxConfig(
        working_context=WorkingContextConfig(**working_context),
        backend=BackendConfig(tier="sqlite", sqlite_path=db_path),
    )


class TestRuntimeBuilder:
    async def test_build_memory_backend(self, clock):
        config = WorkctxConfig(backend=BackendConfig(tier="memory"))
        runtime = await RuntimeBuilder(config, clock=clock).build()
        assert isinstance(runtime, WorkctxRuntime)
        assert runtime.enabled
        assert isinstance(runtime.manager.store, InProcessContextStore)
        await runtime.close()

    async def test_build_sqlite_backend(self, sqlite_db_path):
        runtime = await RuntimeBuilder(_sqlite_config(sqlite_db_path)).build()
        async with runtime:
            assert isinstance(runtime.manager.store, SQLiteContextStore)
            assert runtime.manager.config.db_path == sqlite_db_path

    async def test_build_passes_settings_to_manager(self, sqlite_db_path):
        config = _sqlite_config(sqlite_db_path, max_entries=3, default_ttl_minutes=10)
        async with await RuntimeBuilder(config).build() as runtime:
            assert runtime.manager.config.max_entries == 3
            assert runtime.manager.config.default_ttl_minutes == 10

    async def test_build_unknown_tier_raises(self):
        config = WorkctxConfig(backend=BackendConfig(tier="unknown"))
        with pytest.raises(ConfigError, match="Unknown backend tier"):
            await RuntimeBuilder(config).build()

    async def test_build_invalid_settings_raises(self, sqlite_db_path):
        with pytest.raises(ConfigError):
            await RuntimeBuilder(_sqlite_config(sqlite_db_path, max_entries=0)).build()

    async def test_build_disabled_is_inert(self, sqlite_db_path):
        runtime = await RuntimeBuilder(_sqlite_config(sqlite_db_path, enabled=False)).build()
        assert not runtime.enabled
        assert runtime.manager is None
        assert await runtime.render_prompt() == ""
        await runtime.close()

    async def test_second_runtime_on_same_path_is_refused(self, sqlite_db_path):
        config = _sqlite_config(sqlite_db_path)
        async with await RuntimeBuilder(config).build():
            with pytest.raises(StoreInUseError):
                await RuntimeBuilder(config).build()

        # released once the first runtime is closed
        async with await RuntimeBuilder(config).build() as runtime:
            assert runtime.enabled


class TestWorkctxRuntime:
    async def test_render_prompt(self, clock):
        config = WorkctxConfig(backend=BackendConfig(tier="memory"))
        async with await RuntimeBuilder(config, clock=clock).build() as runtime:
            assert await runtime.render_prompt(now=clock.now) == ""

            await runtime.manager.add(make_input())
            text = await runtime.render_prompt(now=clock.now)
            assert text.startswith(HEADER)
            assert "(task: auth-refactor) Started auth refactor task for ki-at-obv" in text

    async def test_render_prompt_respects_budget(self, clock):
        config = WorkctxConfig(
            working_context=WorkingContextConfig(max_injected_tokens=50),
            backend=BackendConfig(tier="memory"),
        )
        async with await RuntimeBuilder(config, clock=clock).build() as runtime:
            for i in range(10):
                await runtime.manager.add(make_input(summary=f"Entry {i}: " + "x" * 40))
            lines = (await runtime.render_prompt(now=clock.now)).splitlines()
            assert 1 < len(lines) < 11

    async def test_context_manager_closes(self, sqlite_db_path):
        async with await RuntimeBuilder(_sqlite_config(sqlite_db_path)).build() as runtime:
            pass
        assert runtime.manager is None
        assert not runtime.enabled
        # closing twice is harmless
        await runtime.close()
