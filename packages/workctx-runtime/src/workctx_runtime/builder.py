from __future__ import annotations

from typing import TYPE_CHECKING

from workctx_core.errors import ConfigError
from workctx_core.logging import get_logger
from workctx_core.types import now_ms

from workctx_runtime.context import WorkctxRuntime
from workctx_runtime.manager import WorkingContextManager, validate_manager_config

if TYPE_CHECKING:
    from collections.abc import Callable

    from workctx_core.config import WorkctxConfig

    from workctx_runtime.protocols.context_store import ContextStore

logger = get_logger("builder")


class RuntimeBuilder:
    """Build a WorkctxRuntime from configuration.

    Usage:
        config = WorkctxConfig.load()
        async with await RuntimeBuilder(config).build() as runtime:
            section = await runtime.render_prompt()
    """

    def __init__(
        self, config: WorkctxConfig, *, clock: Callable[[], int] = now_ms
    ) -> None:
        self._config = config
        self._clock = clock

    async def build(self) -> WorkctxRuntime:
        if not self._config.working_context.enabled:
            logger.info("Working context disabled; runtime is inert")
            return WorkctxRuntime(config=self._config)

        manager_config = self._config.manager_config()
        validate_manager_config(manager_config)

        tier = self._config.backend.tier
        logger.info("Building working context with %s backend", tier)
        store = await self._build_store(tier, manager_config.db_path)
        return WorkctxRuntime(
            config=self._config,
            manager=WorkingContextManager(manager_config, store),
        )

    async def _build_store(self, tier: str, db_path: str) -> ContextStore:
        if tier == "memory":
            from workctx_runtime.backends.memory import InProcessContextStore
            return InProcessContextStore(clock=self._clock)
        elif tier == "sqlite":
            from workctx_runtime.backends.sqlite import SQLiteContextStore
            return await SQLiteContextStore.create(db_path, clock=self._clock)
        else:
            raise ConfigError(f"Unknown backend tier: {tier!r}")
