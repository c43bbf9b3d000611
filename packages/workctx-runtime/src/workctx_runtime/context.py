from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from workctx_runtime.injection import format_for_system_prompt

if TYPE_CHECKING:
    from types import TracebackType

    from workctx_core.config import WorkctxConfig

    from workctx_runtime.manager import WorkingContextManager


@dataclass(slots=True)
class WorkctxRuntime:
    """Caller-owned handle to the working-context machinery.

    Created by the RuntimeBuilder and passed to whatever needs it (capture,
    prompt assembly, the CLI). ``manager`` is None when working context is
    disabled, which turns capture and retrieval into no-ops. The owner must
    ``close()`` it (or use ``async with``) to release the database handle.
    """
    config: WorkctxConfig
    manager: WorkingContextManager | None = None

    @property
    def enabled(self) -> bool:
        return self.manager is not None

    async def render_prompt(self, *, now: int | None = None) -> str:
        """Working-context prompt section, or "" when there is nothing to add."""
        if self.manager is None:
            return ""
        budget = self.config.working_context.max_injected_tokens
        entries = await self.manager.get_recent(max_tokens=budget)
        return format_for_system_prompt(entries, max_tokens=budget, now=now)

    async def close(self) -> None:
        manager, self.manager = self.manager, None
        if manager is not None:
            await manager.close()

    async def __aenter__(self) -> WorkctxRuntime:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
