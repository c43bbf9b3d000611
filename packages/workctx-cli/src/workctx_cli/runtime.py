"""Open a WorkctxRuntime for the duration of one CLI command."""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar

import typer
from rich.console import Console
from workctx_core.config import WorkctxConfig
from workctx_core.errors import WorkctxError
from workctx_runtime.builder import RuntimeBuilder

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from workctx_runtime.context import WorkctxRuntime
    from workctx_runtime.manager import WorkingContextManager

T = TypeVar("T")

console = Console()
err_console = Console(stderr=True)


def load_config(ctx: typer.Context) -> WorkctxConfig:
    """Config from ``--config`` when given, else the layered defaults.

    Loaded once per invocation and kept on ``ctx.obj``.
    """
    obj = ctx.ensure_object(dict)
    if obj.get("config") is None:
        obj["config"] = _read_config(obj.get("config_path"))
    return obj["config"]


def _read_config(path: Path | None) -> WorkctxConfig:
    if path is not None:
        return WorkctxConfig.from_toml(Path(path))
    return WorkctxConfig.load()


def run_with_runtime(
    ctx: typer.Context,
    action: Callable[[WorkctxRuntime], Awaitable[T]],
) -> T:
    """Build the runtime, run *action* against it, always close.

    Exits with status 1 on workctx errors and status 0 with a notice when
    working context is disabled.
    """
    config = load_config(ctx)

    async def _main() -> T:
        async with await RuntimeBuilder(config).build() as runtime:
            if runtime.manager is None:
                console.print(
                    "[yellow]Working context is disabled"
                    " (\\[working_context] enabled = false).[/yellow]"
                )
                raise typer.Exit(0)
            return await action(runtime)

    try:
        return asyncio.run(_main())
    except WorkctxError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from None


def run_with_manager(
    ctx: typer.Context,
    action: Callable[[WorkingContextManager], Awaitable[T]],
) -> T:
    """``run_with_runtime`` for actions that only need the manager."""
    async def _action(runtime: WorkctxRuntime) -> T:
        return await action(runtime.manager)

    return run_with_runtime(ctx, _action)
