"""Entry commands: list, show, add, pin, unpin, delete, clear, prune, prompt."""
from __future__ import annotations

import json
from typing import TYPE_CHECKING

import typer
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from workctx_core.types import CreateEntryInput, SessionType, now_ms
from workctx_runtime.injection import format_for_system_prompt, format_relative_time
from workctx_runtime.session_types import session_type_for_key

from workctx_cli.runtime import console, run_with_manager, run_with_runtime

if TYPE_CHECKING:
    from workctx_core.types import ContextEntry
    from workctx_runtime.context import WorkctxRuntime
    from workctx_runtime.manager import WorkingContextManager


def _parse_metadata(pairs: list[str] | None) -> dict[str, str] | None:
    if not pairs:
        return None
    metadata: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"expected KEY=VALUE, got {pair!r}")
        metadata[key] = value
    return metadata


def _entries_table(entries: list[ContextEntry], now: int) -> Table:
    table = Table(
        title="Working Context",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Age", justify="right")
    table.add_column("Type")
    table.add_column("Task")
    table.add_column("Summary")

    for entry in entries:
        pin = " [bold yellow]\\[pinned][/bold yellow]" if entry.pinned else ""
        table.add_row(
            entry.id[:12],
            format_relative_time(entry.created_at, now),
            entry.session_type.label + pin,
            escape(entry.task_id or "-"),
            escape(entry.summary),
        )
    return table


def list_command(
    ctx: typer.Context,
    session_type: SessionType | None = typer.Option(
        None, "--session-type", "-s", help="Only entries of this session type"
    ),
    task: str | None = typer.Option(None, "--task", "-t", help="Only entries of this task"),
    max_age: int | None = typer.Option(
        None, "--max-age", help="Only entries newer than this many minutes"
    ),
    max_tokens: int | None = typer.Option(
        None, "--max-tokens", help="Only the newest entries fitting this token budget"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print entries as JSON"),
) -> None:
    """List live entries, pinned first then newest first."""
    async def _action(manager: WorkingContextManager) -> list[ContextEntry]:
        return await manager.get_recent(
            max_tokens=max_tokens,
            max_age=max_age,
            session_type=session_type,
            task_id=task,
        )

    entries = run_with_manager(ctx, _action)

    if as_json:
        typer.echo(json.dumps([e.to_dict() for e in entries], indent=2))
        return
    if not entries:
        console.print("[yellow]No working context entries.[/yellow]")
        return
    console.print(_entries_table(entries, now_ms()))
    console.print(f"\n[dim]{len(entries)} entr{'y' if len(entries) == 1 else 'ies'}.[/dim]")


def show_command(
    ctx: typer.Context,
    entry_id: str = typer.Argument(..., help="Entry id"),
    as_json: bool = typer.Option(False, "--json", help="Print the entry as JSON"),
) -> None:
    """Show one entry in full."""
    async def _action(manager: WorkingContextManager) -> ContextEntry | None:
        return await manager.get_by_id(entry_id)

    entry = run_with_manager(ctx, _action)
    if entry is None:
        console.print(f"[red]Entry not found:[/red] '{entry_id}'")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(entry.to_dict(), indent=2))
        return

    lines = [
        f"[bold]Session:[/bold]  {escape(entry.session_key)} ({entry.session_type.label})",
        f"[bold]Task:[/bold]     {escape(entry.task_id or '-')}",
        f"[bold]Pinned:[/bold]   {'yes' if entry.pinned else 'no'}",
        f"[bold]Created:[/bold]  {format_relative_time(entry.created_at, now_ms())}",
    ]
    if entry.metadata:
        for key, value in sorted(entry.metadata.items()):
            lines.append(f"[bold]{escape(key)}:[/bold] {escape(value)}")
    lines.append("")
    lines.append(escape(entry.summary))
    console.print(Panel("\n".join(lines), title=entry.id, border_style="cyan"))


def add_command(
    ctx: typer.Context,
    summary: str = typer.Argument(..., help="Summary text to remember"),
    session_key: str = typer.Option(
        "cli:manual", "--session-key", "-k", help="Originating session key"
    ),
    session_type: SessionType | None = typer.Option(
        None, "--session-type", "-s",
        help="Session type (derived from the session key when omitted)",
    ),
    task: str | None = typer.Option(None, "--task", "-t", help="Task id"),
    meta: list[str] | None = typer.Option(
        None, "--meta", "-m", help="Metadata as KEY=VALUE (repeatable)"
    ),
    pin: bool = typer.Option(False, "--pin", help="Pin the new entry"),
) -> None:
    """Add an entry by hand."""
    entry_input = CreateEntryInput(
        session_key=session_key,
        session_type=session_type or session_type_for_key(session_key),
        summary=summary,
        task_id=task,
        metadata=_parse_metadata(meta),
    )

    async def _action(manager: WorkingContextManager) -> ContextEntry:
        entry = await manager.add(entry_input)
        if pin:
            await manager.pin(entry.id)
        return entry

    entry = run_with_manager(ctx, _action)
    console.print(f"[green]Added[/green] {entry.id}")


def _toggle_pin(ctx: typer.Context, entry_id: str, pinned: bool) -> None:
    async def _action(manager: WorkingContextManager) -> bool:
        if pinned:
            return await manager.pin(entry_id)
        return await manager.unpin(entry_id)

    if not run_with_manager(ctx, _action):
        console.print(f"[red]Entry not found:[/red] '{entry_id}'")
        raise typer.Exit(1)
    console.print(f"[green]{'Pinned' if pinned else 'Unpinned'}[/green] {entry_id}")


def pin_command(
    ctx: typer.Context,
    entry_id: str = typer.Argument(..., help="Entry id"),
) -> None:
    """Exempt an entry from expiry and the entry cap."""
    _toggle_pin(ctx, entry_id, True)


def unpin_command(
    ctx: typer.Context,
    entry_id: str = typer.Argument(..., help="Entry id"),
) -> None:
    """Make a pinned entry subject to expiry and the entry cap again."""
    _toggle_pin(ctx, entry_id, False)


def delete_command(
    ctx: typer.Context,
    entry_id: str = typer.Argument(..., help="Entry id"),
) -> None:
    """Delete one entry."""
    async def _action(manager: WorkingContextManager) -> bool:
        return await manager.delete(entry_id)

    if not run_with_manager(ctx, _action):
        console.print(f"[red]Entry not found:[/red] '{entry_id}'")
        raise typer.Exit(1)
    console.print(f"[green]Deleted[/green] {entry_id}")


def clear_command(
    ctx: typer.Context,
    task: str | None = typer.Option(
        None, "--task", "-t", help="Only clear entries of this task"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Delete all entries, or all entries of one task (pinned ones included)."""
    scope = f"entries of task '{task}'" if task else "all working context entries"
    if not yes and not typer.confirm(f"Delete {scope}?"):
        raise typer.Exit(1)

    async def _action(manager: WorkingContextManager) -> int:
        if task is not None:
            return await manager.clear_by_task_id(task)
        return await manager.clear()

    removed = run_with_manager(ctx, _action)
    console.print(f"[green]Removed {removed} entr{'y' if removed == 1 else 'ies'}.[/green]")


def prune_command(ctx: typer.Context) -> None:
    """Delete expired unpinned entries now."""
    async def _action(manager: WorkingContextManager) -> int:
        return await manager.prune_expired()

    pruned = run_with_manager(ctx, _action)
    console.print(f"[green]Pruned {pruned} expired entr{'y' if pruned == 1 else 'ies'}.[/green]")


def prompt_command(
    ctx: typer.Context,
    max_tokens: int | None = typer.Option(
        None, "--max-tokens", help="Token budget (defaults to max_injected_tokens)"
    ),
) -> None:
    """Print the working-context block as it would be injected into a prompt."""
    async def _action(runtime: WorkctxRuntime) -> str:
        if max_tokens is None:
            return await runtime.render_prompt()
        entries = await runtime.manager.get_recent(max_tokens=max_tokens)
        return format_for_system_prompt(entries, max_tokens=max_tokens)

    text = run_with_runtime(ctx, _action)
    if text:
        typer.echo(text)
