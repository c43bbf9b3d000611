from __future__ import annotations

import dataclasses

import typer
from rich.table import Table

from workctx_cli.runtime import console, load_config


def config_command(ctx: typer.Context) -> None:
    """Show the resolved configuration (defaults, global, project)."""
    config = load_config(ctx)

    table = Table(
        title="Resolved Configuration",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Section", style="bold")
    table.add_column("Key")
    table.add_column("Value")

    for section in ("working_context", "backend", "logging"):
        values = dataclasses.asdict(getattr(config, section))
        for key, value in values.items():
            table.add_row(section, key, repr(value))
    console.print(table)
    console.print(
        f"[dim]Database: {config.backend.resolved_sqlite_path()}[/dim]"
    )
