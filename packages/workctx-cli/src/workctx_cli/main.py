from __future__ import annotations

from pathlib import Path

import typer
from workctx_core._version import __version__
from workctx_core.logging import setup_logging_from

from workctx_cli.commands.config import config_command
from workctx_cli.commands.entries import (
    add_command,
    clear_command,
    delete_command,
    list_command,
    pin_command,
    prompt_command,
    prune_command,
    show_command,
    unpin_command,
)
from workctx_cli.runtime import console, load_config

app = typer.Typer(
    name="workctx",
    help="workctx — short-lived working context for agents",
    no_args_is_help=True,
)

app.command("list")(list_command)
app.command("show")(show_command)
app.command("add")(add_command)
app.command("pin")(pin_command)
app.command("unpin")(unpin_command)
app.command("delete")(delete_command)
app.command("clear")(clear_command)
app.command("prune")(prune_command)
app.command("prompt")(prompt_command)
app.command("config")(config_command)


@app.callback()
def _root(
    ctx: typer.Context,
    config_path: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Read configuration from this TOML file only",
        exists=True,
        dir_okay=False,
    ),
) -> None:
    """Inspect and manage the working-context store."""
    ctx.obj = {"config_path": config_path}
    setup_logging_from(load_config(ctx).logging)


@app.command()
def version() -> None:
    """Show the workctx version."""
    console.print(f"workctx {__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
