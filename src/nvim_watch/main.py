"""
main.py — CLI entry point (Typer app).

Runs the same watch core outside Neovim: one rich panel, refreshed until
Ctrl-C or until the command fails.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.live import Live

from nvim_watch import __version__
from nvim_watch.commands import start_file_watch, start_watch
from nvim_watch.config import get_config
from nvim_watch.errors import ConfigError
from nvim_watch.logs import configure_logger
from nvim_watch.registry import FromLifecycleEvent, WatchRegistry
from nvim_watch.runner import ProcessRunner
from nvim_watch.scheduler import Scheduler
from nvim_watch.terminal import TerminalHost

app = typer.Typer(
    name="nvim-watch",
    help="Rerun a command on a timer and keep its latest output on screen.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"nvim-watch {__version__}")
        raise typer.Exit()


@app.callback()
def cli(
    version: Annotated[
        bool | None,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version and exit."),
    ] = None,
) -> None:
    """Watch shell commands the way :WatchStart does inside Neovim."""


@app.command(
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def run(
    ctx: typer.Context,
    rate: Annotated[int | None, typer.Option("--rate", "-n", help="Refresh rate in milliseconds.")] = None,
    file: Annotated[
        Path | None,
        typer.Option("--file", "-f", help="Only rerun when this file changes; %s in COMMAND becomes its path."),
    ] = None,
    ansi: Annotated[bool, typer.Option("--ansi", help="Render ANSI colours instead of stripping them.")] = False,
    overlap: Annotated[str, typer.Option("--overlap", help="allow | skip runs while one is in flight.")] = "allow",
    timeout: Annotated[float | None, typer.Option("--timeout", help="Kill a run after this many seconds.")] = None,
    buffered: Annotated[bool, typer.Option("--buffered", help="Capture output in one shot instead of streaming.")] = False,
) -> None:
    """
    Run COMMAND [ARGS]... [RATE] repeatedly and show its latest output.

    Example: nvim-watch run git status --short 1000
    """
    args = list(ctx.args)
    if not args:
        err_console.print("[red]Error:[/red] No command provided. Example: nvim-watch run ls -la")
        raise typer.Exit(1)
    if rate is not None:
        args.append(str(rate))

    try:
        config = get_config({
            "ansi_enabled": ansi,
            "terminal_mode": False,
            "overlap": overlap,
            "timeout": timeout,
            "runner": "buffered" if buffered else "streaming",
        })
    except ConfigError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(2)

    configure_logger()
    host = TerminalHost(console, ansi=config.ansi_enabled)
    registry = WatchRegistry(
        host,
        Scheduler(host.post),
        ProcessRunner(host.post, strategy=config.runner, timeout=config.timeout),
        config,
    )

    if file is not None:
        watcher = start_file_watch(registry, args, str(file.resolve()))
    else:
        watcher = start_watch(registry, args)
    if watcher is None:
        raise typer.Exit(1)

    with Live(console=console, auto_refresh=False, transient=False) as live:
        host.live = live
        try:
            host.serve(lambda: len(registry) > 0)
        except KeyboardInterrupt:
            registry.stop(FromLifecycleEvent(watcher.command, "shutdown"))
        finally:
            host.live = None

    raise typer.Exit(1 if host.errors else 0)
