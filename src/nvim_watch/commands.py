"""
commands.py — The :WatchStart / :WatchFile / :WatchStop handlers.

Frontends hand these the already-split argument list. Errors never escape:
they become notifications, warnings for NotWatching and errors otherwise.
"""

from __future__ import annotations

from nvim_watch.errors import NotWatching, WatchError
from nvim_watch.registry import Explicit, Unspecified, WatchRegistry
from nvim_watch.surface import Level
from nvim_watch.watcher import Watcher

FILE_PLACEHOLDER = "%s"


def parse_watch_args(args: list[str]) -> tuple[str, int | None]:
    """Split ``args`` into (command line, refresh rate).

    A trailing integer token is the rate in milliseconds; everything else is
    joined with single spaces.

    >>> parse_watch_args(["ls", "-la", "750"])
    ('ls -la', 750)
    """
    if not args:
        return "", None
    try:
        rate = int(args[-1])
    except ValueError:
        return " ".join(args), None
    return " ".join(args[:-1]), rate


def _report(registry: WatchRegistry, exc: WatchError) -> None:
    level = Level.WARN if isinstance(exc, NotWatching) else Level.ERROR
    registry.host.notify(f"Error: {exc}", level)


def start_watch(registry: WatchRegistry, args: list[str]) -> Watcher | None:
    command, rate = parse_watch_args(args)
    try:
        return registry.start(command, rate)
    except WatchError as exc:
        _report(registry, exc)
        return None


def start_file_watch(registry: WatchRegistry, args: list[str], path: str) -> Watcher | None:
    """Watch ``path``: rerun when it changes, with ``%s`` replaced by its absolute path."""
    if not path:
        registry.host.notify("Error: No file to watch in the current buffer", Level.ERROR)
        return None
    command, rate = parse_watch_args(args)
    command = command.replace(FILE_PLACEHOLDER, path)
    try:
        return registry.start(command, rate, file=path)
    except WatchError as exc:
        _report(registry, exc)
        return None


def stop_watch(registry: WatchRegistry, args: list[str]) -> int:
    request = Explicit(" ".join(args)) if args else Unspecified()
    try:
        return registry.stop(request)
    except WatchError as exc:
        _report(registry, exc)
        return 0
