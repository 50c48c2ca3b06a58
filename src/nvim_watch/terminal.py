"""
terminal.py — Terminal frontend: a rich Live panel per watched command.

The main thread owns a task queue. Timers and runner threads only ever
``post`` onto it; ``TerminalHost.serve`` drains it, so every watcher and
surface mutation happens on the main thread, same as inside Neovim.
"""

from __future__ import annotations

import queue
from typing import Callable

import typer
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from nvim_watch.surface import Level, MemorySurface

_LEVEL_STYLES = {
    Level.INFO: "dim",
    Level.WARN: "yellow",
    Level.ERROR: "bold red",
}


class RichSurface(MemorySurface):
    """A MemorySurface that redraws itself in the host's Live display."""

    def __init__(self, name: str, host: "TerminalHost", *, ansi_capable: bool = False) -> None:
        super().__init__(name, ansi_capable=ansi_capable)
        self._host = host

    def render(self) -> Panel:
        body = "\n".join(self.lines)
        text = Text.from_ansi(body) if self.ansi_capable else Text(body)
        return Panel(text, title=f"[bold cyan]{self.name}[/bold cyan]", border_style="cyan")

    def replace(self, lines: list[str]) -> None:
        super().replace(lines)
        self._host.refresh()

    def focus(self) -> None:
        super().focus()
        self._host.focused = self.name

    def dispose(self) -> None:
        super().dispose()
        self._host.surfaces.pop(self.name, None)
        self._host.refresh()


class TerminalHost:
    def __init__(self, console: Console | None = None, *, ansi: bool = False) -> None:
        self.console = console or Console()
        self.ansi = ansi
        self.surfaces: dict[str, RichSurface] = {}
        self.focused: str | None = None
        self.errors: list[str] = []
        self.live: Live | None = None
        self._tasks: queue.SimpleQueue[Callable[[], None]] = queue.SimpleQueue()

    # ── Main-thread task queue ───────────────────────────────────────────────────

    def post(self, fn: Callable[[], None]) -> None:
        self._tasks.put(fn)

    def run_pending(self, timeout: float = 0.1) -> int:
        """Run queued callbacks, waiting up to ``timeout`` for the first one."""
        ran = 0
        try:
            fn = self._tasks.get(timeout=timeout)
        except queue.Empty:
            return 0
        while True:
            fn()
            ran += 1
            try:
                fn = self._tasks.get_nowait()
            except queue.Empty:
                return ran

    def serve(self, is_active: Callable[[], bool]) -> None:
        while is_active():
            self.run_pending()
        # Deferred disposals posted by the final kill().
        while self.run_pending(timeout=0):
            pass

    # ── Host protocol ────────────────────────────────────────────────────────────

    def refresh(self) -> None:
        if self.live is not None:
            self.live.update(Group(*(s.render() for s in self.surfaces.values())), refresh=True)

    def surface_for(self, name: str, handle: object | None = None) -> RichSurface:
        surface = self.surfaces.get(name)
        if surface is None:
            surface = RichSurface(name, self, ansi_capable=self.ansi)
            self.surfaces[name] = surface
        self.focused = name
        return surface

    def focused_surface_name(self) -> str | None:
        return self.focused

    def confirm(self, prompt: str) -> bool:
        return typer.confirm(prompt.replace("(y/n)?", "").strip(), default=False)

    def notify(self, message: str, level: Level = Level.INFO) -> None:
        if level is Level.ERROR:
            self.errors.append(message)
        self.console.print(f"[watch] {message}", style=_LEVEL_STYLES[level], markup=False, highlight=False)

    def watch_unload(self, surface: RichSurface, callback: Callable[[], None]) -> None:
        # Panels are never closed from the outside; they live until the process exits.
        pass
