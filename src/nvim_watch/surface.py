"""
surface.py — What the watch core needs from whatever displays its output.

DisplaySurface is one scrollable view (a Neovim buffer, a terminal panel).
Host is the frontend around the surfaces: it creates or reuses them by name,
knows which one has focus, asks yes/no questions and shows notifications.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Protocol


class Level(Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class DisplaySurface(Protocol):
    name: str
    handle: object
    ansi_capable: bool

    def is_visible(self) -> bool: ...

    def replace(self, lines: list[str]) -> None:
        """Swap in ``lines`` keeping each viewport's cursor where it was."""

    def focus(self) -> None: ...

    def dispose(self) -> None: ...


class Host(Protocol):
    def surface_for(self, name: str, handle: object | None = None) -> DisplaySurface: ...

    def focused_surface_name(self) -> str | None: ...

    def confirm(self, prompt: str) -> bool: ...

    def notify(self, message: str, level: Level = Level.INFO) -> None: ...

    def watch_unload(self, surface: DisplaySurface, callback: Callable[[], None]) -> None: ...


def clamp_cursor(cursor: tuple[int, int], line_count: int) -> tuple[int, int]:
    """Keep a saved (1-based row, 0-based col) cursor inside content of ``line_count`` lines."""
    row, col = cursor
    row = max(1, min(row, max(line_count, 1)))
    return row, max(col, 0)


class MemorySurface:
    """A surface that just holds its lines. Used headless and in tests."""

    def __init__(self, name: str, *, visible: bool = True, ansi_capable: bool = False) -> None:
        self.name = name
        self.handle = name
        self.ansi_capable = ansi_capable
        self.visible = visible
        self.lines: list[str] = [""]
        self.cursor: tuple[int, int] = (1, 0)
        self.focused = False
        self.disposed = False
        self.replace_count = 0

    def is_visible(self) -> bool:
        return self.visible and not self.disposed

    def replace(self, lines: list[str]) -> None:
        saved = self.cursor
        self.lines = list(lines)
        self.cursor = clamp_cursor(saved, len(self.lines))
        self.replace_count += 1

    def focus(self) -> None:
        self.focused = True

    def dispose(self) -> None:
        self.disposed = True
