"""Shared fakes for the nvim_watch tests.

ManualScheduler and FakeRunner replace the timer and worker threads, so
tests drive ticks and completions by hand on the test thread.
"""

from __future__ import annotations

from typing import Callable

import pytest

from nvim_watch.config import Config
from nvim_watch.registry import WatchRegistry
from nvim_watch.runner import CommandResult
from nvim_watch.surface import Level, MemorySurface


class ManualHandle:
    def __init__(self, interval_ms: int, fn: Callable[[], None]) -> None:
        self.interval_ms = interval_ms
        self.fn = fn
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    def __init__(self) -> None:
        self.handles: list[ManualHandle] = []
        self.deferred: list[Callable[[], None]] = []

    def post(self, fn: Callable[[], None]) -> None:
        self.deferred.append(fn)

    def repeat(self, interval_ms: int, fn: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(interval_ms, fn)
        self.handles.append(handle)
        return handle

    def defer(self, fn: Callable[[], None]) -> None:
        self.deferred.append(fn)

    def fire(self) -> None:
        """One timer period: every live handle ticks once."""
        for handle in list(self.handles):
            if not handle.cancelled:
                handle.fn()

    def drain(self) -> None:
        while self.deferred:
            self.deferred.pop(0)()


class FakeRunner:
    def __init__(self) -> None:
        self.dispatched: list[tuple[str, Callable[[CommandResult], None]]] = []

    def run(self, command_line: str, on_complete: Callable[[CommandResult], None]) -> None:
        self.dispatched.append((command_line, on_complete))

    def finish(self, index: int = -1, *, exit_code: int = 0, stdout: str = "", stderr: str = "") -> None:
        command, on_complete = self.dispatched[index]
        on_complete(CommandResult(command, exit_code, stdout, stderr, 0.01))


class FakeHost:
    def __init__(self) -> None:
        self.surfaces: dict[str, MemorySurface] = {}
        self.focused: str | None = None
        self.confirm_answer = False
        self.prompts: list[str] = []
        self.notifications: list[tuple[str, Level]] = []
        self.unload_hooks: dict[str, Callable[[], None]] = {}
        self.ansi_capable = False

    def surface_for(self, name: str, handle: object | None = None) -> MemorySurface:
        if name not in self.surfaces:
            self.surfaces[name] = MemorySurface(name, ansi_capable=self.ansi_capable)
        return self.surfaces[name]

    def focused_surface_name(self) -> str | None:
        return self.focused

    def confirm(self, prompt: str) -> bool:
        self.prompts.append(prompt)
        return self.confirm_answer

    def notify(self, message: str, level: Level = Level.INFO) -> None:
        self.notifications.append((message, level))

    def watch_unload(self, surface: MemorySurface, callback: Callable[[], None]) -> None:
        self.unload_hooks[surface.name] = callback

    def unload(self, name: str) -> None:
        self.unload_hooks[name]()

    def messages(self, level: Level) -> list[str]:
        return [m for m, lvl in self.notifications if lvl is level]


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def config() -> Config:
    return Config()


@pytest.fixture
def registry(host, scheduler, runner, config) -> WatchRegistry:
    # Every program "exists" unless a test says otherwise.
    return WatchRegistry(host, scheduler, runner, config, which=lambda prog: f"/usr/bin/{prog}")
