"""
test_terminal.py — End-to-end runs through the terminal host with real
timers and real subprocesses.
"""

from __future__ import annotations

import time
from io import StringIO

import pytest
from rich.console import Console

from nvim_watch.config import Config
from nvim_watch.registry import Unspecified, WatchRegistry
from nvim_watch.runner import ProcessRunner
from nvim_watch.scheduler import Scheduler
from nvim_watch.surface import Level
from nvim_watch.terminal import TerminalHost
from nvim_watch.watcher import WatchState


def make_console() -> tuple[Console, StringIO]:
    buf = StringIO()
    return Console(file=buf, force_terminal=False, highlight=False), buf


def build(config: Config | None = None) -> tuple[TerminalHost, WatchRegistry, StringIO]:
    con, buf = make_console()
    host = TerminalHost(con)
    registry = WatchRegistry(
        host,
        Scheduler(host.post),
        ProcessRunner(host.post),
        config or Config(terminal_mode=False),
    )
    return host, registry, buf


def pump(host: TerminalHost, until, timeout: float = 10.0) -> None:
    deadline = time.monotonic() + timeout
    while not until() and time.monotonic() < deadline:
        host.run_pending(timeout=0.05)


class TestEndToEnd:
    def test_echo_fills_surface(self):
        host, registry, _ = build()
        watcher = registry.start("echo hi", 1000)
        surface = host.surfaces["echo hi"]
        try:
            pump(host, lambda: surface.replace_count > 0)
            assert surface.lines == ["hi", ""]
            assert watcher.state is WatchState.IDLE
            assert "echo hi" in registry
        finally:
            registry.stop_all()

    def test_false_stops_with_one_error(self):
        host, registry, buf = build()
        registry.start("false", 100)
        pump(host, lambda: len(registry) == 0)
        # Let any already-queued ticks run; they must not dispatch again.
        time.sleep(0.3)
        host.run_pending(timeout=0)
        assert len(registry) == 0
        assert len(host.errors) == 1
        assert "Stopping" in buf.getvalue()

    def test_serve_returns_when_registry_empties(self):
        host, registry, _ = build()
        registry.start("false", 100)
        host.serve(lambda: len(registry) > 0)
        assert len(registry) == 0

    def test_close_on_stop_removes_panel(self):
        host, registry, _ = build(Config(terminal_mode=False, close_on_stop=True))
        registry.start("echo hi", 60_000)
        registry.stop_all()
        host.run_pending(timeout=1)
        assert host.surfaces == {}


class TestTerminalHost:
    def test_surface_reused_by_name(self):
        host = TerminalHost(make_console()[0])
        assert host.surface_for("ls") is host.surface_for("ls")
        assert host.focused_surface_name() == "ls"

    def test_ansi_rendering(self):
        host = TerminalHost(make_console()[0], ansi=True)
        surface = host.surface_for("ls")
        surface.replace(["\x1b[31mred\x1b[0m"])
        assert surface.render().renderable.plain == "red"

    def test_notify_prefix_and_error_tracking(self):
        con, buf = make_console()
        host = TerminalHost(con)
        host.notify("Stopped 2 watchers")
        host.notify("Stopping: boom", Level.ERROR)
        assert "[watch] Stopped 2 watchers" in buf.getvalue()
        assert host.errors == ["Stopping: boom"]

    @pytest.mark.parametrize("answer", [True, False])
    def test_confirm_delegates_to_typer(self, monkeypatch, answer):
        seen = []

        def fake_confirm(text, default=False):
            seen.append(text)
            return answer

        monkeypatch.setattr("nvim_watch.terminal.typer.confirm", fake_confirm)
        host = TerminalHost(make_console()[0])
        assert host.confirm("Not a watch buffer. Stop all (2) watchers (y/n)? ") is answer
        assert seen == ["Not a watch buffer. Stop all (2) watchers"]

    def test_stop_all_prompt_from_cli(self, monkeypatch):
        monkeypatch.setattr("nvim_watch.terminal.typer.confirm", lambda text, default=False: True)
        host, registry, _ = build()
        registry.start("echo a", 60_000)
        registry.start("echo b", 60_000)
        host.focused = None
        assert registry.stop(Unspecified()) == 2
