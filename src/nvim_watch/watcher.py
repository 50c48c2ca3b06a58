"""
watcher.py — One command bound to a timer, a surface and (optionally) a file.

State machine:

    IDLE ──tick/dispatch──▶ RUNNING ──exit 0──▶ IDLE
      │                        │
      └──── stop / kill ───────┴──exit≠0──▶ TERMINATED   (final)

Every method here runs on the main thread: ticks arrive through the
Scheduler, completions through the ProcessRunner's ``post``.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from nvim_watch.filechange import should_run
from nvim_watch.output import split_output
from nvim_watch.runner import CommandResult, ProcessRunner
from nvim_watch.scheduler import TimerHandle
from nvim_watch.surface import DisplaySurface

if TYPE_CHECKING:
    from nvim_watch.config import Config
    from nvim_watch.registry import WatchRegistry

log = logging.getLogger(__name__)


class WatchState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    TERMINATED = "terminated"


class Watcher:
    def __init__(
        self,
        command: str,
        refresh_rate: int,
        surface: DisplaySurface,
        registry: "WatchRegistry",
        runner: ProcessRunner,
        config: "Config",
        watched_file: str | None = None,
    ) -> None:
        self.command = command
        self.refresh_rate = refresh_rate
        self.surface = surface
        self.watched_file = watched_file
        self.last_seen_mtime = 0
        self.ansi_passthrough = False
        self.in_flight = 0
        self.state = WatchState.IDLE
        self.timer: TimerHandle | None = None
        self._registry = registry
        self._runner = runner
        self._config = config

    def __repr__(self) -> str:
        return f"Watcher({self.command!r}, {self.refresh_rate}ms, {self.state.value})"

    @property
    def alive(self) -> bool:
        return self.state is not WatchState.TERMINATED

    def _update_passthrough(self) -> None:
        # Latches: once a surface renders escapes for this watcher it keeps doing so.
        if self.ansi_passthrough:
            return
        wants_ansi = self._config.terminal_mode or self._config.ansi_enabled
        if wants_ansi and self.surface.ansi_capable:
            self.ansi_passthrough = True
            log.debug("ansi passthrough enabled for %r", self.command)

    def tick(self) -> bool:
        """One scheduled evaluation. Returns True when a process was dispatched."""
        if not self.alive:
            return False
        if not self.surface.is_visible():
            return False

        if self.watched_file is not None:
            mtime = should_run(self.watched_file, self.last_seen_mtime)
            if mtime is None:
                return False
            self.last_seen_mtime = mtime

        if self.in_flight and self._config.overlap == "skip":
            log.debug("skipping tick for %r: previous run still in flight", self.command)
            return False

        self._update_passthrough()
        self.in_flight += 1
        self.state = WatchState.RUNNING
        self._runner.run(self.command, self.complete)
        return True

    def complete(self, result: CommandResult) -> None:
        """Handle a finished run. Stale completions for a stopped watcher are dropped."""
        self.in_flight = max(self.in_flight - 1, 0)
        if not self.alive or self._registry.get(self.command) is not self:
            log.debug("dropping stale completion for %r", self.command)
            return

        if result.exit_code != 0:
            self._registry.fail(self, result)
            return

        self.surface.replace(split_output(result.stdout, keep_ansi=self.ansi_passthrough))
        if not self.in_flight:
            self.state = WatchState.IDLE

    def terminate(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
        self.state = WatchState.TERMINATED
