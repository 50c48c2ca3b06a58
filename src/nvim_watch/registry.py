"""
registry.py — The set of live watchers, keyed by command string.

At most one watcher exists per command. The registry is the only thing that
creates or destroys watchers; a watcher only ever asks it to tear itself down
(``fail``) when its command exits non-zero.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from typing import Callable, Iterator, Union

from nvim_watch.config import FILE_WATCH_MIN_RATE, Config
from nvim_watch.errors import EmptyCommand, NotExecutable, NotWatching, ProcessFailure
from nvim_watch.runner import CommandResult, ProcessRunner, tokenize
from nvim_watch.scheduler import Scheduler
from nvim_watch.surface import Host, Level
from nvim_watch.watcher import Watcher

log = logging.getLogger(__name__)


# ── Stop requests ─────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Explicit:
    """The user named the command to stop."""

    command: str


@dataclass(frozen=True)
class FromLifecycleEvent:
    """The editor told us a surface is going away ("unload") or it is quitting ("shutdown")."""

    command: str
    event: str = "unload"


@dataclass(frozen=True)
class Unspecified:
    """No command given: use the focused surface, else offer to stop everything."""


StopRequest = Union[Explicit, FromLifecycleEvent, Unspecified]


# ── Registry ──────────────────────────────────────────────────────────────────────

class WatchRegistry:
    def __init__(
        self,
        host: Host,
        scheduler: Scheduler,
        runner: ProcessRunner,
        config: Config,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        self.host = host
        self.scheduler = scheduler
        self.runner = runner
        self.config = config
        self._which = which
        self._watchers: dict[str, Watcher] = {}

    def __len__(self) -> int:
        return len(self._watchers)

    def __contains__(self, command: object) -> bool:
        return command in self._watchers

    def __iter__(self) -> Iterator[Watcher]:
        return iter(list(self._watchers.values()))

    def get(self, command: str) -> Watcher | None:
        return self._watchers.get(command)

    def commands(self) -> list[str]:
        return list(self._watchers)

    def start(
        self,
        command: str,
        refresh_rate: int | None = None,
        handle: object | None = None,
        file: str | None = None,
    ) -> Watcher:
        """Start watching ``command``, or focus its surface if it is already watched.

        Raises:
            EmptyCommand: ``command`` is blank.
            NotExecutable: its first token is not found on PATH.
        """
        tokens = tokenize(command or "")
        if not tokens:
            raise EmptyCommand()
        if self._which(tokens[0]) is None:
            raise NotExecutable(tokens[0])

        existing = self._watchers.get(command)
        if existing is not None:
            self.host.notify(f"{command} was already being watched. Switching...")
            existing.surface.focus()
            return existing

        if refresh_rate is None or refresh_rate <= 0:
            refresh_rate = self.config.refresh_rate
        if file is not None:
            refresh_rate = max(refresh_rate, FILE_WATCH_MIN_RATE)

        surface = self.host.surface_for(command, handle)
        watcher = Watcher(
            command,
            refresh_rate,
            surface,
            registry=self,
            runner=self.runner,
            config=self.config,
            watched_file=file,
        )
        self._watchers[command] = watcher
        self.host.watch_unload(surface, lambda: self.stop(FromLifecycleEvent(command, "unload")))
        watcher.timer = self.scheduler.repeat(refresh_rate, watcher.tick)
        log.info("started %r every %dms%s", command, refresh_rate, f" on {file}" if file else "")
        return watcher

    def stop(self, request: StopRequest) -> int:
        """Stop watcher(s) per ``request`` and return how many were stopped.

        Raises:
            NotWatching: an explicitly named command has no live watcher.
        """
        if isinstance(request, Explicit):
            self.kill(request.command)
            self.host.notify(f"Stopped watching {request.command}")
            return 1

        if isinstance(request, FromLifecycleEvent):
            if request.event == "shutdown":
                return self.stop_all()
            if request.command not in self._watchers:
                # Already cleaned up, e.g. the buffer was deleted by kill() itself.
                return 0
            self.kill(request.command)
            self.host.notify(f"Stopped watching {request.command}")
            return 1

        focused = self.host.focused_surface_name()
        if focused is not None and focused in self._watchers:
            return self.stop(Explicit(focused))

        count = len(self._watchers)
        if not self.host.confirm(f"Not a watch buffer. Stop all ({count}) watchers (y/n)? "):
            log.debug("stop all declined")
            return 0
        return self.stop_all()

    def stop_all(self) -> int:
        count = 0
        for command in list(self._watchers):
            self.kill(command)
            count += 1
        self.host.notify(f"Stopped {count} watchers")
        return count

    def kill(self, command: str) -> None:
        """Cancel the timer and forget the watcher. In-flight runs finish as no-ops."""
        watcher = self._watchers.pop(command, None)
        if watcher is None:
            raise NotWatching(command)
        watcher.terminate()
        log.info("stopped %r", command)
        if self.config.close_on_stop:
            # The surface may be mid-callback; dispose of it once this tick is done.
            self.scheduler.defer(watcher.surface.dispose)

    def fail(self, watcher: Watcher, result: CommandResult) -> None:
        error = ProcessFailure(watcher.command, result.exit_code, result.stderr)
        log.warning("%r exited %d: %s", watcher.command, result.exit_code, result.stderr.strip())
        if self._watchers.get(watcher.command) is watcher:
            self.kill(watcher.command)
        self.host.notify(str(error), Level.ERROR)
