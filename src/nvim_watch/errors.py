"""
errors.py — Failure taxonomy for starting, stopping and running watchers.

The core raises these; the command layer and the frontends turn them into
user-visible notifications.
"""

from __future__ import annotations


class WatchError(Exception):
    """Base class for every error nvim-watch reports to the user."""


class ConfigError(WatchError):
    pass


class EmptyCommand(WatchError):
    def __init__(self) -> None:
        super().__init__("Empty command passed")


class NotExecutable(WatchError):
    def __init__(self, program: str) -> None:
        super().__init__(f"Not a valid executable: {program}")
        self.program = program


class NotWatching(WatchError):
    def __init__(self, command: str) -> None:
        super().__init__(f"Already not watching {command}")
        self.command = command


class ProcessFailure(WatchError):
    """A watched command exited non-zero. The watcher is gone by the time this is built."""

    def __init__(self, command: str, exit_code: int, stderr: str) -> None:
        super().__init__(f"Stopping: {stderr.strip() or f'{command} exited with code {exit_code}'}")
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
