"""
runner.py — Runs a watched command and captures stdout, stderr, and exit code.

Key design: the caller's thread never blocks. ProcessRunner executes on a
worker thread and hands the CommandResult back through ``post``, which puts
the completion on the one thread allowed to touch editor state.

Command lines are split on whitespace, nothing more: arguments containing
spaces or quotes are not supported.
"""

from __future__ import annotations

import logging
import subprocess
import threading
import time
from dataclasses import dataclass
from typing import Callable

log = logging.getLogger(__name__)

EXIT_TIMEOUT = 124
EXIT_NOT_FOUND = 127


@dataclass
class CommandResult:
    command: str
    exit_code: int
    stdout: str
    stderr: str
    duration: float


def tokenize(command_line: str) -> list[str]:
    return command_line.split()


def _spawn_failure(command: list[str], exc: OSError, start: float) -> CommandResult:
    return CommandResult(
        command=" ".join(command),
        exit_code=EXIT_NOT_FOUND,
        stdout="",
        stderr=f"{command[0] if command else ''}: {exc.strerror or exc}",
        duration=time.monotonic() - start,
    )


def run_command(command: list[str], timeout: float | None = None) -> CommandResult:
    """
    Run a command, reading stdout and stderr as they stream in.

    Uses subprocess.Popen with two reader threads so neither pipe can fill up
    and stall the child while the other is being drained.

    Args:
        command: List of command tokens, e.g. ["git", "status", "--short"]
        timeout: Seconds before forcibly killing the process (default: never)

    Returns:
        CommandResult with captured stdout, stderr, exit code, and wall-clock duration.
    """
    stdout_lines: list[str] = []
    stderr_lines: list[str] = []

    start = time.monotonic()

    try:
        process = subprocess.Popen(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            stdin=subprocess.DEVNULL,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,  # line-buffered
        )
    except OSError as exc:
        return _spawn_failure(command, exc, start)

    def _drain(pipe, sink: list[str]) -> None:
        try:
            for line in pipe:
                sink.append(line)
        except ValueError:
            # File closed mid-read (process killed); that's fine.
            pass

    t_out = threading.Thread(target=_drain, args=(process.stdout, stdout_lines), daemon=True)
    t_err = threading.Thread(target=_drain, args=(process.stderr, stderr_lines), daemon=True)
    t_out.start()
    t_err.start()

    timed_out = False
    try:
        process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        timed_out = True
        process.kill()
        process.wait()
    finally:
        # Ensure reader threads finish draining before we measure duration.
        t_out.join(timeout=5)
        t_err.join(timeout=5)

    duration = time.monotonic() - start
    stderr = "".join(stderr_lines)
    exit_code = process.returncode if process.returncode is not None else 1
    if timed_out:
        stderr += f"\n{command[0]} timed out after {timeout}s"
        exit_code = EXIT_TIMEOUT

    return CommandResult(
        command=" ".join(command),
        exit_code=exit_code,
        stdout="".join(stdout_lines),
        stderr=stderr,
        duration=duration,
    )


def run_buffered(command: list[str], timeout: float | None = None) -> CommandResult:
    """One-shot capture: wait for the process, then read everything at once."""
    start = time.monotonic()
    try:
        proc = subprocess.run(
            command,
            capture_output=True,
            stdin=subprocess.DEVNULL,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        stderr = exc.stderr or ""
        if isinstance(stderr, bytes):
            stderr = stderr.decode(errors="replace")
        return CommandResult(
            command=" ".join(command),
            exit_code=EXIT_TIMEOUT,
            stdout="",
            stderr=f"{stderr}\n{command[0]} timed out after {timeout}s",
            duration=time.monotonic() - start,
        )
    except OSError as exc:
        return _spawn_failure(command, exc, start)

    return CommandResult(
        command=" ".join(command),
        exit_code=proc.returncode,
        stdout=proc.stdout,
        stderr=proc.stderr,
        duration=time.monotonic() - start,
    )


_STRATEGIES: dict[str, Callable[[list[str], float | None], CommandResult]] = {
    "streaming": run_command,
    "buffered": run_buffered,
}


class ProcessRunner:
    """Run command lines off-thread and post each result back to the main thread.

    ``post`` must be thread-safe and run its argument on the main thread
    (``nvim.async_call``, ``loop.call_soon_threadsafe``, ...).
    """

    def __init__(
        self,
        post: Callable[[Callable[[], None]], None],
        strategy: str = "streaming",
        timeout: float | None = None,
    ) -> None:
        if strategy not in _STRATEGIES:
            raise ValueError(f"unknown runner strategy {strategy!r}")
        self._post = post
        self._execute = _STRATEGIES[strategy]
        self.strategy = strategy
        self.timeout = timeout

    def run(self, command_line: str, on_complete: Callable[[CommandResult], None]) -> threading.Thread:
        """Dispatch ``command_line`` and return immediately."""
        argv = tokenize(command_line)

        def _work() -> None:
            try:
                result = self._execute(argv, self.timeout)
            except Exception as exc:  # noqa: BLE001 — never let a worker die silently
                log.exception("runner crashed for %r", command_line)
                result = CommandResult(command_line, 1, "", str(exc), 0.0)
            log.debug("%r exited %d in %.3fs", command_line, result.exit_code, result.duration)
            self._post(lambda: on_complete(result))

        worker = threading.Thread(target=_work, name=f"watch-run:{command_line}", daemon=True)
        worker.start()
        return worker
