"""
scheduler.py — Repeating timers whose callbacks run on the main thread.

A RepeatingTimer only keeps time on its own thread; every fire is posted
back through ``post`` so watcher ticks never run concurrently with each other
or with editor callbacks.
"""

from __future__ import annotations

import threading
from typing import Callable

Post = Callable[[Callable[[], None]], None]


class RepeatingTimer:
    """Fire ``callback`` immediately, then every ``interval`` seconds until cancelled."""

    def __init__(self, interval: float, callback: Callable[[], None]) -> None:
        self.interval = interval
        self._callback = callback
        self._cancelled = threading.Event()
        self._thread = threading.Thread(target=self._loop, name="watch-timer", daemon=True)

    def start(self) -> "RepeatingTimer":
        self._thread.start()
        return self

    def _loop(self) -> None:
        while not self._cancelled.is_set():
            self._callback()
            if self._cancelled.wait(self.interval):
                break

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()


class TimerHandle:
    """What ``Scheduler.repeat`` returns. Cancelling also drops fires already queued."""

    def __init__(self, interval_ms: int, fn: Callable[[], None], post: Post) -> None:
        self.interval_ms = interval_ms
        self._fn = fn
        self._post = post
        self._timer = RepeatingTimer(interval_ms / 1000, self._fire)

    def _fire(self) -> None:
        self._post(self._run)

    def _run(self) -> None:
        if not self._timer.cancelled:
            self._fn()

    def start(self) -> "TimerHandle":
        self._timer.start()
        return self

    def cancel(self) -> None:
        self._timer.cancel()

    @property
    def cancelled(self) -> bool:
        return self._timer.cancelled


class Scheduler:
    def __init__(self, post: Post) -> None:
        self.post = post

    def repeat(self, interval_ms: int, fn: Callable[[], None]) -> TimerHandle:
        """Run ``fn`` on the main thread now and every ``interval_ms`` after."""
        return TimerHandle(interval_ms, fn, self.post).start()

    def defer(self, fn: Callable[[], None]) -> None:
        """Run ``fn`` on the main thread after the current callback returns."""
        self.post(fn)
