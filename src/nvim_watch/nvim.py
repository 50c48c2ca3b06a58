"""
nvim.py — Neovim frontend: buffers as surfaces, plus the pynvim remote plugin.

Every watcher callback reaches Neovim through ``nvim.async_call`` so buffer
and window calls happen on the plugin host's event loop, never on a runner or
timer thread.
"""

from __future__ import annotations

import logging
from typing import Callable

import pynvim

from nvim_watch.commands import start_file_watch, start_watch, stop_watch
from nvim_watch.config import Config, get_config
from nvim_watch.errors import ConfigError
from nvim_watch.logs import configure_logger
from nvim_watch.registry import FromLifecycleEvent, WatchRegistry
from nvim_watch.runner import ProcessRunner
from nvim_watch.scheduler import Scheduler
from nvim_watch.surface import Level, clamp_cursor

log = logging.getLogger(__name__)

# vim.log.levels
_LEVELS = {Level.INFO: 2, Level.WARN: 3, Level.ERROR: 4}

_SPLIT_COMMANDS = {
    "above": "aboveleft {size}split",
    "below": "belowright {size}split",
    "left": "aboveleft {size}vsplit",
    "right": "belowright {size}vsplit",
}

# Home the cursor and clear both the screen and the scrollback before each redraw.
_TERM_RESET = "\x1b[H\x1b[2J\x1b[3J"


def collapse_bufname(name: str, cwd: str) -> str:
    """Strip the working directory from a buffer name, as ``:ls`` shows it."""
    for sep in ("/", "\\"):
        prefix = cwd.rstrip(sep) + sep
        if name.startswith(prefix):
            return name[len(prefix):]
    return name


class NvimSurface:
    """A scratch buffer showing one watcher's output.

    ``terminal`` buffers get output through a terminal channel so Neovim
    renders escape sequences itself; ``colorize`` buffers are plain buffers
    handed to baleia.nvim after each write.
    """

    def __init__(self, nvim: pynvim.Nvim, buffer, name: str, *, terminal: bool = False, colorize: bool = False) -> None:
        self.nvim = nvim
        self.buffer = buffer
        self.name = name
        self.handle = buffer.number
        self.ansi_capable = terminal or colorize
        self._terminal = terminal
        self._colorize = colorize
        self._channel: int | None = None

    def _windows(self) -> list:
        return [w for w in self.nvim.windows if w.buffer.number == self.handle]

    def is_visible(self) -> bool:
        return self.buffer.valid and bool(self._windows())

    def replace(self, lines: list[str]) -> None:
        if self._terminal:
            if self._channel is None:
                self._channel = self.nvim.api.open_term(self.buffer, {})
            self.nvim.api.chan_send(self._channel, _TERM_RESET + "\r\n".join(lines))
            return

        saved = [(w, w.cursor) for w in self._windows()]
        self.buffer[:] = lines
        if self._colorize:
            self.nvim.exec_lua("require('baleia').setup({}).once(...)", self.handle)
        count = len(self.buffer)
        for window, cursor in saved:
            if window.valid:
                window.cursor = clamp_cursor(cursor, count)

    def focus(self) -> None:
        self.nvim.current.buffer = self.buffer

    def dispose(self) -> None:
        if self.buffer.valid:
            self.nvim.api.buf_delete(self.buffer, {"force": True})


class NvimHost:
    def __init__(self, nvim: pynvim.Nvim, config: Config) -> None:
        self.nvim = nvim
        self.config = config
        self._unload_hooks: dict[int, Callable[[], None]] = {}

    def post(self, fn: Callable[[], None]) -> None:
        self.nvim.async_call(fn)

    def _find_buffer(self, name: str):
        cwd = self.nvim.funcs.getcwd()
        for buf in self.nvim.buffers:
            if collapse_bufname(buf.name, cwd) == name:
                return buf
        return None

    def _has_baleia(self) -> bool:
        return bool(self.nvim.exec_lua("return (pcall(require, 'baleia'))"))

    def _show(self, buffer) -> None:
        split = self.config.split
        if not split.enabled:
            self.nvim.current.buffer = buffer
            return
        size = str(split.size) if split.size else ""
        self.nvim.command(_SPLIT_COMMANDS[split.position].format(size=size))
        self.nvim.current.buffer = buffer
        if not split.focus:
            self.nvim.command("wincmd p")

    def surface_for(self, name: str, handle: object | None = None) -> NvimSurface:
        buffer = self._find_buffer(name)
        if buffer is None and handle is not None:
            buffer = self.nvim.buffers[handle]
        created = buffer is None
        if created:
            buffer = self.nvim.api.create_buf(True, True)
            self.nvim.api.set_option_value("buftype", "nofile", {"buf": buffer.number})
            buffer.name = name
            self._show(buffer)

        # terminal_mode wins over ansi_enabled; only a fresh buffer can become a terminal.
        terminal = created and self.config.terminal_mode
        colorize = not terminal and self.config.ansi_enabled and self._has_baleia()
        return NvimSurface(self.nvim, buffer, name, terminal=terminal, colorize=colorize)

    def focused_surface_name(self) -> str | None:
        name = self.nvim.current.buffer.name
        if not name:
            return None
        return collapse_bufname(name, self.nvim.funcs.getcwd())

    def confirm(self, prompt: str) -> bool:
        self.notify(prompt, Level.WARN)
        try:
            char = self.nvim.funcs.getcharstr()
        except pynvim.NvimError:
            # <C-c> while waiting for a key
            return False
        return char in ("y", "Y")

    def notify(self, message: str, level: Level = Level.INFO) -> None:
        self.nvim.api.notify(f"[watch] {message}", _LEVELS[level], {})

    def watch_unload(self, surface: NvimSurface, callback: Callable[[], None]) -> None:
        self._unload_hooks[surface.handle] = callback

    def buffer_unloaded(self, bufnr: int) -> None:
        hook = self._unload_hooks.pop(bufnr, None)
        if hook is not None:
            hook()


def build_registry(nvim: pynvim.Nvim, config: Config) -> WatchRegistry:
    host = NvimHost(nvim, config)
    scheduler = Scheduler(host.post)
    runner = ProcessRunner(host.post, strategy=config.runner, timeout=config.timeout)
    return WatchRegistry(host, scheduler, runner, config)


# https://pynvim.readthedocs.io/en/latest/usage/remote-plugins.html
# Keep __init__ free of side effects: the host instantiates plugins while
# generating the manifest for :UpdateRemotePlugins.

@pynvim.plugin
class WatchPlugin:
    def __init__(self, nvim: pynvim.Nvim) -> None:
        self.nvim = nvim
        self._config: Config | None = None
        self._registry: WatchRegistry | None = None

    @property
    def registry(self) -> WatchRegistry:
        if self._registry is None:
            configure_logger()
            if self._config is None:
                self._config = get_config()
            self._registry = build_registry(self.nvim, self._config)
        return self._registry

    @pynvim.function("WatchSetup", sync=True)
    def setup(self, args) -> None:
        opts = args[0] if args else None
        try:
            config = get_config(opts or None)
        except ConfigError as exc:
            self.nvim.api.notify(f"[watch] Error: {exc}", _LEVELS[Level.ERROR], {})
            return
        self._config = config
        if self._registry is not None:
            # Running watchers keep the settings they started with.
            self._registry.config = config
            self._registry.host.config = config
            self._registry.runner = ProcessRunner(
                self._registry.host.post, strategy=config.runner, timeout=config.timeout
            )
        log.debug("setup: %s", config)

    @pynvim.command("WatchStart", nargs="+", sync=True)
    def watch_start(self, args) -> None:
        start_watch(self.registry, args)

    @pynvim.command("StartWatch", nargs="+", sync=True)
    def start_watch_alias(self, args) -> None:
        start_watch(self.registry, args)

    @pynvim.command("WatchFile", nargs="+", sync=True)
    def watch_file(self, args) -> None:
        start_file_watch(self.registry, args, self.nvim.funcs.expand("%:p"))

    @pynvim.command("StartFileWatch", nargs="+", sync=True)
    def start_file_watch_alias(self, args) -> None:
        start_file_watch(self.registry, args, self.nvim.funcs.expand("%:p"))

    @pynvim.command("WatchStop", nargs="*", sync=True)
    def watch_stop(self, args) -> None:
        stop_watch(self.registry, args)

    @pynvim.command("StopWatch", nargs="*", sync=True)
    def stop_watch_alias(self, args) -> None:
        stop_watch(self.registry, args)

    @pynvim.autocmd("BufUnload", pattern="*", eval="expand('<abuf>')", sync=False)
    def on_buf_unload(self, abuf) -> None:
        if self._registry is not None:
            self._registry.host.buffer_unloaded(int(abuf))

    @pynvim.autocmd("VimLeavePre", pattern="*", sync=True)
    def on_vim_leave(self) -> None:
        if self._registry is not None and len(self._registry):
            self._registry.stop(FromLifecycleEvent("", "shutdown"))
