"""Remote-plugin entry point. Run :UpdateRemotePlugins after installing nvim-watch."""

from nvim_watch.nvim import WatchPlugin  # noqa: F401 — discovered by the pynvim host
