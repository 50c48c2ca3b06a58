"""
logs.py — File logging.

Inside Neovim stdout is the msgpack-rpc channel, so nothing may be printed;
everything goes to a rotating log file instead.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path


def log_file() -> Path:
    override = os.environ.get("NVIM_WATCH_LOG_FILE")
    if override:
        return Path(override).expanduser()
    cache = Path(os.environ.get("XDG_CACHE_HOME") or Path.home() / ".cache")
    return cache / "nvim-watch" / "nvim-watch.log"


def debug_enabled() -> bool:
    return os.environ.get("NVIM_WATCH_DEBUG", "").lower() in ("1", "true", "yes")


def configure_logger(name: str = "nvim_watch", max_bytes: int = 1_000_000) -> logging.Logger:
    """Configure a logger that writes to the rotating log file.

    Args:
        name: Logger name. Module loggers (``nvim_watch.registry`` etc.)
              propagate up to it.
        max_bytes: Maximum log file size before rotation.

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid adding duplicate handlers
    if logger.handlers:
        return logger

    path = log_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=1)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s", datefmt="%H:%M:%S"
    ))
    logger.addHandler(handler)
    logger.propagate = False
    logger.setLevel(logging.DEBUG if debug_enabled() else logging.INFO)
    return logger
