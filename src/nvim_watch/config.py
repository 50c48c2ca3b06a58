"""
config.py — Configuration management.

Precedence: explicit overrides (``:call WatchSetup({...})`` or CLI flags) >
environment variables > defaults. Nothing is persisted.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields

from nvim_watch.errors import ConfigError

SPLIT_POSITIONS = ("above", "below", "left", "right")
OVERLAP_POLICIES = ("allow", "skip")
RUNNER_STRATEGIES = ("streaming", "buffered")

# File watchers stat the disk every tick; anything faster is wasted work.
FILE_WATCH_MIN_RATE = 1000


@dataclass
class SplitConfig:
    enabled: bool = False
    position: str = "below"
    size: int | None = None
    focus: bool = True


@dataclass
class Config:
    refresh_rate: int = 500
    close_on_stop: bool = False
    ansi_enabled: bool = False
    terminal_mode: bool = True
    split: SplitConfig = field(default_factory=SplitConfig)
    overlap: str = "allow"
    timeout: float | None = None
    runner: str = "streaming"


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _env_bool(name: str) -> bool | None:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return None
    return raw.lower() in ("1", "true", "yes", "on")


def _env_overrides() -> dict:
    overrides: dict = {}
    rate = os.environ.get("NVIM_WATCH_REFRESH_RATE")
    if rate:
        try:
            overrides["refresh_rate"] = int(rate)
        except ValueError:
            raise ConfigError(f"NVIM_WATCH_REFRESH_RATE must be an integer, got {rate!r}") from None
    close = _env_bool("NVIM_WATCH_CLOSE_ON_STOP")
    if close is not None:
        overrides["close_on_stop"] = close
    overlap = os.environ.get("NVIM_WATCH_OVERLAP")
    if overlap:
        overrides["overlap"] = overlap
    return overrides


def _build_split(base: SplitConfig, opts: dict) -> SplitConfig:
    known = {f.name for f in fields(SplitConfig)}
    unknown = set(opts) - known
    if unknown:
        raise ConfigError(f"Unknown split option(s): {', '.join(sorted(unknown))}")
    split = SplitConfig(**{**base.__dict__, **opts})
    if split.position not in SPLIT_POSITIONS:
        raise ConfigError(
            f"split.position must be one of {', '.join(SPLIT_POSITIONS)}, got {split.position!r}"
        )
    if split.size is not None and (not _is_int(split.size) or split.size <= 0):
        raise ConfigError("split.size must be a positive integer")
    if not isinstance(split.enabled, bool) or not isinstance(split.focus, bool):
        raise ConfigError("split.enabled and split.focus must be booleans")
    return split


def merge_config(base: Config, overrides: dict | None) -> Config:
    """Deep-merge ``overrides`` into a copy of ``base`` and validate the result."""
    if not overrides:
        return base

    known = {f.name for f in fields(Config)}
    unknown = set(overrides) - known
    if unknown:
        raise ConfigError(f"Unknown option(s): {', '.join(sorted(unknown))}")

    values = {**base.__dict__}
    for key, value in overrides.items():
        if key == "split":
            if not isinstance(value, dict):
                raise ConfigError("split must be a table of options")
            values["split"] = _build_split(base.split, value)
        elif value is not None or key == "timeout":
            values[key] = value
    config = Config(**values)

    if not _is_int(config.refresh_rate) or config.refresh_rate <= 0:
        raise ConfigError("refresh_rate must be a positive integer (milliseconds)")
    if config.overlap not in OVERLAP_POLICIES:
        raise ConfigError(f"overlap must be one of {', '.join(OVERLAP_POLICIES)}")
    if config.runner not in RUNNER_STRATEGIES:
        raise ConfigError(f"runner must be one of {', '.join(RUNNER_STRATEGIES)}")
    if config.timeout is not None and (
        isinstance(config.timeout, bool) or not isinstance(config.timeout, (int, float)) or config.timeout <= 0
    ):
        raise ConfigError("timeout must be positive seconds or unset")
    return config


def get_config(overrides: dict | None = None) -> Config:
    """Merge overrides > env vars > defaults."""
    config = merge_config(Config(), _env_overrides())
    return merge_config(config, overrides)
