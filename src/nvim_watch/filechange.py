"""
filechange.py — Decide whether a file-bound watcher should rerun.
"""

from __future__ import annotations

import os
import stat


def should_run(path: str | None, last_seen_mtime: int) -> int | None:
    """Return the file's mtime (whole seconds) if it advanced past ``last_seen_mtime``.

    Missing paths, directories and other non-regular files never trigger a
    rerun. No side effects.
    """
    if not path:
        return None
    try:
        st = os.stat(path)
    except OSError:
        return None
    if not stat.S_ISREG(st.st_mode):
        return None
    mtime = int(st.st_mtime)
    if mtime > last_seen_mtime:
        return mtime
    return None
