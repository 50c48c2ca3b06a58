"""
output.py — Turn captured stdout into the lines a surface displays.
"""

from __future__ import annotations

import re

# CSI colour / erase-in-line sequences, e.g. "\x1b[1;31m" or "\x1b[K".
_ANSI_SGR = re.compile(r"\x1b\[[\d;]*[mK]")


def strip_ansi(line: str) -> str:
    return _ANSI_SGR.sub("", line)


def split_output(stdout: str, keep_ansi: bool = False) -> list[str]:
    """Split on newlines, keeping the trailing empty line a final "\\n" produces.

    ``"hi\\n"`` becomes ``["hi", ""]`` — exactly what ``vim.split`` yields, so
    the buffer ends the same way the command's output does.
    """
    lines = stdout.replace("\r\n", "\n").split("\n")
    if keep_ansi:
        return lines
    return [strip_ansi(line) for line in lines]
