"""
test_filechange.py — Tests for the file-change predicate.
"""

from __future__ import annotations

import os

from nvim_watch.filechange import should_run


def _touch(path, mtime: int) -> None:
    path.write_text("x")
    os.utime(path, (mtime, mtime))


class TestShouldRun:
    def test_newer_file_returns_mtime(self, tmp_path):
        f = tmp_path / "a.txt"
        _touch(f, 1_700_000_000)
        assert should_run(str(f), 0) == 1_700_000_000

    def test_same_mtime_skips(self, tmp_path):
        f = tmp_path / "a.txt"
        _touch(f, 1_700_000_000)
        assert should_run(str(f), 1_700_000_000) is None

    def test_older_mtime_skips(self, tmp_path):
        f = tmp_path / "a.txt"
        _touch(f, 1_600_000_000)
        assert should_run(str(f), 1_700_000_000) is None

    def test_subsecond_changes_truncate(self, tmp_path):
        f = tmp_path / "a.txt"
        f.write_text("x")
        os.utime(f, (1_700_000_000.9, 1_700_000_000.9))
        assert should_run(str(f), 0) == 1_700_000_000
        assert should_run(str(f), 1_700_000_000) is None

    def test_missing_file(self, tmp_path):
        assert should_run(str(tmp_path / "nope"), 0) is None

    def test_directory_is_not_regular(self, tmp_path):
        assert should_run(str(tmp_path), 0) is None

    def test_empty_path(self):
        assert should_run("", 0) is None
        assert should_run(None, 0) is None
