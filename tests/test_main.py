"""
test_main.py — Tests for the Typer CLI.
"""

from __future__ import annotations

from typer.testing import CliRunner

from nvim_watch import __version__
from nvim_watch.main import app

runner = CliRunner()


class TestCli:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"nvim-watch {__version__}" in result.output

    def test_no_command(self):
        result = runner.invoke(app, ["run"])
        assert result.exit_code == 1

    def test_not_executable(self, monkeypatch, tmp_path):
        monkeypatch.setenv("NVIM_WATCH_LOG_FILE", str(tmp_path / "watch.log"))
        result = runner.invoke(app, ["run", "definitely-not-a-real-program-xyz"])
        assert result.exit_code == 1
        assert "Not a valid executable" in result.output

    def test_failing_command_exits_nonzero(self, monkeypatch, tmp_path):
        monkeypatch.setenv("NVIM_WATCH_LOG_FILE", str(tmp_path / "watch.log"))
        result = runner.invoke(app, ["run", "false", "--rate", "100"])
        assert result.exit_code == 1
        assert "Stopping" in result.output

    def test_bad_overlap(self):
        result = runner.invoke(app, ["run", "--overlap", "maybe", "ls"])
        assert result.exit_code == 2
