"""nvim-watch — rerun a shell command on a timer and stream its output into a buffer."""

__version__ = "0.4.0"
