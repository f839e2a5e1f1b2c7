"""Threads of work as git worktrees paired with tmux sessions, with a CLI and picker."""

__version__ = "0.1.0"