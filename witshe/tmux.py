"""tmux sessions and git worktrees, driven through their command-line tools."""

from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

SESSION_PREFIX = "witshe/"

ATTENTION_PATTERNS = (
    "do you want",
    "y/n",
    "yes/no",
    "(y)",
    "proceed?",
    "continue?",
    "confirm",
    "approve",
    "allow",
    "deny",
    "press enter",
    "waiting for",
)

DEFAULT_COPY_PATTERNS = (".env", ".env.local")


class TmuxError(Exception):
    """A tmux or git command could not be run or failed."""


@dataclass(frozen=True)
class SessionStatus:
    """The last visible line of a session and whether it seems to want input."""

    last_line: str
    needs_attention: bool


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def _run(args: list[str], cwd: str | None = None) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(args, cwd=cwd, capture_output=True, check=False)
    except OSError as exc:
        raise TmuxError(str(exc)) from exc


def _check(args: list[str], cwd: str | None = None) -> subprocess.CompletedProcess:
    result = _run(args, cwd)
    if result.returncode != 0:
        raise TmuxError(_decode(result.stderr))
    return result


def _home() -> Path:
    try:
        return Path.home()
    except RuntimeError as exc:
        raise TmuxError("no home dir") from exc


def current_session() -> str | None:
    """Name of the tmux session this process runs in, if any."""
    try:
        result = _run(["tmux", "display-message", "-p", "#{session_name}"])
    except TmuxError:
        return None
    if result.returncode != 0:
        return None
    name = _decode(result.stdout).strip()
    return name or None


def thread_from_session(session_name: str | None) -> str | None:
    """Thread name from a session name such as ``witshe/feat-login``."""
    if session_name is None or not session_name.startswith(SESSION_PREFIX):
        return None
    return session_name[len(SESSION_PREFIX):]


def current_thread() -> str | None:
    return thread_from_session(current_session())


def resolve_worktree_root(repo_path: str) -> Path:
    """Where worktrees go: the env override, a sibling ``.worktrees``, or the default."""
    value = os.environ.get("WITSHE_WORKTREE_ROOT")
    if value is not None:
        if value.startswith("~/"):
            return _home() / value[2:]
        return Path(value)

    convention = Path(repo_path).parent / ".worktrees"
    if convention.is_dir():
        return convention

    return _home() / ".witshe" / "worktrees"


def create_worktree(repo_path: str, branch_name: str, thread_name: str) -> str:
    """Add a worktree for the branch under the thread's directory and return its path."""
    root = resolve_worktree_root(repo_path)
    repo_basename = Path(repo_path).name or "repo"

    wt_dir = root / thread_name
    try:
        wt_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise TmuxError(str(exc)) from exc

    wt_path = str(wt_dir / repo_basename)

    result = _run(["git", "worktree", "add", "-b", branch_name, wt_path], cwd=repo_path)
    if result.returncode != 0:
        stderr = _decode(result.stderr)
        if "already exists" not in stderr:
            raise TmuxError(stderr)
        _check(["git", "worktree", "add", wt_path, branch_name], cwd=repo_path)

    copy_untracked(repo_path, wt_path)
    return wt_path


def _copy_patterns(repo: Path) -> list[str]:
    copy_file = repo / ".witshe.copy"
    if not copy_file.exists():
        return list(DEFAULT_COPY_PATTERNS)
    try:
        content = copy_file.read_text(encoding="utf-8", errors="replace")
    except OSError:
        content = ""
    stripped = (line.strip() for line in content.splitlines())
    return [line for line in stripped if line and not line.startswith("#")]


def copy_untracked(repo_path: str, worktree_path: str) -> None:
    """Copy files listed in ``.witshe.copy`` (or the .env defaults) into the worktree."""
    repo = Path(repo_path)
    worktree = Path(worktree_path)
    for pattern in _copy_patterns(repo):
        src = repo / pattern
        if not src.is_file():
            continue
        dst = worktree / pattern
        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy(src, dst)
        except OSError:
            pass


def remove_worktree(repo_path: str, worktree_path: str) -> None:
    _check(["git", "worktree", "remove", worktree_path, "--force"], cwd=repo_path)


def create_session(session_name: str, cwd: str) -> None:
    _check(["tmux", "new-session", "-d", "-s", session_name, "-c", cwd])


def add_window(session_name: str, window_name: str, cwd: str) -> None:
    _check(["tmux", "new-window", "-t", session_name, "-n", window_name, "-c", cwd])


def rename_session(old_name: str, new_name: str) -> None:
    _check(["tmux", "rename-session", "-t", old_name, new_name])


def kill_session(session_name: str) -> None:
    _check(["tmux", "kill-session", "-t", session_name])


def switch_to(session_name: str) -> None:
    _check(["tmux", "switch-client", "-t", session_name])


def attach(session_name: str) -> None:
    """Attach the terminal to a session, handing it over to tmux."""
    try:
        result = subprocess.run(["tmux", "attach-session", "-t", session_name], check=False)
    except OSError as exc:
        raise TmuxError(str(exc)) from exc
    if result.returncode != 0:
        raise TmuxError("failed to attach")


def capture_last_lines(session_name: str, n: int) -> str | None:
    """The last lines of a session's pane, trimmed, or None if empty or unavailable."""
    try:
        result = _run(["tmux", "capture-pane", "-t", session_name, "-p", "-l", str(n)])
    except TmuxError:
        return None
    if result.returncode != 0:
        return None
    text = _decode(result.stdout).strip()
    return text or None


def session_status_from_text(text: str) -> SessionStatus | None:
    """Summarise captured pane text: last line (max 50 chars) and attention flag."""
    lines = text.splitlines()
    if not lines:
        return None
    last_line = lines[-1].strip()
    if not last_line:
        return None

    lower = text.lower()
    needs_attention = any(pattern in lower for pattern in ATTENTION_PATTERNS)

    if len(last_line) > 50:
        last_line = last_line[:50] + "…"
    return SessionStatus(last_line=last_line, needs_attention=needs_attention)


def get_session_status(session_name: str) -> SessionStatus | None:
    text = capture_last_lines(session_name, 5)
    if text is None:
        return None
    return session_status_from_text(text)


def list_sessions() -> list[str]:
    try:
        result = _run(["tmux", "list-sessions", "-F", "#{session_name}"])
    except TmuxError:
        return []
    if result.returncode != 0:
        return []
    return _decode(result.stdout).splitlines()