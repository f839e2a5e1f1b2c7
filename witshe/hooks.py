"""User hook scripts run around thread lifecycle events."""

from __future__ import annotations

import os
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path


class HookError(Exception):
    """A hook could not be run or exited unsuccessfully."""


@dataclass(frozen=True)
class HookContext:
    """What a hook is told about the event, through its environment."""

    event: str
    thread_name: str
    thread_tag: str = ""
    thread_desc: str = ""
    repo_path: str = ""
    worktree_path: str = ""
    branch: str = ""

    def env_vars(self) -> dict[str, str]:
        return {
            "WITSHE_EVENT": self.event,
            "WITSHE_THREAD_NAME": self.thread_name,
            "WITSHE_THREAD_TAG": self.thread_tag,
            "WITSHE_THREAD_DESC": self.thread_desc,
            "WITSHE_REPO_PATH": self.repo_path,
            "WITSHE_WORKTREE_PATH": self.worktree_path,
            "WITSHE_BRANCH": self.branch,
        }

    def repo_basename(self) -> str:
        return Path(self.repo_path).name if self.repo_path else ""


def default_hooks_dir() -> Path:
    return Path.home() / ".witshe" / "hooks"


def _is_executable(path: Path) -> bool:
    if os.name == "posix":
        try:
            return bool(path.stat().st_mode & 0o111)
        except OSError:
            return False
    return path.exists()


def _is_hook(path: Path) -> bool:
    return path.is_file() and _is_executable(path)


def _sorted_executables(directory: Path) -> list[Path]:
    try:
        entries = list(directory.iterdir())
    except OSError:
        return []
    return sorted(p for p in entries if _is_hook(p))


def collect_hooks(event: str, repo_basename: str, hooks_dir: Path | None = None) -> list[Path]:
    """Hooks for an event: the single file, the ``.d`` directory, then repo init."""
    directory = Path(hooks_dir) if hooks_dir is not None else default_hooks_dir()
    paths: list[Path] = []

    single = directory / event
    if _is_hook(single):
        paths.append(single)

    event_dir = directory / f"{event}.d"
    if event_dir.is_dir():
        paths.extend(_sorted_executables(event_dir))

    if event in ("post-new", "post-add") and repo_basename:
        init_script = directory / "init.d" / f"{repo_basename}.sh"
        if _is_hook(init_script):
            paths.append(init_script)

    return paths


def run_hook(path: Path, ctx: HookContext) -> None:
    """Run one hook, echoing its output to stderr; raise HookError on failure."""
    try:
        result = subprocess.run(
            [str(path)],
            env={**os.environ, **ctx.env_vars()},
            capture_output=True,
            check=False,
        )
    except OSError as exc:
        raise HookError(str(exc)) from exc

    stdout = result.stdout.decode("utf-8", errors="replace")
    stderr = result.stderr.decode("utf-8", errors="replace")
    if stdout:
        sys.stderr.write(stdout)
    if stderr:
        sys.stderr.write(stderr)
    sys.stderr.flush()

    if result.returncode != 0:
        if stderr:
            raise HookError(stderr.strip())
        if stdout:
            raise HookError(stdout.strip())
        raise HookError("hook failed")


def run_post(ctx: HookContext, hooks_dir: Path | None = None) -> None:
    """Run post-event hooks; failures are reported and do not stop the rest."""
    for path in collect_hooks(ctx.event, ctx.repo_basename(), hooks_dir):
        try:
            run_hook(path, ctx)
        except HookError as exc:
            print(f"  warning: hook {path} failed: {exc}", file=sys.stderr)


def run_pre(ctx: HookContext, hooks_dir: Path | None = None) -> None:
    """Run pre-event hooks; the first failure raises HookError and stops the rest."""
    for path in collect_hooks(ctx.event, ctx.repo_basename(), hooks_dir):
        run_hook(path, ctx)