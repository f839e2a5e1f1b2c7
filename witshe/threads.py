"""Thread records and the JSON file that stores them."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any


class ThreadStatus(str, Enum):
    """Lifecycle state of a thread."""

    ACTIVE = "Active"
    DONE = "Done"


@dataclass
class Repo:
    """A repository checked out into a thread, usually as a git worktree."""

    repo_path: str
    worktree_path: str
    branch: str
    has_worktree: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "repo_path": self.repo_path,
            "worktree_path": self.worktree_path,
            "branch": self.branch,
            "has_worktree": self.has_worktree,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Repo:
        if not isinstance(data, dict):
            raise TypeError("repo entry must be an object")
        return cls(
            repo_path=data["repo_path"],
            worktree_path=data["worktree_path"],
            branch=data["branch"],
            has_worktree=bool(data["has_worktree"]),
        )


@dataclass
class Thread:
    """A named unit of work: a tmux session plus the repos it spans."""

    id: str
    name: str
    status: ThreadStatus = ThreadStatus.ACTIVE
    tag: str | None = None
    desc: str | None = None
    jira_id: str | None = None
    repos: list[Repo] = field(default_factory=list)
    cwd: str | None = None
    created_at: str = ""

    @classmethod
    def create(cls, name: str, tag: str | None = None, desc: str | None = None) -> Thread:
        """Make a new active thread with a fresh id and creation time."""
        return cls(
            id=str(uuid.uuid4()),
            name=name,
            tag=tag,
            desc=desc,
            created_at=datetime.now(timezone.utc).isoformat(),
        )

    def add_repo(self, repo: Repo) -> None:
        self.repos.append(repo)

    def first_cwd(self) -> str | None:
        """The explicit cwd, or else the first repo's worktree path."""
        if self.cwd is not None:
            return self.cwd
        return self.repos[0].worktree_path if self.repos else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "jira_id": self.jira_id,
            "tag": self.tag,
            "desc": self.desc,
            "status": self.status.value,
            "repos": [repo.to_dict() for repo in self.repos],
            "cwd": self.cwd,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Thread:
        """Build a thread, migrating the legacy single-repo layout if present."""
        if not isinstance(data, dict):
            raise TypeError("thread entry must be an object")
        name = data["name"]
        repos = [Repo.from_dict(item) for item in data.get("repos") or []]
        cwd = data.get("cwd")

        legacy_repo = data.get("repo_path")
        legacy_worktree = data.get("worktree_path")
        if not repos and legacy_repo is not None and legacy_worktree is not None:
            has_worktree = data.get("has_worktree")
            repos.append(
                Repo(
                    repo_path=legacy_repo,
                    worktree_path=legacy_worktree,
                    branch=name,
                    has_worktree=True if has_worktree is None else bool(has_worktree),
                )
            )
            if cwd is None:
                cwd = legacy_worktree

        return cls(
            id=data["id"],
            name=name,
            status=ThreadStatus(data["status"]),
            tag=data.get("tag"),
            desc=data.get("desc"),
            jira_id=data.get("jira_id"),
            repos=repos,
            cwd=cwd,
            created_at=data["created_at"],
        )


def _is_legacy(data: dict[str, Any]) -> bool:
    return data.get("repo_path") is not None or data.get("worktree_path") is not None


def default_store_path() -> Path:
    """Location of the thread store, creating its directory if needed."""
    directory = Path.home() / ".witshe"
    directory.mkdir(parents=True, exist_ok=True)
    return directory / "threads.json"


class Threads:
    """An ordered collection of threads persisted as a JSON array."""

    def __init__(self, threads: list[Thread] | None = None, path: Path | str | None = None):
        self._threads: list[Thread] = list(threads or [])
        self.path = Path(path) if path is not None else default_store_path()

    @classmethod
    def load(cls, path: Path | str | None = None) -> Threads:
        """Read the store; an unreadable or malformed file yields an empty store."""
        store_path = Path(path) if path is not None else default_store_path()
        threads: list[Thread] = []
        migrated = False
        if store_path.exists():
            try:
                raw = json.loads(store_path.read_text(encoding="utf-8"))
                if not isinstance(raw, list):
                    raise ValueError("thread store must hold an array")
                loaded = []
                for item in raw:
                    thread = Thread.from_dict(item)
                    if _is_legacy(item):
                        migrated = True
                    loaded.append(thread)
                threads = loaded
            except (OSError, ValueError, KeyError, TypeError):
                threads = []
                migrated = False

        store = cls(threads, store_path)
        if migrated:
            store.save()
        return store

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        content = json.dumps([t.to_dict() for t in self._threads], indent=2, ensure_ascii=False)
        self.path.write_text(content, encoding="utf-8")

    def add(self, thread: Thread) -> None:
        self._threads.append(thread)

    def list(self) -> list[Thread]:
        return self._threads.copy()

    def get(self, name: str) -> Thread | None:
        return next((t for t in self._threads if t.name == name), None)

    def mark_done(self, name: str) -> bool:
        thread = self.get(name)
        if thread is None:
            return False
        thread.status = ThreadStatus.DONE
        return True

    def reopen(self, name: str) -> bool:
        thread = self.get(name)
        if thread is None:
            return False
        thread.status = ThreadStatus.ACTIVE
        return True

    def rename(self, name: str, new_name: str) -> bool:
        thread = self.get(name)
        if thread is None:
            return False
        thread.name = new_name
        return True

    def set_tag(self, name: str, tag: str) -> bool:
        thread = self.get(name)
        if thread is None:
            return False
        thread.tag = tag
        return True

    def set_desc(self, name: str, desc: str) -> bool:
        thread = self.get(name)
        if thread is None:
            return False
        thread.desc = desc
        return True

    def remove(self, name: str) -> None:
        self._threads = [t for t in self._threads if t.name != name]