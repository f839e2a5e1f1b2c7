"""Command-line interface: threads of tmux sessions and git worktrees."""

from __future__ import annotations

import argparse
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Collection, NoReturn, Sequence

from witshe import hooks, picker, tmux
from witshe.hooks import HookContext, HookError
from witshe.threads import Repo, Thread, Threads, ThreadStatus
from witshe.tmux import TmuxError

SESSION_PREFIX = "witshe/"

_GRAY = "\x1b[90m"
_GREEN = "\x1b[32m"
_CYAN = "\x1b[36m"
_RESET = "\x1b[0m"


def _fail(message: str) -> NoReturn:
    print(message, file=sys.stderr)
    raise SystemExit(1)


def session_name(thread_name: str) -> str:
    """The tmux session name that belongs to a thread."""
    return f"{SESSION_PREFIX}{thread_name}"


def _repo_window_name(repo: Repo) -> str:
    return Path(repo.repo_path).name or repo.branch


def _thread_ctx(event: str, thread_name: str, thread: Thread | None) -> HookContext:
    first = thread.repos[0] if thread is not None and thread.repos else None
    return HookContext(
        event=event,
        thread_name=thread_name,
        thread_tag=(thread.tag or "") if thread is not None else "",
        thread_desc=(thread.desc or "") if thread is not None else "",
        repo_path=first.repo_path if first else "",
        worktree_path=first.worktree_path if first else "",
        branch=first.branch if first else "",
    )


def make_hook_ctx(event: str, thread_name: str, store: Threads) -> HookContext:
    """Hook context for a stored thread; fields are empty if it is unknown."""
    return _thread_ctx(event, thread_name, store.get(thread_name))


def resolve_thread(name: str | None) -> str:
    """The given thread name, or the thread of the current witshe session."""
    resolved = name if name is not None else tmux.current_thread()
    if resolved is None:
        _fail("error: not inside a witshe session and no thread name given")
    return resolved


def _switch(session: str) -> None:
    try:
        if "TMUX" in os.environ:
            tmux.switch_to(session)
        else:
            tmux.attach(session)
    except TmuxError as exc:
        _fail(f"error: {exc}")


def _restore_session(thread: Thread) -> None:
    """Recreate a thread's session with a window for every extra repo."""
    session = session_name(thread.name)
    try:
        tmux.create_session(session, thread.first_cwd() or ".")
    except TmuxError:
        pass
    for repo in thread.repos[1:]:
        try:
            tmux.add_window(session, _repo_window_name(repo), repo.worktree_path)
        except TmuxError:
            pass


def build_picker_items(threads: Sequence[Thread], alive: Collection[str]) -> list[picker.PickerItem]:
    """Picker lines for threads, with status icons and live pane summaries."""
    items = []
    for thread in threads:
        session = session_name(thread.name)
        is_alive = session in alive
        is_done = thread.status is ThreadStatus.DONE
        status = tmux.get_session_status(session) if is_alive else None
        needs_attention = status.needs_attention if status is not None else False

        if is_done:
            icon = "✓"
        elif needs_attention:
            icon = "⚠"
        elif is_alive:
            icon = "●"
        else:
            icon = "✗"

        repos_hint = f" ({len(thread.repos)} repos)" if len(thread.repos) > 1 else ""
        tag_hint = f"[{thread.tag}]" if thread.tag is not None else ""

        if thread.desc is not None and status is not None:
            desc = f"{thread.desc} │ {status.last_line}"
        elif thread.desc is not None:
            desc = thread.desc
        elif status is not None:
            desc = status.last_line
        else:
            desc = None

        items.append(
            picker.PickerItem(
                label=f"{icon} {thread.name}",
                hint=f"{tag_hint}{repos_hint}",
                desc=desc,
                is_done=is_done,
            )
        )
    return items


def format_thread_lines(threads: Sequence[Thread], alive: Collection[str], show_done: bool) -> list[str]:
    """Coloured listing lines for threads; done ones only when asked for."""
    lines = []
    for thread in threads:
        is_done = thread.status is ThreadStatus.DONE
        if is_done and not show_done:
            continue
        if is_done:
            icon = f"{_GRAY}✓{_RESET}"
        elif session_name(thread.name) in alive:
            icon = f"{_GREEN}●{_RESET}"
        else:
            icon = f"{_GRAY}✗{_RESET}"

        tag_str = f" {_CYAN}[{thread.tag}]{_RESET}" if thread.tag is not None else ""
        repo_str = f" {_GRAY}({len(thread.repos)} repos){_RESET}" if len(thread.repos) > 1 else ""
        lines.append(f"  {icon} {thread.name}{tag_str}{repo_str}")
        if thread.desc is not None:
            lines.append(f"    {thread.desc}")
    return lines


def print_threads(store: Threads, show_done: bool) -> None:
    threads = store.list()
    if not threads:
        print("  no threads")
        return
    alive = set(tmux.list_sessions())
    for line in format_thread_lines(threads, alive, show_done):
        print(line)


def continue_last(store: Threads) -> None:
    """Switch to the most recently created active thread with a live session."""
    alive = set(tmux.list_sessions())
    for thread in reversed(store.list()):
        session = session_name(thread.name)
        if thread.status is ThreadStatus.ACTIVE and session in alive:
            _switch(session)
            return
    print("no active sessions")


def interactive(store: Threads) -> None:
    """Pick a thread on the terminal and switch to it, reviving it if needed."""
    threads = store.list()
    if not threads:
        print("\n  no threads. create one: witshe new <name>\n")
        return
    alive = set(tmux.list_sessions())

    result = picker.pick("witshe", build_picker_items(threads, alive))
    if result is None:
        return
    thread = threads[result.index]
    session = session_name(thread.name)

    if result.is_done:
        store.reopen(thread.name)
        store.save()
        print(f"  reopened: {thread.name}")

    if session not in alive:
        _restore_session(thread)

    _switch(session)


def _cmd_new(store: Threads, args: argparse.Namespace) -> None:
    name = args.name
    thread = Thread.create(name, args.tag, args.desc)
    session = session_name(name)
    location = args.repo if args.repo is not None else os.getcwd()

    if args.no_worktree:
        thread.cwd = location
        try:
            tmux.create_session(session, location)
        except TmuxError as exc:
            _fail(f"error: {exc}")
    else:
        try:
            wt_path = tmux.create_worktree(location, name, name)
            tmux.create_session(session, wt_path)
        except TmuxError as exc:
            _fail(f"error: {exc}")
        thread.add_repo(Repo(repo_path=location, worktree_path=wt_path, branch=name, has_worktree=True))

    hooks.run_post(_thread_ctx("post-new", name, thread))
    store.add(thread)
    store.save()
    print(f"  created: {name}")


def _cmd_add(store: Threads, args: argparse.Namespace) -> None:
    thread_name = resolve_thread(args.thread)
    branch = args.branch
    try:
        repo_path = str(Path(args.repo).resolve(strict=True))
    except OSError:
        repo_path = args.repo

    try:
        wt_path = tmux.create_worktree(repo_path, branch, thread_name)
    except TmuxError as exc:
        _fail(f"error: {exc}")

    window = Path(repo_path).name or branch
    session = session_name(thread_name)
    if session in tmux.list_sessions():
        try:
            tmux.add_window(session, window, wt_path)
        except TmuxError:
            pass

    thread = store.get(thread_name)
    if thread is None:
        _fail(f"thread not found: {thread_name}")

    thread.add_repo(Repo(repo_path=repo_path, worktree_path=wt_path, branch=branch, has_worktree=True))
    store.save()
    hooks.run_post(
        HookContext(
            event="post-add",
            thread_name=thread_name,
            thread_tag=thread.tag or "",
            thread_desc=thread.desc or "",
            repo_path=repo_path,
            worktree_path=wt_path,
            branch=branch,
        )
    )
    print(f"  added: {window} -> {thread_name}")


def _cmd_ls(store: Threads, args: argparse.Namespace) -> None:
    print_threads(store, args.all)


def _cmd_done(store: Threads, args: argparse.Namespace) -> None:
    name = resolve_thread(args.name)
    ctx = make_hook_ctx("", name, store)
    try:
        hooks.run_pre(replace(ctx, event="pre-done"))
    except HookError as exc:
        _fail(f"  aborted by hook: {exc}")

    if not store.mark_done(name):
        _fail(f"thread not found: {name}")
    store.save()
    print(f"  done: {name}")
    hooks.run_post(replace(ctx, event="post-done"))
    try:
        tmux.kill_session(session_name(name))
    except TmuxError:
        pass


def _cmd_reopen(store: Threads, args: argparse.Namespace) -> None:
    name = args.name
    if not store.reopen(name):
        _fail(f"thread not found: {name}")
    thread = store.get(name)
    if thread is not None:
        _restore_session(thread)
    store.save()
    print(f"  reopened: {name}")


def _cmd_set(store: Threads, args: argparse.Namespace) -> None:
    target = resolve_thread(args.thread)
    if args.name is None and args.tag is None and args.desc is None:
        _fail("nothing to set. use --name, --tag, or --desc")

    target_name = target
    if args.name is not None:
        try:
            tmux.rename_session(session_name(target), session_name(args.name))
        except TmuxError:
            pass
        if store.rename(target, args.name):
            target_name = args.name
        print(f"  name: {target} -> {args.name}")

    if args.tag is not None:
        store.set_tag(target_name, args.tag)
        print(f"  tag: [{args.tag}]")

    if args.desc is not None:
        store.set_desc(target_name, args.desc)
        print(f"  desc: {args.desc}")

    store.save()


def _remove_worktrees(thread: Thread) -> None:
    for repo in thread.repos:
        if repo.has_worktree:
            try:
                tmux.remove_worktree(repo.repo_path, repo.worktree_path)
            except TmuxError:
                pass


def _cmd_rm(store: Threads, args: argparse.Namespace) -> None:
    if args.done:
        done_threads = [t for t in store.list() if t.status is ThreadStatus.DONE]
        for thread in done_threads:
            ctx = _thread_ctx("pre-rm", thread.name, thread)
            try:
                hooks.run_pre(ctx)
            except HookError:
                pass  # a pre-rm hook cannot abort a bulk removal
            if not args.keep_worktree:
                _remove_worktrees(thread)
            store.remove(thread.name)
            hooks.run_post(replace(ctx, event="post-rm"))
        store.save()
        print(f"  removed {len(done_threads)} done thread(s)")
        return

    name = args.name
    if name is None:
        _fail("usage: witshe rm <name> or witshe rm --done")

    ctx = make_hook_ctx("", name, store)
    try:
        hooks.run_pre(replace(ctx, event="pre-rm"))
    except HookError as exc:
        _fail(f"  aborted by hook: {exc}")

    try:
        tmux.kill_session(session_name(name))
    except TmuxError:
        pass

    thread = store.get(name)
    if thread is not None and not args.keep_worktree:
        _remove_worktrees(thread)

    store.remove(name)
    store.save()
    hooks.run_post(replace(ctx, event="post-rm"))
    print(f"  removed: {name}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="witshe", description="tmux + git worktrees = threads")
    parser.add_argument("-V", "--version", action="version", version="%(prog)s 0.1.0")
    parser.add_argument(
        "-c", "--continue", dest="resume", action="store_true", help="jump to last active session"
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    new = sub.add_parser("new", help="create a new thread (worktree + tmux session)")
    new.add_argument("name")
    new.add_argument("-r", "--repo")
    new.add_argument("--no-worktree", action="store_true")
    new.add_argument("-t", "--tag")
    new.add_argument("-d", "--desc")
    new.set_defaults(handler=_cmd_new)

    add = sub.add_parser("add", help="add a repo to a thread (worktree + tmux window)")
    add.add_argument("repo", help="path to the repo")
    add.add_argument("-b", "--branch", required=True, help="branch name")
    add.add_argument("-t", "--thread", help="thread to add to (defaults to the current session's)")
    add.set_defaults(handler=_cmd_add)

    ls = sub.add_parser("ls", help="list threads")
    ls.add_argument("-a", "--all", action="store_true")
    ls.set_defaults(handler=_cmd_ls)

    done = sub.add_parser("done", help="mark a thread as done")
    done.add_argument("name", nargs="?")
    done.set_defaults(handler=_cmd_done)

    reopen = sub.add_parser("reopen", help="reopen a done thread")
    reopen.add_argument("name")
    reopen.set_defaults(handler=_cmd_reopen)

    set_ = sub.add_parser("set", help="edit thread metadata")
    set_.add_argument("--name")
    set_.add_argument("--tag")
    set_.add_argument("--desc")
    set_.add_argument("-t", "--thread")
    set_.set_defaults(handler=_cmd_set)

    rm = sub.add_parser("rm", help="remove a thread permanently")
    rm.add_argument("name", nargs="?")
    rm.add_argument("--keep-worktree", action="store_true")
    rm.add_argument("--done", action="store_true")
    rm.set_defaults(handler=_cmd_rm)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    store = Threads.load()
    if args.command is None:
        if args.resume:
            continue_last(store)
        else:
            interactive(store)
        return 0
    args.handler(store, args)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())