# witshe

tmux + git worktrees = threads.

A *thread* is a unit of work. It is made of one or more git worktrees, each on
its own branch, and a tmux session named `witshe/<thread>`. `witshe` records
your threads in `~/.witshe/threads.json` and lets you jump between them. It
runs the `git` and `tmux` programs, so both must be on your `PATH`.

## Install

    pip install .

This installs the `witshe` command. You can also run it as `python -m witshe.cli`.

## Usage

    witshe                      # interactive picker
    witshe -c                   # jump to the most recent active thread whose session is running
    witshe new feat-login       # branch + worktree + tmux session, from the repo in the cwd
    witshe new feat-login -r ~/code/api -t auth -d "login flow"
    witshe new scratch --no-worktree         # session only, started in the cwd (or -r path)
    witshe add ~/code/web -b feat-login      # add another repo to the current thread
    witshe ls                   # list open threads
    witshe ls -a                # include done threads
    witshe done                 # mark the current thread done and kill its session
    witshe reopen feat-login    # mark it active and recreate its session
    witshe set --tag auth --desc "login flow"
    witshe set --name feat-signin -t feat-login
    witshe rm feat-login        # kill the session, remove the worktrees, forget the thread
    witshe rm feat-login --keep-worktree
    witshe rm --done            # remove every done thread
    witshe --version

When `done`, `set` or `add` is run inside a `witshe/...` tmux session with no
thread given, it applies to that session's thread. `witshe add` opens a new
window named after the repo in the thread's session, if that session is running.

To switch, `witshe` uses `tmux switch-client` when run inside tmux and
`tmux attach-session` otherwise.

### The picker

Running `witshe` with no arguments shows the threads, open ones first and done
ones under a `done` heading, at most eight at a time. Each line has an icon:

- `●` the session is running
- `⚠` the session is running and its last lines look like a prompt
  (for example "y/n", "confirm", "press enter")
- `✗` the session is not running
- `✓` the thread is done

For a running session, the last line of its pane is shown next to the
description.

Up and down move the selection. Typing filters by name, tag and description
without regard to case. Backspace deletes a character. Esc clears the search,
or quits if the search is empty. Ctrl-C quits. Enter switches to the selected
thread. A done thread is reopened first, and a session that is not running is
recreated with a window for each extra repo.

The picker needs a POSIX terminal. Without one, it returns without doing anything.

## Worktree location

Worktrees are created at `<root>/<thread>/<repo-name>`, where `<root>` is the
first of:

1. `$WITSHE_WORKTREE_ROOT` (a leading `~/` is expanded);
2. a `.worktrees/` directory next to the repo;
3. `~/.witshe/worktrees`.

If the branch already exists, the worktree checks it out instead of creating it.
The repo's `.witshe.copy` file lists paths relative to the repo root, one per
line, with blank lines and `#` comments ignored. Each of those paths that is a
file is copied into the new worktree. Without that file, `.env` and `.env.local`
are copied.

## Hooks

Executable files in `~/.witshe/hooks` run on these events: `post-new`,
`post-add`, `pre-done`, `post-done`, `pre-rm` and `post-rm`. For each event,
the hooks run in this order:

- `~/.witshe/hooks/<event>`
- every executable in `~/.witshe/hooks/<event>.d/`, in sorted order
- for `post-new` and `post-add` only: `~/.witshe/hooks/init.d/<repo-name>.sh`

Hooks get `WITSHE_EVENT`, `WITSHE_THREAD_NAME`, `WITSHE_THREAD_TAG`,
`WITSHE_THREAD_DESC`, `WITSHE_REPO_PATH`, `WITSHE_WORKTREE_PATH` and
`WITSHE_BRANCH` in their environment, and their output is echoed to stderr.

A `pre-*` hook that exits non-zero stops the later hooks and aborts the command.
The exception is `rm --done`, where a failing `pre-rm` hook does not stop the
removal. A failing `post-*` hook prints a warning, and the remaining hooks still run.

## Storage

`~/.witshe/threads.json` is a JSON array of threads. Older entries that have a
single `repo_path`/`worktree_path` are converted to the current layout when the
store is loaded, and the file is rewritten. A store file that cannot be read or
parsed is treated as empty, and the next command that saves will overwrite it.

## Library use

The modules can be used on their own:

- `witshe.threads`: `Thread`, `Repo`, `ThreadStatus` and the `Threads` store
  (`Threads.load(path)` / `save()`).
- `witshe.hooks`: `HookContext`, `collect_hooks`, `run_pre` (raises `HookError`)
  and `run_post`.
- `witshe.tmux`: functions that wrap the tmux and git commands. They raise
  `TmuxError` when a command fails.
- `witshe.picker`: `PickerItem`, `Picker`, `filter_items`, `render` and `pick`.