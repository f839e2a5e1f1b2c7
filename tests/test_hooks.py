import sys

import pytest

from witshe.hooks import (
    HookContext,
    HookError,
    collect_hooks,
    default_hooks_dir,
    run_hook,
    run_post,
    run_pre,
)


def _script(path, body, mode=0o755):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"#!{sys.executable}\n{body}")
    path.chmod(mode)
    return path


def _ctx(event="post-new", repo_path="/src/app"):
    return HookContext(
        event=event,
        thread_name="feat",
        thread_tag="tg",
        thread_desc="desc",
        repo_path=repo_path,
        worktree_path="/wt/app",
        branch="feat",
    )


def test_env_vars():
    env = _ctx().env_vars()
    assert env["WITSHE_EVENT"] == "post-new"
    assert env["WITSHE_THREAD_NAME"] == "feat"
    assert env["WITSHE_THREAD_TAG"] == "tg"
    assert env["WITSHE_THREAD_DESC"] == "desc"
    assert env["WITSHE_REPO_PATH"] == "/src/app"
    assert env["WITSHE_WORKTREE_PATH"] == "/wt/app"
    assert env["WITSHE_BRANCH"] == "feat"
    assert len(env) == 7


def test_repo_basename():
    assert _ctx(repo_path="/src/app").repo_basename() == "app"
    assert _ctx(repo_path="").repo_basename() == ""


def test_default_hooks_dir(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    assert default_hooks_dir() == tmp_path / ".witshe" / "hooks"


def test_collect_order(tmp_path):
    single = _script(tmp_path / "post-new", "")
    b = _script(tmp_path / "post-new.d" / "20-b", "")
    a = _script(tmp_path / "post-new.d" / "10-a", "")
    init = _script(tmp_path / "init.d" / "app.sh", "")
    assert collect_hooks("post-new", "app", tmp_path) == [single, a, b, init]


def test_collect_skips_non_executable(tmp_path):
    _script(tmp_path / "post-done", "", mode=0o644)
    ok = _script(tmp_path / "post-done.d" / "x", "")
    _script(tmp_path / "post-done.d" / "y", "", mode=0o600)
    assert collect_hooks("post-done", "app", tmp_path) == [ok]


def test_init_script_only_for_new_and_add(tmp_path):
    init = _script(tmp_path / "init.d" / "app.sh", "")
    assert collect_hooks("post-add", "app", tmp_path) == [init]
    assert collect_hooks("post-done", "app", tmp_path) == []
    assert collect_hooks("post-new", "", tmp_path) == []


def test_collect_missing_dir(tmp_path):
    assert collect_hooks("post-new", "app", tmp_path / "absent") == []


def test_run_hook_passes_env_and_echoes(tmp_path, capsys):
    hook = _script(
        tmp_path / "h",
        "import os\nprint(os.environ['WITSHE_THREAD_NAME'] + ':' + os.environ['WITSHE_EVENT'])\n",
    )
    run_hook(hook, _ctx())
    assert "feat:post-new" in capsys.readouterr().err


def test_run_hook_failure_uses_stderr(tmp_path):
    hook = _script(tmp_path / "h", "import sys\nsys.stderr.write('  nope  \\n')\nsys.exit(3)\n")
    with pytest.raises(HookError) as info:
        run_hook(hook, _ctx())
    assert str(info.value) == "nope"


def test_run_hook_failure_falls_back_to_stdout(tmp_path):
    hook = _script(tmp_path / "h", "import sys\nprint('out')\nsys.exit(1)\n")
    with pytest.raises(HookError, match="^out$"):
        run_hook(hook, _ctx())


def test_run_hook_silent_failure(tmp_path):
    hook = _script(tmp_path / "h", "import sys\nsys.exit(1)\n")
    with pytest.raises(HookError, match="^hook failed$"):
        run_hook(hook, _ctx())


def test_run_pre_aborts_on_first_failure(tmp_path):
    log = tmp_path / "log.txt"
    _script(
        tmp_path / "hooks" / "pre-rm.d" / "10-a",
        f"import sys\nopen({str(log)!r}, 'a').write('a')\nsys.stderr.write('stop')\nsys.exit(1)\n",
    )
    _script(
        tmp_path / "hooks" / "pre-rm.d" / "20-b",
        f"open({str(log)!r}, 'a').write('b')\n",
    )
    with pytest.raises(HookError, match="stop"):
        run_pre(_ctx("pre-rm"), tmp_path / "hooks")
    assert log.read_text() == "a"


def test_run_post_continues_and_warns(tmp_path, capsys):
    log = tmp_path / "log.txt"
    failing = _script(
        tmp_path / "hooks" / "post-rm.d" / "10-a",
        "import sys\nsys.stderr.write('broken')\nsys.exit(1)\n",
    )
    _script(
        tmp_path / "hooks" / "post-rm.d" / "20-b",
        f"open({str(log)!r}, 'a').write('b')\n",
    )
    run_post(_ctx("post-rm"), tmp_path / "hooks")
    assert log.read_text() == "b"
    assert f"  warning: hook {failing} failed: broken" in capsys.readouterr().err