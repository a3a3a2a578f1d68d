from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from mgitlog.hooks import HookRunner, run_shell


def test_unset_hooks_never_run(tmp_path: Path) -> None:
    def boom(command: str, cwd: Path, timeout_s: int) -> tuple[int, str, str]:
        raise AssertionError("hook runner must not be called")

    hooks = HookRunner("", "   ", run=boom)
    assert hooks.run_before(tmp_path) is True
    assert hooks.run_after(tmp_path) is True


def test_hooks_run_in_repo_directory(tmp_path: Path) -> None:
    hooks = HookRunner("pwd -P > before.txt", "echo done > after.txt", timeout_s=30)
    assert hooks.run_before(tmp_path) is True
    assert hooks.run_after(tmp_path) is True
    assert Path((tmp_path / "before.txt").read_text(encoding="utf-8").strip()).resolve() == tmp_path.resolve()
    assert (tmp_path / "after.txt").exists()


def test_hook_output_goes_to_stderr(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    HookRunner("echo fetching", timeout_s=30).run_before(tmp_path)
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "fetching" in captured.err


def test_failing_hooks_warn(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    hooks = HookRunner("exit 3", "exit 4", timeout_s=30)
    assert hooks.run_before(tmp_path) is False
    assert hooks.run_after(tmp_path) is False
    err = capsys.readouterr().err
    assert "before hook exited 3" in err
    assert "after hook exited 4" in err


def test_hook_timeout_is_a_failure(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    def slow(command: str, cwd: Path, timeout_s: int) -> tuple[int, str, str]:
        raise subprocess.TimeoutExpired(cmd=command, timeout=timeout_s)

    assert HookRunner("sleep 100", run=slow, timeout_s=2).run_before(tmp_path) is False
    assert "timed out after 2s" in capsys.readouterr().err


def test_run_shell_returns_exit_code(tmp_path: Path) -> None:
    code, out, _ = run_shell("echo hi; exit 5", tmp_path, 30)
    assert code == 5
    assert out.strip() == "hi"
