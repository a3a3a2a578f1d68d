from __future__ import annotations

import subprocess
import sys
from collections.abc import Callable
from pathlib import Path

from .git import DEFAULT_TIMEOUT_S

BEFORE_ENV = "MGITLOG_BEFORE_CMD"
AFTER_ENV = "MGITLOG_AFTER_CMD"

ShellRunner = Callable[[str, Path, int], tuple[int, str, str]]


def run_shell(command: str, cwd: Path, timeout_s: int = DEFAULT_TIMEOUT_S) -> tuple[int, str, str]:
    proc = subprocess.run(
        command,
        shell=True,
        cwd=str(cwd),
        stdin=subprocess.DEVNULL,
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
        timeout=timeout_s,
    )
    return proc.returncode, proc.stdout, proc.stderr


class HookRunner:
    """
    Optional shell commands bracketing each repository's log step.

    Output from hooks goes to stderr so it never mixes with the report.
    """

    def __init__(
        self,
        before_cmd: str = "",
        after_cmd: str = "",
        timeout_s: int = DEFAULT_TIMEOUT_S,
        run: ShellRunner = run_shell,
    ) -> None:
        self.before_cmd = (before_cmd or "").strip()
        self.after_cmd = (after_cmd or "").strip()
        self.timeout_s = timeout_s
        self.run = run

    def _run(self, kind: str, command: str, repo: Path) -> bool:
        try:
            code, out, err = self.run(command, repo, self.timeout_s)
        except subprocess.TimeoutExpired:
            print(f"Warning: {kind} hook timed out after {self.timeout_s}s in {repo}", file=sys.stderr)
            return False
        except OSError as e:
            print(f"Warning: {kind} hook could not run in {repo}: {e}", file=sys.stderr)
            return False
        for text in (out, err):
            if text:
                sys.stderr.write(text if text.endswith("\n") else text + "\n")
        if code != 0:
            print(f"Warning: {kind} hook exited {code} in {repo}", file=sys.stderr)
            return False
        return True

    def run_before(self, repo: Path) -> bool:
        if not self.before_cmd:
            return True
        return self._run("before", self.before_cmd, repo)

    def run_after(self, repo: Path) -> bool:
        if not self.after_cmd:
            return True
        return self._run("after", self.after_cmd, repo)
