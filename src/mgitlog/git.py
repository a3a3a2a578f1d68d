from __future__ import annotations

import shlex
import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path

from .dates import DateWindow
from .models import CommitRecord, FileChange, RepositoryRef

DEFAULT_TIMEOUT_S = 120

# git log --format separators: one record per commit, fields split by 0x1f
RECORD_SEP = "\x1e"
FIELD_SEP = "\x1f"
RECORD_FORMAT = RECORD_SEP + FIELD_SEP.join(["%H", "%an", "%ae", "%ad", "%s", "%b"]) + FIELD_SEP
# numstat paths come back raw instead of C-quoted ("caf\303\251.txt")
UNQUOTED_PATHS = ["-c", "core.quotePath=false"]

GitRunner = Callable[[list[str], Path, int], tuple[int, str, str]]


class ProviderFailure(RuntimeError):
    def __init__(self, repo: Path, message: str) -> None:
        super().__init__(message)
        self.repo = repo
        self.message = message

    def __str__(self) -> str:
        return f"git log failed in {self.repo}: {self.message}"


def run_git(args: list[str], cwd: Path, timeout_s: int = DEFAULT_TIMEOUT_S) -> tuple[int, str, str]:
    proc = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
        timeout=timeout_s,
    )
    return proc.returncode, proc.stdout, proc.stderr


def get_user_email(cwd: Path | None = None, run: GitRunner = run_git, timeout_s: int = 10) -> str:
    try:
        code, out, _ = run(["config", "user.email"], cwd or Path.cwd(), timeout_s)
    except (OSError, subprocess.TimeoutExpired):
        return ""
    if code != 0:
        return ""
    return out.strip()


def normalize_numstat_path(path: str) -> str:
    p = path.strip()
    # renames render as src/{old => new}/file.py or old.py => new.py
    if " => " in p:
        if "{" in p and "}" in p:
            head, rest = p.split("{", 1)
            inner, tail = rest.split("}", 1)
            new = inner.split(" => ")[-1]
            p = (head + new + tail).replace("//", "/")
        else:
            p = p.split(" => ")[-1]
    return p.strip()


def parse_numstat_line(line: str) -> tuple[str, FileChange] | None:
    parts = line.split("\t", 2)
    if len(parts) < 3 or not parts[2].strip():
        return None
    added_s, deleted_s, file_path = parts
    if added_s == "-" or deleted_s == "-":
        return normalize_numstat_path(file_path), FileChange(0, 0, binary=True)
    try:
        return normalize_numstat_path(file_path), FileChange(int(added_s), int(deleted_s))
    except ValueError:
        return None


def parse_records(output: str, include_files: bool) -> list[CommitRecord]:
    commits: list[CommitRecord] = []
    for chunk in output.split(RECORD_SEP):
        if not chunk.strip():
            continue
        fields = chunk.split(FIELD_SEP, 6)
        if len(fields) < 6:
            continue
        sha, name, email, date, subject, body = (f.strip("\n") for f in fields[:6])
        changes: dict[str, FileChange] | None = None
        if include_files:
            changes = {}
            tail = fields[6] if len(fields) > 6 else ""
            for line in tail.splitlines():
                parsed = parse_numstat_line(line)
                if parsed is None:
                    continue
                path, change = parsed
                changes[path] = change
        commits.append(
            CommitRecord(
                hash=sha.strip(),
                author_name=name,
                author_email=email,
                author_date=date,
                subject=subject,
                body=body.rstrip(),
                changes=changes,
            )
        )
    return commits


def window_args(window: DateWindow, authors: Sequence[str]) -> list[str]:
    args = [f"--after={window.start_iso} 00:00:00", f"--before={window.end_iso} 23:59:59"]
    # repeated --author flags are OR-ed by git
    args.extend(f"--author={a}" for a in authors if a)
    return args


class LogInvoker:
    """
    Runs `git log` for one repository and window.

    Every query returns None when nothing matched; any other non-zero exit,
    a timeout, or a missing git binary raises ProviderFailure.
    """

    def __init__(self, run: GitRunner = run_git, timeout_s: int = DEFAULT_TIMEOUT_S) -> None:
        self.run = run
        self.timeout_s = timeout_s

    def _log(self, repo: RepositoryRef, args: list[str]) -> str | None:
        try:
            code, out, err = self.run(args, repo.path, self.timeout_s)
        except subprocess.TimeoutExpired:
            raise ProviderFailure(repo.path, f"timed out after {self.timeout_s}s") from None
        except OSError as e:
            raise ProviderFailure(repo.path, str(e)) from None
        if code != 0:
            raise ProviderFailure(repo.path, (err or "").strip()[:500] or f"exit status {code}")
        if not out.strip():
            return None
        return out

    def summary(self, repo: RepositoryRef, window: DateWindow, authors: Sequence[str], *, color: bool = False) -> str | None:
        return self.custom(repo, window, authors, "--shortstat", color=color)

    def custom(
        self,
        repo: RepositoryRef,
        window: DateWindow,
        authors: Sequence[str],
        options: str,
        *,
        color: bool = False,
    ) -> str | None:
        args = [
            "-c",
            f"color.ui={'always' if color else 'never'}",
            *UNQUOTED_PATHS,
            "--no-pager",
            "log",
            "--all",
            *shlex.split(options or "--shortstat"),
            "--find-renames",
            *window_args(window, authors),
        ]
        out = self._log(repo, args)
        return out.rstrip("\n") if out is not None else None

    def records(
        self,
        repo: RepositoryRef,
        window: DateWindow,
        authors: Sequence[str],
        *,
        include_files: bool = False,
    ) -> list[CommitRecord] | None:
        args = [*UNQUOTED_PATHS, "--no-pager", "log", "--all", "--find-renames", f"--format={RECORD_FORMAT}"]
        if include_files:
            args.append("--numstat")
        args.extend(window_args(window, authors))
        out = self._log(repo, args)
        if out is None:
            return None
        commits = parse_records(out, include_files)
        return commits or None
