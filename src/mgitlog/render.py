from __future__ import annotations

import json
from collections.abc import Sequence
from typing import TextIO

from .dates import DateWindow, format_window_title
from .models import CommitRecord, RepositoryRef, RunState

RULE = "━" * 20
NO_COMMITS = "No commits found."

YELLOW = "\033[33m"
GREEN = "\033[32m"
RED = "\033[31m"
RESET = "\033[0m"


def _paint(s: str, code: str, color: bool) -> str:
    return f"{code}{s}{RESET}" if color else s


def _plural(n: int, one: str, many: str) -> str:
    return f"{n} {one if n == 1 else many}"


def format_banner(window: DateWindow, authors: Sequence[str]) -> str:
    lines = [
        "",
        format_window_title(window),
        f"Author(-s): {', '.join(authors)}",
        "",
    ]
    return "\n".join(lines) + "\n"


def format_repo_header(repo: RepositoryRef) -> str:
    return f"{repo.display_name} [{repo.path}]\n{RULE}\n"


def format_shortstat(files: int, insertions: int, deletions: int) -> str:
    """Same shape as `git show --shortstat`."""
    if files <= 0:
        return ""
    parts = [" " + _plural(files, "file changed", "files changed")]
    if insertions or not deletions:
        parts.append(_plural(insertions, "insertion(+)", "insertions(+)"))
    if deletions:
        parts.append(_plural(deletions, "deletion(-)", "deletions(-)"))
    return ", ".join(parts)


def format_commit_detail(c: CommitRecord, *, color: bool = False) -> str:
    lines = [
        _paint(f"commit {c.hash}", YELLOW, color),
        f"{c.author_name} <{c.author_email}>",
        c.author_date,
        "",
        f"    {c.subject}",
        "",
    ]
    if c.body:
        lines.extend(f"    {line}" if line else "" for line in c.body.splitlines())
    changes = c.changes or {}
    stat = format_shortstat(len(changes), c.insertions, c.deletions)
    if stat:
        lines.append(stat)
    for path, ch in changes.items():
        if ch.binary:
            lines.append(f"   {path} (binary)")
        else:
            lines.append(f"   {path} ({_paint(f'+{ch.additions}', GREEN, color)} {_paint(f'-{ch.deletions}', RED, color)})")
    return "\n".join(lines)


def format_commits_detail(commits: Sequence[CommitRecord], *, color: bool = False) -> str:
    return "\n\n".join(format_commit_detail(c, color=color) for c in commits)


def format_repo_block(repo: RepositoryRef, body: str) -> str:
    return format_repo_header(repo) + "\n" + body.rstrip("\n") + "\n\n"


def _indent(text: str, prefix: str) -> str:
    # split on "\n" only: json strings may hold raw U+2028/U+2029/U+0085
    return "\n".join(prefix + line for line in text.split("\n"))


class JsonReportWriter:
    """
    Streams {"date_range", "authors", "repositories": [...]} to `out`.

    Repositories are written as they arrive; a comma precedes every entry but
    the first, so the document is complete and valid after close() whatever
    number of entries was added.
    """

    def __init__(self, out: TextIO, window: DateWindow, authors: Sequence[str], state: RunState | None = None) -> None:
        self.out = out
        self.window = window
        self.authors = list(authors)
        self.state = state if state is not None else RunState()

    def open(self) -> None:
        authors = json.dumps(self.authors, indent=2, ensure_ascii=False)
        self.out.write("{\n")
        self.out.write(f'  "date_range": {json.dumps(self.window.label)},\n')
        self.out.write(f'  "authors": {_indent(authors, "  ").lstrip()},\n')
        self.out.write('  "repositories": [')

    def add(self, repo: RepositoryRef, commits: Sequence[CommitRecord]) -> None:
        entry = {"repository": str(repo.path), "commits": [c.to_json() for c in commits]}
        text = _indent(json.dumps(entry, indent=2, ensure_ascii=False), "    ")
        self.out.write("\n" if self.state.first_repository_in_json else ",\n")
        self.out.write(text)
        self.state.first_repository_in_json = False

    def close(self) -> None:
        self.out.write("]\n}\n" if self.state.first_repository_in_json else "\n  ]\n}\n")
