from __future__ import annotations

import datetime as dt
import io
import json
from pathlib import Path

from mgitlog.dates import DateWindow
from mgitlog.models import CommitRecord, FileChange, RepositoryRef, RunState
from mgitlog.render import (
    RULE,
    JsonReportWriter,
    format_banner,
    format_commit_detail,
    format_repo_block,
    format_shortstat,
)

WINDOW = DateWindow(dt.date(2025, 1, 6), dt.date(2025, 1, 12))


def _commit(sha: str, changes: dict[str, FileChange] | None = None) -> CommitRecord:
    return CommitRecord(
        hash=sha,
        author_name="Ann",
        author_email="ann@example.com",
        author_date="Mon Jan 6 10:00:00 2025 +0000",
        subject='Fix "quoted" thing',
        body="Details\n\nMore",
        changes=changes,
    )


def test_format_shortstat() -> None:
    assert format_shortstat(0, 0, 0) == ""
    assert format_shortstat(1, 1, 0) == " 1 file changed, 1 insertion(+)"
    assert format_shortstat(2, 0, 3) == " 2 files changed, 3 deletions(-)"
    assert format_shortstat(3, 10, 2) == " 3 files changed, 10 insertions(+), 2 deletions(-)"
    assert format_shortstat(1, 0, 0) == " 1 file changed, 0 insertions(+)"


def test_banner() -> None:
    out = format_banner(WINDOW, ["a@example.com", "b@example.com"])
    assert out == "\nGit logs Jan 06 - Jan 12, 2025\nAuthor(-s): a@example.com, b@example.com\n\n"


def test_repo_block_layout() -> None:
    repo = RepositoryRef(path=Path("/src/my-app"), display_name="MY-APP")
    block = format_repo_block(repo, "commit abc\n")
    assert block == f"MY-APP [/src/my-app]\n{RULE}\n\ncommit abc\n\n"


def test_commit_detail_lists_files_and_binary() -> None:
    c = _commit("abc", {"src/a.py": FileChange(4, 2), "img.png": FileChange(0, 0, binary=True)})
    text = format_commit_detail(c)
    lines = text.splitlines()
    assert lines[0] == "commit abc"
    assert lines[1] == "Ann <ann@example.com>"
    assert '    Fix "quoted" thing' in lines
    assert "    Details" in lines
    assert " 2 files changed, 4 insertions(+), 2 deletions(-)" in lines
    assert "   src/a.py (+4 -2)" in lines
    assert "   img.png (binary)" in lines
    assert "\033[" not in text


def test_commit_detail_colors() -> None:
    text = format_commit_detail(_commit("abc", {"a": FileChange(1, 1)}), color=True)
    assert "\033[33mcommit abc\033[0m" in text
    assert "\033[32m+1\033[0m" in text


def _write(entries: list[tuple[str, list[CommitRecord]]], authors: list[str]) -> str:
    buf = io.StringIO()
    state = RunState()
    w = JsonReportWriter(buf, WINDOW, authors, state)
    w.open()
    for path, commits in entries:
        w.add(RepositoryRef.for_path(Path(path)), commits)
    w.close()
    assert state.first_repository_in_json is (not entries)
    return buf.getvalue()


def test_json_writer_zero_one_many() -> None:
    doc = json.loads(_write([], []))
    assert doc == {"date_range": "2025-01-06..2025-01-12", "authors": [], "repositories": []}

    doc = json.loads(_write([("/r/one", [_commit("a1")])], ["ann@example.com"]))
    assert doc["authors"] == ["ann@example.com"]
    assert [r["commits"][0]["commit"] for r in doc["repositories"]] == ["a1"]
    assert doc["repositories"][0]["commits"][0]["subject"] == 'Fix "quoted" thing'

    doc = json.loads(_write([("/r/one", [_commit("a1"), _commit("a2")]), ("/r/two", [_commit("b1")]), ("/r/three", [_commit("c1")])], ["x", "y"]))
    assert len(doc["repositories"]) == 3
    assert [c["commit"] for c in doc["repositories"][0]["commits"]] == ["a1", "a2"]


def test_json_changes_only_with_files() -> None:
    doc = json.loads(_write([("/r/one", [_commit("a1", {"bin.dat": FileChange(0, 0, binary=True), "x.py": FileChange(2, 5)})])], []))
    commit = doc["repositories"][0]["commits"][0]
    assert commit["changes"] == {"bin.dat": {"additions": 0, "deletions": 0}, "x.py": {"additions": 2, "deletions": 5}}
    assert set(commit) == {"commit", "author", "author_email", "author_date", "subject", "body", "changes"}


def test_json_keeps_unicode_line_separators_inside_strings() -> None:
    commit = CommitRecord(
        hash="a1",
        author_name="Ann\u0085",
        author_email="ann@example.com",
        author_date="Mon Jan 6 10:00:00 2025 +0000",
        subject="Fix\u2028thing",
        body="one\u2029two",
        changes={"café\u2028.txt": FileChange(1, 0)},
    )
    doc = json.loads(_write([("/r/one", [commit])], ["ann\u2028@example.com"]))
    got = doc["repositories"][0]["commits"][0]
    assert got["subject"] == "Fix\u2028thing"
    assert got["body"] == "one\u2029two"
    assert got["author"] == "Ann\u0085"
    assert list(got["changes"]) == ["café\u2028.txt"]
    assert doc["authors"] == ["ann\u2028@example.com"]
