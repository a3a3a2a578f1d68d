from __future__ import annotations

import dataclasses
from pathlib import Path


@dataclasses.dataclass(frozen=True)
class RepositoryRef:
    path: Path  # absolute
    display_name: str

    @classmethod
    def for_path(cls, path: Path) -> "RepositoryRef":
        p = Path(path).resolve()
        return cls(path=p, display_name=p.name.upper())


@dataclasses.dataclass(frozen=True)
class FileChange:
    additions: int = 0
    deletions: int = 0
    binary: bool = False


@dataclasses.dataclass
class CommitRecord:
    hash: str
    author_name: str
    author_email: str
    author_date: str
    subject: str
    body: str
    changes: dict[str, FileChange] | None = None  # path -> counts; None unless files were requested

    @property
    def insertions(self) -> int:
        return sum(c.additions for c in (self.changes or {}).values())

    @property
    def deletions(self) -> int:
        return sum(c.deletions for c in (self.changes or {}).values())

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {
            "commit": self.hash,
            "author": self.author_name,
            "author_email": self.author_email,
            "author_date": self.author_date,
            "subject": self.subject,
            "body": self.body,
        }
        if self.changes is not None:
            out["changes"] = {
                path: {"additions": c.additions, "deletions": c.deletions} for path, c in self.changes.items()
            }
        return out


@dataclasses.dataclass
class RepoOutcome:
    repo: RepositoryRef
    status: str  # ok | no_match | failed | skipped
    text: str = ""
    commits: list[CommitRecord] = dataclasses.field(default_factory=list)

    @property
    def has_commits(self) -> bool:
        return self.status == "ok"


@dataclasses.dataclass
class RunState:
    found_any_commits: bool = False
    last_repository_had_commits: bool = False  # text mode separators
    first_repository_in_json: bool = True  # json mode comma placement
