from __future__ import annotations

import os
import sys
from collections.abc import Iterable, Iterator
from pathlib import Path

from .models import RepositoryRef

SKIP_DIRNAMES = frozenset({"node_modules"})


class RootNotFound(OSError):
    pass


def is_repository(path: Path) -> bool:
    # `.git` is a file for worktrees and submodules
    return (path / ".git").exists()


def is_excluded(path: Path | str, excludes: Iterable[str]) -> bool:
    s = str(path)
    return any(pat and pat in s for pat in excludes)


def _skip_dirname(name: str) -> bool:
    return name.startswith(".") or name in SKIP_DIRNAMES


def check_root(root: Path) -> Path:
    p = Path(root).expanduser()
    if not p.exists():
        raise RootNotFound(f"Repository path not found: {root}")
    if not p.is_dir():
        raise RootNotFound(f"Not a directory: {root}")
    return p.resolve()


def resolve_roots(roots: Iterable[Path]) -> list[Path]:
    """
    Usable, de-duplicated roots in the given order. Missing roots are reported
    and dropped; with nothing left the current directory is used.
    """
    out: list[Path] = []
    for root in roots:
        try:
            p = check_root(root)
        except RootNotFound as e:
            print(f"Warning: {e}", file=sys.stderr)
            continue
        if p not in out:
            out.append(p)
    if not out:
        out.append(check_root(Path.cwd()))
    return out


def scan_repositories(roots: Iterable[Path], excludes: Iterable[str] = (), max_depth: int = 1) -> Iterator[RepositoryRef]:
    excludes = [e for e in excludes if e]
    max_depth = max(0, int(max_depth))
    for root in roots:
        root = Path(root).resolve()
        if is_repository(root):
            if not is_excluded(root, excludes):
                yield RepositoryRef.for_path(root)
            continue

        base_depth = len(root.parts)

        def onerror(err: OSError) -> None:
            print(f"Warning: cannot read {err.filename}: {err.strerror}", file=sys.stderr)

        for dirpath, dirnames, _filenames in os.walk(root, onerror=onerror):
            here = Path(dirpath)
            depth = len(here.parts) - base_depth
            if depth >= max_depth:
                dirnames[:] = []
                continue
            keep: list[str] = []
            for name in dirnames:
                if _skip_dirname(name):
                    continue
                child = here / name
                if is_repository(child):
                    if not is_excluded(child, excludes):
                        yield RepositoryRef.for_path(child)
                    continue
                keep.append(name)
            dirnames[:] = keep
