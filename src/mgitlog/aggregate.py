from __future__ import annotations

import dataclasses
import sys
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TextIO

from .dates import DateWindow
from .git import LogInvoker, ProviderFailure
from .hooks import HookRunner
from .models import RepoOutcome, RepositoryRef, RunState
from .render import NO_COMMITS, JsonReportWriter, format_banner, format_commits_detail, format_repo_block


@dataclasses.dataclass(frozen=True)
class RunContext:
    window: DateWindow
    authors: tuple[str, ...]
    invoker: LogInvoker
    hooks: HookRunner
    log_options: str = ""
    json_output: bool = False
    files: bool = False
    color: bool = False
    show_header: bool = True


def _query(repo: RepositoryRef, ctx: RunContext) -> RepoOutcome:
    if ctx.json_output:
        commits = ctx.invoker.records(repo, ctx.window, ctx.authors, include_files=ctx.files)
        if not commits:
            return RepoOutcome(repo, "no_match")
        return RepoOutcome(repo, "ok", commits=commits)

    if ctx.files:
        commits = ctx.invoker.records(repo, ctx.window, ctx.authors, include_files=True)
        if not commits:
            return RepoOutcome(repo, "no_match")
        body = format_commits_detail(commits, color=ctx.color)
        return RepoOutcome(repo, "ok", text=format_repo_block(repo, body), commits=commits)

    if ctx.log_options:
        body = ctx.invoker.custom(repo, ctx.window, ctx.authors, ctx.log_options, color=ctx.color)
    else:
        body = ctx.invoker.summary(repo, ctx.window, ctx.authors, color=ctx.color)
    if body is None:
        return RepoOutcome(repo, "no_match")
    return RepoOutcome(repo, "ok", text=format_repo_block(repo, body))


def process_repository(repo: RepositoryRef, ctx: RunContext) -> RepoOutcome:
    """
    Hooks plus one log query for a single repository. Rendering into
    `outcome.text` happens here so parallel workers hand back whole blocks.
    """
    if not ctx.hooks.run_before(repo.path):
        print(f"Warning: skipping {repo.path} (before hook failed)", file=sys.stderr)
        return RepoOutcome(repo, "skipped")
    try:
        outcome = _query(repo, ctx)
    except ProviderFailure as e:
        print(f"Warning: {e}", file=sys.stderr)
        outcome = RepoOutcome(repo, "failed")
    ctx.hooks.run_after(repo.path)
    return outcome


def _emit_text(outcome: RepoOutcome, state: RunState, out: TextIO) -> None:
    if not outcome.has_commits:
        state.last_repository_had_commits = False
        return
    if state.last_repository_had_commits:
        out.write("\n")
    out.write(outcome.text)
    state.last_repository_had_commits = True
    state.found_any_commits = True


def _run_text_sequential(ctx: RunContext, repos: Iterable[RepositoryRef], out: TextIO, state: RunState) -> None:
    for repo in repos:
        _emit_text(process_repository(repo, ctx), state, out)
        out.flush()


def _run_text_parallel(ctx: RunContext, repos: Iterable[RepositoryRef], out: TextIO, state: RunState, jobs: int) -> None:
    # Blocks arrive in completion order; the main thread is the only writer.
    with ThreadPoolExecutor(max_workers=jobs) as ex:
        futs = [ex.submit(process_repository, repo, ctx) for repo in repos]
        for fut in as_completed(futs):
            outcome = fut.result()
            if not outcome.has_commits:
                continue
            if state.found_any_commits:
                out.write("\n")
            out.write(outcome.text)
            out.flush()
            state.found_any_commits = True


def _run_json(ctx: RunContext, repos: Iterable[RepositoryRef], out: TextIO, state: RunState) -> None:
    writer = JsonReportWriter(out, ctx.window, ctx.authors, state)
    writer.open()
    for repo in repos:
        outcome = process_repository(repo, ctx)
        if outcome.has_commits:
            writer.add(repo, outcome.commits)
            state.found_any_commits = True
    writer.close()
    out.flush()


def run_report(ctx: RunContext, repos: Iterable[RepositoryRef], out: TextIO | None = None, jobs: int = 0) -> RunState:
    if out is None:
        out = sys.stdout
    state = RunState()

    if ctx.json_output:
        if jobs > 1:
            print("Warning: parallel mode does not support JSON output; running sequentially.", file=sys.stderr)
        _run_json(ctx, repos, out, state)
        return state

    if ctx.show_header:
        out.write(format_banner(ctx.window, ctx.authors))
    if jobs > 1:
        _run_text_parallel(ctx, repos, out, state, jobs)
    else:
        _run_text_sequential(ctx, repos, out, state)
    if not state.found_any_commits:
        out.write(NO_COMMITS + "\n")
    out.flush()
    return state
