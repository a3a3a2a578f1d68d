from __future__ import annotations

import argparse
import shlex
import sys
from pathlib import Path
from typing import NoReturn

from . import __version__
from .aggregate import RunContext, run_report
from .config import ConfigError, Options, config_jobs, default_config_path, load_config, merge_options
from .dates import InvalidDateSpec, resolve_date_window
from .git import LogInvoker, get_user_email
from .hooks import HookRunner
from .scanner import RootNotFound, resolve_roots, scan_repositories

DATE_HELP = (
    "Commit date range: YYYY-MM-DD, today, yesterday, week (Mon-Sun), lastweek, "
    "YYYY-MM-DD.. (until today) or YYYY-MM-DD..YYYY-MM-DD."
)
HOOKS_EPILOG = (
    "Environment: MGITLOG_BEFORE_CMD / MGITLOG_AFTER_CMD run a shell command in each "
    "repository before/after its log; a failing before-command skips that repository. "
    "MGITLOG_CONFIG points at a JSON config file."
)


class ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        sys.stderr.write(f"Error: {message}\n\n")
        self.print_help(sys.stderr)
        raise SystemExit(1)


def _non_empty(label: str):
    def convert(value: str) -> str:
        if not value.strip():
            raise argparse.ArgumentTypeError(f"{label} required")
        return value

    return convert


def _non_empty_path(label: str):
    check = _non_empty(label)

    def convert(value: str) -> Path:
        return Path(check(value))

    return convert


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("-r", "--repo", dest="roots", type=_non_empty_path("Repository path"), action="append", default=[], metavar="PATH", help="Repository or directory to scan (repeatable). Default: current directory.")
    p.add_argument("-e", "--exclude", dest="excludes", type=_non_empty("Exclude path"), action="append", default=[], metavar="PATTERN", help="Skip repositories whose path contains PATTERN (repeatable).")
    p.add_argument("-a", "--author", dest="authors", type=_non_empty("Author"), action="append", default=[], metavar="ID", help="Author to match (repeatable). Default: git config user.email.")
    p.add_argument("-d", "--date", dest="date_spec", type=_non_empty("Date range"), default=None, metavar="RANGE", help=DATE_HELP)
    p.add_argument("--json", dest="json_output", action="store_true", help="Write one JSON document instead of text.")
    p.add_argument("--files", action="store_true", help="Show additions/deletions per file for each commit.")
    p.add_argument("--color", action=argparse.BooleanOptionalAction, default=None, help="Force ANSI colors on or off (default: on for a terminal).")
    p.add_argument("--timeout", dest="timeout_s", type=int, default=None, metavar="SECONDS", help="Timeout for each git or hook command.")
    p.add_argument("--config", type=Path, default=None, help="Path to a JSON config file.")
    p.add_argument("--version", action="version", version=__version__)


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="mgitlog",
        description="List commits from specified authors across multiple git repositories.",
        epilog=HOOKS_EPILOG,
    )
    _add_common(parser)
    parser.add_argument("--log", dest="log_options", type=_non_empty("Log options"), default=None, metavar="STRING", help="Replace the default --shortstat with custom git log options, e.g. --log='--oneline --name-only' (ignored with --json).")
    return parser


def build_roots_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="mgitlog-roots",
        description="Scan root directories for git repositories and run git log in each. Unrecognized arguments are passed to git log.",
        epilog=HOOKS_EPILOG,
        allow_abbrev=False,
    )
    _add_common(parser)
    parser.add_argument("--mroot", dest="roots", type=_non_empty_path("Root directory"), action="append", default=[], metavar="DIR", help="Root directory to scan (repeatable).")
    parser.add_argument("--mheader", dest="show_header", action="store_true", default=False, help="Print the date range / author header.")
    parser.add_argument("--mexclude", dest="excludes", type=_non_empty("Exclude path"), action="append", default=[], metavar="PATTERN", help="Same as --exclude.")
    parser.add_argument("--mparallelize", dest="jobs", type=int, nargs="?", const=-1, default=None, metavar="N", help="Run repositories in parallel on N workers (text output only).")
    parser.add_argument("--mscandepth", dest="scan_depth", type=int, default=None, metavar="N", help="How many directory levels below each root to scan (default: 2).")
    return parser


def _load_config(parser: ArgumentParser, args: argparse.Namespace) -> dict:
    try:
        return load_config(args.config if args.config is not None else default_config_path())
    except ConfigError as e:
        parser.error(str(e))


def _options(parser: ArgumentParser, cli: dict, config: dict, default_scan_depth: int) -> Options:
    try:
        return merge_options(cli, config, isatty=sys.stdout.isatty(), default_scan_depth=default_scan_depth)
    except ConfigError as e:
        parser.error(str(e))


def run(options: Options, parser: ArgumentParser) -> int:
    try:
        window = resolve_date_window(options.date_spec)
    except InvalidDateSpec as e:
        parser.error(str(e))
    try:
        shlex.split(options.log_options)
    except ValueError as e:
        parser.error(f"Invalid log options {options.log_options!r}: {e}")

    try:
        roots = resolve_roots(options.roots)
    except RootNotFound as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    authors = options.authors
    if not authors:
        email = get_user_email(timeout_s=options.timeout_s)
        authors = (email,) if email else ()
    if not authors:
        print("Warning: no author given and git config user.email is unset; listing commits from all authors.", file=sys.stderr)

    ctx = RunContext(
        window=window,
        authors=tuple(authors),
        invoker=LogInvoker(timeout_s=options.timeout_s),
        hooks=HookRunner(options.before_cmd, options.after_cmd, timeout_s=options.timeout_s),
        log_options=options.log_options,
        json_output=options.json_output,
        files=options.files,
        color=options.color,
        show_header=options.show_header,
    )
    repos = scan_repositories(roots, options.excludes, options.scan_depth)
    run_report(ctx, repos, jobs=options.jobs)
    return 0


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)
    config = _load_config(parser, args)
    cli = {
        "roots": args.roots,
        "excludes": args.excludes,
        "authors": args.authors,
        "date_spec": args.date_spec,
        "log_options": args.log_options,
        "json_output": args.json_output,
        "files": args.files,
        "color": args.color,
        "timeout_s": args.timeout_s,
    }
    return run(_options(parser, cli, config, default_scan_depth=1), parser)


def roots_main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = build_roots_parser()
    args, passthrough = parser.parse_known_args(argv)
    config = _load_config(parser, args)
    jobs = args.jobs
    if jobs == -1:
        jobs = config_jobs(config)
    if jobs is not None and jobs < 0:
        parser.error("--mparallelize expects a positive number of workers")
    cli = {
        "roots": args.roots,
        "excludes": args.excludes,
        "authors": args.authors,
        "date_spec": args.date_spec,
        "log_options": shlex.join(passthrough),
        "json_output": args.json_output,
        "files": args.files,
        "color": args.color,
        "timeout_s": args.timeout_s,
        "show_header": args.show_header,
        "jobs": jobs,
        "scan_depth": args.scan_depth,
    }
    return run(_options(parser, cli, config, default_scan_depth=2), parser)


if __name__ == "__main__":
    raise SystemExit(main())
