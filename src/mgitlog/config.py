from __future__ import annotations

import dataclasses
import json
import os
from collections.abc import Mapping
from pathlib import Path

from .git import DEFAULT_TIMEOUT_S
from .hooks import AFTER_ENV, BEFORE_ENV

CONFIG_ENV = "MGITLOG_CONFIG"
DEFAULT_JOBS = 4


class ConfigError(ValueError):
    pass


@dataclasses.dataclass(frozen=True)
class Options:
    roots: tuple[Path, ...] = ()
    excludes: tuple[str, ...] = ()
    authors: tuple[str, ...] = ()
    date_spec: str = ""
    log_options: str = ""
    json_output: bool = False
    files: bool = False
    color: bool = False
    show_header: bool = True
    jobs: int = 0  # 0 = sequential
    scan_depth: int = 1
    timeout_s: int = DEFAULT_TIMEOUT_S
    before_cmd: str = ""
    after_cmd: str = ""


def default_config_path(environ: Mapping[str, str] | None = None) -> Path | None:
    env = os.environ if environ is None else environ
    p = (env.get(CONFIG_ENV) or "").strip()
    if p:
        return Path(p).expanduser()
    candidate = Path.home() / ".config" / "mgitlog" / "config.json"
    return candidate if candidate.exists() else None


def load_config(config_path: Path | None) -> dict:
    if config_path is None:
        return {}
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read config {config_path}: {e}") from None
    if not isinstance(data, dict):
        raise ConfigError(f"Config {config_path} must contain a JSON object")
    return data


def _str_list(config: dict, key: str) -> list[str]:
    value = config.get(key) or []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise ConfigError(f"Config key {key!r} must be a list of strings")
    return [str(v).strip() for v in value if str(v).strip()]


def _int(config: dict, key: str, default: int) -> int:
    value = config.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Config key {key!r} must be an integer") from None


def merge_options(
    cli: Mapping[str, object],
    config: dict,
    environ: Mapping[str, str] | None = None,
    *,
    isatty: bool = False,
    default_scan_depth: int = 1,
) -> Options:
    """
    CLI values win over the environment, which wins over the config file.
    `cli` holds only what was given on the command line (None/empty = unset).
    """
    env = os.environ if environ is None else environ

    def pick(key: str, default: object) -> object:
        v = cli.get(key)
        return default if v is None else v

    roots = list(cli.get("roots") or []) or [Path(p).expanduser() for p in _str_list(config, "roots")]
    excludes = _str_list(config, "excludes") + list(cli.get("excludes") or [])
    authors = list(cli.get("authors") or []) or _str_list(config, "authors")

    before_cmd = env.get(BEFORE_ENV) or str(config.get("before_cmd") or "")
    after_cmd = env.get(AFTER_ENV) or str(config.get("after_cmd") or "")

    color = cli.get("color")
    if color is None:
        color = bool(config["color"]) if "color" in config else isatty

    timeout_s = int(pick("timeout_s", _int(config, "timeout_s", DEFAULT_TIMEOUT_S)))
    if timeout_s <= 0:
        raise ConfigError("timeout must be a positive number of seconds")
    jobs = int(pick("jobs", 0))
    scan_depth = int(pick("scan_depth", _int(config, "scan_depth", default_scan_depth)))
    if scan_depth < 0:
        raise ConfigError("scan depth must not be negative")

    return Options(
        roots=tuple(Path(r) for r in roots),
        excludes=tuple(e for e in excludes if e),
        authors=tuple(a for a in authors if a),
        date_spec=str(cli.get("date_spec") or ""),
        log_options=str(cli.get("log_options") or ""),
        json_output=bool(cli.get("json_output")),
        files=bool(cli.get("files")),
        color=bool(color),
        show_header=bool(pick("show_header", True)),
        jobs=max(0, jobs),
        scan_depth=scan_depth,
        timeout_s=timeout_s,
        before_cmd=before_cmd.strip(),
        after_cmd=after_cmd.strip(),
    )


def config_jobs(config: dict) -> int:
    return max(1, _int(config, "jobs", DEFAULT_JOBS))
