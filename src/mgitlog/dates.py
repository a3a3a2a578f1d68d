from __future__ import annotations

import dataclasses
import datetime as dt
import re

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_RANGE_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})\.\.(\d{4}-\d{2}-\d{2})?$")

SYMBOLS = ("today", "yesterday", "week", "lastweek")


class InvalidDateSpec(ValueError):
    pass


@dataclasses.dataclass(frozen=True)
class DateWindow:
    start: dt.date  # inclusive
    end: dt.date  # inclusive

    @property
    def start_iso(self) -> str:
        return self.start.isoformat()

    @property
    def end_iso(self) -> str:
        return self.end.isoformat()

    @property
    def label(self) -> str:
        return f"{self.start_iso}..{self.end_iso}"


def parse_date(value: str) -> dt.date:
    s = (value or "").strip()
    if not _DATE_RE.match(s):
        raise InvalidDateSpec(f"Invalid date format: {value} (expected YYYY-MM-DD)")
    try:
        return dt.date.fromisoformat(s)
    except ValueError:
        raise InvalidDateSpec(f"Invalid date: {value}") from None


def week_start(day: dt.date) -> dt.date:
    return day - dt.timedelta(days=day.weekday())


def symbolic_window(token: str, today: dt.date) -> DateWindow:
    """
    Window for one of the named ranges. Weeks always run Monday..Sunday.
    Any other token is taken as a literal day.
    """
    if token == "today":
        return DateWindow(today, today)
    if token == "yesterday":
        y = today - dt.timedelta(days=1)
        return DateWindow(y, y)
    if token == "week":
        monday = week_start(today)
        return DateWindow(monday, monday + dt.timedelta(days=6))
    if token == "lastweek":
        monday = week_start(today) - dt.timedelta(days=7)
        return DateWindow(monday, monday + dt.timedelta(days=6))
    day = parse_date(token)
    return DateWindow(day, day)


def resolve_date_window(spec: str | None, today: dt.date | None = None) -> DateWindow:
    if today is None:
        today = dt.date.today()
    s = (spec or "").strip()
    if not s:
        return symbolic_window("today", today)
    if _DATE_RE.match(s):
        day = parse_date(s)
        return DateWindow(day, day)
    m = _RANGE_RE.match(s)
    if m:
        start = parse_date(m.group(1))
        end = parse_date(m.group(2)) if m.group(2) else today
        # from > to is kept as given; git then simply matches nothing
        return DateWindow(start, end)
    if s in SYMBOLS:
        return symbolic_window(s, today)
    raise InvalidDateSpec(f"Invalid date format: {spec}")


def format_window_title(window: DateWindow) -> str:
    start_fmt = window.start.strftime("%b %d")
    end_fmt = window.end.strftime("%b %d")
    if window.start == window.end:
        return f"Git logs for {start_fmt}, {window.end.year}"
    return f"Git logs {start_fmt} - {end_fmt}, {window.end.year}"
