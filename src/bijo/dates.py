from __future__ import annotations

import re
from datetime import date, datetime, timedelta

_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")


def _local_today() -> date:
    return datetime.now().astimezone().date()


def today() -> str:
    """Current local calendar date as YYYY-MM-DD."""
    return _local_today().isoformat()


def days_ago(n: int) -> str:
    if n < 0:
        raise ValueError(f"days_ago expects a non-negative day count, got {n}")
    return (_local_today() - timedelta(days=n)).isoformat()


def _is_leap(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def is_valid_date(s: str) -> bool:
    """
    True iff s is fixed-width YYYY-MM-DD and names a real calendar date
    (proleptic Gregorian leap years).
    """
    if not isinstance(s, str) or not _DATE_RE.fullmatch(s):
        return False
    # \d also matches non-ASCII digits
    if not s.replace("-", "").isascii():
        return False

    year, month, day = int(s[0:4]), int(s[5:7]), int(s[8:10])
    # datetime.date starts at year 1
    if year < 1 or not 1 <= month <= 12:
        return False
    month_days = [31, 29 if _is_leap(year) else 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31]
    return 1 <= day <= month_days[month - 1]


def _to_date(s: str) -> date:
    if not is_valid_date(s):
        raise ValueError(f"not a valid YYYY-MM-DD date: {s!r}")
    return date.fromisoformat(s)


def days_between(a: str, b: str) -> int:
    return abs((_to_date(b) - _to_date(a)).days)


def last_n_days(n: int) -> list[str]:
    """Oldest first, today last."""
    return [days_ago(i) for i in range(n - 1, -1, -1)]


def format_for_display(s: str) -> str:
    """'2024-01-15' -> 'Monday, January 15, 2024'."""
    d = _to_date(s)
    return f"{d.strftime('%A')}, {d.strftime('%B')} {d.day}, {d.year}"


def parse_day(value: str | None) -> str:
    """
    Parse a friendly day reference into YYYY-MM-DD.
    Accepts:
      - None / blank / "today"
      - "yesterday"
      - "3 days ago", "1 day ago"
      - "2024-01-15"
    Raises ValueError for anything else.
    """
    if not value or not value.strip():
        return today()

    s = value.strip().lower()
    if s == "today":
        return today()
    if s == "yesterday":
        return days_ago(1)

    m = re.fullmatch(r"(\d+)\s*(day|days)\s*ago", s)
    if m:
        return days_ago(int(m.group(1)))

    if is_valid_date(s):
        return s

    raise ValueError(
        f"Could not parse date {value!r}. Try '2024-01-15', 'today', 'yesterday' or '3 days ago'."
    )
