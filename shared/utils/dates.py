"""Date helpers shared by modules and background jobs.

All persisted timestamps are naive UTC datetimes.
"""

import datetime
import re
from typing import Any, Optional

# Graph returns seven fractional digits; fromisoformat accepts at most six
_EXTRA_FRACTION = re.compile(r"(\.\d{6})\d+")


def utcnow() -> datetime.datetime:
    """Current UTC time without tzinfo, second precision."""
    return (
        datetime.datetime.now(datetime.timezone.utc)
        .replace(tzinfo=None)
        .replace(microsecond=0)
    )


def add_years(value: datetime.datetime, years: int) -> datetime.datetime:
    """Add calendar years, mapping Feb 29 to Feb 28 on non-leap targets."""
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        return value.replace(year=value.year + years, day=28)


def parse_datetime(value: Any) -> Optional[datetime.datetime]:
    """Coerce a datetime, date or ISO string to a naive UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time())
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _EXTRA_FRACTION.sub(r"\1", text)
    try:
        return parse_datetime(datetime.datetime.fromisoformat(text))
    except ValueError:
        return None


def isoformat(value: Any) -> Any:
    """Render date values as ISO strings, pass everything else through."""
    if isinstance(value, (datetime.datetime, datetime.date)):
        return value.isoformat()
    return value


def format_time_until(minutes: int) -> str:
    """Human readable lead time, e.g. ``"2 hours"``."""
    minutes = max(0, int(minutes))
    if minutes < 60:
        return _plural(minutes, "minute")
    if minutes < 1440:
        return _plural(minutes // 60, "hour")
    if minutes < 10080:
        return _plural(minutes // 1440, "day")
    return _plural(minutes // 10080, "week")


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"
