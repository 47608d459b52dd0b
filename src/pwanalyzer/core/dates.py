from __future__ import annotations

import datetime as dt
from typing import Iterable, List, Union

from ..models import TimeSpan


def iter_time_windows(span: TimeSpan, window_days: int) -> Iterable[TimeSpan]:
    """Yield consecutive spans of ``window_days`` days walking forward over ``span``."""
    if window_days <= 0:
        raise ValueError("window_days must be positive.")
    step = dt.timedelta(days=window_days)
    current = TimeSpan(span.start, span.start + step)
    while True:
        if current.end >= span.end:
            yield TimeSpan(current.start, span.end)
            return
        yield current
        current = TimeSpan(current.end, current.end + step)


def split_time_span(span: TimeSpan, max_days_per_part: int) -> List[TimeSpan]:
    """
    Split ``span`` into contiguous parts of at most ``max_days_per_part`` days.

    Every part except the last is exactly ``max_days_per_part`` days long and
    the last one is clipped to ``span.end``. A zero-length span yields a single
    zero-length part.
    """
    if not span.is_valid():
        raise ValueError("Time span start must be on/before its end.")
    return list(iter_time_windows(span, max_days_per_part))


def to_iso8601(value: Union[str, dt.date, dt.datetime]) -> str:
    """Return an ISO-8601 timestamp that always carries its UTC offset."""
    if isinstance(value, str):
        token = value.strip()
        if not token:
            raise ValueError("Timestamp string cannot be empty.")
        return token
    if isinstance(value, dt.datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=dt.timezone.utc)
        return value.replace(microsecond=0).isoformat()
    if isinstance(value, dt.date):
        return dt.datetime.combine(value, dt.time(0, 0), tzinfo=dt.timezone.utc).isoformat()
    raise TypeError("Timestamp must be a string, date, or datetime instance.")


def parse_iso8601(value: Union[str, dt.date, dt.datetime]) -> dt.datetime:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into an aware datetime."""
    if isinstance(value, dt.datetime):
        parsed = value
    elif isinstance(value, dt.date):
        parsed = dt.datetime.combine(value, dt.time(0, 0))
    elif isinstance(value, str):
        parsed = dt.datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    else:
        raise TypeError("Expected datetime, date, or ISO string.")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed
