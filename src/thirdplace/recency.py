"""Recency model: content age and the decay multiplier derived from it."""

from __future__ import annotations

from datetime import UTC, datetime

from thirdplace.models import Timeframe

TIMEFRAME_DAYS: dict[Timeframe, int] = {
    Timeframe.DAY: 1,
    Timeframe.WEEK: 7,
    Timeframe.MONTH: 30,
    Timeframe.ALL: 365,
}

# Undated records are treated as old rather than new.
MISSING_AGE_DAYS = 365.0

MIN_DECAY = 0.1

_SECONDS_PER_DAY = 86400.0


def timeframe_days(timeframe: Timeframe | str) -> int:
    return TIMEFRAME_DAYS[Timeframe(timeframe)]


def _aware(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=UTC)


def age_in_days(timestamp: datetime | None, now: datetime) -> float:
    """Days between *timestamp* and *now*; future timestamps count as age 0."""
    if timestamp is None:
        return MISSING_AGE_DAYS
    delta = _aware(now) - _aware(timestamp)
    return max(0.0, delta.total_seconds() / _SECONDS_PER_DAY)


def decay_factor(age_days: float, window_days: float, stretch: float = 1.0) -> float:
    """Linear decay over ``window_days * stretch``, floored at ``MIN_DECAY``.

    >>> decay_factor(0, 7)
    1.0
    >>> decay_factor(14, 7)
    0.1
    """
    return max(MIN_DECAY, 1 - age_days / (window_days * stretch))


def format_relative_age(timestamp: datetime | None, now: datetime) -> str:
    if timestamp is None:
        return ""
    seconds = int((_aware(now) - _aware(timestamp)).total_seconds())
    if seconds < 60:
        return "Just now"
    if seconds < 3600:
        return f"{seconds // 60} minutes ago"
    if seconds < 86400:
        return f"{seconds // 3600} hours ago"
    if seconds < 604800:
        return f"{seconds // 86400} days ago"
    if seconds < 2592000:
        return f"{seconds // 604800} weeks ago"
    return _aware(timestamp).date().isoformat()
