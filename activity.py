"""Hour-of-day and day-of-week activity buckets."""

from __future__ import annotations

from datetime import datetime

WEEKDAYS: tuple[str, ...] = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def empty_hourly_activity() -> list[dict]:
    """Return 24 zeroed hour buckets, index == hour."""
    return [{"hour": hour, "count": 0} for hour in range(24)]


def empty_weekly_activity() -> list[dict]:
    """Return 7 zeroed day buckets in Mon..Sun order."""
    return [{"day": day, "count": 0} for day in WEEKDAYS]


def weekday_label(ts: datetime) -> str:
    """Return the short weekday label ("Mon".."Sun") for *ts*."""
    return WEEKDAYS[ts.weekday()]  # 0=Monday


def record_activity(hourly: list[dict], weekly: list[dict], ts: datetime) -> None:
    """Increment the hour and weekday buckets matching *ts*.

    Args:
        hourly: 24 hour buckets as built by ``empty_hourly_activity``.
        weekly: 7 day buckets as built by ``empty_weekly_activity``.
        ts: Local (naive) message timestamp.
    """
    hourly[ts.hour]["count"] += 1
    weekly[ts.weekday()]["count"] += 1
