"""Utility helpers."""

from datetime import date, datetime, timezone
import math
from typing import Optional
from uuid import uuid4

SECONDS_PER_DAY = 24 * 60 * 60


def _parse_iso(value: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        if "T" not in value:
            return datetime.strptime(value, "%Y-%m-%d")
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    # Aware timestamps are compared on the naive UTC clock used for plain dates.
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_iso_date(value: str) -> date:
    parsed = _parse_iso(value)
    if parsed is None:
        raise ValueError(f"Invalid date '{value}'. Expected YYYY-MM-DD.")
    return parsed.date()


def inclusive_day_count(start_date: str, end_date: str) -> int:
    """Days covered by a stay, counting both the arrival and departure day.

    Mirrors ``ceil(|end - start| / 1 day) + 1`` so reversed ranges still count
    their absolute span.
    """

    start = _parse_iso(start_date)
    end = _parse_iso(end_date)
    if start is None or end is None:
        raise ValueError(f"Invalid trip range '{start_date}'..'{end_date}'.")
    seconds = abs((end - start).total_seconds())
    return math.ceil(seconds / SECONDS_PER_DAY) + 1


def today_iso(today: Optional[date] = None) -> str:
    return (today or date.today()).isoformat()


def generate_id() -> str:
    return uuid4().hex[:12]

