"""Read-only views over the trip set used by dashboard widgets."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from .models import Trip
from .schengen import TAX_RESIDENCY_THRESHOLD_DAYS, resolve_country_code
from .utils import inclusive_day_count, parse_iso_date


@dataclass
class CountryDays:
    country: str
    real_days: int = 0
    sim_days: int = 0
    country_code: Optional[str] = None

    @property
    def total_days(self) -> int:
        return self.real_days + self.sim_days

    def to_dict(self) -> Dict[str, Any]:
        threshold = TAX_RESIDENCY_THRESHOLD_DAYS
        real_pct = min(self.real_days / threshold * 100, 100.0)
        sim_pct = min(self.sim_days / threshold * 100, 100.0 - real_pct)
        return {
            "country": self.country,
            "countryCode": self.country_code,
            "realDays": self.real_days,
            "simDays": self.sim_days,
            "totalDays": self.total_days,
            "threshold": threshold,
            "realPercentage": round(real_pct, 1),
            "simPercentage": round(sim_pct, 1),
        }


def tax_tracker(trips: List[Trip], year: Optional[int] = None, limit: int = 4) -> List[CountryDays]:
    """Days per country for trips touching ``year``, busiest countries first.

    A trip counts in full when either its start or its end falls in the year.
    """

    year = year or date.today().year
    stats: Dict[str, CountryDays] = {}
    for trip in trips:
        start = parse_iso_date(trip.start_date)
        end = parse_iso_date(trip.end_date)
        if start.year != year and end.year != year:
            continue
        days = inclusive_day_count(trip.start_date, trip.end_date)
        entry = stats.setdefault(trip.country, CountryDays(country=trip.country))
        if trip.is_simulation:
            entry.sim_days += days
        else:
            entry.real_days += days
        code = resolve_country_code(trip)
        if code:
            entry.country_code = code
    ranked = sorted(stats.values(), key=lambda c: c.total_days, reverse=True)
    return ranked[:limit]


def focus_trip(trips: List[Trip], today: Optional[date] = None) -> Optional[Trip]:
    """The trip happening today, else the next upcoming one, else the latest."""

    if not trips:
        return None
    today = today or date.today()
    ordered = sorted(trips, key=lambda t: t.start_date)
    for trip in ordered:
        if parse_iso_date(trip.start_date) <= today <= parse_iso_date(trip.end_date):
            return trip
    for trip in ordered:
        if parse_iso_date(trip.start_date) > today:
            return trip
    return ordered[-1]
