"""Schengen membership lookups and trip entry validation."""

from __future__ import annotations

from typing import Any, Dict, Optional

from .models import Trip, TripDocument
from .utils import generate_id, parse_iso_date

SCHENGEN_LIMIT_DAYS = 90
SCHENGEN_WINDOW_DAYS = 180
TAX_RESIDENCY_THRESHOLD_DAYS = 183

SCHENGEN_COUNTRIES = [
    "Austria",
    "Belgium",
    "Bulgaria",
    "Croatia",
    "Czech Republic",
    "Denmark",
    "Estonia",
    "Finland",
    "France",
    "Germany",
    "Greece",
    "Hungary",
    "Iceland",
    "Italy",
    "Latvia",
    "Liechtenstein",
    "Lithuania",
    "Luxembourg",
    "Malta",
    "Netherlands",
    "Norway",
    "Poland",
    "Portugal",
    "Romania",
    "Slovakia",
    "Slovenia",
    "Spain",
    "Sweden",
    "Switzerland",
]

# Common nomad destinations, used when a trip carries no ISO code.
COUNTRY_CODES: Dict[str, str] = {
    "spain": "ES",
    "uk": "GB",
    "united kingdom": "GB",
    "france": "FR",
    "germany": "DE",
    "italy": "IT",
    "portugal": "PT",
    "usa": "US",
    "united states": "US",
    "america": "US",
    "japan": "JP",
    "thailand": "TH",
    "indonesia": "ID",
    "bali": "ID",
    "mexico": "MX",
    "canada": "CA",
    "australia": "AU",
    "croatia": "HR",
    "greece": "GR",
    "netherlands": "NL",
    "switzerland": "CH",
    "ireland": "IE",
    "vietnam": "VN",
    "singapore": "SG",
    "malaysia": "MY",
    "china": "CN",
    "india": "IN",
    "brazil": "BR",
    "argentina": "AR",
    "colombia": "CO",
}


class TripValidationError(ValueError):
    """Raised when a trip entry is missing fields or has an inverted range."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))


def suggest_is_schengen(country: str) -> bool:
    """Guess membership from a free-typed country name ("Lisbon, Portugal" counts)."""

    lowered = (country or "").lower()
    return any(name.lower() in lowered for name in SCHENGEN_COUNTRIES)


def resolve_country_code(trip: Trip) -> Optional[str]:
    if trip.country_code:
        return trip.country_code.upper()
    return COUNTRY_CODES.get(trip.country.strip().lower())


def validate_trip_entry(form: Dict[str, Any]) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    country = (form.get("country") or "").strip()
    start = form.get("startDate") or ""
    end = form.get("endDate") or ""
    if not country:
        errors["country"] = "Country is required"
    if not start:
        errors["startDate"] = "Start date is required"
    if not end:
        errors["endDate"] = "End date is required"
    parsed = {}
    for key, value in (("startDate", start), ("endDate", end)):
        if not value:
            continue
        try:
            parsed[key] = parse_iso_date(value)
        except ValueError as exc:
            errors[key] = str(exc)
    if len(parsed) == 2 and parsed["startDate"] > parsed["endDate"]:
        errors["endDate"] = "End date cannot be before start date"
    return errors


def build_trip(form: Dict[str, Any], *, is_simulation: bool = False) -> Trip:
    """Validate a trip entry form and turn it into a new ``Trip``.

    ``isSchengen`` is auto-suggested from the country name unless the form
    sets it explicitly.
    """

    errors = validate_trip_entry(form)
    if errors:
        raise TripValidationError(errors)
    country = form["country"].strip()
    is_schengen = form.get("isSchengen")
    if is_schengen is None:
        is_schengen = suggest_is_schengen(country)
    document = form.get("document")
    return Trip(
        id=generate_id(),
        country=country,
        start_date=form["startDate"],
        end_date=form["endDate"],
        is_schengen=bool(is_schengen),
        country_code=(form.get("countryCode") or None),
        is_simulation=is_simulation,
        notes=form.get("notes") or None,
        document=TripDocument.from_dict(document) if document else None,
    )
