"""Durable trip/profile storage and the in-memory simulation overlay."""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import Trip, TripDocument, UserProfile


logger = logging.getLogger(__name__)

TRIPS_KEY = "resisync_trips"
PROFILE_KEY = "resisync_profile"

DEMO_TRIPS: List[Dict[str, Any]] = [
    {
        "id": "1",
        "country": "Spain",
        "countryCode": "ES",
        "startDate": "2023-10-01",
        "endDate": "2023-11-15",
        "isSchengen": True,
        "notes": "Client meetings in Madrid",
    },
    {
        "id": "2",
        "country": "UK",
        "countryCode": "GB",
        "startDate": "2023-11-16",
        "endDate": "2023-12-20",
        "isSchengen": False,
        "notes": "Visiting family",
    },
    {
        "id": "3",
        "country": "France",
        "countryCode": "FR",
        "startDate": "2024-01-05",
        "endDate": "2024-02-05",
        "isSchengen": True,
    },
]


class TripNotFoundError(KeyError):
    """Raised when a trip id is unknown to the store."""


class ProfileExistsError(ValueError):
    """Raised when onboarding is attempted a second time."""


class JsonKeyValueStore:
    """A tiny key-value store backed by one JSON file.

    Writes replace the file atomically so a crash never leaves half a document.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable storage file %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._read_all().get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._read_all()
            data[key] = value
            self._write(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._read_all()
            if key not in data:
                return
            del data[key]
            self._write(data)


class TripStore:
    """Real (non-hypothetical) trips, loaded once and saved on every change."""

    def __init__(self, kv: JsonKeyValueStore, seed_demo: bool = False):
        self._kv = kv
        self._lock = threading.Lock()
        saved = kv.get(TRIPS_KEY)
        if saved is None:
            saved = DEMO_TRIPS if seed_demo else []
        try:
            self._trips = [Trip.from_dict(item) for item in saved]
        except (KeyError, TypeError) as exc:
            logger.warning("Stored trips are malformed, starting empty: %s", exc)
            self._trips = [Trip.from_dict(item) for item in DEMO_TRIPS] if seed_demo else []

    def _save(self) -> None:
        self._kv.set(TRIPS_KEY, [trip.to_dict() for trip in self._trips])

    def list(self) -> List[Trip]:
        with self._lock:
            return list(self._trips)

    def get(self, trip_id: str) -> Trip:
        with self._lock:
            for trip in self._trips:
                if trip.id == trip_id:
                    return trip
        raise TripNotFoundError(trip_id)

    def __contains__(self, trip_id: str) -> bool:
        with self._lock:
            return any(trip.id == trip_id for trip in self._trips)

    def add(self, trip: Trip) -> Trip:
        with self._lock:
            self._trips.append(trip)
            self._save()
        logger.info("Added trip %s to %s", trip.id, trip.country)
        return trip

    def delete(self, trip_id: str) -> None:
        with self._lock:
            remaining = [trip for trip in self._trips if trip.id != trip_id]
            if len(remaining) == len(self._trips):
                raise TripNotFoundError(trip_id)
            self._trips = remaining
            self._save()
        logger.info("Deleted trip %s", trip_id)

    def attach_document(self, trip_id: str, document: TripDocument) -> Trip:
        with self._lock:
            for trip in self._trips:
                if trip.id == trip_id:
                    trip.document = document
                    self._save()
                    return trip
        raise TripNotFoundError(trip_id)

    def with_documents(self) -> List[Trip]:
        return [trip for trip in self.list() if trip.document is not None]


class ProfileStore:
    """The single onboarding profile; there is no edit path once saved."""

    def __init__(self, kv: JsonKeyValueStore):
        self._kv = kv
        saved = kv.get(PROFILE_KEY)
        self._profile: Optional[UserProfile] = None
        if saved:
            try:
                self._profile = UserProfile.from_dict(saved)
            except (KeyError, TypeError) as exc:
                logger.warning("Stored profile is malformed, ignoring it: %s", exc)

    def get(self) -> Optional[UserProfile]:
        return self._profile

    def create(self, profile: UserProfile) -> UserProfile:
        if self._profile is not None:
            raise ProfileExistsError("Profile already exists")
        self._profile = profile
        self._kv.set(PROFILE_KEY, profile.to_dict())
        logger.info("Saved profile for %s passport holder", profile.nationality)
        return profile

    def reset(self) -> None:
        self._profile = None
        self._kv.delete(PROFILE_KEY)


class SimulationOverlay:
    """Hypothetical trips layered over the real ones for what-if analysis."""

    def __init__(self) -> None:
        self.active = False
        self._trips: List[Trip] = []
        self._lock = threading.Lock()

    def set_active(self, active: bool) -> None:
        with self._lock:
            if self.active and not active:
                self._trips.clear()
            self.active = active

    def list(self) -> List[Trip]:
        with self._lock:
            return list(self._trips)

    def add(self, trip: Trip) -> Trip:
        trip.is_simulation = True
        with self._lock:
            self._trips.append(trip)
        return trip

    def remove(self, trip_id: str) -> bool:
        with self._lock:
            before = len(self._trips)
            self._trips = [trip for trip in self._trips if trip.id != trip_id]
            return len(self._trips) != before

    def merged(self, trips: List[Trip]) -> List[Trip]:
        """Real trips followed by simulated ones while simulation mode is on."""

        if not self.active:
            return list(trips)
        return list(trips) + self.list()
