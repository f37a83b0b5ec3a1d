"""Per-destination briefs with a process-scoped cache."""

from __future__ import annotations

import logging
import threading
from typing import Dict, Optional, Tuple

from openai import OpenAI

from .config import Settings, get_settings
from .llm import llm_call
from .models import UserProfile


logger = logging.getLogger(__name__)

NO_INSIGHTS_TEXT = "No insights available."
UNAVAILABLE_TEXT = "Unable to fetch insights."


class InsightCache:
    """In-memory map of (country, nationality) to brief text.

    Lives as long as the process that owns it; nothing is persisted or expired.
    """

    def __init__(self) -> None:
        self._entries: Dict[Tuple[str, str], str] = {}
        self._lock = threading.Lock()

    @staticmethod
    def key(country: str, nationality: str) -> Tuple[str, str]:
        return country.strip().lower(), nationality.strip().lower()

    def get(self, country: str, nationality: str) -> Optional[str]:
        with self._lock:
            return self._entries.get(self.key(country, nationality))

    def put(self, country: str, nationality: str, text: str) -> None:
        with self._lock:
            self._entries[self.key(country, nationality)] = text

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def build_insights_prompt(country: str, profile: UserProfile) -> str:
    return f"""
    Provide a very concise executive brief for a digital nomad traveling to {country}.

    User Context:
    - Nationality: {profile.nationality}
    - Goals: {', '.join(profile.travel_goals)}

    Include:
    1. Visa Status (Do they need one?)
    2. Tax Warning (Briefly)
    3. Nomad Hotspots & Local Vibe
    4. One "Pro Tip" for logistics (SIM card, sockets, or transport).

    Format as a short, punchy markdown list. No intro/outro.
    """


def get_destination_insights(
    country: str,
    profile: UserProfile,
    cache: InsightCache,
    *,
    client: Optional[OpenAI] = None,
    settings: Optional[Settings] = None,
) -> str:
    cached = cache.get(country, profile.nationality)
    if cached is not None:
        return cached

    settings = settings or get_settings()
    try:
        text = llm_call(
            build_insights_prompt(country, profile),
            model=settings.fast_model,
            client=client,
        )
    except Exception as exc:  # noqa: BLE001
        logger.warning("Destination insights for %s failed: %s", country, exc)
        return UNAVAILABLE_TEXT

    text = text or NO_INSIGHTS_TEXT
    cache.put(country, profile.nationality, text)
    return text
