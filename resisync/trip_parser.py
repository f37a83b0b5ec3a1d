"""Free-text trip extraction (booking emails, itineraries, notes)."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from openai import OpenAI

from .config import Settings, get_settings
from .llm import structured_call
from .schemas import TRIP_PARSE_SCHEMA, validate_parsed_trip


logger = logging.getLogger(__name__)


def build_parse_prompt(text: str) -> str:
    return f"""
    Extract travel details from this text (email, booking, etc).
    Return a JSON object with:
    - country (string)
    - countryCode (2-letter ISO code, e.g. "ES", "FR", "JP")
    - startDate (YYYY-MM-DD)
    - endDate (YYYY-MM-DD)
    - isSchengen (boolean)

    If a date is missing, make a best guess based on context or leave null.

    Text: "{text}"
    """


def parse_travel_text(
    text: str,
    *,
    client: Optional[OpenAI] = None,
    settings: Optional[Settings] = None,
) -> Dict[str, Any]:
    """Return the trip fields found in ``text``; ``{}`` when nothing could be read."""

    if not text or not text.strip():
        return {}
    settings = settings or get_settings()
    try:
        data = structured_call(
            build_parse_prompt(text),
            "parsed_trip",
            TRIP_PARSE_SCHEMA,
            model=settings.fast_model,
            client=client,
        )
        return validate_parsed_trip(data)
    except Exception as exc:  # noqa: BLE001
        logger.error("Parsing error: %s", exc)
        return {}


def apply_parsed_trip(form: Dict[str, Any], parsed: Dict[str, Any]) -> Dict[str, Any]:
    """Merge a parse result into a pending trip form.

    Without an extracted country the form comes back untouched.
    """

    if not parsed.get("country"):
        return form
    merged = {**form, **parsed}
    merged["isSchengen"] = parsed["isSchengen"] if "isSchengen" in parsed else True
    return merged
