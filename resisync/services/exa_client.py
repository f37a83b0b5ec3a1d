"""Thin Exa API client used for place lookups (embassies, offices, coworking)."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from ..config import get_settings


class ExaError(RuntimeError):
    """Raised when the Exa API returns an error."""


def has_exa_credentials() -> bool:
    return bool(get_settings().exa_api_key)


def search(
    query: str,
    *,
    num_results: int = 5,
    search_type: str = "auto",
    timeout: Optional[float] = None,
) -> List[Dict[str, Any]]:
    """Call Exa's search endpoint and return the raw result list."""

    settings = get_settings()
    if not settings.exa_api_key:
        raise ExaError(
            "EXA_API_KEY is not configured. Set it in the environment or .env file."
        )

    payload = {
        "type": search_type,
        "query": query,
        "numResults": num_results,
        "contents": {"summary": True},
    }
    headers = {"x-api-key": settings.exa_api_key}

    try:
        response = httpx.post(
            settings.exa_search_url,
            json=payload,
            headers=headers,
            timeout=timeout or settings.request_timeout,
        )
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise ExaError(f"Exa search failed: {exc}") from exc

    results = response.json().get("results", [])
    if not isinstance(results, list):
        return []
    return results


def lookup_places(query: str, location: str, num_results: int = 5) -> List[Dict[str, str]]:
    """Find places matching ``query`` near ``location`` as title/url/summary dicts."""

    results = search(f"{query} in {location}", num_results=num_results)
    places: List[Dict[str, str]] = []
    for result in results:
        url = result.get("url")
        if not url:
            continue
        summary = result.get("summary")
        places.append(
            {
                "title": result.get("title") or url,
                "url": url,
                "summary": summary if isinstance(summary, str) else "",
            }
        )
    return places
