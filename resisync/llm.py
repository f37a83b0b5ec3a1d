"""OpenAI client helpers and the tiered model fallback chain."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar

from openai import OpenAI

from .config import get_settings


logger = logging.getLogger(__name__)

T = TypeVar("T")

_client: Optional[OpenAI] = None


class LLMResponseError(RuntimeError):
    """Raised when a model returns empty or unparseable output."""


class AllTiersFailedError(RuntimeError):
    """Raised by ``run_tiers`` when every configured tier has failed."""

    def __init__(self, errors: List[Exception]):
        self.errors = errors
        super().__init__(f"All {len(errors)} model tier(s) failed")


@dataclass(frozen=True)
class ModelTier:
    """One model configuration in a fallback chain."""

    name: str
    model: str
    reasoning_effort: Optional[str] = None


def get_client() -> OpenAI:
    """Provide a singleton OpenAI client.

    SDK-level retries are disabled; fallback between tiers is the only retry.
    """

    global _client
    if _client is None:
        settings = get_settings()
        if not settings.openai_api_key:
            raise ValueError(
                "Please set OPENAI_API_KEY in the environment (e.g., via a .env file)."
            )
        _client = OpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.request_timeout,
            max_retries=0,
        )
    return _client


def llm_call(
    prompt: str,
    model: Optional[str] = None,
    max_output_tokens: Optional[int] = None,
    client: Optional[OpenAI] = None,
) -> str:
    """Call the Responses API for plain text; returns "" when the model is silent."""

    settings = get_settings()
    client = client or get_client()
    response = client.responses.create(
        model=model or settings.fast_model,
        input=prompt,
        max_output_tokens=max_output_tokens or settings.max_output_tokens,
    )
    return (response.output_text or "").strip()


def structured_call(
    prompt: str,
    schema_name: str,
    schema: Dict[str, Any],
    model: str,
    reasoning_effort: Optional[str] = None,
    client: Optional[OpenAI] = None,
) -> Dict[str, Any]:
    """Request JSON constrained to ``schema`` and return the decoded object."""

    settings = get_settings()
    client = client or get_client()
    kwargs: Dict[str, Any] = {
        "model": model,
        "input": prompt,
        "max_output_tokens": settings.max_output_tokens,
        "text": {
            "format": {
                "type": "json_schema",
                "name": schema_name,
                "schema": schema,
                "strict": True,
            }
        },
    }
    if reasoning_effort:
        kwargs["reasoning"] = {"effort": reasoning_effort}
    response = client.responses.create(**kwargs)
    text = (response.output_text or "").strip()
    if not text:
        raise LLMResponseError(f"No response from {model}")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise LLMResponseError(f"{model} returned invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise LLMResponseError(f"{model} returned {type(data).__name__}, expected an object")
    return data


def run_tiers(
    tiers: Sequence[ModelTier],
    attempt: Callable[[ModelTier], T],
    on_retry: Optional[Callable[[], None]] = None,
) -> T:
    """Try ``attempt`` against each tier in order, once per tier.

    ``on_retry`` fires before every tier after the first.
    """

    errors: List[Exception] = []
    for index, tier in enumerate(tiers):
        if index > 0 and on_retry is not None:
            try:
                on_retry()
            except Exception:  # noqa: BLE001
                logger.exception("Retry notification hook failed")
        try:
            return attempt(tier)
        except Exception as exc:  # noqa: BLE001
            errors.append(exc)
            if index + 1 < len(tiers):
                logger.warning(
                    "%s tier (%s) failed, switching to fallback model: %s",
                    tier.name,
                    tier.model,
                    exc,
                )
            else:
                logger.error("%s tier (%s) failed: %s", tier.name, tier.model, exc)
    raise AllTiersFailedError(errors)
