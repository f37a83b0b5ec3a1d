"""Grounded conversational assistant.

No conversation state is kept on the model side: every call rebuilds the
system instruction from the full trip list and profile, replays the
transcript, and lets the model use hosted web search (plus an Exa-backed
place lookup when configured). Citations from both are returned as sources.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from openai import OpenAI

from .config import Settings, get_settings
from .llm import get_client
from .models import ChatMessage, ChatReply, ChatSource, Trip, UserProfile
from .services.exa_client import ExaError, has_exa_credentials, lookup_places
from .utils import generate_id, today_iso


logger = logging.getLogger(__name__)

EMPTY_REPLY_TEXT = "I'm sorry, I couldn't process that."
FAILURE_REPLY_TEXT = (
    "I'm having trouble connecting to the compliance database. Please try again."
)

MAX_TOOL_ROUNDS = 3

WEB_SEARCH_TOOL: Dict[str, Any] = {"type": "web_search_preview"}
PLACES_TOOL: Dict[str, Any] = {
    "type": "function",
    "name": "lookup_places",
    "description": (
        "Find real-world places such as embassies, consulates, tax offices, "
        "immigration offices or coworking spaces in a given city or country."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": "What to look for, e.g. 'Spanish consulate'"},
            "location": {"type": "string", "description": "City or country to search in"},
        },
        "required": ["query", "location"],
        "additionalProperties": False,
    },
    "strict": True,
}


def build_system_instruction(
    trips: List[Trip], profile: Optional[UserProfile], today: Optional[date] = None
) -> str:
    profile_context = ""
    if profile:
        profile_context = f"""
    User Profile:
    - Nationality: {profile.nationality}
    - Location: {profile.current_location}
    - Goals: {', '.join(profile.travel_goals)}
    """
    trips_json = json.dumps([trip.to_dict() for trip in trips])
    return f"""
    You are ResiSync, a highly knowledgeable AI legal companion for digital nomads.
    You help users navigate complex visa rules (Schengen 90/180, US SPT, UK SRT) and tax residency laws.

    Current User Context:
    - Date: {today_iso(today)}
    - Trips Planned: {trips_json}
    {profile_context}
    Guidelines:
    - ALWAYS cross-reference the user's "Trips Planned" AND "User Profile" (Nationality is critical for visa rules).
    - Use web search to find the latest visa requirements, income thresholds, and tax treaty details. THIS IS CRITICAL.
    - If explaining a legal rule, YOU MUST VERIFY it with web search to ensure it is current.
    - Use the place lookup tool if the user asks for locations (embassies, offices).
    - Be concise, professional, but empathetic.
    - Format response in clean Markdown (use **bold** for key terms, bullet points for steps).
    - Warn about risks (e.g., "You are close to 183 days in Spain").
    - Do not give binding legal advice; always suggest consulting a professional.
    """


def history_to_input(history: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Convert transcript turns into Responses API input messages.

    Accepts ``{"role", "text"}`` dicts as well as ``{"role", "parts": [{"text"}]}``.
    """

    items: List[Dict[str, str]] = []
    for turn in history:
        text = turn.get("text")
        if text is None:
            text = "".join(part.get("text", "") for part in turn.get("parts", []))
        if not text:
            continue
        role = "assistant" if turn.get("role") in ("model", "assistant") else "user"
        items.append({"role": role, "content": text})
    return items


def extract_sources(response: Any) -> List[ChatSource]:
    sources: List[ChatSource] = []
    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", None) != "message":
            continue
        for part in getattr(item, "content", None) or []:
            for annotation in getattr(part, "annotations", None) or []:
                if getattr(annotation, "type", None) != "url_citation":
                    continue
                uri = getattr(annotation, "url", None)
                if uri:
                    sources.append(ChatSource(title=getattr(annotation, "title", None) or uri, uri=uri))
    return sources


def _dedupe(sources: List[ChatSource]) -> List[ChatSource]:
    seen = set()
    unique: List[ChatSource] = []
    for source in sources:
        if source.uri in seen:
            continue
        seen.add(source.uri)
        unique.append(source)
    return unique


def _place_calls(response: Any) -> List[Any]:
    return [
        item
        for item in getattr(response, "output", None) or []
        if getattr(item, "type", None) == "function_call" and item.name == PLACES_TOOL["name"]
    ]


def _run_place_lookups(response: Any) -> tuple[List[Dict[str, str]], List[ChatSource]]:
    outputs: List[Dict[str, str]] = []
    sources: List[ChatSource] = []
    for item in _place_calls(response):
        try:
            args = json.loads(item.arguments)
            places = lookup_places(args["query"], args["location"])
        except (ExaError, KeyError, json.JSONDecodeError) as exc:
            logger.warning("Place lookup failed: %s", exc)
            places = []
        sources.extend(ChatSource(title=p["title"], uri=p["url"]) for p in places)
        outputs.append(
            {
                "type": "function_call_output",
                "call_id": item.call_id,
                "output": json.dumps(places),
            }
        )
    return outputs, sources


def send_chat_message(
    message: str,
    history: List[Dict[str, Any]],
    trips: List[Trip],
    profile: Optional[UserProfile],
    *,
    client: Optional[OpenAI] = None,
    settings: Optional[Settings] = None,
    today: Optional[date] = None,
) -> ChatReply:
    settings = settings or get_settings()
    instructions = build_system_instruction(trips, profile, today)
    tools = [WEB_SEARCH_TOOL]
    if has_exa_credentials():
        tools.append(PLACES_TOOL)

    try:
        client = client or get_client()
        response = client.responses.create(
            model=settings.chat_model,
            instructions=instructions,
            input=history_to_input(history) + [{"role": "user", "content": message}],
            tools=tools,
        )
        sources: List[ChatSource] = []
        for _ in range(MAX_TOOL_ROUNDS):
            outputs, place_sources = _run_place_lookups(response)
            if not outputs:
                break
            sources.extend(extract_sources(response) + place_sources)
            response = client.responses.create(
                model=settings.chat_model,
                instructions=instructions,
                previous_response_id=response.id,
                input=outputs,
                tools=tools,
            )
        else:
            if _place_calls(response):
                logger.warning("Chat still requesting place lookups after %s rounds", MAX_TOOL_ROUNDS)
        sources = _dedupe(sources + extract_sources(response))
        return ChatReply(
            text=(response.output_text or "").strip() or EMPTY_REPLY_TEXT,
            sources=sources or None,
        )
    except Exception as exc:  # noqa: BLE001
        logger.error("Chat error: %s", exc)
        return ChatReply(text=FAILURE_REPLY_TEXT)


class ChatTranscript:
    """Append-only chat history for one running process."""

    def __init__(self) -> None:
        self._messages: List[ChatMessage] = []
        self._lock = threading.Lock()

    def append(self, role: str, text: str, sources: Optional[List[ChatSource]] = None) -> ChatMessage:
        message = ChatMessage(
            id=generate_id(),
            role=role,
            text=text,
            timestamp=datetime.now(),
            sources=sources,
        )
        with self._lock:
            self._messages.append(message)
        return message

    def messages(self) -> List[ChatMessage]:
        with self._lock:
            return list(self._messages)

    def history(self) -> List[Dict[str, str]]:
        return [{"role": m.role, "text": m.text} for m in self.messages()]

    def clear(self) -> None:
        with self._lock:
            self._messages.clear()
