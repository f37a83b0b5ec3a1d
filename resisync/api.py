"""FastAPI application exposing the ResiSync compliance dashboard backend."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from openai import OpenAI
from pydantic import BaseModel, Field

from .assistant import ChatTranscript, send_chat_message
from .compliance import analyze_compliance
from .config import Settings, get_settings
from .dashboard import focus_trip, tax_tracker
from .insights import InsightCache, get_destination_insights
from .models import TripDocument, UserProfile
from .scheduler import AnalysisCoordinator
from .schengen import TripValidationError, build_trip
from .store import (
    JsonKeyValueStore,
    ProfileExistsError,
    ProfileStore,
    SimulationOverlay,
    TripNotFoundError,
    TripStore,
)
from .trip_parser import apply_parsed_trip, parse_travel_text


ISO_DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class DocumentPayload(BaseModel):
    name: str = Field(..., min_length=1)
    contentType: Optional[str] = None
    size: Optional[int] = Field(None, ge=0)


class TripPayload(BaseModel):
    country: str = ""
    countryCode: Optional[str] = None
    startDate: Optional[str] = Field(None, pattern=ISO_DATE_PATTERN)
    endDate: Optional[str] = Field(None, pattern=ISO_DATE_PATTERN)
    isSchengen: Optional[bool] = None
    notes: Optional[str] = None
    document: Optional[DocumentPayload] = None


class ProfilePayload(BaseModel):
    nationality: str = Field(..., min_length=1)
    currentLocation: str = Field(..., min_length=1)
    travelGoals: List[str] = Field(..., min_length=1)


class SimulationPayload(BaseModel):
    active: bool


class InsightsPayload(BaseModel):
    country: str = Field(..., min_length=1)


class ParsePayload(BaseModel):
    text: str
    form: Dict[str, Any] = Field(default_factory=dict)


class ChatPayload(BaseModel):
    message: str = Field(..., min_length=1)


@dataclass
class ResiSyncState:
    """Everything one running dashboard backend owns."""

    trips: TripStore
    profiles: ProfileStore
    overlay: SimulationOverlay
    coordinator: AnalysisCoordinator
    insights: InsightCache = field(default_factory=InsightCache)
    transcript: ChatTranscript = field(default_factory=ChatTranscript)
    client: Optional[OpenAI] = None


def build_state(settings: Optional[Settings] = None, client: Optional[OpenAI] = None) -> ResiSyncState:
    settings = settings or get_settings()
    kv = JsonKeyValueStore(settings.storage_path)
    trips = TripStore(kv, seed_demo=settings.seed_demo_trips)
    profiles = ProfileStore(kv)
    overlay = SimulationOverlay()

    def analyzer(trip_list, profile, on_retry):
        return analyze_compliance(trip_list, profile, on_retry, client=client, settings=settings)

    coordinator = AnalysisCoordinator(
        trips,
        profiles,
        overlay,
        debounce_seconds=settings.debounce_seconds,
        analyzer=analyzer,
    )
    return ResiSyncState(
        trips=trips,
        profiles=profiles,
        overlay=overlay,
        coordinator=coordinator,
        client=client,
    )


def create_app(state: Optional[ResiSyncState] = None) -> FastAPI:
    settings = get_settings()
    state = state or build_state(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        state.coordinator.notify_changed()
        yield
        state.coordinator.shutdown()

    app = FastAPI(title="ResiSync", version="0.1.0", lifespan=lifespan)
    app.state.resisync = state
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def require_profile() -> UserProfile:
        profile = state.profiles.get()
        if profile is None:
            raise HTTPException(status_code=409, detail="Complete onboarding first.")
        return profile

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/trips")
    def list_trips() -> Dict[str, Any]:
        return {
            "trips": [t.to_dict() for t in state.trips.list()],
            "simulationTrips": [t.to_dict() for t in state.overlay.list()],
            "activeTrips": [t.to_dict() for t in state.coordinator.active_trips()],
        }

    @app.post("/trips", status_code=201)
    def create_trip(payload: TripPayload) -> Dict[str, Any]:
        simulated = state.overlay.active
        try:
            trip = build_trip(payload.model_dump(exclude_none=True), is_simulation=simulated)
        except TripValidationError as exc:
            raise HTTPException(status_code=422, detail={"errors": exc.errors}) from exc
        if simulated:
            state.overlay.add(trip)
        else:
            state.trips.add(trip)
        state.coordinator.notify_changed()
        return trip.to_dict()

    @app.delete("/trips/{trip_id}", status_code=204)
    def delete_trip(trip_id: str) -> None:
        if not state.overlay.remove(trip_id):
            try:
                state.trips.delete(trip_id)
            except TripNotFoundError as exc:
                raise HTTPException(status_code=404, detail="Trip not found") from exc
        state.coordinator.notify_changed()

    @app.post("/trips/{trip_id}/document")
    def attach_document(trip_id: str, payload: DocumentPayload) -> Dict[str, Any]:
        document = TripDocument(name=payload.name, content_type=payload.contentType, size=payload.size)
        try:
            trip = state.trips.attach_document(trip_id, document)
        except TripNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Trip not found") from exc
        return trip.to_dict()

    @app.get("/documents")
    def list_documents() -> Dict[str, Any]:
        return {"trips": [t.to_dict() for t in state.trips.with_documents()]}

    @app.get("/profile")
    def get_profile() -> Dict[str, Any]:
        profile = state.profiles.get()
        return {"profile": profile.to_dict() if profile else None}

    @app.post("/profile", status_code=201)
    def create_profile(payload: ProfilePayload) -> Dict[str, Any]:
        try:
            profile = state.profiles.create(UserProfile.from_dict(payload.model_dump()))
        except ProfileExistsError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        state.coordinator.notify_changed()
        return profile.to_dict()

    @app.get("/simulation")
    def get_simulation() -> Dict[str, Any]:
        return {
            "active": state.overlay.active,
            "trips": [t.to_dict() for t in state.overlay.list()],
        }

    @app.post("/simulation")
    def set_simulation(payload: SimulationPayload) -> Dict[str, Any]:
        state.overlay.set_active(payload.active)
        state.coordinator.notify_changed()
        return get_simulation()

    @app.get("/compliance")
    def get_compliance() -> Dict[str, Any]:
        return state.coordinator.snapshot()

    @app.post("/compliance/refresh")
    def refresh_compliance() -> Dict[str, Any]:
        require_profile()
        state.coordinator.run()
        return state.coordinator.snapshot()

    @app.get("/tax-tracker")
    def get_tax_tracker(year: Optional[int] = None) -> Dict[str, Any]:
        year = year or date.today().year
        rows = tax_tracker(state.coordinator.active_trips(), year=year)
        return {"year": year, "countries": [row.to_dict() for row in rows]}

    @app.get("/focus-trip")
    def get_focus_trip() -> Dict[str, Any]:
        trip = focus_trip(state.coordinator.active_trips())
        return {"trip": trip.to_dict() if trip else None}

    @app.post("/insights")
    def destination_insights(payload: InsightsPayload) -> Dict[str, str]:
        profile = require_profile()
        text = get_destination_insights(
            payload.country, profile, state.insights, client=state.client
        )
        return {"country": payload.country, "insights": text}

    @app.post("/parse")
    def parse_text(payload: ParsePayload) -> Dict[str, Any]:
        parsed = parse_travel_text(payload.text, client=state.client)
        return {"parsed": parsed, "form": apply_parsed_trip(payload.form, parsed)}

    @app.get("/chat")
    def get_chat() -> Dict[str, Any]:
        return {"messages": [m.to_dict() for m in state.transcript.messages()]}

    @app.post("/chat")
    def post_chat(payload: ChatPayload) -> Dict[str, Any]:
        history = state.transcript.history()
        state.transcript.append("user", payload.message)
        reply = send_chat_message(
            payload.message,
            history,
            state.coordinator.active_trips(),
            state.profiles.get(),
            client=state.client,
        )
        message = state.transcript.append("model", reply.text, reply.sources)
        return message.to_dict()

    @app.delete("/chat", status_code=204)
    def clear_chat() -> None:
        state.transcript.clear()

    return app
