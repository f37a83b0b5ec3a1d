"""Shared fixtures: a scripted stand-in for the OpenAI client."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from resisync.config import Settings
from resisync.models import Trip, UserProfile


class FakeResponses:
    """Returns (or raises) the scripted outcomes in order, recording every call."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if not self.outcomes:
            raise AssertionError("Unexpected extra model call")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeClient:
    def __init__(self, *outcomes):
        self.responses = FakeResponses(outcomes)


def make_response(text="", output=None, response_id="resp_1"):
    return SimpleNamespace(id=response_id, output_text=text, output=output or [])


@pytest.fixture
def fake_client():
    return FakeClient


@pytest.fixture
def response():
    return make_response


@pytest.fixture
def settings(tmp_path):
    return Settings(
        openai_api_key="test-key",
        storage_path=str(tmp_path / "storage.json"),
        seed_demo_trips=False,
        debounce_seconds=60.0,
    )


@pytest.fixture
def profile():
    return UserProfile(
        nationality="US",
        current_location="Lisbon",
        travel_goals=["Tax Optimization", "Visa Freedom"],
    )


@pytest.fixture
def spain_trip():
    return Trip(
        id="es-1",
        country="Spain",
        country_code="ES",
        start_date="2024-01-01",
        end_date="2024-01-10",
        is_schengen=True,
    )
