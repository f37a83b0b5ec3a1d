"""Tests for the Exa place lookup client."""

from unittest.mock import Mock, patch

import httpx
import pytest

from resisync.config import Settings
from resisync.services.exa_client import ExaError, lookup_places


@patch("resisync.services.exa_client.get_settings", return_value=Settings(exa_api_key="exa-key"))
@patch("resisync.services.exa_client.httpx.post")
def test_lookup_places_normalizes_results(mock_post, _settings):
    mock_post.return_value = Mock(
        raise_for_status=Mock(),
        json=Mock(
            return_value={
                "results": [
                    {"title": "Embassy of Spain", "url": "https://embassy.example/es", "summary": "Open 9-2"},
                    {"title": "No link"},
                    {"url": "https://consulate.example/", "summary": None},
                ]
            }
        ),
    )

    places = lookup_places("Spanish embassy", "Bangkok")

    assert places == [
        {"title": "Embassy of Spain", "url": "https://embassy.example/es", "summary": "Open 9-2"},
        {"title": "https://consulate.example/", "url": "https://consulate.example/", "summary": ""},
    ]
    kwargs = mock_post.call_args.kwargs
    assert kwargs["json"]["query"] == "Spanish embassy in Bangkok"
    assert kwargs["headers"] == {"x-api-key": "exa-key"}


@patch("resisync.services.exa_client.get_settings", return_value=Settings())
def test_lookup_without_key_raises(_settings):
    with pytest.raises(ExaError):
        lookup_places("tax office", "Lisbon")


@patch("resisync.services.exa_client.get_settings", return_value=Settings(exa_api_key="exa-key"))
@patch("resisync.services.exa_client.httpx.post", side_effect=httpx.ConnectError("offline"))
def test_http_errors_become_exa_errors(_post, _settings):
    with pytest.raises(ExaError):
        lookup_places("coworking", "Medellin")
