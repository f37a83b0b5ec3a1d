"""Tests for the model tier chain and structured calls."""

from unittest.mock import Mock

import pytest

from resisync.llm import (
    AllTiersFailedError,
    LLMResponseError,
    ModelTier,
    run_tiers,
    structured_call,
)

TIERS = [ModelTier("primary", "big", "high"), ModelTier("secondary", "small")]


def test_run_tiers_stops_at_first_success():
    attempt = Mock(return_value="ok")
    on_retry = Mock()
    assert run_tiers(TIERS, attempt, on_retry) == "ok"
    attempt.assert_called_once_with(TIERS[0])
    on_retry.assert_not_called()


def test_run_tiers_notifies_once_between_tiers():
    attempt = Mock(side_effect=[RuntimeError("boom"), "second"])
    on_retry = Mock()
    assert run_tiers(TIERS, attempt, on_retry) == "second"
    assert on_retry.call_count == 1
    assert [c.args[0].name for c in attempt.call_args_list] == ["primary", "secondary"]


def test_run_tiers_collects_every_error():
    errors = [RuntimeError("one"), ValueError("two")]
    with pytest.raises(AllTiersFailedError) as excinfo:
        run_tiers(TIERS, Mock(side_effect=errors))
    assert excinfo.value.errors == errors


def test_structured_call_rejects_empty_text(fake_client, response):
    client = fake_client(response("   "))
    with pytest.raises(LLMResponseError):
        structured_call("p", "s", {"type": "object"}, model="m", client=client)


def test_structured_call_rejects_non_object_json(fake_client, response):
    client = fake_client(response("[1, 2]"))
    with pytest.raises(LLMResponseError):
        structured_call("p", "s", {"type": "object"}, model="m", client=client)


def test_structured_call_sends_strict_schema(fake_client, response):
    client = fake_client(response('{"a": 1}'))
    assert structured_call("p", "thing", {"type": "object"}, model="m", client=client) == {"a": 1}
    fmt = client.responses.calls[0]["text"]["format"]
    assert fmt == {"type": "json_schema", "name": "thing", "schema": {"type": "object"}, "strict": True}
    assert "reasoning" not in client.responses.calls[0]
