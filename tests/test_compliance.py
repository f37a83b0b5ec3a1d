"""Tests for the tiered compliance analysis."""

from __future__ import annotations

import json
from datetime import date
from unittest.mock import Mock

from openai import OpenAIError

from resisync.compliance import (
    UNAVAILABLE_RECOMMENDATION,
    analyze_compliance,
    build_analysis_prompt,
    calculate_basic_stats,
)
from resisync.models import RiskLevel, Trip


SCENARIO_PAYLOAD = {
    "schengenDaysUsed": 10,
    "schengenDaysRemaining": 80,
    "riskLevel": "SAFE",
    "taxResidencyRisk": [],
    "recommendation": "You have plenty of Schengen days left.",
    "resetDate": None,
}


def _trip(trip_id, country, start, end, schengen):
    return Trip(id=trip_id, country=country, start_date=start, end_date=end, is_schengen=schengen)


def test_basic_stats_with_no_schengen_trips():
    trips = [_trip("1", "UK", "2024-01-01", "2024-01-31", False)]
    stats = calculate_basic_stats(trips)
    assert stats.schengen_days == 0
    assert stats.country_days == {"UK": 31}


def test_basic_stats_sums_per_country():
    trips = [
        _trip("1", "Spain", "2024-01-01", "2024-01-10", True),
        _trip("2", "Spain", "2024-03-01", "2024-03-05", True),
        _trip("3", "Japan", "2024-04-01", "2024-04-02", False),
    ]
    stats = calculate_basic_stats(trips)
    assert stats.schengen_days == 15
    assert stats.country_days == {"Spain": 15, "Japan": 2}


def test_primary_success_is_returned_unmodified(fake_client, response, profile, spain_trip, settings):
    client = fake_client(response(json.dumps(SCENARIO_PAYLOAD)))
    on_retry = Mock()

    status = analyze_compliance([spain_trip], profile, on_retry, client=client, settings=settings)

    assert status.schengen_days_used == 10
    assert status.schengen_days_remaining == 80
    assert status.risk_level is RiskLevel.SAFE
    assert status.recommendation == SCENARIO_PAYLOAD["recommendation"]
    assert status.to_dict() == {k: v for k, v in SCENARIO_PAYLOAD.items() if k != "resetDate"}
    on_retry.assert_not_called()
    call = client.responses.calls[0]
    assert call["model"] == settings.analysis_model
    assert call["reasoning"] == {"effort": settings.reasoning_effort}
    assert call["text"]["format"]["type"] == "json_schema"


def test_primary_failure_falls_back_to_secondary(fake_client, response, profile, spain_trip, settings):
    secondary = dict(SCENARIO_PAYLOAD, riskLevel="WARNING", resetDate="2024-06-29")
    client = fake_client(OpenAIError("quota exceeded"), response(json.dumps(secondary)))
    on_retry = Mock()

    status = analyze_compliance([spain_trip], profile, on_retry, client=client, settings=settings)

    on_retry.assert_called_once_with()
    assert status.risk_level is RiskLevel.WARNING
    assert status.reset_date == "2024-06-29"
    fallback_call = client.responses.calls[1]
    assert fallback_call["model"] == settings.fallback_model
    assert "reasoning" not in fallback_call
    assert fallback_call["input"] == client.responses.calls[0]["input"]


def test_malformed_primary_output_counts_as_failure(fake_client, response, profile, spain_trip, settings):
    client = fake_client(response("{not json"), response(json.dumps(SCENARIO_PAYLOAD)))
    on_retry = Mock()

    status = analyze_compliance([spain_trip], profile, on_retry, client=client, settings=settings)

    on_retry.assert_called_once_with()
    assert status.schengen_days_used == 10


def test_schema_violation_counts_as_failure(fake_client, response, profile, spain_trip, settings):
    bad = dict(SCENARIO_PAYLOAD, riskLevel="MAYBE")
    client = fake_client(response(json.dumps(bad)), response(""))

    status = analyze_compliance([spain_trip], profile, client=client, settings=settings)

    assert status.recommendation == UNAVAILABLE_RECOMMENDATION


def test_fractional_day_counts_fail_the_integer_contract(fake_client, response, profile, spain_trip, settings):
    fractional = dict(
        SCENARIO_PAYLOAD,
        schengenDaysUsed=89.6,
        schengenDaysRemaining=0.4,
        taxResidencyRisk=[{"country": "Spain", "daysSpent": 182.9, "threshold": 183, "risk": "WARNING"}],
    )
    client = fake_client(response(json.dumps(fractional)), response(json.dumps(SCENARIO_PAYLOAD)))
    on_retry = Mock()

    status = analyze_compliance([spain_trip], profile, on_retry, client=client, settings=settings)

    on_retry.assert_called_once_with()
    assert (status.schengen_days_used, status.schengen_days_remaining) == (10, 80)
    schema = client.responses.calls[0]["text"]["format"]["schema"]
    assert schema["properties"]["schengenDaysUsed"] == {"type": "integer"}


def test_whole_number_tax_rows_pass_through_unchanged(fake_client, response, profile, spain_trip, settings):
    payload = dict(
        SCENARIO_PAYLOAD,
        taxResidencyRisk=[{"country": "Spain", "daysSpent": 150, "threshold": 183, "risk": "WARNING"}],
    )
    client = fake_client(response(json.dumps(payload)))

    status = analyze_compliance([spain_trip], profile, client=client, settings=settings)

    assert status.to_dict()["taxResidencyRisk"] == payload["taxResidencyRisk"]


def test_both_tiers_failing_uses_local_approximation(fake_client, profile, spain_trip, settings):
    client = fake_client(OpenAIError("quota"), OpenAIError("timeout"))
    on_retry = Mock()

    status = analyze_compliance([spain_trip], profile, on_retry, client=client, settings=settings)

    on_retry.assert_called_once_with()
    assert status.schengen_days_used == 10
    assert status.schengen_days_remaining == 80
    assert status.risk_level is RiskLevel.SAFE
    assert status.tax_residency_risk == []
    assert status.recommendation == UNAVAILABLE_RECOMMENDATION


def test_fallback_warns_above_eighty_days(fake_client, profile, settings):
    trips = [_trip("1", "France", "2024-01-01", "2024-03-21", True)]
    client = fake_client(OpenAIError("quota"), OpenAIError("quota"))

    status = analyze_compliance(trips, profile, client=client, settings=settings)

    assert status.schengen_days_used == 81
    assert status.schengen_days_remaining == 9
    assert status.risk_level is RiskLevel.WARNING


def test_fallback_never_reports_danger_or_negative_days(fake_client, profile, settings):
    trips = [_trip("1", "France", "2024-01-01", "2024-12-31", True)]
    client = fake_client(OpenAIError("quota"), OpenAIError("quota"))

    status = analyze_compliance(trips, profile, client=client, settings=settings)

    assert status.risk_level is RiskLevel.WARNING
    assert status.schengen_days_remaining == 0


def test_fallback_handles_timestamp_and_plain_date_mix(fake_client, profile, settings):
    trips = [_trip("1", "Spain", "2024-01-01T00:00:00+00:00", "2024-01-05", True)]
    client = fake_client(OpenAIError("quota"), OpenAIError("quota"))

    status = analyze_compliance(trips, profile, client=client, settings=settings)

    assert status.schengen_days_used == 5
    assert status.schengen_days_remaining == 85


def test_zero_trips_fallback_is_safe(fake_client, profile, settings):
    client = fake_client(OpenAIError("quota"), OpenAIError("quota"))

    status = analyze_compliance([], profile, client=client, settings=settings)

    assert (status.schengen_days_used, status.schengen_days_remaining) == (0, 90)
    assert status.risk_level is RiskLevel.SAFE


def test_raising_retry_hook_does_not_escape(fake_client, response, profile, spain_trip, settings):
    client = fake_client(OpenAIError("quota"), response(json.dumps(SCENARIO_PAYLOAD)))

    status = analyze_compliance(
        [spain_trip], profile, Mock(side_effect=RuntimeError("ui gone")), client=client, settings=settings
    )

    assert status.schengen_days_used == 10


def test_prompt_embeds_date_trips_and_profile(profile, spain_trip):
    prompt = build_analysis_prompt([spain_trip], profile, today=date(2024, 2, 1))
    assert "Current Date: 2024-02-01" in prompt
    assert '"startDate": "2024-01-01"' in prompt
    assert "Nationality (Passport): US" in prompt
    assert "Tax Optimization, Visa Freedom" in prompt
    assert "rolling 180-day period" in prompt


def test_prompt_without_profile_omits_profile_block(spain_trip):
    prompt = build_analysis_prompt([spain_trip], None)
    assert "User Profile" not in prompt
