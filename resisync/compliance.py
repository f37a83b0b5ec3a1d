"""Compliance analysis: model-backed Schengen and tax residency assessment."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, List, Optional

from openai import OpenAI

from .config import Settings, get_settings
from .llm import AllTiersFailedError, ModelTier, run_tiers, structured_call
from .models import ComplianceStatus, RiskLevel, Trip, UserProfile
from .schemas import COMPLIANCE_SCHEMA, validate_compliance
from .schengen import SCHENGEN_LIMIT_DAYS, SCHENGEN_WINDOW_DAYS, TAX_RESIDENCY_THRESHOLD_DAYS
from .utils import inclusive_day_count, today_iso


logger = logging.getLogger(__name__)

FALLBACK_WARNING_DAYS = 80
UNAVAILABLE_RECOMMENDATION = (
    "AI Analysis unavailable due to high traffic. Please verify dates manually."
)


@dataclass
class BasicStats:
    schengen_days: int = 0
    country_days: Dict[str, int] = field(default_factory=dict)


def calculate_basic_stats(trips: List[Trip]) -> BasicStats:
    """Rough day totals; does not apply the rolling 180-day window."""

    stats = BasicStats()
    for trip in trips:
        try:
            days = inclusive_day_count(trip.start_date, trip.end_date)
        except ValueError as exc:
            logger.warning("Skipping trip %s in day totals: %s", trip.id, exc)
            continue
        if trip.is_schengen:
            stats.schengen_days += days
        stats.country_days[trip.country] = stats.country_days.get(trip.country, 0) + days
    return stats


def local_approximation(stats: BasicStats) -> ComplianceStatus:
    used = stats.schengen_days
    return ComplianceStatus(
        schengen_days_used=used,
        schengen_days_remaining=max(0, SCHENGEN_LIMIT_DAYS - used),
        risk_level=RiskLevel.WARNING if used > FALLBACK_WARNING_DAYS else RiskLevel.SAFE,
        tax_residency_risk=[],
        recommendation=UNAVAILABLE_RECOMMENDATION,
    )


def analysis_tiers(settings: Optional[Settings] = None) -> List[ModelTier]:
    settings = settings or get_settings()
    return [
        ModelTier("primary", settings.analysis_model, settings.reasoning_effort),
        ModelTier("secondary", settings.fallback_model),
    ]


def build_analysis_prompt(
    trips: List[Trip],
    profile: Optional[UserProfile],
    today: Optional[date] = None,
) -> str:
    profile_context = ""
    if profile:
        profile_context = f"""
    User Profile:
    - Nationality (Passport): {profile.nationality}
    - Current Base: {profile.current_location}
    - Strategic Goals: {', '.join(profile.travel_goals)}

    Please tailor the analysis and recommendation to this profile. Specifically consider visa
    restrictions for this nationality and tax rules relevant to their current base or nationality
    (e.g. US citizenship tax vs territorial tax).
    """
    trips_json = json.dumps([trip.to_dict() for trip in trips])
    return f"""
    You are ResiSync, an expert immigration and tax compliance AI.
    Analyze the following travel schedule for a digital nomad.
    {profile_context}
    Current Date: {today_iso(today)}
    Trips: {trips_json}

    Rules:
    1. Schengen Area: Max {SCHENGEN_LIMIT_DAYS} days in any rolling {SCHENGEN_WINDOW_DAYS}-day period.
    2. Tax Residency: General warning at {TAX_RESIDENCY_THRESHOLD_DAYS} days in a single country.

    Task:
    Calculate the exact days used in Schengen.
    Identify any tax residency risks (approaching {TAX_RESIDENCY_THRESHOLD_DAYS} days).
    Determine the Risk Level (SAFE, WARNING, DANGER).
    Provide a concise, strategic recommendation to avoid overstay or tax issues.
    If there is a violation, suggest a "Reset" strategy (e.g. go to non-Schengen country X).
    """


def analyze_compliance(
    trips: List[Trip],
    profile: Optional[UserProfile],
    on_retry: Optional[Callable[[], None]] = None,
    *,
    client: Optional[OpenAI] = None,
    settings: Optional[Settings] = None,
    today: Optional[date] = None,
) -> ComplianceStatus:
    """Assess the trip set, falling back tier by tier; never raises."""

    stats = calculate_basic_stats(trips)
    prompt = build_analysis_prompt(trips, profile, today)

    def attempt(tier: ModelTier) -> ComplianceStatus:
        data = structured_call(
            prompt,
            "compliance_status",
            COMPLIANCE_SCHEMA,
            model=tier.model,
            reasoning_effort=tier.reasoning_effort,
            client=client,
        )
        return validate_compliance(data)

    try:
        return run_tiers(analysis_tiers(settings), attempt, on_retry)
    except AllTiersFailedError:
        logger.error(
            "Compliance analysis unavailable; using local approximation (%s Schengen day(s))",
            stats.schengen_days,
        )
        return local_approximation(stats)
