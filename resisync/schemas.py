"""Response contracts for structured model output.

Each JSON schema is sent to the model in strict mode (every property listed
as required, optional values expressed as nullable), and the decoded reply is
validated again with the matching pydantic model before it reaches callers.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from .llm import LLMResponseError
from .models import ComplianceStatus, RiskLevel, TaxResidencyRisk


RISK_ENUM = [level.value for level in RiskLevel]

COMPLIANCE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "schengenDaysUsed": {"type": "integer"},
        "schengenDaysRemaining": {"type": "integer"},
        "riskLevel": {"type": "string", "enum": RISK_ENUM},
        "taxResidencyRisk": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "country": {"type": "string"},
                    "daysSpent": {"type": "integer"},
                    "threshold": {"type": "integer"},
                    "risk": {"type": "string", "enum": RISK_ENUM},
                },
                "required": ["country", "daysSpent", "threshold", "risk"],
                "additionalProperties": False,
            },
        },
        "recommendation": {"type": "string"},
        "resetDate": {
            "type": ["string", "null"],
            "description": "Date when Schengen allowance resets or improves, if applicable",
        },
    },
    "required": [
        "schengenDaysUsed",
        "schengenDaysRemaining",
        "riskLevel",
        "taxResidencyRisk",
        "recommendation",
        "resetDate",
    ],
    "additionalProperties": False,
}

TRIP_PARSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "country": {"type": ["string", "null"]},
        "countryCode": {"type": ["string", "null"]},
        "startDate": {"type": ["string", "null"]},
        "endDate": {"type": ["string", "null"]},
        "isSchengen": {"type": ["boolean", "null"]},
    },
    "required": ["country", "countryCode", "startDate", "endDate", "isSchengen"],
    "additionalProperties": False,
}


class TaxRiskPayload(BaseModel):
    country: str
    daysSpent: int
    threshold: int
    risk: RiskLevel


class ComplianceStatusPayload(BaseModel):
    schengenDaysUsed: int
    schengenDaysRemaining: int
    riskLevel: RiskLevel
    taxResidencyRisk: List[TaxRiskPayload] = Field(default_factory=list)
    recommendation: str
    resetDate: Optional[str] = None

    def to_status(self) -> ComplianceStatus:
        return ComplianceStatus(
            schengen_days_used=self.schengenDaysUsed,
            schengen_days_remaining=self.schengenDaysRemaining,
            risk_level=self.riskLevel,
            recommendation=self.recommendation,
            tax_residency_risk=[
                TaxResidencyRisk(
                    country=item.country,
                    days_spent=item.daysSpent,
                    threshold=item.threshold,
                    risk=item.risk,
                )
                for item in self.taxResidencyRisk
            ],
            reset_date=self.resetDate or None,
        )


class ParsedTripPayload(BaseModel):
    country: Optional[str] = None
    countryCode: Optional[str] = None
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    isSchengen: Optional[bool] = None


def validate_compliance(data: Dict[str, Any]) -> ComplianceStatus:
    try:
        payload = ComplianceStatusPayload.model_validate(data)
    except ValidationError as exc:
        raise LLMResponseError(f"Compliance payload failed validation: {exc}") from exc
    return payload.to_status()


def validate_parsed_trip(data: Dict[str, Any]) -> Dict[str, Any]:
    """Return only the fields the model actually extracted."""

    try:
        payload = ParsedTripPayload.model_validate(data)
    except ValidationError as exc:
        raise LLMResponseError(f"Parsed trip failed validation: {exc}") from exc
    return payload.model_dump(exclude_none=True)
