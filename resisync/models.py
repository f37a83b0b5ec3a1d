"""Core data models for ResiSync."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class RiskLevel(str, Enum):
    SAFE = "SAFE"
    WARNING = "WARNING"
    DANGER = "DANGER"


@dataclass
class TripDocument:
    """Metadata for a booking document attached to a trip."""

    name: str
    content_type: Optional[str] = None
    size: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name}
        if self.content_type is not None:
            data["contentType"] = self.content_type
        if self.size is not None:
            data["size"] = self.size
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TripDocument":
        return cls(
            name=data["name"],
            content_type=data.get("contentType"),
            size=data.get("size"),
        )


@dataclass
class Trip:
    id: str
    country: str
    start_date: str
    end_date: str
    is_schengen: bool
    country_code: Optional[str] = None
    is_simulation: bool = False
    notes: Optional[str] = None
    document: Optional[TripDocument] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the camelCase keys used in storage and prompts."""

        data: Dict[str, Any] = {
            "id": self.id,
            "country": self.country,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "isSchengen": self.is_schengen,
        }
        if self.country_code:
            data["countryCode"] = self.country_code
        if self.is_simulation:
            data["isSimulation"] = True
        if self.notes:
            data["notes"] = self.notes
        if self.document is not None:
            data["document"] = self.document.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Trip":
        document = data.get("document")
        return cls(
            id=str(data["id"]),
            country=data["country"],
            start_date=data["startDate"],
            end_date=data["endDate"],
            is_schengen=bool(data.get("isSchengen", False)),
            country_code=data.get("countryCode"),
            is_simulation=bool(data.get("isSimulation", False)),
            notes=data.get("notes"),
            document=TripDocument.from_dict(document) if document else None,
        )


@dataclass
class UserProfile:
    nationality: str
    current_location: str
    travel_goals: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nationality": self.nationality,
            "currentLocation": self.current_location,
            "travelGoals": list(self.travel_goals),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserProfile":
        return cls(
            nationality=data["nationality"],
            current_location=data["currentLocation"],
            travel_goals=list(data.get("travelGoals") or []),
        )


@dataclass
class TaxResidencyRisk:
    country: str
    days_spent: int
    threshold: int
    risk: RiskLevel

    def to_dict(self) -> Dict[str, Any]:
        return {
            "country": self.country,
            "daysSpent": self.days_spent,
            "threshold": self.threshold,
            "risk": self.risk.value,
        }


@dataclass
class ComplianceStatus:
    schengen_days_used: int
    schengen_days_remaining: int
    risk_level: RiskLevel
    recommendation: str
    tax_residency_risk: List[TaxResidencyRisk] = field(default_factory=list)
    reset_date: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "schengenDaysUsed": self.schengen_days_used,
            "schengenDaysRemaining": self.schengen_days_remaining,
            "riskLevel": self.risk_level.value,
            "taxResidencyRisk": [risk.to_dict() for risk in self.tax_residency_risk],
            "recommendation": self.recommendation,
        }
        if self.reset_date:
            data["resetDate"] = self.reset_date
        return data


@dataclass
class ChatSource:
    title: str
    uri: str

    def to_dict(self) -> Dict[str, str]:
        return {"title": self.title, "uri": self.uri}


@dataclass
class ChatReply:
    text: str
    sources: Optional[List[ChatSource]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"text": self.text}
        if self.sources:
            data["sources"] = [s.to_dict() for s in self.sources]
        return data


@dataclass
class ChatMessage:
    id: str
    role: str
    text: str
    timestamp: datetime
    sources: Optional[List[ChatSource]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "role": self.role,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.sources:
            data["sources"] = [s.to_dict() for s in self.sources]
        return data
