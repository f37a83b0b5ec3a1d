"""ResiSync: travel compliance tracking for digital nomads."""

from .assistant import ChatTranscript, send_chat_message
from .compliance import analyze_compliance, calculate_basic_stats
from .insights import InsightCache, get_destination_insights
from .models import (
    ChatMessage,
    ChatReply,
    ChatSource,
    ComplianceStatus,
    RiskLevel,
    TaxResidencyRisk,
    Trip,
    TripDocument,
    UserProfile,
)
from .trip_parser import apply_parsed_trip, parse_travel_text

__all__ = [
    "ChatMessage",
    "ChatReply",
    "ChatSource",
    "ChatTranscript",
    "ComplianceStatus",
    "InsightCache",
    "RiskLevel",
    "TaxResidencyRisk",
    "Trip",
    "TripDocument",
    "UserProfile",
    "analyze_compliance",
    "apply_parsed_trip",
    "calculate_basic_stats",
    "get_destination_insights",
    "parse_travel_text",
    "send_chat_message",
]
