"""Pydantic schemas for API request/response models."""
from .monitoring import (
    ActiveIncident,
    ChannelTestResult,
    CycleSummaryResponse,
    IncidentStats,
    UptimeRunResponse,
)

__all__ = [
    "ActiveIncident",
    "ChannelTestResult",
    "CycleSummaryResponse",
    "IncidentStats",
    "UptimeRunResponse",
]
