"""Schemas for the monitoring operations endpoints."""
from typing import List, Optional
from pydantic import BaseModel


class CycleSummaryResponse(BaseModel):
    """Result of a manually triggered probe cycle."""
    skipped: bool = False  # True when a cycle was already running
    checked: int = 0
    up: int = 0
    down: int = 0
    recorded: int = 0
    incidents_opened: List[int] = []
    incidents_resolved: List[int] = []
    duration_ms: int = 0


class UptimeRunResponse(BaseModel):
    summaries_updated: int


class ActiveIncident(BaseModel):
    """An incident that is not yet resolved."""
    id: int
    endpoint_id: int
    endpoint_name: str
    endpoint_url: str
    title: str
    description: Optional[str] = None
    status: str  # ongoing, identified, monitoring
    started_at: str


class IncidentStats(BaseModel):
    endpoint_id: Optional[int] = None
    days: int
    total_incidents: int
    resolved_incidents: int
    avg_downtime_minutes: Optional[float] = None


class ChannelTestResult(BaseModel):
    """Outcome of a test email or test webhook."""
    success: bool
    message: str
    status_code: Optional[int] = None
    error: Optional[str] = None
    response_time_ms: Optional[int] = None
    recipients: Optional[List[str]] = None
