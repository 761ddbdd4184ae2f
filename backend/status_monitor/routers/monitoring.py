"""Monitoring operations API - manual triggers, open incidents, channel tests."""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ..schemas.monitoring import (
    ActiveIncident,
    ChannelTestResult,
    CycleSummaryResponse,
    IncidentStats,
    UptimeRunResponse,
)
from ..services.core import MonitoringCore

router = APIRouter(prefix="/api/monitoring", tags=["monitoring"])


def get_core(request: Request) -> MonitoringCore:
    """Dependency returning the core built during application startup."""
    core = getattr(request.app.state, "core", None)
    if core is None:
        raise HTTPException(status_code=503, detail="Monitoring core not started")
    return core


@router.post("/run", response_model=CycleSummaryResponse)
async def run_monitoring(core: MonitoringCore = Depends(get_core)):
    """Run one probe cycle now."""
    summary = await core.trigger_manual_monitoring()
    if summary is None:
        return CycleSummaryResponse(skipped=True)
    return CycleSummaryResponse(**summary.as_dict())


@router.post("/uptime", response_model=UptimeRunResponse)
async def run_uptime_calculation(core: MonitoringCore = Depends(get_core)):
    """Recompute uptime summaries now."""
    updated = await core.trigger_manual_uptime_calculation()
    return UptimeRunResponse(summaries_updated=updated)


@router.get("/incidents/active", response_model=List[ActiveIncident])
async def list_active_incidents(core: MonitoringCore = Depends(get_core)):
    return await core.incidents.get_active_incidents()


@router.get("/incidents/stats", response_model=IncidentStats)
async def incident_stats(
    endpoint_id: Optional[int] = None,
    days: int = Query(30, ge=1, le=365),
    core: MonitoringCore = Depends(get_core),
):
    return await core.incidents.get_incident_stats(endpoint_id=endpoint_id, days=days)


@router.post("/notifications/test-webhook", response_model=ChannelTestResult)
async def test_webhook(core: MonitoringCore = Depends(get_core)):
    return await core.test_webhook()


@router.post("/notifications/test-email", response_model=ChannelTestResult)
async def test_email(core: MonitoringCore = Depends(get_core)):
    return await core.test_email_configuration()
