"""Monitoring service - one probe cycle across every active endpoint.

A cycle fans out one probe per endpoint, waits for all of them, then walks
the results in order: record the ping, classify the transition, apply the
incident lifecycle. Cycles are serialised; a cycle that starts while another
is still running is skipped.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

from ..models import Endpoint
from ..models.ping_log import PING_FAILURE
from .incidents import IncidentService
from .prober import ProberService, ProbeResult
from .recorder import PingRecorder
from .store import MonitorStore
from .transitions import Transition, TransitionTracker

logger = logging.getLogger(__name__)


@dataclass
class CycleSummary:
    """What one monitoring cycle did."""
    checked: int = 0
    up: int = 0
    down: int = 0
    recorded: int = 0
    incidents_opened: List[int] = field(default_factory=list)
    incidents_resolved: List[int] = field(default_factory=list)
    duration_ms: int = 0

    def as_dict(self) -> dict:
        return {
            "checked": self.checked,
            "up": self.up,
            "down": self.down,
            "recorded": self.recorded,
            "incidents_opened": list(self.incidents_opened),
            "incidents_resolved": list(self.incidents_resolved),
            "duration_ms": self.duration_ms,
        }


class MonitoringService:
    """Drives prober, recorder, transition tracker and incident lifecycle."""

    def __init__(
        self,
        store: MonitorStore,
        prober: ProberService,
        incidents: IncidentService,
        recorder: Optional[PingRecorder] = None,
        tracker: Optional[TransitionTracker] = None,
    ):
        self._store = store
        self._prober = prober
        self._incidents = incidents
        self._recorder = recorder or PingRecorder(store)
        self.tracker = tracker or TransitionTracker()
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    async def reconcile(self) -> int:
        """Seed the tracker as 'down' for endpoints that still have an open incident.

        Without this, the first probe after a restart is a first observation
        and a recovered endpoint would leave its incident open.
        """
        open_incidents = await self._store.list_open_incidents()
        seeded = self.tracker.seed_down(incident.endpoint_id for incident, _ in open_incidents)
        if seeded:
            logger.info(f"Seeded {seeded} endpoint(s) as down from open incidents")
        return seeded

    async def run_cycle(self) -> Optional[CycleSummary]:
        """Run one cycle; returns None if a previous cycle is still in progress."""
        if self._lock.locked():
            logger.warning("Previous monitoring cycle still running - skipping this tick")
            return None
        async with self._lock:
            return await self._run_cycle()

    async def _run_cycle(self) -> CycleSummary:
        started = time.monotonic()
        summary = CycleSummary()

        try:
            endpoints = await self._store.list_active_endpoints()
        except Exception as e:
            logger.error(f"Error loading active endpoints: {e}")
            return summary

        if not endpoints:
            logger.info("No active endpoints to monitor")
            return summary

        logger.info(f"Monitoring {len(endpoints)} endpoint(s)...")

        results = await asyncio.gather(
            *(self._prober.probe(endpoint) for endpoint in endpoints),
            return_exceptions=True,
        )

        for endpoint, result in zip(endpoints, results):
            if isinstance(result, BaseException):
                result = self._probe_crashed(endpoint, result)
            await self._process(endpoint, result, summary)

        summary.checked = len(endpoints)
        summary.duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            f"Monitoring cycle completed: {summary.up} up, {summary.down} down "
            f"in {summary.duration_ms}ms"
        )
        return summary

    async def _process(self, endpoint: Endpoint, result: ProbeResult, summary: CycleSummary) -> None:
        if await self._recorder.record(result) is not None:
            summary.recorded += 1

        transition = self.tracker.observe(endpoint.id, result.status)

        if result.is_success:
            summary.up += 1
            logger.info(f"{endpoint.name}: up ({result.response_time_ms}ms)")
        else:
            summary.down += 1
            logger.info(f"{endpoint.name}: {result.status} - {result.error_message}")

        if transition is Transition.NO_CHANGE or transition is Transition.FIRST_OBSERVATION_UP:
            return

        logger.info(f"{endpoint.name} ({endpoint.url}): {transition.value}")
        try:
            incident = await self._incidents.handle_transition(endpoint, transition, result.error_message)
        except Exception as e:
            logger.error(f"Error handling {transition.value} for {endpoint.name}: {e}")
            return

        if incident is not None:
            if transition.opens_incident:
                summary.incidents_opened.append(incident.id)
            else:
                summary.incidents_resolved.append(incident.id)

    @staticmethod
    def _probe_crashed(endpoint: Endpoint, error: BaseException) -> ProbeResult:
        logger.error(f"Probe for {endpoint.name} raised: {error}")
        return ProbeResult(
            endpoint_id=endpoint.id,
            status=PING_FAILURE,
            response_time_ms=0,
            error_message=str(error) or type(error).__name__,
        )
