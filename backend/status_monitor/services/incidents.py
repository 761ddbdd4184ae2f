"""Incident lifecycle - opens incidents on DOWN edges and resolves them on UP edges."""
import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from ..models import Endpoint, Incident
from ..utils.time_utils import isoformat_z, minutes_between, utcnow
from .notifier import NotificationDispatcher, NotificationEvent
from .store import MonitorStore
from .transitions import Transition
from .webhook_sender import EVENT_API_DOWN, EVENT_API_UP

logger = logging.getLogger(__name__)


def incident_title(endpoint: Endpoint) -> str:
    return f"{endpoint.name} is down"


def incident_description(endpoint: Endpoint) -> str:
    return f"Automated incident: {endpoint.name} ({endpoint.url}) is not responding as expected."


class IncidentService:
    """Keeps at most one non-resolved incident per endpoint.

    Anything other than ``resolved`` counts as open, including the
    operator-set ``identified`` and ``monitoring`` states.
    """

    def __init__(
        self,
        store: MonitorStore,
        dispatcher: NotificationDispatcher,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._dispatcher = dispatcher
        self._clock = clock

    async def handle_transition(
        self,
        endpoint: Endpoint,
        transition: Transition,
        details: Optional[str] = None,
    ) -> Optional[Incident]:
        """Apply the incident side effects of a transition.

        Returns the incident that was opened or resolved, or None.
        """
        if transition.opens_incident:
            return await self.open_incident(endpoint, details)
        if transition.resolves_incident:
            return await self.resolve_incident(endpoint, details)
        return None

    async def open_incident(self, endpoint: Endpoint, details: Optional[str] = None) -> Optional[Incident]:
        existing = await self._store.find_open_incident(endpoint.id)
        if existing is not None:
            logger.info(f"Incident #{existing.id} already open for {endpoint.name}")
            return None

        incident = await self._store.insert_incident(
            endpoint_id=endpoint.id,
            title=incident_title(endpoint),
            description=incident_description(endpoint),
            started_at=self._clock(),
        )
        logger.info(f"Created incident #{incident.id} for {endpoint.name}")

        self._dispatcher.publish(NotificationEvent(
            event_type=EVENT_API_DOWN,
            endpoint=endpoint,
            incident=incident,
            details=details,
        ))
        return incident

    async def resolve_incident(self, endpoint: Endpoint, details: Optional[str] = None) -> Optional[Incident]:
        open_incident = await self._store.find_open_incident(endpoint.id)
        if open_incident is None:
            return None

        resolved_at = max(self._clock(), open_incident.started_at)
        downtime = minutes_between(open_incident.started_at, resolved_at)

        incident = await self._store.resolve_incident(
            incident_id=open_incident.id,
            resolved_at=resolved_at,
            description=f"{open_incident.description or ''} Resolved automatically.".strip(),
        )
        logger.info(f"Resolved incident #{incident.id} for {endpoint.name} ({downtime}m downtime)")

        self._dispatcher.publish(NotificationEvent(
            event_type=EVENT_API_UP,
            endpoint=endpoint,
            incident=incident,
            downtime_minutes=downtime,
            details=details,
        ))
        return incident

    async def get_active_incidents(self) -> List[dict]:
        """Open incidents, newest first, with their endpoint's name and URL."""
        rows = await self._store.list_open_incidents()
        return [
            {
                "id": incident.id,
                "endpoint_id": incident.endpoint_id,
                "endpoint_name": endpoint.name,
                "endpoint_url": endpoint.url,
                "title": incident.title,
                "description": incident.description,
                "status": incident.status,
                "started_at": isoformat_z(incident.started_at),
            }
            for incident, endpoint in rows
        ]

    async def get_incident_stats(self, endpoint_id: Optional[int] = None, days: int = 30) -> dict:
        since = self._clock() - timedelta(days=days)
        stats = await self._store.get_incident_stats(since, endpoint_id)
        stats["days"] = days
        stats["endpoint_id"] = endpoint_id
        return stats
