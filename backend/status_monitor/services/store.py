"""Data store consumed by the monitoring core.

``MonitorStore`` is the narrow interface the scheduler, incident manager,
aggregator, sweeper and notification channels talk to. ``SqlAlchemyStore``
implements it over an async session factory; each call is its own short
transaction so one failing write never poisons the next.
"""
import abc
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import case, delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models import Endpoint, Incident, PingLog, Setting, UptimeSummary, WebhookLog
from ..models.incident import INCIDENT_ONGOING, INCIDENT_RESOLVED
from ..models.ping_log import PING_FAILURE, PING_SUCCESS, PING_TIMEOUT
from ..models.settings import DEFAULT_SETTINGS
from ..utils.db_utils import retry_on_lock

logger = logging.getLogger(__name__)


@dataclass
class PingStats:
    """Aggregate of ping_logs for one endpoint over one window."""
    total_pings: int = 0
    successful_pings: int = 0
    failed_pings: int = 0
    avg_response_time: Optional[float] = None  # successful pings only


@dataclass
class NotificationSettings:
    """System-wide notification configuration."""
    email_alerts_enabled: bool = True
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    smtp_from: str = ""
    smtp_recipients: List[str] = field(default_factory=list)
    webhook_url: str = ""
    webhook_enabled: bool = False

    @classmethod
    def from_dict(cls, values: Dict[str, str]) -> "NotificationSettings":
        """Build from the raw key/value rows (strings)."""
        merged = dict(DEFAULT_SETTINGS)
        merged.update({k: v for k, v in values.items() if v is not None})
        try:
            port = int(merged.get("smtp_port") or 0)
        except ValueError:
            port = 0
        return cls(
            email_alerts_enabled=merged.get("email_alerts_enabled", "1") == "1",
            smtp_host=merged.get("smtp_host", "").strip(),
            smtp_port=port,
            smtp_username=merged.get("smtp_username", "").strip(),
            smtp_password=merged.get("smtp_password", ""),
            smtp_use_tls=merged.get("smtp_use_tls", "1") == "1",
            smtp_from=merged.get("smtp_from", "").strip(),
            smtp_recipients=parse_recipients(merged.get("smtp_recipients", "")),
            webhook_url=merged.get("webhook_url", "").strip(),
            webhook_enabled=merged.get("webhook_enabled", "0") == "1",
        )


def parse_recipients(raw: str) -> List[str]:
    """Parse comma-separated email addresses into a list."""
    if not raw:
        return []
    return [addr.strip() for addr in raw.split(",") if addr.strip()]


class MonitorStore(abc.ABC):
    """Persistence operations required by the monitoring core."""

    @abc.abstractmethod
    async def list_active_endpoints(self) -> List[Endpoint]:
        """Endpoints whose active flag is set, ordered by id."""

    @abc.abstractmethod
    async def insert_ping_log(self, **fields: Any) -> PingLog:
        """Append one probe outcome."""

    @abc.abstractmethod
    async def find_open_incident(self, endpoint_id: int) -> Optional[Incident]:
        """Most recent non-resolved incident for the endpoint, if any."""

    @abc.abstractmethod
    async def insert_incident(
        self, endpoint_id: int, title: str, description: str, started_at: datetime
    ) -> Incident:
        """Create an ``ongoing`` incident."""

    @abc.abstractmethod
    async def resolve_incident(
        self, incident_id: int, resolved_at: datetime, description: str
    ) -> Incident:
        """Mark an incident resolved and return the updated row."""

    @abc.abstractmethod
    async def list_open_incidents(self) -> List[Tuple[Incident, Endpoint]]:
        """All non-resolved incidents with their endpoints, newest first."""

    @abc.abstractmethod
    async def get_incident_stats(
        self, since: datetime, endpoint_id: Optional[int] = None
    ) -> Dict[str, Any]:
        """Counts and average downtime of incidents started since ``since``."""

    @abc.abstractmethod
    async def get_ping_stats(self, endpoint_id: int, since: datetime) -> PingStats:
        """Aggregate ping_logs for the endpoint from ``since`` to now."""

    @abc.abstractmethod
    async def upsert_uptime_summary(
        self, endpoint_id: int, period: str, stats: PingStats,
        uptime_percentage: float, calculated_at: datetime,
    ) -> None:
        """Insert or replace the summary keyed by (endpoint, period)."""

    @abc.abstractmethod
    async def delete_ping_logs_before(self, cutoff: datetime) -> int:
        """Delete ping logs older than ``cutoff``; returns the row count."""

    @abc.abstractmethod
    async def get_notification_settings(self) -> NotificationSettings:
        """Current SMTP / webhook configuration."""

    @abc.abstractmethod
    async def insert_webhook_log(self, **fields: Any) -> None:
        """Record one webhook delivery attempt."""


class SqlAlchemyStore(MonitorStore):
    """MonitorStore backed by SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def _write(self, work):
        """Run ``work(session)`` in a fresh session and commit, retrying on lock."""
        async def attempt():
            async with self._session_factory() as session:
                result = await work(session)
                await session.commit()
                return result
        return await retry_on_lock(attempt)

    async def list_active_endpoints(self) -> List[Endpoint]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Endpoint).where(Endpoint.is_active.is_(True)).order_by(Endpoint.id)
            )
            return list(result.scalars().all())

    async def insert_ping_log(self, **fields: Any) -> PingLog:
        async def work(session: AsyncSession):
            log = PingLog(**fields)
            session.add(log)
            await session.flush()
            return log
        return await self._write(work)

    async def find_open_incident(self, endpoint_id: int) -> Optional[Incident]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Incident)
                .where(
                    Incident.endpoint_id == endpoint_id,
                    Incident.status != INCIDENT_RESOLVED,
                )
                .order_by(Incident.started_at.desc(), Incident.id.desc())
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def insert_incident(
        self, endpoint_id: int, title: str, description: str, started_at: datetime
    ) -> Incident:
        async def work(session: AsyncSession):
            incident = Incident(
                endpoint_id=endpoint_id,
                title=title,
                description=description,
                status=INCIDENT_ONGOING,
                started_at=started_at,
                created_at=started_at,
                updated_at=started_at,
            )
            session.add(incident)
            await session.flush()
            return incident
        return await self._write(work)

    async def resolve_incident(
        self, incident_id: int, resolved_at: datetime, description: str
    ) -> Incident:
        async def work(session: AsyncSession):
            incident = await session.get(Incident, incident_id)
            if incident is None:
                raise LookupError(f"Incident {incident_id} not found")
            incident.status = INCIDENT_RESOLVED
            incident.resolved_at = resolved_at
            incident.description = description
            incident.updated_at = resolved_at
            await session.flush()
            return incident
        return await self._write(work)

    async def list_open_incidents(self) -> List[Tuple[Incident, Endpoint]]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Incident, Endpoint)
                .join(Endpoint, Incident.endpoint_id == Endpoint.id)
                .where(Incident.status != INCIDENT_RESOLVED)
                .order_by(Incident.started_at.desc())
            )
            return [(incident, endpoint) for incident, endpoint in result.all()]

    async def get_incident_stats(
        self, since: datetime, endpoint_id: Optional[int] = None
    ) -> Dict[str, Any]:
        query = select(Incident.status, Incident.started_at, Incident.resolved_at).where(
            Incident.started_at >= since
        )
        if endpoint_id is not None:
            query = query.where(Incident.endpoint_id == endpoint_id)

        async with self._session_factory() as session:
            rows = (await session.execute(query)).all()

        resolved = [row for row in rows if row.status == INCIDENT_RESOLVED]
        downtimes = [
            (row.resolved_at - row.started_at).total_seconds() / 60
            for row in resolved
            if row.resolved_at is not None
        ]
        return {
            "total_incidents": len(rows),
            "resolved_incidents": len(resolved),
            "avg_downtime_minutes": round(sum(downtimes) / len(downtimes), 2) if downtimes else None,
        }

    async def get_ping_stats(self, endpoint_id: int, since: datetime) -> PingStats:
        is_success = PingLog.status == PING_SUCCESS
        async with self._session_factory() as session:
            result = await session.execute(
                select(
                    func.count(PingLog.id),
                    func.sum(case((is_success, 1), else_=0)),
                    func.sum(case((PingLog.status.in_([PING_FAILURE, PING_TIMEOUT]), 1), else_=0)),
                    func.avg(case((is_success, PingLog.response_time_ms), else_=None)),
                ).where(
                    PingLog.endpoint_id == endpoint_id,
                    PingLog.pinged_at >= since,
                )
            )
            total, successful, failed, avg_response = result.one()

        return PingStats(
            total_pings=int(total or 0),
            successful_pings=int(successful or 0),
            failed_pings=int(failed or 0),
            avg_response_time=float(avg_response) if avg_response is not None else None,
        )

    async def upsert_uptime_summary(
        self, endpoint_id: int, period: str, stats: PingStats,
        uptime_percentage: float, calculated_at: datetime,
    ) -> None:
        values = {
            "uptime_percentage": uptime_percentage,
            "total_pings": stats.total_pings,
            "successful_pings": stats.successful_pings,
            "failed_pings": stats.failed_pings,
            "avg_response_time": int(round(stats.avg_response_time or 0)),
            "calculated_at": calculated_at,
        }

        async def work(session: AsyncSession):
            # Atomic on the (endpoint_id, period) unique key
            insert = pg_insert if session.bind.dialect.name == "postgresql" else sqlite_insert
            statement = insert(UptimeSummary).values(endpoint_id=endpoint_id, period=period, **values)
            await session.execute(statement.on_conflict_do_update(
                index_elements=[UptimeSummary.endpoint_id, UptimeSummary.period],
                set_=values,
            ))
        await self._write(work)

    async def delete_ping_logs_before(self, cutoff: datetime) -> int:
        async def work(session: AsyncSession):
            result = await session.execute(delete(PingLog).where(PingLog.pinged_at < cutoff))
            return result.rowcount or 0
        return await self._write(work)

    async def get_notification_settings(self) -> NotificationSettings:
        async with self._session_factory() as session:
            result = await session.execute(select(Setting))
            rows = result.scalars().all()
        return NotificationSettings.from_dict({row.key: row.value for row in rows})

    async def insert_webhook_log(self, **fields: Any) -> None:
        async def work(session: AsyncSession):
            session.add(WebhookLog(**fields))
        await self._write(work)
