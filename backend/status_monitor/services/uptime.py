"""Uptime aggregator - rolling uptime summaries per endpoint and window."""
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict

from ..utils.time_utils import utcnow
from .store import MonitorStore, PingStats

logger = logging.getLogger(__name__)

UPTIME_PERIODS: Dict[str, timedelta] = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
}


def uptime_percentage(stats: PingStats) -> float:
    """successful / total * 100 rounded to 2 places; 0 when there are no pings."""
    if stats.total_pings <= 0:
        return 0.0
    return round(stats.successful_pings / stats.total_pings * 100, 2)


class UptimeAggregator:
    """Recomputes the uptime_summaries cache from ping history."""

    def __init__(self, store: MonitorStore, clock: Callable[[], datetime] = utcnow):
        self._store = store
        self._clock = clock

    async def calculate_for_period(self, endpoint_id: int, period: str) -> dict:
        window = UPTIME_PERIODS.get(period)
        if window is None:
            raise ValueError(f"Unknown uptime period: {period}")

        stats = await self._store.get_ping_stats(endpoint_id, self._clock() - window)
        return {
            "endpoint_id": endpoint_id,
            "period": period,
            "uptime_percentage": uptime_percentage(stats),
            "total_pings": stats.total_pings,
            "successful_pings": stats.successful_pings,
            "failed_pings": stats.failed_pings,
            "avg_response_time": int(round(stats.avg_response_time or 0)),
            "stats": stats,
        }

    async def update_for_endpoint(self, endpoint_id: int) -> int:
        """Upsert every window for one endpoint; returns how many were written."""
        updated = 0
        for period in UPTIME_PERIODS:
            try:
                result = await self.calculate_for_period(endpoint_id, period)
                await self._store.upsert_uptime_summary(
                    endpoint_id=endpoint_id,
                    period=period,
                    stats=result["stats"],
                    uptime_percentage=result["uptime_percentage"],
                    calculated_at=self._clock(),
                )
                updated += 1
            except Exception as e:
                logger.error(f"Error updating uptime summary for endpoint {endpoint_id}, period {period}: {e}")
        return updated

    async def calculate_all(self) -> int:
        """Refresh summaries for every active endpoint."""
        try:
            endpoints = await self._store.list_active_endpoints()
        except Exception as e:
            logger.error(f"Error calculating uptime summaries: {e}")
            return 0

        if not endpoints:
            logger.info("No active endpoints to calculate uptime for")
            return 0

        logger.info(f"Updating uptime for {len(endpoints)} endpoint(s)...")
        total = 0
        for endpoint in endpoints:
            total += await self.update_for_endpoint(endpoint.id)
            logger.debug(f"Updated uptime summaries for {endpoint.name}")
        logger.info(f"Uptime calculation completed ({total} summaries)")
        return total
