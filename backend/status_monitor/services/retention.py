"""Retention sweeper - purges old ping logs."""
import logging
from datetime import datetime, timedelta
from typing import Callable

from ..config import settings
from ..utils.time_utils import utcnow
from .store import MonitorStore

logger = logging.getLogger(__name__)


class RetentionSweeper:
    """Deletes ping logs older than the retention horizon.

    Incidents and uptime summaries are left alone; summaries outlive the
    pings they were computed from.
    """

    def __init__(
        self,
        store: MonitorStore,
        retention_days: int = settings.log_retention_days,
        clock: Callable[[], datetime] = utcnow,
    ):
        if retention_days < 1:
            raise ValueError("retention_days must be a positive integer.")
        self._store = store
        self.retention_days = retention_days
        self._clock = clock

    def cutoff(self) -> datetime:
        return self._clock() - timedelta(days=self.retention_days)

    async def sweep(self) -> int:
        """Delete expired ping logs; returns the number removed (0 on error)."""
        cutoff = self.cutoff()
        logger.info(f"Cleaning up ping logs older than {self.retention_days} days (before {cutoff})")
        try:
            deleted = await self._store.delete_ping_logs_before(cutoff)
        except Exception as e:
            logger.error(f"Error cleaning up ping logs: {e}")
            return 0

        if deleted:
            logger.info(f"Deleted {deleted} old ping log(s)")
        else:
            logger.info("No old ping logs to clean up")
        return deleted
