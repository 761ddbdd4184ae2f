"""Scheduler service - periodic probe cycles, uptime rollups and retention sweeps.

Jobs:
- run_checks: every ``ping_interval_minutes``, plus once at startup
- calculate_uptime: every ``uptime_interval_minutes``, plus once at startup
- cleanup_ping_logs: daily at ``retention_hour``:00 UTC

Every job runs with max_instances=1 so a slow probe cycle makes the next
tick skip instead of overlapping it.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..config import Settings, settings as default_settings
from .monitor import MonitoringService
from .retention import RetentionSweeper
from .uptime import UptimeAggregator

logger = logging.getLogger(__name__)

CHECKS_JOB_ID = "run_checks"
UPTIME_JOB_ID = "calculate_uptime"
RETENTION_JOB_ID = "cleanup_ping_logs"


class SchedulerService:
    """Owns the APScheduler instance driving the three background jobs."""

    def __init__(
        self,
        monitoring: MonitoringService,
        aggregator: UptimeAggregator,
        sweeper: RetentionSweeper,
        config: Settings = default_settings,
    ):
        self.monitoring = monitoring
        self.aggregator = aggregator
        self.sweeper = sweeper
        self.config = config
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self):
        """Start the scheduler. Must be called from within a running event loop."""
        if self._running:
            return

        self.scheduler = AsyncIOScheduler(timezone=timezone.utc)
        now = datetime.now(timezone.utc)
        tick_seconds = self.config.ping_interval_minutes * 60

        self.scheduler.add_job(
            self._run_checks,
            trigger=IntervalTrigger(minutes=self.config.ping_interval_minutes),
            id=CHECKS_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=tick_seconds,
            next_run_time=now,
        )

        self.scheduler.add_job(
            self._calculate_uptime,
            trigger=IntervalTrigger(minutes=self.config.uptime_interval_minutes),
            id=UPTIME_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            next_run_time=now,
        )

        self.scheduler.add_job(
            self._cleanup_ping_logs,
            trigger=CronTrigger(hour=self.config.retention_hour, minute=0, timezone=timezone.utc),
            id=RETENTION_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        self.scheduler.start()
        self._running = True
        logger.info(
            f"Scheduler started (ping every {self.config.ping_interval_minutes}m, "
            f"uptime every {self.config.uptime_interval_minutes}m, "
            f"retention {self.sweeper.retention_days}d)"
        )

    def stop(self):
        """Stop the scheduler without waiting for running jobs."""
        if self.scheduler and self._running:
            self.scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")

    async def _run_checks(self):
        try:
            await self.monitoring.run_cycle()
        except Exception as e:
            logger.error(f"Error running checks: {e}")

    async def _calculate_uptime(self):
        try:
            await self.aggregator.calculate_all()
        except Exception as e:
            logger.error(f"Error calculating uptime: {e}")

    async def _cleanup_ping_logs(self):
        try:
            await self.sweeper.sweep()
        except Exception as e:
            logger.error(f"Error cleaning up records: {e}")
