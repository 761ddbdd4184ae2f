"""
Tests for the SchedulerService job registration and wrappers.
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from status_monitor.config import Settings
from status_monitor.services.scheduler import (
    CHECKS_JOB_ID,
    RETENTION_JOB_ID,
    UPTIME_JOB_ID,
    SchedulerService,
)


def make_service(**config) -> SchedulerService:
    monitoring = MagicMock()
    monitoring.run_cycle = AsyncMock(return_value=None)
    aggregator = MagicMock()
    aggregator.calculate_all = AsyncMock(return_value=0)
    sweeper = MagicMock()
    sweeper.sweep = AsyncMock(return_value=0)
    sweeper.retention_days = 90
    return SchedulerService(monitoring, aggregator, sweeper, Settings(**config))


@pytest.mark.asyncio
async def test_start_registers_three_non_overlapping_jobs() -> None:
    # Arrange
    service = make_service(ping_interval_minutes=2, uptime_interval_minutes=30, retention_hour=3)

    # Act
    service.start()
    try:
        checks = service.scheduler.get_job(CHECKS_JOB_ID)
        uptime = service.scheduler.get_job(UPTIME_JOB_ID)
        retention = service.scheduler.get_job(RETENTION_JOB_ID)

        # Assert
        assert service.running
        assert isinstance(checks.trigger, IntervalTrigger)
        assert checks.trigger.interval.total_seconds() == 120
        assert isinstance(uptime.trigger, IntervalTrigger)
        assert uptime.trigger.interval.total_seconds() == 1800
        assert isinstance(retention.trigger, CronTrigger)
        assert str(retention.trigger.fields[5]) == "3"
        for job in (checks, uptime, retention):
            assert job.max_instances == 1
            assert job.coalesce is True
    finally:
        service.stop()

    assert not service.running


@pytest.mark.asyncio
async def test_start_is_idempotent() -> None:
    service = make_service()

    service.start()
    first = service.scheduler
    service.start()

    assert service.scheduler is first
    service.stop()


def test_stop_without_start_is_a_noop() -> None:
    service = make_service()

    service.stop()

    assert not service.running


@pytest.mark.asyncio
async def test_job_wrappers_swallow_errors() -> None:
    # Arrange
    service = make_service()
    service.monitoring.run_cycle.side_effect = RuntimeError("boom")
    service.aggregator.calculate_all.side_effect = RuntimeError("boom")
    service.sweeper.sweep.side_effect = RuntimeError("boom")

    # Act
    await service._run_checks()
    await service._calculate_uptime()
    await service._cleanup_ping_logs()

    # Assert
    service.monitoring.run_cycle.assert_awaited_once()
    service.aggregator.calculate_all.assert_awaited_once()
    service.sweeper.sweep.assert_awaited_once()


@pytest.mark.asyncio
async def test_checks_and_uptime_run_once_at_startup() -> None:
    # Arrange
    service = make_service(ping_interval_minutes=5, uptime_interval_minutes=60)

    # Act
    service.start()
    try:
        now = datetime.now(timezone.utc)
        checks_first_run = service.scheduler.get_job(CHECKS_JOB_ID).next_run_time
        uptime_first_run = service.scheduler.get_job(UPTIME_JOB_ID).next_run_time
        retention_first_run = service.scheduler.get_job(RETENTION_JOB_ID).next_run_time
        await asyncio.sleep(0.3)
    finally:
        service.stop()

    # Assert
    assert checks_first_run <= now
    assert uptime_first_run <= now
    assert retention_first_run > now
    service.monitoring.run_cycle.assert_awaited_once()
    service.aggregator.calculate_all.assert_awaited_once()
    service.sweeper.sweep.assert_not_awaited()
