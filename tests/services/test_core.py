"""
Tests for MonitoringCore wiring and its manual operations.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from status_monitor.config import Settings
from status_monitor.models import Setting
from status_monitor.services.core import MonitoringCore
from status_monitor.services.webhook_sender import WebhookSenderService


@pytest.mark.asyncio
async def test_start_reconciles_then_stops_cleanly(store, make_endpoint, scripted_prober) -> None:
    # Arrange
    endpoint = await make_endpoint()
    await store.insert_incident(endpoint.id, "Billing API is down", "", endpoint.created_at)
    core = MonitoringCore(store, Settings(), prober=scripted_prober({endpoint.id: ["success"]}))

    # Act
    with patch.object(core.scheduler, "start") as start_jobs, patch.object(core.scheduler, "stop") as stop_jobs:
        await core.start()
        summary = await core.trigger_manual_monitoring()
        await core.stop(drain_timeout=2)

    # Assert
    start_jobs.assert_called_once()
    stop_jobs.assert_called_once()
    assert len(summary.incidents_resolved) == 1
    assert not core.dispatcher.is_running


@pytest.mark.asyncio
async def test_start_survives_reconcile_failure(store) -> None:
    # Arrange
    core = MonitoringCore(store, Settings())
    core.monitoring.reconcile = AsyncMock(side_effect=RuntimeError("db gone"))

    # Act
    with patch.object(core.scheduler, "start") as start_jobs, patch.object(core.scheduler, "stop"):
        await core.start()
        await core.stop(drain_timeout=1)

    # Assert
    start_jobs.assert_called_once()


@pytest.mark.asyncio
async def test_reconcile_can_be_disabled(store) -> None:
    core = MonitoringCore(store, Settings(reconcile_on_startup=False))
    core.monitoring.reconcile = AsyncMock()

    with patch.object(core.scheduler, "start"), patch.object(core.scheduler, "stop"):
        await core.start()
        await core.stop(drain_timeout=1)

    core.monitoring.reconcile.assert_not_awaited()


@pytest.mark.asyncio
async def test_manual_uptime_calculation(store, make_endpoint) -> None:
    await make_endpoint()
    core = MonitoringCore(store, Settings())

    assert await core.trigger_manual_uptime_calculation() == 4


@pytest.mark.asyncio
async def test_test_webhook_uses_configured_url(store, session_factory) -> None:
    # Arrange
    async with session_factory() as session:
        session.add(Setting(key="webhook_url", value="https://hooks.example.com/status"))
        await session.commit()
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200)

    core = MonitoringCore(store, Settings(), webhook_sender=WebhookSenderService(transport=httpx.MockTransport(handler)))

    # Act
    result = await core.test_webhook()

    # Assert
    assert result["success"] is True
    assert seen == ["https://hooks.example.com/status"]


@pytest.mark.asyncio
async def test_test_email_reports_disabled(store, session_factory) -> None:
    # Arrange
    async with session_factory() as session:
        session.add(Setting(key="email_alerts_enabled", value="0"))
        await session.commit()
    sender = MagicMock()
    core = MonitoringCore(store, Settings(), email_sender=sender)

    # Act
    result = await core.test_email_configuration()

    # Assert
    assert result["success"] is False
    assert result["message"] == "Email notifications are disabled in settings"
    sender.test_connection.assert_not_called()
