"""Wiring for the monitoring core and its lifecycle."""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from ..config import Settings, settings as default_settings
from .email_sender import EmailConfig, EmailSenderService, email_sender_service
from .incidents import IncidentService
from .monitor import CycleSummary, MonitoringService
from .notifier import EmailChannel, NotificationDispatcher, WebhookChannel
from .prober import ProberService
from .retention import RetentionSweeper
from .scheduler import SchedulerService
from .store import MonitorStore, SqlAlchemyStore
from .uptime import UptimeAggregator
from .webhook_sender import WebhookSenderService

logger = logging.getLogger(__name__)


class MonitoringCore:
    """All monitoring services sharing one store, dispatcher and transition table."""

    def __init__(
        self,
        store: MonitorStore,
        config: Settings = default_settings,
        prober: Optional[ProberService] = None,
        email_sender: EmailSenderService = email_sender_service,
        webhook_sender: Optional[WebhookSenderService] = None,
    ):
        self.config = config
        self.store = store
        self.email_sender = email_sender
        self.webhook_sender = webhook_sender or WebhookSenderService(
            timeout_seconds=config.webhook_timeout_seconds,
            user_agent=config.webhook_user_agent,
        )
        self.dispatcher = NotificationDispatcher(
            store,
            [EmailChannel(email_sender), WebhookChannel(store, self.webhook_sender)],
        )
        self.incidents = IncidentService(store, self.dispatcher)
        self.monitoring = MonitoringService(
            store,
            prober or ProberService(
                max_body_chars=config.max_response_body_chars,
                user_agent=config.user_agent,
            ),
            self.incidents,
        )
        self.aggregator = UptimeAggregator(store)
        self.sweeper = RetentionSweeper(store, retention_days=config.log_retention_days)
        self.scheduler = SchedulerService(self.monitoring, self.aggregator, self.sweeper, config)

    @classmethod
    def from_session_factory(cls, session_factory: async_sessionmaker, config: Settings = default_settings):
        return cls(SqlAlchemyStore(session_factory), config)

    async def start(self) -> None:
        """Start notification workers, reconcile transition state, start jobs."""
        await self.dispatcher.start()
        if self.config.reconcile_on_startup:
            try:
                await self.monitoring.reconcile()
            except Exception as e:
                logger.error(f"Startup reconciliation failed, starting with empty state: {e}")
        self.scheduler.start()

    async def stop(self, drain_timeout: float = 30) -> None:
        self.scheduler.stop()
        await self.dispatcher.stop(timeout=drain_timeout)

    async def trigger_manual_monitoring(self) -> Optional[CycleSummary]:
        logger.info("Manual monitoring triggered")
        return await self.monitoring.run_cycle()

    async def trigger_manual_uptime_calculation(self) -> int:
        logger.info("Manual uptime calculation triggered")
        return await self.aggregator.calculate_all()

    async def test_webhook(self) -> dict:
        notification_settings = await self.store.get_notification_settings()
        return await self.webhook_sender.send_test(notification_settings.webhook_url)

    async def test_email_configuration(self) -> dict:
        notification_settings = await self.store.get_notification_settings()
        if not notification_settings.email_alerts_enabled:
            return {
                "success": False,
                "message": "Email notifications are disabled in settings",
                "recipients": notification_settings.smtp_recipients,
            }
        return await self.email_sender.test_connection(EmailConfig.from_settings(notification_settings))
