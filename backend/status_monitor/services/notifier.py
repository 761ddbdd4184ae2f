"""Notification dispatcher - decouples alert delivery from the probe cycle.

The incident manager publishes a ``NotificationEvent`` and returns at once.
Background executor tasks pull events off a queue and hand them to every
enabled channel. Channel failures stop at the channel boundary.
"""
import abc
import asyncio
import logging
from asyncio import Queue, Task
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..models import Endpoint, Incident
from .email_sender import (
    EmailConfig,
    EmailSenderService,
    build_downtime_email,
    build_recovery_email,
    email_sender_service,
)
from .store import MonitorStore, NotificationSettings
from .webhook_sender import EVENT_API_DOWN, WebhookSenderService, build_webhook_payload

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 1000
DEFAULT_NUM_WORKERS = 2


@dataclass
class NotificationEvent:
    """A down/up notice waiting for delivery."""
    event_type: str  # api_down, api_up
    endpoint: Endpoint
    incident: Incident
    downtime_minutes: Optional[int] = None
    details: Optional[str] = None  # status-code / error context from the probe


class NotificationChannel(abc.ABC):
    """A delivery mechanism that can be switched on or off by configuration."""

    name: str = "channel"

    @abc.abstractmethod
    def is_enabled(self, settings: NotificationSettings) -> bool:
        """Whether the current configuration allows this channel to deliver."""

    @abc.abstractmethod
    async def send(self, event: NotificationEvent, settings: NotificationSettings) -> bool:
        """Deliver the event. Must not raise."""


class EmailChannel(NotificationChannel):
    """SMTP email notices."""

    name = "email"

    def __init__(self, sender: EmailSenderService = email_sender_service):
        self._sender = sender

    def is_enabled(self, settings: NotificationSettings) -> bool:
        if not settings.email_alerts_enabled:
            return False
        return EmailConfig.from_settings(settings).is_complete()

    async def send(self, event: NotificationEvent, settings: NotificationSettings) -> bool:
        if event.event_type == EVENT_API_DOWN:
            subject, body = build_downtime_email(event.endpoint, event.incident, event.details)
        else:
            subject, body = build_recovery_email(
                event.endpoint, event.incident, event.downtime_minutes, event.details
            )
        return await self._sender.send_email(EmailConfig.from_settings(settings), subject, body)


class WebhookChannel(NotificationChannel):
    """JSON webhook with a delivery log entry for every attempt."""

    name = "webhook"

    def __init__(self, store: MonitorStore, sender: Optional[WebhookSenderService] = None):
        self._store = store
        self._sender = sender or WebhookSenderService()

    def is_enabled(self, settings: NotificationSettings) -> bool:
        return settings.webhook_enabled and bool(settings.webhook_url)

    async def send(self, event: NotificationEvent, settings: NotificationSettings) -> bool:
        payload = build_webhook_payload(event.event_type, event.endpoint, event.incident)
        url = settings.webhook_url

        logger.info(f"Sending webhook: {event.event_type} for {event.endpoint.name} to {url}")
        delivery = await self._sender.post(url, payload)

        if delivery.success:
            logger.info(f"Webhook delivered: {event.event_type} for {event.endpoint.name}")
        else:
            logger.error(f"Webhook delivery failed for {event.event_type}: {delivery.error_message}")

        try:
            await self._store.insert_webhook_log(
                webhook_url=url,
                event_type=event.event_type,
                endpoint_id=event.endpoint.id,
                incident_id=event.incident.id,
                payload=payload,
                success=delivery.success,
                status_code=delivery.status_code,
                error_message=delivery.error_message,
                response_time_ms=delivery.response_time_ms,
            )
        except Exception as e:
            logger.error(f"Failed to log webhook delivery: {e}")

        return delivery.success


class NotificationDispatcher:
    """Queue plus a small pool of executor tasks delivering events to channels."""

    def __init__(
        self,
        store: MonitorStore,
        channels: Sequence[NotificationChannel],
        num_workers: int = DEFAULT_NUM_WORKERS,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ):
        self._store = store
        self._channels: List[NotificationChannel] = list(channels)
        self._num_workers = num_workers
        self._queue: Queue[NotificationEvent] = Queue(maxsize=queue_size)
        self._worker_tasks: List[Task] = []

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._worker_tasks)

    def publish(self, event: NotificationEvent) -> bool:
        """Enqueue an event without waiting. Returns False if it had to be dropped."""
        try:
            self._queue.put_nowait(event)
            return True
        except asyncio.QueueFull:
            logger.warning(
                f"Notification queue full ({self._queue.maxsize}); dropping "
                f"{event.event_type} for {event.endpoint.name}"
            )
            return False

    async def start(self) -> None:
        if self.is_running:
            return
        self._worker_tasks = [
            asyncio.create_task(self._executor(i + 1)) for i in range(self._num_workers)
        ]
        logger.info(f"Notification dispatcher started with {self._num_workers} workers")

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait until every queued event has been handled."""
        await asyncio.wait_for(self._queue.join(), timeout=timeout)

    async def stop(self, timeout: float = 30) -> None:
        """Deliver what is queued (bounded by ``timeout``), then cancel the executors."""
        if self.is_running:
            try:
                await self.drain(timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Abandoning {self._queue.qsize()} undelivered notification(s)")

        for task in self._worker_tasks:
            task.cancel()
        await asyncio.gather(*self._worker_tasks, return_exceptions=True)
        self._worker_tasks = []
        logger.info("Notification dispatcher stopped")

    async def _executor(self, worker_num: int) -> None:
        while True:
            try:
                event = await self._queue.get()
            except asyncio.CancelledError:
                break
            try:
                await self.deliver(event)
            except Exception as e:
                logger.exception(f"Notifier {worker_num} failed delivering {event.event_type}: {e}")
            finally:
                self._queue.task_done()

    async def deliver(self, event: NotificationEvent) -> None:
        """Send one event to every enabled channel concurrently."""
        try:
            settings = await self._store.get_notification_settings()
        except Exception as e:
            logger.error(f"Could not read notification settings, skipping {event.event_type}: {e}")
            return

        enabled = [channel for channel in self._channels if channel.is_enabled(settings)]
        if not enabled:
            logger.debug(f"No notification channels enabled for {event.event_type}")
            return

        results = await asyncio.gather(
            *(channel.send(event, settings) for channel in enabled),
            return_exceptions=True,
        )
        for channel, result in zip(enabled, results):
            if isinstance(result, Exception):
                logger.error(f"{channel.name} channel raised for {event.event_type}: {result}")
