"""Webhook sender service - POSTs status-change payloads and logs every attempt."""
import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

import httpx

from ..config import settings
from ..models import Endpoint, Incident
from ..utils.time_utils import isoformat_z, minutes_between, utcnow

logger = logging.getLogger(__name__)

EVENT_API_DOWN = "api_down"
EVENT_API_UP = "api_up"

MAX_ERROR_BODY_CHARS = 500


@dataclass
class WebhookDelivery:
    """Outcome of one webhook POST."""
    success: bool
    response_time_ms: int
    status_code: Optional[int] = None
    error_message: Optional[str] = None


def build_webhook_payload(
    event_type: str,
    endpoint: Endpoint,
    incident: Incident,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Build the JSON body for an api_down / api_up webhook.

    ``downtime_minutes`` is present only when the incident has a resolved_at.
    """
    incident_data: Dict[str, Any] = {
        "id": incident.id,
        "title": incident.title,
        "description": incident.description,
        "status": incident.status,
        "started_at": isoformat_z(incident.started_at),
        "resolved_at": isoformat_z(incident.resolved_at),
    }
    if incident.resolved_at is not None and incident.started_at is not None:
        incident_data["downtime_minutes"] = minutes_between(incident.started_at, incident.resolved_at)

    return {
        "event_type": event_type,
        "status": "down" if event_type == EVENT_API_DOWN else "up",
        "timestamp": isoformat_z(now or utcnow()),
        "api": {
            "id": endpoint.id,
            "name": endpoint.name,
            "url": endpoint.url,
            "monitoring_interval": endpoint.monitoring_interval,
            "expected_status_code": endpoint.expected_status_code,
        },
        "incident": incident_data,
    }


def build_test_payload() -> Dict[str, Any]:
    """Synthetic payload used to verify the webhook configuration."""
    now = isoformat_z(utcnow())
    return {
        "event_type": "test",
        "status": "test",
        "timestamp": now,
        "message": "This is a test webhook from Status Monitor",
        "api": {
            "id": 0,
            "name": "Test API",
            "url": "https://example.com/test",
            "monitoring_interval": 60,
            "expected_status_code": 200,
        },
        "incident": {
            "id": 0,
            "title": "Test Incident",
            "description": "This is a test incident for webhook configuration",
            "status": "test",
            "started_at": now,
            "resolved_at": None,
        },
    }


class WebhookSenderService:
    """Service for POSTing webhook payloads with a bounded timeout."""

    def __init__(
        self,
        timeout_seconds: float = settings.webhook_timeout_seconds,
        user_agent: str = settings.webhook_user_agent,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent
        self._transport = transport

    async def post(self, url: str, payload: Dict[str, Any]) -> WebhookDelivery:
        """POST the payload. Never raises; failures come back in the result."""
        start = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.post(
                    url,
                    content=json.dumps(payload),
                    headers={
                        "Content-Type": "application/json",
                        "User-Agent": self.user_agent,
                    },
                )
            elapsed = int((time.monotonic() - start) * 1000)

            if response.is_success:
                return WebhookDelivery(success=True, status_code=response.status_code, response_time_ms=elapsed)

            return WebhookDelivery(
                success=False,
                status_code=response.status_code,
                response_time_ms=elapsed,
                error_message=f"HTTP {response.status_code}: {response.text[:MAX_ERROR_BODY_CHARS]}",
            )
        except httpx.TimeoutException:
            return WebhookDelivery(
                success=False,
                response_time_ms=int((time.monotonic() - start) * 1000),
                error_message=f"Request timeout after {self.timeout_seconds:g} seconds",
            )
        except Exception as e:
            return WebhookDelivery(
                success=False,
                response_time_ms=int((time.monotonic() - start) * 1000),
                error_message=str(e) or type(e).__name__,
            )

    async def send_test(self, url: str) -> dict:
        """Send the synthetic test payload; the result is not logged."""
        if not url:
            return {"success": False, "message": "Webhook URL not configured"}

        delivery = await self.post(url, build_test_payload())
        if delivery.success:
            message = f"Test webhook sent successfully ({delivery.response_time_ms}ms)"
        elif delivery.status_code is not None:
            message = f"Webhook endpoint returned HTTP {delivery.status_code}"
        else:
            message = "Failed to send test webhook"

        return {
            "success": delivery.success,
            "message": message,
            "status_code": delivery.status_code,
            "error": delivery.error_message,
            "response_time_ms": delivery.response_time_ms,
        }
