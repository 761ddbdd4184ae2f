"""Database models."""
from .settings import Setting
from .endpoint import Endpoint
from .ping_log import PingLog
from .incident import Incident
from .uptime_summary import UptimeSummary
from .webhook_log import WebhookLog

__all__ = ["Setting", "Endpoint", "PingLog", "Incident", "UptimeSummary", "WebhookLog"]
