"""Settings model - key-value store for global configuration."""
from sqlalchemy import Column, String, DateTime

from ..database import Base
from ..utils.time_utils import utcnow


class Setting(Base):
    """Global settings stored as key-value pairs."""

    __tablename__ = "settings"

    key = Column(String, primary_key=True)
    value = Column(String, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


# Default settings
DEFAULT_SETTINGS = {
    # Email alert settings
    "email_alerts_enabled": "1",  # 0 or 1
    "smtp_host": "",
    "smtp_port": "587",
    "smtp_username": "",
    "smtp_password": "",
    "smtp_use_tls": "1",  # 0 or 1
    "smtp_from": "",
    "smtp_recipients": "",  # Comma-separated list of addresses

    # Webhook settings
    "webhook_url": "",
    "webhook_enabled": "0",  # 0 or 1
}
