"""WebhookLog model - audit trail of webhook deliveries."""
from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String

from ..database import Base
from ..utils.time_utils import utcnow


class WebhookLog(Base):
    """Record of one webhook delivery attempt, successful or not."""

    __tablename__ = "webhook_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    webhook_url = Column(String, nullable=False)
    event_type = Column(String, nullable=False)  # api_down, api_up
    endpoint_id = Column(Integer, nullable=True)
    incident_id = Column(Integer, nullable=True)
    payload = Column(JSON, nullable=True)
    success = Column(Boolean, nullable=False, default=False)
    status_code = Column(Integer, nullable=True)
    error_message = Column(String, nullable=True)
    response_time_ms = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow)
