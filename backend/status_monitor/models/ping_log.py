"""PingLog model - one row per probe attempt."""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, Text

from ..database import Base
from ..utils.time_utils import utcnow

PING_SUCCESS = "success"
PING_FAILURE = "failure"
PING_TIMEOUT = "timeout"


class PingLog(Base):
    """Immutable probe outcome. Deleted only by the retention sweep."""

    __tablename__ = "ping_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    endpoint_id = Column(Integer, ForeignKey("endpoints.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String, nullable=False)  # success, failure, timeout
    status_code = Column(Integer, nullable=True)
    response_time_ms = Column(Integer, nullable=False, default=0)
    error_message = Column(String, nullable=True)
    response_body = Column(Text, nullable=True)  # Only captured on status mismatch
    response_headers = Column(JSON, nullable=True)
    pinged_at = Column(DateTime, default=utcnow, nullable=False, index=True)
