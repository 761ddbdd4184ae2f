"""Incident model - periods during which an endpoint was down."""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from ..database import Base
from ..utils.time_utils import utcnow

INCIDENT_ONGOING = "ongoing"
INCIDENT_IDENTIFIED = "identified"
INCIDENT_MONITORING = "monitoring"
INCIDENT_RESOLVED = "resolved"


class Incident(Base):
    """Tracked outage.

    The monitoring core writes only ``ongoing`` and ``resolved``; the other
    states are set by operators and still count as open.
    """

    __tablename__ = "incidents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    endpoint_id = Column(Integer, ForeignKey("endpoints.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String, nullable=False, default=INCIDENT_ONGOING)
    started_at = Column(DateTime, nullable=False, default=utcnow)
    resolved_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
