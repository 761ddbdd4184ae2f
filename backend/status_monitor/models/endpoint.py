"""Endpoint model - HTTP targets being monitored."""
from sqlalchemy import Boolean, Column, DateTime, Integer, String

from ..database import Base
from ..utils.time_utils import utcnow


class Endpoint(Base):
    """A monitored HTTP endpoint with its expected-response contract.

    Rows are managed by the admin interface; the monitoring core only reads
    them and only probes rows whose ``is_active`` flag is set.
    """

    __tablename__ = "endpoints"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    url = Column(String, nullable=False)
    expected_status_code = Column(Integer, nullable=False, default=200)
    timeout_ms = Column(Integer, nullable=False, default=30000)
    monitoring_interval = Column(Integer, nullable=False, default=60)  # seconds
    is_active = Column(Boolean, nullable=False, default=True)
    is_public = Column(Boolean, nullable=False, default=True)
    display_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
