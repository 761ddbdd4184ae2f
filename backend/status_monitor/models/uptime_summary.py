"""UptimeSummary model - cached rolling uptime per endpoint and window."""
from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint

from ..database import Base
from ..utils.time_utils import utcnow


class UptimeSummary(Base):
    """Materialised uptime figures, recomputable from ping_logs at any time."""

    __tablename__ = "uptime_summaries"
    __table_args__ = (UniqueConstraint("endpoint_id", "period", name="uq_uptime_endpoint_period"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    endpoint_id = Column(Integer, ForeignKey("endpoints.id", ondelete="CASCADE"), nullable=False)
    period = Column(String, nullable=False)  # 24h, 7d, 30d, 90d
    uptime_percentage = Column(Float, nullable=False, default=0)
    total_pings = Column(Integer, nullable=False, default=0)
    successful_pings = Column(Integer, nullable=False, default=0)
    failed_pings = Column(Integer, nullable=False, default=0)
    avg_response_time = Column(Integer, nullable=False, default=0)  # ms, successful pings only
    calculated_at = Column(DateTime, default=utcnow, nullable=False)
