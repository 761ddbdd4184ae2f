"""Ping recorder - persists each probe outcome as a PingLog row."""
import logging
from typing import Optional

from ..models import PingLog
from .prober import ProbeResult
from .store import MonitorStore

logger = logging.getLogger(__name__)


class PingRecorder:
    """Appends probe outcomes verbatim; a failed write is logged, never raised."""

    def __init__(self, store: MonitorStore):
        self._store = store

    async def record(self, result: ProbeResult) -> Optional[PingLog]:
        try:
            return await self._store.insert_ping_log(**result.as_ping_log_fields())
        except Exception as e:
            logger.error(f"Error saving ping result for endpoint {result.endpoint_id}: {e}")
            return None
