"""Services for probing, incident tracking, notification and uptime rollups."""
from .core import MonitoringCore
from .incidents import IncidentService
from .monitor import MonitoringService
from .notifier import NotificationDispatcher
from .prober import ProberService
from .retention import RetentionSweeper
from .scheduler import SchedulerService
from .store import MonitorStore, SqlAlchemyStore
from .uptime import UptimeAggregator

__all__ = [
    "MonitoringCore",
    "IncidentService",
    "MonitoringService",
    "NotificationDispatcher",
    "ProberService",
    "RetentionSweeper",
    "SchedulerService",
    "MonitorStore",
    "SqlAlchemyStore",
    "UptimeAggregator",
]
