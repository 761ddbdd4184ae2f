"""Status Monitor - endpoint probing, incident lifecycle and uptime rollups."""

__version__ = "1.0.0"
