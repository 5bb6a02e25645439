"""telemetry — per-page console/network capture and command event logs."""
from .collector import (  # noqa: F401
    ConsoleLogEntry,
    NetworkLogEntry,
    TelemetryCollector,
    MAX_LOG_ENTRIES,
)
from .logger import CommandEventLogger  # noqa: F401
