"""Windowed reads of raw heartbeat telemetry."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from .constants import RECENT_DAYS, WINDOW_DAYS
from .exceptions import TelemetryReadError
from .sources import HeartbeatSource
from .types import HeartbeatRecord
from .utils import ensure_utc, hour_bucket

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WindowedHeartbeat:
    """A heartbeat flattened to the metrics scoring needs, tagged with its hour bucket."""
    node_id: str
    timestamp: datetime
    hour_bucket: datetime
    is_recent: bool
    speed: float | None = None
    latency: float | None = None
    cpu_usage: float | None = None
    memory_usage: float | None = None
    storage_usage: float | None = None
    uptime: float | None = None


def usage_percent(pair: dict | None) -> float | None:
    """used/total as a percentage; None unless both are present and total > 0."""
    if not pair:
        return None
    used = pair.get("used")
    total = pair.get("total")
    if used is None or total is None or total <= 0:
        return None
    return used / total * 100


def flatten(record: HeartbeatRecord, recent_since: datetime) -> WindowedHeartbeat:
    """Flatten a raw record; absent metrics stay None."""
    timestamp = ensure_utc(record["timestamp"])
    network = record.get("network_metrics") or {}
    resources = record.get("system_resources") or {}
    cpu = resources.get("cpu") or {}
    status = record.get("status") or {}

    return WindowedHeartbeat(
        node_id=record["node_id"],
        timestamp=timestamp,
        hour_bucket=hour_bucket(timestamp),
        is_recent=timestamp >= recent_since,
        speed=network.get("speed"),
        latency=network.get("latency"),
        cpu_usage=cpu.get("usage"),
        memory_usage=usage_percent(resources.get("memory")),
        storage_usage=usage_percent(resources.get("storage")),
        uptime=status.get("uptime"),
    )


class TimeSeriesReader:
    """Pulls the trailing window of heartbeats and annotates each record."""

    def __init__(self, source: HeartbeatSource, window_days: int = WINDOW_DAYS, recent_days: int = RECENT_DAYS):
        self.source = source
        self.window = timedelta(days=window_days)
        self.recent = timedelta(days=recent_days)

    def read_window(self, now: datetime) -> list[WindowedHeartbeat]:
        """
        Read all heartbeats with timestamp >= now - window.

        Raises TelemetryReadError if the source fails.
        """
        now = ensure_utc(now)
        window_start = now - self.window
        recent_since = now - self.recent

        try:
            records = self.source.find_since(window_start)
        except TelemetryReadError:
            raise
        except Exception as e:
            raise TelemetryReadError(f"Heartbeat source failed: {e}") from e

        heartbeats = [flatten(r, recent_since) for r in records]
        logger.debug(f"Read {len(heartbeats)} heartbeats since {window_start.isoformat()}")
        return heartbeats
