"""Read-only telemetry and registry sources."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable

from .exceptions import TelemetryReadError
from .types import HeartbeatRecord, NodeRegistryEntry
from .utils import ensure_utc, parse_timestamp

logger = logging.getLogger(__name__)


class HeartbeatSource:
    """Time-series telemetry queryable by time range."""

    def find_since(self, since: datetime) -> list[HeartbeatRecord]:
        """Return every heartbeat with timestamp >= since."""
        raise NotImplementedError


class NodeRegistry:
    """Registry of known nodes, joinable by node id."""

    def lookup(self, node_ids: Iterable[str]) -> dict[str, NodeRegistryEntry]:
        """Return registry entries for the given ids. Unknown ids are omitted."""
        raise NotImplementedError


class MemoryHeartbeatSource(HeartbeatSource):
    """Heartbeats held in a list. Used for tests and embedding."""

    def __init__(self, records: Iterable[HeartbeatRecord] = ()):
        self.records: list[HeartbeatRecord] = list(records)

    def find_since(self, since: datetime) -> list[HeartbeatRecord]:
        since = ensure_utc(since)
        return [r for r in self.records if ensure_utc(r["timestamp"]) >= since]


class MemoryNodeRegistry(NodeRegistry):
    def __init__(self, entries: Iterable[NodeRegistryEntry] = ()):
        self.entries: dict[str, NodeRegistryEntry] = {e["node_id"]: e for e in entries}

    def lookup(self, node_ids: Iterable[str]) -> dict[str, NodeRegistryEntry]:
        return {nid: self.entries[nid] for nid in node_ids if nid in self.entries}


class JsonLinesHeartbeatSource(HeartbeatSource):
    """
    Heartbeats stored one JSON object per line.

    The file is re-read on every query so that an external writer can keep
    appending to it. A missing file is an empty source.
    """

    def __init__(self, path: Path):
        self.path = path

    def find_since(self, since: datetime) -> list[HeartbeatRecord]:
        since = ensure_utc(since)
        if not self.path.exists():
            logger.debug(f"Heartbeat file {self.path} does not exist yet")
            return []

        records = []
        try:
            with open(self.path) as f:
                for line_no, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    record = self._parse(line, line_no)
                    if record["timestamp"] >= since:
                        records.append(record)
        except OSError as e:
            raise TelemetryReadError(f"Failed to read heartbeats from {self.path}: {e}") from e

        logger.debug(f"Read {len(records)} heartbeats from {self.path}")
        return records

    def _parse(self, line: str, line_no: int) -> HeartbeatRecord:
        try:
            raw = json.loads(line)
            record = dict(raw)
            record["node_id"] = str(raw["node_id"])
            record["timestamp"] = parse_timestamp(raw["timestamp"])
        except (ValueError, KeyError, TypeError) as e:
            raise TelemetryReadError(f"Malformed heartbeat at {self.path}:{line_no}: {e}") from e
        return record


class JsonNodeRegistry(NodeRegistry):
    """Registry stored as a JSON list of entries."""

    def __init__(self, path: Path):
        self.path = path

    def lookup(self, node_ids: Iterable[str]) -> dict[str, NodeRegistryEntry]:
        wanted = set(node_ids)
        if not self.path.exists():
            return {}

        try:
            with open(self.path) as f:
                raw_entries = json.load(f)
            entries = {}
            for raw in raw_entries:
                node_id = str(raw["node_id"])
                if node_id not in wanted:
                    continue
                entry = dict(raw)
                entry["node_id"] = node_id
                entry["created_at"] = parse_timestamp(raw.get("created_at"))
                if "grace_period_ends_at" in raw:
                    entry["grace_period_ends_at"] = parse_timestamp(raw["grace_period_ends_at"])
                entries[node_id] = entry
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise TelemetryReadError(f"Failed to read node registry from {self.path}: {e}") from e

        return entries
