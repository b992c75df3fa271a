"""Core reputation scoring and ranking components."""

from .types import HeartbeatRecord, NodeRegistryEntry, LeaderboardDocument
from .constants import *
from .exceptions import *
from .sources import (
    HeartbeatSource,
    NodeRegistry,
    MemoryHeartbeatSource,
    MemoryNodeRegistry,
    JsonLinesHeartbeatSource,
    JsonNodeRegistry,
)
from .reader import TimeSeriesReader, WindowedHeartbeat
from .scorer import ScoreCalculator, NodeMetrics, NodeScore
from .ranker import Ranker, compute_tier
from .persistence import CacheStore, MemoryCacheStore, FileCacheStore
from .utils import utcnow, ensure_utc, parse_timestamp, hour_bucket

__all__ = [
    # Types
    "HeartbeatRecord",
    "NodeRegistryEntry",
    "LeaderboardDocument",
    # Constants
    "WINDOW_DAYS",
    "RECENT_DAYS",
    "GRACE_PERIOD_DAYS",
    "TIERS",
    "TIER_EXCELLENT",
    "TIER_GOOD",
    "TIER_AVERAGE",
    "TIER_POOR",
    "LEADERBOARD_CACHE_KEY",
    "MAX_TOP_N",
    "DEFAULT_TOP_COUNT",
    "UPDATE_INTERVAL_SECONDS",
    "MAX_DOCUMENT_BYTES",
    "SIZE_WARNING_RATIO",
    "DRAIN_TIMEOUT_SECONDS",
    "DRAIN_POLL_SECONDS",
    # Exceptions
    "LeaderboardError",
    "NodeNotFoundError",
    "TelemetryReadError",
    "CacheStoreError",
    # Classes
    "HeartbeatSource",
    "NodeRegistry",
    "MemoryHeartbeatSource",
    "MemoryNodeRegistry",
    "JsonLinesHeartbeatSource",
    "JsonNodeRegistry",
    "TimeSeriesReader",
    "WindowedHeartbeat",
    "ScoreCalculator",
    "NodeMetrics",
    "NodeScore",
    "Ranker",
    "CacheStore",
    "MemoryCacheStore",
    "FileCacheStore",
    # Utils
    "compute_tier",
    "utcnow",
    "ensure_utc",
    "parse_timestamp",
    "hour_bucket",
]
