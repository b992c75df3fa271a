"""
Reputation scoring from windowed heartbeats.

Score composition (sum = 100):
    availability      0..45  distinct online hours in the window
    network quality   0..30  throughput + latency
    resource headroom 0..10  inverse CPU / memory / storage utilisation
    consistency       0..15  hour coverage + recency

The composite is rounded to 2 decimals before any tier is assigned. Grace
eligible nodes with little data are seeded at 100.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Iterable

from .constants import (
    AVAILABILITY_WEIGHT,
    COVERAGE_TARGET_RATIO,
    COVERAGE_WEIGHT,
    CPU_WEIGHT,
    FULL_AVAILABILITY_HOURS,
    GRACE_PERIOD_DAYS,
    HOURS_IN_WINDOW,
    LATENCY_REFERENCE,
    LATENCY_WEIGHT,
    MAX_SCORE,
    MAX_UPTIME_SECONDS,
    MEMORY_WEIGHT,
    MIN_SCORE,
    MIN_UPTIME_SECONDS,
    NEUTRAL_USAGE_PERCENT,
    NEW_NODE_MAX_HEARTBEATS,
    NEW_NODE_SCORE,
    RECENCY_CUTOFF_HOURS,
    RECENCY_WEIGHT,
    STORAGE_WEIGHT,
    THIRTY_DAY_REQUIREMENT_DAYS,
    THROUGHPUT_REFERENCE,
    THROUGHPUT_WEIGHT,
    WINDOW_DAYS,
)
from .reader import WindowedHeartbeat
from .types import NodeRegistryEntry
from .utils import days_between, ensure_utc, hours_between, SECONDS_PER_DAY, SECONDS_PER_HOUR

logger = logging.getLogger(__name__)


def _average(values: list[float]) -> float | None:
    return sum(values) / len(values) if values else None


def _clamp_unit(value: float) -> float:
    return min(max(value, 0), 1)


def _round_or_none(value: float | None, digits: int = 2) -> float | None:
    return round(value, digits) if value is not None else None


@dataclass(frozen=True)
class NodeMetrics:
    """Per-node aggregates over the window."""
    node_id: str
    hours_online: int
    total_heartbeats: int
    recent_heartbeats: int
    avg_network_speed: float | None
    avg_latency: float | None
    avg_cpu_usage: float | None
    avg_memory_usage: float | None
    avg_disk_usage: float | None
    max_uptime: float
    first_seen: datetime
    last_seen: datetime

    @property
    def capped_max_uptime(self) -> float:
        return min(self.max_uptime, MAX_UPTIME_SECONDS)

    @property
    def meets_minimum_uptime(self) -> bool:
        return self.max_uptime >= MIN_UPTIME_SECONDS


class _Accumulator:
    """Mutable per-node collector used only while aggregating."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        self.hours: set[datetime] = set()
        self.total = 0
        self.recent = 0
        self.speeds: list[float] = []
        self.latencies: list[float] = []
        self.cpu: list[float] = []
        self.memory: list[float] = []
        self.storage: list[float] = []
        self.max_uptime: float | None = None
        self.first_seen: datetime | None = None
        self.last_seen: datetime | None = None

    def add(self, hb: WindowedHeartbeat):
        self.hours.add(hb.hour_bucket)
        self.total += 1
        if hb.is_recent:
            self.recent += 1

        for value, bucket in (
            (hb.speed, self.speeds),
            (hb.latency, self.latencies),
            (hb.cpu_usage, self.cpu),
            (hb.memory_usage, self.memory),
            (hb.storage_usage, self.storage),
        ):
            if value is not None:
                bucket.append(value)

        if hb.uptime is not None and (self.max_uptime is None or hb.uptime > self.max_uptime):
            self.max_uptime = hb.uptime
        if self.first_seen is None or hb.timestamp < self.first_seen:
            self.first_seen = hb.timestamp
        if self.last_seen is None or hb.timestamp > self.last_seen:
            self.last_seen = hb.timestamp

    def freeze(self) -> NodeMetrics:
        return NodeMetrics(
            node_id=self.node_id,
            hours_online=len(self.hours),
            total_heartbeats=self.total,
            recent_heartbeats=self.recent,
            avg_network_speed=_average(self.speeds),
            avg_latency=_average(self.latencies),
            avg_cpu_usage=_average(self.cpu),
            avg_memory_usage=_average(self.memory),
            avg_disk_usage=_average(self.storage),
            max_uptime=self.max_uptime or 0,
            first_seen=self.first_seen,
            last_seen=self.last_seen,
        )


@dataclass(frozen=True)
class NodeScore:
    """
    Scored node for one computation cycle.

    `status`, `rank_badge`, `performance_insight` and `rank` are filled in by
    the Ranker, which returns a new instance rather than mutating this one.
    """
    node_id: str
    reputation_score: float
    calculated_score: float
    availability_score: float
    network_quality_score: float
    resource_headroom_score: float
    consistency_score: float
    is_new_node: bool
    total_heartbeats: int
    recent_heartbeats: int
    hours_online_7d: int
    avg_network_speed: float | None
    avg_latency: float | None
    avg_cpu_usage: float | None
    avg_memory_usage: float | None
    avg_disk_usage: float | None
    max_uptime: float
    capped_max_uptime: float
    meets_minimum_uptime: bool
    meets_thirty_day_requirement: bool
    first_seen: datetime
    last_seen: datetime
    hours_since_last_seen: float
    days_in_seven_day_window: float
    days_since_registration: float | None
    device_name: str
    country: str
    location: str
    wallet_address: str | None
    rank: int = 0
    status: str | None = None
    rank_badge: str | None = None
    performance_insight: str | None = None

    @property
    def activity_score(self) -> float:
        return round(min(self.hours_online_7d / HOURS_IN_WINDOW, 1) * 10, 2)

    @property
    def uptime_score(self) -> float:
        if not self.meets_minimum_uptime:
            return 0
        return round(min(self.capped_max_uptime / MAX_UPTIME_SECONDS * 10, 10), 2)

    @property
    def performance_score(self) -> float:
        return round(self.network_quality_score, 2)

    @property
    def stability_score(self) -> float:
        return round(min(self.consistency_score / 15 * 10, 10), 2)

    @property
    def uptime_hours(self) -> float:
        return round(self.capped_max_uptime / SECONDS_PER_HOUR, 1)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready entry as stored in the cache and served to callers."""
        entry = asdict(self)
        for key in (
            "availability_score",
            "network_quality_score",
            "resource_headroom_score",
            "consistency_score",
            "calculated_score",
            "avg_network_speed",
            "avg_latency",
            "avg_cpu_usage",
            "avg_memory_usage",
            "avg_disk_usage",
        ):
            entry[key] = _round_or_none(entry[key])
        entry["hours_since_last_seen"] = round(self.hours_since_last_seen, 1)
        entry["first_seen"] = self.first_seen.isoformat()
        entry["last_seen"] = self.last_seen.isoformat()
        entry["activity_score"] = self.activity_score
        entry["uptime_score"] = self.uptime_score
        entry["performance_score"] = self.performance_score
        entry["stability_score"] = self.stability_score
        entry["uptime_hours"] = self.uptime_hours
        return entry


# ============================================================================
# Component scores
# ============================================================================

def availability_score(hours_online: int, max_uptime: float) -> float:
    """0..45, zero unless some single uptime streak reached 30 minutes."""
    if max_uptime < MIN_UPTIME_SECONDS:
        return 0
    return _clamp_unit(hours_online / FULL_AVAILABILITY_HOURS) * AVAILABILITY_WEIGHT


def network_quality_score(avg_speed: float | None, avg_latency: float | None) -> float:
    """0..30. Missing throughput earns nothing; missing latency counts as the reference."""
    speed = avg_speed if avg_speed is not None else 0
    latency = avg_latency if avg_latency is not None else LATENCY_REFERENCE
    throughput_part = _clamp_unit(speed / THROUGHPUT_REFERENCE) * THROUGHPUT_WEIGHT
    latency_part = _clamp_unit(1 - latency / LATENCY_REFERENCE) * LATENCY_WEIGHT
    return throughput_part + latency_part


def _headroom(usage: float | None, weight: float) -> float:
    if usage is None:
        usage = NEUTRAL_USAGE_PERCENT
    return _clamp_unit(1 - usage / 100) * weight


def resource_headroom_score(cpu: float | None, memory: float | None, storage: float | None) -> float:
    """0..10. Absent averages fall back to 50% usage."""
    return (
        _headroom(cpu, CPU_WEIGHT) +
        _headroom(memory, MEMORY_WEIGHT) +
        _headroom(storage, STORAGE_WEIGHT)
    )


def consistency_score(hours_online: int, hours_since_last_seen: float) -> float:
    """0..15: hour coverage against 80% of the window plus a 72h recency decay."""
    coverage = _clamp_unit(hours_online / (HOURS_IN_WINDOW * COVERAGE_TARGET_RATIO)) * COVERAGE_WEIGHT
    if hours_since_last_seen > RECENCY_CUTOFF_HOURS:
        recency = 0
    else:
        recency = _clamp_unit(1 - hours_since_last_seen / RECENCY_CUTOFF_HOURS) * RECENCY_WEIGHT
    return coverage + recency


def is_grace_eligible(entry: NodeRegistryEntry | None, now: datetime) -> bool:
    """Manual grace flag still running, or the node registered at most 7 days ago."""
    if not entry:
        return False

    if entry.get("is_in_grace_period"):
        ends_at = entry.get("grace_period_ends_at")
        if ends_at is not None and now < ensure_utc(ends_at):
            return True

    created_at = entry.get("created_at")
    if created_at is not None and days_between(ensure_utc(created_at), now) <= GRACE_PERIOD_DAYS:
        return True

    return False


# ============================================================================
# Calculator
# ============================================================================

class ScoreCalculator:
    """Turns windowed heartbeats into per-node metrics and scores."""

    def __init__(self, window_days: int = WINDOW_DAYS):
        self.window_days = window_days

    def aggregate(self, heartbeats: Iterable[WindowedHeartbeat]) -> dict[str, NodeMetrics]:
        """
        Group heartbeats by node.

        Returns {node_id: NodeMetrics} in order of first appearance; nodes
        without heartbeats never appear.
        """
        accumulators: dict[str, _Accumulator] = {}
        for hb in heartbeats:
            acc = accumulators.get(hb.node_id)
            if acc is None:
                acc = accumulators[hb.node_id] = _Accumulator(hb.node_id)
            acc.add(hb)
        return {node_id: acc.freeze() for node_id, acc in accumulators.items()}

    def score(self, metrics: NodeMetrics, entry: NodeRegistryEntry | None, now: datetime) -> NodeScore:
        """Score one node. `entry` may be None when the registry has no record."""
        now = ensure_utc(now)
        entry = entry or {}

        # heartbeats stamped ahead of `now` (clock skew) count as seen now
        hours_since = max(hours_between(metrics.last_seen, now), 0)
        availability = availability_score(metrics.hours_online, metrics.max_uptime)
        network = network_quality_score(metrics.avg_network_speed, metrics.avg_latency)
        resources = resource_headroom_score(
            metrics.avg_cpu_usage, metrics.avg_memory_usage, metrics.avg_disk_usage
        )
        consistency = consistency_score(metrics.hours_online, hours_since)

        calculated = min(max(availability + network + resources + consistency, MIN_SCORE), MAX_SCORE)
        is_new = is_grace_eligible(entry, now)
        if is_new and metrics.total_heartbeats <= NEW_NODE_MAX_HEARTBEATS:
            reputation = round(NEW_NODE_SCORE, 2)
        else:
            reputation = round(calculated, 2)

        created_at = entry.get("created_at")
        if created_at is not None:
            registered_days = days_between(ensure_utc(created_at), now)
            days_since_registration = round(registered_days, 1)
            meets_thirty_days = registered_days >= THIRTY_DAY_REQUIREMENT_DAYS
        else:
            days_since_registration = None
            meets_thirty_days = False

        return NodeScore(
            node_id=metrics.node_id,
            reputation_score=reputation,
            calculated_score=calculated,
            availability_score=availability,
            network_quality_score=network,
            resource_headroom_score=resources,
            consistency_score=consistency,
            is_new_node=is_new,
            total_heartbeats=metrics.total_heartbeats,
            recent_heartbeats=metrics.recent_heartbeats,
            hours_online_7d=metrics.hours_online,
            avg_network_speed=metrics.avg_network_speed,
            avg_latency=metrics.avg_latency,
            avg_cpu_usage=metrics.avg_cpu_usage,
            avg_memory_usage=metrics.avg_memory_usage,
            avg_disk_usage=metrics.avg_disk_usage,
            max_uptime=metrics.max_uptime,
            capped_max_uptime=metrics.capped_max_uptime,
            meets_minimum_uptime=metrics.meets_minimum_uptime,
            meets_thirty_day_requirement=meets_thirty_days,
            first_seen=metrics.first_seen,
            last_seen=metrics.last_seen,
            hours_since_last_seen=hours_since,
            days_in_seven_day_window=round((now - metrics.first_seen).total_seconds() / SECONDS_PER_DAY, 1),
            days_since_registration=days_since_registration,
            device_name=entry.get("name") or metrics.node_id,
            country=entry.get("country") or "Unknown",
            location=entry.get("location") or "",
            wallet_address=entry.get("wallet_address"),
        )

    def score_all(
        self,
        metrics: dict[str, NodeMetrics],
        registry: dict[str, NodeRegistryEntry],
        now: datetime,
    ) -> list[NodeScore]:
        """Score every aggregated node, keeping aggregation order."""
        scores = [self.score(m, registry.get(node_id), now) for node_id, m in metrics.items()]
        logger.debug(f"Scored {len(scores)} nodes")
        return scores
