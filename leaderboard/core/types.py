"""Type definitions for telemetry records and cache documents."""

from datetime import datetime
from typing import Any, TypedDict, NotRequired


class NetworkMetrics(TypedDict, total=False):
    speed: float | None  # throughput, Mbps
    latency: float | None  # ms


class UsagePair(TypedDict, total=False):
    used: float | None
    total: float | None


class CpuMetrics(TypedDict, total=False):
    usage: float | None  # percent


class SystemResources(TypedDict, total=False):
    cpu: CpuMetrics
    memory: UsagePair
    storage: UsagePair


class NodeStatus(TypedDict, total=False):
    uptime: float | None  # seconds of continuous uptime


class HeartbeatRecord(TypedDict):
    """Raw telemetry record emitted by a node."""
    node_id: str
    timestamp: datetime
    network_metrics: NotRequired[NetworkMetrics]
    system_resources: NotRequired[SystemResources]
    status: NotRequired[NodeStatus]


class NodeRegistryEntry(TypedDict):
    """Registry entry joined to heartbeats by node id."""
    node_id: str
    created_at: datetime | None
    is_in_grace_period: NotRequired[bool]
    grace_period_ends_at: NotRequired[datetime | None]
    name: NotRequired[str]
    country: NotRequired[str]
    location: NotRequired[str]
    wallet_address: NotRequired[str]


class LeaderboardDocument(TypedDict):
    """The single cached snapshot of a computation cycle."""
    _id: str
    timestamp: datetime
    all_nodes: list[dict[str, Any]]
    data: list[dict[str, Any]]
    total_nodes: int
    expires_at: NotRequired[datetime]
