"""Shared builders for leaderboard tests."""

import threading
import time
from datetime import datetime, timedelta, timezone

from leaderboard.core import (
    MemoryCacheStore,
    MemoryHeartbeatSource,
    MemoryNodeRegistry,
)
from leaderboard.service import LeaderboardConfig, LeaderboardEngine

NOW = datetime(2026, 10, 18, 12, 30, tzinfo=timezone.utc)


def fixed_clock(now: datetime = NOW):
    return lambda: now


def make_heartbeat(
    node_id: str,
    timestamp: datetime,
    speed: float | None = None,
    latency: float | None = None,
    cpu: float | None = None,
    memory: tuple[float, float] | None = None,
    storage: tuple[float, float] | None = None,
    uptime: float | None = 3600,
) -> dict:
    """Build a raw heartbeat, leaving out any metric passed as None."""
    record = {"node_id": node_id, "timestamp": timestamp}

    network = {}
    if speed is not None:
        network["speed"] = speed
    if latency is not None:
        network["latency"] = latency
    if network:
        record["network_metrics"] = network

    resources = {}
    if cpu is not None:
        resources["cpu"] = {"usage": cpu}
    if memory is not None:
        resources["memory"] = {"used": memory[0], "total": memory[1]}
    if storage is not None:
        resources["storage"] = {"used": storage[0], "total": storage[1]}
    if resources:
        record["system_resources"] = resources

    if uptime is not None:
        record["status"] = {"uptime": uptime}
    return record


def hourly_heartbeats(node_id: str, hours: int, now: datetime = NOW, **metrics) -> list[dict]:
    """One heartbeat per hour going back from `now`, each in its own hour bucket."""
    return [make_heartbeat(node_id, now - timedelta(hours=h), **metrics) for h in range(hours)]


def make_entry(node_id: str, registered_days_ago: float | None = 60, now: datetime = NOW, **extra) -> dict:
    created_at = now - timedelta(days=registered_days_ago) if registered_days_ago is not None else None
    entry = {"node_id": node_id, "created_at": created_at}
    entry.update(extra)
    return entry


def make_engine(heartbeats=(), entries=(), now: datetime = NOW, **config_overrides) -> LeaderboardEngine:
    """Engine over in-memory sources with a frozen clock."""
    config = LeaderboardConfig(update_interval=3600, **config_overrides)
    cache = MemoryCacheStore(ttl_seconds=config.update_interval, clock=fixed_clock(now))
    return LeaderboardEngine(
        heartbeats=MemoryHeartbeatSource(heartbeats),
        registry=MemoryNodeRegistry(entries),
        cache=cache,
        config=config,
        clock=fixed_clock(now),
    )


def wait_for(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


class BlockingTask:
    """Task that parks inside the computation until released."""

    def __init__(self, then=None):
        self.entered = threading.Event()
        self.release = threading.Event()
        self.calls = 0
        self.then = then

    def __call__(self):
        self.calls += 1
        self.entered.set()
        self.release.wait(5)
        if self.then is not None:
            self.then()
