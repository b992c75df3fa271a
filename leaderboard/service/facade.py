"""Read operations served from the cached leaderboard snapshot."""

import logging
from typing import Any

from ..core import (
    CacheStore,
    DEFAULT_TOP_COUNT,
    MAX_TOP_N,
    NodeNotFoundError,
    TIER_EXCELLENT,
    TIERS,
)
from .scheduler import Scheduler

logger = logging.getLogger(__name__)

NOT_COMPUTED_MESSAGE = "Leaderboard not yet calculated"

FIELD_METADATA = {
    "reputation_score": {
        "unit": "points",
        "description": "Overall reputation score (0-100)",
        "display_name": "Reputation",
        "decimals": 1,
    },
    "activity_score": {
        "unit": "points",
        "description": "Activity coverage (0-10) based on distinct online hours over 7 days",
        "display_name": "Activity",
        "decimals": 2,
    },
    "uptime_score": {
        "unit": "points",
        "description": "Longest continuous uptime normalized (0-10)",
        "display_name": "Uptime",
        "decimals": 2,
    },
    "performance_score": {
        "unit": "points",
        "description": "Network quality (0-30): throughput + latency",
        "display_name": "Performance",
        "decimals": 2,
    },
    "stability_score": {
        "unit": "points",
        "description": "Consistency (0-10) from hour coverage + recency",
        "display_name": "Stability",
        "decimals": 2,
    },
    "last_seen": {
        "unit": "timestamp",
        "description": "Last heartbeat timestamp",
        "display_name": "Last Seen",
    },
    "rank": {
        "unit": "position",
        "description": "Current leaderboard rank",
        "display_name": "Rank",
    },
    "country": {
        "unit": "text",
        "description": "Node location country",
        "display_name": "Country",
    },
    "device_name": {
        "unit": "text",
        "description": "Node name",
        "display_name": "Device Name",
    },
}


def clamp_count(value: Any) -> int:
    """Parse a requested count; non-numeric means the default, then clamp to 1..100."""
    try:
        count = int(value)
    except (TypeError, ValueError):
        count = DEFAULT_TOP_COUNT
    return max(1, min(count, MAX_TOP_N))


class QueryFacade:
    """Serves every external read (and the refresh command) from the cache."""

    def __init__(self, cache: CacheStore, scheduler: Scheduler | None = None):
        self.cache = cache
        self.scheduler = scheduler

    @staticmethod
    def get_field_metadata() -> dict:
        """Units, descriptions and display names for entry fields."""
        return FIELD_METADATA

    def get_leaderboard(self) -> dict:
        """
        Top-N projection plus totals.
        Returns the "not yet computed" sentinel when no snapshot exists.
        """
        cached = self.cache.read()

        if not cached:
            return {
                "data": [],
                "all_nodes": [],
                "timestamp": None,
                "last_updated": None,
                "total_nodes": 0,
                "message": NOT_COMPUTED_MESSAGE,
                "field_metadata": self.get_field_metadata(),
            }

        return {
            "data": cached["data"],
            "all_nodes": cached["all_nodes"],
            "timestamp": cached["timestamp"],
            "last_updated": cached["timestamp"],
            "total_nodes": cached["total_nodes"],
            "field_metadata": self.get_field_metadata(),
        }

    def get_node(self, node_id: str) -> dict:
        """Look up one node in the full ranked list. Raises NodeNotFoundError."""
        leaderboard = self.get_leaderboard()
        for node in leaderboard["all_nodes"]:
            if node["node_id"] == node_id:
                return {
                    "data": node,
                    "total_nodes": leaderboard["total_nodes"],
                    "last_updated": leaderboard["last_updated"],
                }
        raise NodeNotFoundError(node_id)

    def get_top(self, count: Any = DEFAULT_TOP_COUNT) -> dict:
        """Prefix of the top-N projection, count clamped to 1..100."""
        requested = clamp_count(count)
        leaderboard = self.get_leaderboard()
        top_nodes = leaderboard["data"][:requested]
        return {
            "data": top_nodes,
            "requested_count": requested,
            "returned_count": len(top_nodes),
            "total_nodes": leaderboard["total_nodes"],
            "last_updated": leaderboard["last_updated"],
        }

    def get_stats(self) -> dict:
        """Aggregate stats over the full ranked list, zeroed when it is empty."""
        leaderboard = self.get_leaderboard()
        nodes = leaderboard["all_nodes"]
        distribution = {tier: 0 for tier in TIERS}

        if not nodes:
            return {
                "total_nodes": 0,
                "average_score": 0,
                "top_score": 0,
                "tier_distribution": distribution,
                "last_updated": leaderboard["last_updated"],
            }

        scores = [node["reputation_score"] for node in nodes]
        for node in nodes:
            tier = node.get("status") or TIER_EXCELLENT
            distribution[tier] = distribution.get(tier, 0) + 1

        return {
            "total_nodes": len(nodes),
            "average_score": round(sum(scores) / len(scores), 2),
            "top_score": max(scores),
            "tier_distribution": distribution,
            "last_updated": leaderboard["last_updated"],
        }

    def force_refresh(self) -> bool:
        """Ask the scheduler for an immediate recompute; never waits for it."""
        if self.scheduler is None:
            logger.warning("No scheduler attached, refresh request ignored")
            return False
        return self.scheduler.force_refresh()
