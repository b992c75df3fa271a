"""Tier assignment and dense ranking of scored nodes."""

import logging
from dataclasses import replace

from .constants import (
    AVERAGE_THRESHOLD,
    EXCELLENT_THRESHOLD,
    GOOD_THRESHOLD,
    MAX_TOP_N,
    PERFORMANCE_INSIGHTS,
    RANK_BADGES,
    TIER_AVERAGE,
    TIER_EXCELLENT,
    TIER_GOOD,
    TIER_POOR,
)
from .scorer import NodeScore

logger = logging.getLogger(__name__)


def compute_tier(score: float, grace: bool = False) -> str:
    """
    Tier for a rounded reputation score.

    During the grace period everything below the good threshold is still
    good, so a grace node can drop at most one tier from excellent.
    """
    if score >= EXCELLENT_THRESHOLD:
        return TIER_EXCELLENT
    if score >= GOOD_THRESHOLD or grace:
        return TIER_GOOD
    if score >= AVERAGE_THRESHOLD:
        return TIER_AVERAGE
    return TIER_POOR


def sort_key(node: NodeScore) -> tuple:
    """Score desc, availability desc, most recently seen first."""
    return (-node.reputation_score, -node.availability_score, node.hours_since_last_seen)


class Ranker:
    """Sorts scored nodes, assigns tiers and dense ranks 1..N."""

    def __init__(self, top_n: int = MAX_TOP_N):
        self.top_n = max(1, min(top_n, MAX_TOP_N))

    def rank(self, scores: list[NodeScore]) -> list[NodeScore]:
        """
        Return new NodeScore instances in rank order.

        sorted() is stable, so nodes tied on every key keep their
        aggregation order.
        """
        ordered = sorted(scores, key=sort_key)
        ranked = []
        for position, node in enumerate(ordered, start=1):
            tier = compute_tier(node.reputation_score, grace=node.is_new_node)
            ranked.append(replace(
                node,
                rank=position,
                status=tier,
                rank_badge=RANK_BADGES[tier],
                performance_insight=PERFORMANCE_INSIGHTS[tier],
            ))
        logger.debug(f"Ranked {len(ranked)} nodes")
        return ranked

    def top(self, ranked: list, n: int | None = None) -> list:
        """Prefix of the ranked list, never longer than MAX_TOP_N."""
        limit = self.top_n if n is None else max(0, min(n, MAX_TOP_N))
        return ranked[:limit]
