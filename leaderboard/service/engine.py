"""One leaderboard computation cycle: read, score, rank, cache."""

import logging
from datetime import datetime
from typing import Callable

from ..core import (
    CacheStore,
    CacheStoreError,
    FileCacheStore,
    HeartbeatSource,
    JsonLinesHeartbeatSource,
    JsonNodeRegistry,
    LEADERBOARD_CACHE_KEY,
    LeaderboardDocument,
    NodeRegistry,
    Ranker,
    ScoreCalculator,
    TimeSeriesReader,
    utcnow,
)
from .config import LeaderboardConfig

logger = logging.getLogger(__name__)


class LeaderboardEngine:
    """
    Computes ranked snapshots and writes them to the cache.

    Owns no thread of its own; the Scheduler decides when refresh() runs and
    guarantees only one call is in flight at a time.
    """

    def __init__(
        self,
        heartbeats: HeartbeatSource,
        registry: NodeRegistry,
        cache: CacheStore,
        config: LeaderboardConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.config = config or LeaderboardConfig()
        self.registry = registry
        self.cache = cache
        self.clock = clock

        self.reader = TimeSeriesReader(heartbeats, self.config.window_days, self.config.recent_days)
        self.calculator = ScoreCalculator(self.config.window_days)
        self.ranker = Ranker(self.config.top_n)

    @classmethod
    def from_config(cls, config: LeaderboardConfig) -> "LeaderboardEngine":
        """Engine backed by the JSON files named in the config."""
        cache = FileCacheStore(
            config.cache_path,
            ttl_seconds=config.update_interval,
            max_document_bytes=config.max_document_bytes,
            size_warning_ratio=config.size_warning_ratio,
        )
        return cls(
            heartbeats=JsonLinesHeartbeatSource(config.heartbeats_path),
            registry=JsonNodeRegistry(config.registry_path),
            cache=cache,
            config=config,
        )

    def initialize(self) -> bool:
        """
        Prepare the cache store and drop a snapshot that outlived its TTL.
        Failure is logged, not raised.
        """
        try:
            ok = self.cache.initialize()
        except Exception as e:
            logger.error(f"Failed to initialize leaderboard cache: {e}", exc_info=True)
            return False

        if ok:
            try:
                self.cache.purge_expired(self.clock())
            except CacheStoreError as e:
                logger.warning(f"Could not check cached leaderboard expiry: {e}")
            logger.info("Leaderboard engine initialized")
        else:
            logger.error("Leaderboard cache unavailable; serving empty leaderboard until a cycle succeeds")
        return ok

    def compute(self, now: datetime | None = None) -> LeaderboardDocument:
        """
        Build a full snapshot without touching the cache.

        Raises TelemetryReadError if the heartbeat source or registry fails.
        """
        now = now or self.clock()

        heartbeats = self.reader.read_window(now)
        metrics = self.calculator.aggregate(heartbeats)
        registry = self.registry.lookup(metrics.keys())
        scores = self.calculator.score_all(metrics, registry, now)
        ranked = [node.to_dict() for node in self.ranker.rank(scores)]

        logger.info(f"Leaderboard: {len(ranked)} active nodes with heartbeats")
        return {
            "_id": LEADERBOARD_CACHE_KEY,
            "timestamp": now,
            "all_nodes": ranked,
            "data": self.ranker.top(ranked),
            "total_nodes": len(ranked),
        }

    def refresh(self) -> LeaderboardDocument | None:
        """
        Compute and atomically replace the cached snapshot.

        Any exception propagates before the cache is touched, so a failed
        cycle leaves the previous snapshot in place. Returns None when the
        cache is still unavailable.
        """
        if not self.cache.ready and not self.initialize():
            logger.error("Leaderboard cache not initialized, skipping update")
            return None

        logger.info("Calculating leaderboard...")
        document = self.compute()
        size = self.cache.replace(document)
        logger.info(
            f"Leaderboard updated - {document['total_nodes']} nodes ranked "
            f"(cache: {size / (1024 * 1024):.2f}MB)"
        )
        return document
