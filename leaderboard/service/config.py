"""Service configuration loaded from LB_* environment variables."""

import os
from dataclasses import dataclass, field
from pathlib import Path

from ..core import (
    DRAIN_TIMEOUT_SECONDS,
    MAX_DOCUMENT_BYTES,
    MAX_TOP_N,
    RECENT_DAYS,
    SIZE_WARNING_RATIO,
    UPDATE_INTERVAL_SECONDS,
    WINDOW_DAYS,
)

DEFAULT_DATA_DIR = Path.home() / ".leaderboard"


@dataclass
class LeaderboardConfig:
    """Configuration for the leaderboard service."""
    update_interval: float = UPDATE_INTERVAL_SECONDS
    window_days: int = WINDOW_DAYS
    recent_days: int = RECENT_DAYS
    top_n: int = MAX_TOP_N
    drain_timeout: float = DRAIN_TIMEOUT_SECONDS
    max_document_bytes: int = MAX_DOCUMENT_BYTES
    size_warning_ratio: float = SIZE_WARNING_RATIO
    cache_path: Path = field(default_factory=lambda: DEFAULT_DATA_DIR / "leaderboard_cache.json")
    heartbeats_path: Path = field(default_factory=lambda: DEFAULT_DATA_DIR / "heartbeats.jsonl")
    registry_path: Path = field(default_factory=lambda: DEFAULT_DATA_DIR / "nodes.json")
    host: str = "127.0.0.1"
    port: int = 8080
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "LeaderboardConfig":
        """Build a config from the environment, falling back to defaults."""
        defaults = cls()
        return cls(
            update_interval=float(os.getenv("LB_UPDATE_INTERVAL_SECONDS", str(defaults.update_interval))),
            window_days=int(os.getenv("LB_WINDOW_DAYS", str(defaults.window_days))),
            recent_days=int(os.getenv("LB_RECENT_DAYS", str(defaults.recent_days))),
            top_n=int(os.getenv("LB_TOP_N", str(defaults.top_n))),
            drain_timeout=float(os.getenv("LB_DRAIN_TIMEOUT", str(defaults.drain_timeout))),
            max_document_bytes=int(os.getenv("LB_MAX_DOCUMENT_BYTES", str(defaults.max_document_bytes))),
            size_warning_ratio=float(os.getenv("LB_SIZE_WARNING_RATIO", str(defaults.size_warning_ratio))),
            cache_path=Path(os.getenv("LB_CACHE_PATH", str(defaults.cache_path))),
            heartbeats_path=Path(os.getenv("LB_HEARTBEATS_PATH", str(defaults.heartbeats_path))),
            registry_path=Path(os.getenv("LB_REGISTRY_PATH", str(defaults.registry_path))),
            host=os.getenv("LB_HTTP_HOST", defaults.host),
            port=int(os.getenv("LB_HTTP_PORT", str(defaults.port))),
            log_level=os.getenv("LB_LOG_LEVEL", defaults.log_level).upper(),
        )
