"""Leaderboard service: engine, scheduler, query facade and HTTP boundary."""

from .config import LeaderboardConfig
from .engine import LeaderboardEngine
from .scheduler import (
    Scheduler,
    STATE_STOPPED,
    STATE_IDLE,
    STATE_COMPUTING,
    STATE_SHUTTING_DOWN,
)
from .facade import QueryFacade, clamp_count

__all__ = [
    "LeaderboardConfig",
    "LeaderboardEngine",
    "Scheduler",
    "STATE_STOPPED",
    "STATE_IDLE",
    "STATE_COMPUTING",
    "STATE_SHUTTING_DOWN",
    "QueryFacade",
    "clamp_count",
]
