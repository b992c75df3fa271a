"""Node reputation leaderboard: windowed scoring, ranking and a refreshed cache."""

__version__ = "1.0.0"
