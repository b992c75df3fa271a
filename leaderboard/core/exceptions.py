"""Custom exceptions for leaderboard operations."""


class LeaderboardError(Exception):
    """Base exception for leaderboard operations."""
    pass


class NodeNotFoundError(LeaderboardError):
    """Raised when a node is not present in the ranked list."""
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node '{node_id}' not found in leaderboard")


class TelemetryReadError(LeaderboardError):
    """Raised when heartbeat or registry data cannot be read."""
    pass


class CacheStoreError(LeaderboardError):
    """Raised when the leaderboard cache cannot be read or written."""
    pass
