"""Constants for reputation scoring and the leaderboard cache."""

# Aggregation window
WINDOW_DAYS = 7
RECENT_DAYS = 2
HOURS_IN_WINDOW = WINDOW_DAYS * 24

# Composite range
MIN_SCORE = 0
MAX_SCORE = 100

# Availability (0..45)
AVAILABILITY_WEIGHT = 45
FULL_AVAILABILITY_HOURS = 154  # ~22h/day over the window
MIN_UPTIME_SECONDS = 30 * 60

# Network quality (0..30)
THROUGHPUT_WEIGHT = 20
THROUGHPUT_REFERENCE = 400
LATENCY_WEIGHT = 10
LATENCY_REFERENCE = 200

# Resource headroom (0..10)
CPU_WEIGHT = 6
MEMORY_WEIGHT = 3
STORAGE_WEIGHT = 1
NEUTRAL_USAGE_PERCENT = 50

# Consistency (0..15)
COVERAGE_WEIGHT = 12
COVERAGE_TARGET_RATIO = 0.8
RECENCY_WEIGHT = 3
RECENCY_CUTOFF_HOURS = 72

# Uptime cap
MAX_UPTIME_SECONDS = 24 * 60 * 60

# New nodes
GRACE_PERIOD_DAYS = 7
NEW_NODE_MAX_HEARTBEATS = 10
NEW_NODE_SCORE = 100
THIRTY_DAY_REQUIREMENT_DAYS = 30

# Tiers (best first)
TIER_EXCELLENT = "excellent"
TIER_GOOD = "good"
TIER_AVERAGE = "average"
TIER_POOR = "poor"
TIERS = (TIER_EXCELLENT, TIER_GOOD, TIER_AVERAGE, TIER_POOR)

EXCELLENT_THRESHOLD = 75
GOOD_THRESHOLD = 55
AVERAGE_THRESHOLD = 40

RANK_BADGES = {
    TIER_EXCELLENT: "🏆 Excellent",
    TIER_GOOD: "😊 Good",
    TIER_AVERAGE: "👍 Average",
    TIER_POOR: "⚠️ Poor",
}

PERFORMANCE_INSIGHTS = {
    TIER_EXCELLENT: "Excellent - Maintaining peak performance",
    TIER_GOOD: "Good - Strong and reliable performance",
    TIER_AVERAGE: "Average - Performance declining, needs improvement",
    TIER_POOR: "Poor - Significant inactivity or performance issues",
}

# Leaderboard cache
LEADERBOARD_CACHE_KEY = "leaderboard_cache"
MAX_TOP_N = 100
DEFAULT_TOP_COUNT = 10
UPDATE_INTERVAL_SECONDS = 60
MAX_DOCUMENT_BYTES = 16 * 1024 * 1024  # document store limit
SIZE_WARNING_RATIO = 0.75

# Shutdown drain
DRAIN_TIMEOUT_SECONDS = 5.0
DRAIN_POLL_SECONDS = 0.5
