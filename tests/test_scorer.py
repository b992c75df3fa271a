"""
Tests for reputation scoring.

These tests verify:
1. Aggregation ignores absent samples instead of penalising them
2. Each component score follows its formula and bounds
3. The new-node override and grace eligibility rules
4. The worked scenarios (established node A, brand-new node)
"""

from datetime import timedelta

import pytest

from leaderboard.core import MemoryHeartbeatSource, ScoreCalculator, TimeSeriesReader
from leaderboard.core.scorer import (
    availability_score,
    consistency_score,
    is_grace_eligible,
    network_quality_score,
    resource_headroom_score,
)

from helpers import NOW, hourly_heartbeats, make_entry, make_heartbeat


def score_nodes(records, entries=(), now=NOW):
    calculator = ScoreCalculator()
    heartbeats = TimeSeriesReader(MemoryHeartbeatSource(records)).read_window(now)
    metrics = calculator.aggregate(heartbeats)
    registry = {e["node_id"]: e for e in entries}
    return {s.node_id: s for s in calculator.score_all(metrics, registry, now)}


# =============================================================================
# AGGREGATION
# =============================================================================

class TestAggregation:

    def test_distinct_hours_counts_and_averages(self):
        records = [
            make_heartbeat("a", NOW - timedelta(hours=1), speed=100, cpu=20, uptime=100),
            make_heartbeat("a", NOW - timedelta(hours=2), latency=50, uptime=5000),
            make_heartbeat("a", NOW - timedelta(hours=2, minutes=10), speed=300, uptime=90000),
        ]
        heartbeats = TimeSeriesReader(MemoryHeartbeatSource(records)).read_window(NOW)
        metrics = ScoreCalculator().aggregate(heartbeats)["a"]

        assert metrics.hours_online == 2
        assert metrics.total_heartbeats == 3
        assert metrics.recent_heartbeats == 3
        assert metrics.avg_network_speed == 200
        assert metrics.avg_latency == 50
        assert metrics.avg_cpu_usage == 20
        assert metrics.avg_memory_usage is None
        assert metrics.max_uptime == 90000
        assert metrics.capped_max_uptime == 86400
        assert metrics.first_seen == NOW - timedelta(hours=2, minutes=10)
        assert metrics.last_seen == NOW - timedelta(hours=1)

    def test_preserves_first_appearance_order(self):
        records = [
            make_heartbeat("z", NOW),
            make_heartbeat("a", NOW),
            make_heartbeat("z", NOW - timedelta(hours=1)),
        ]
        heartbeats = TimeSeriesReader(MemoryHeartbeatSource(records)).read_window(NOW)

        assert list(ScoreCalculator().aggregate(heartbeats)) == ["z", "a"]

    def test_missing_uptime_counts_as_zero(self):
        heartbeats = TimeSeriesReader(MemoryHeartbeatSource([
            make_heartbeat("a", NOW, uptime=None),
        ])).read_window(NOW)
        metrics = ScoreCalculator().aggregate(heartbeats)["a"]

        assert metrics.max_uptime == 0
        assert not metrics.meets_minimum_uptime


# =============================================================================
# COMPONENTS
# =============================================================================

class TestAvailability:

    def test_full_at_target_hours(self):
        assert availability_score(154, 3600) == 45

    def test_capped_above_target(self):
        assert availability_score(168, 3600) == 45

    def test_linear_below_target(self):
        assert availability_score(77, 3600) == pytest.approx(22.5)

    def test_zero_without_thirty_minute_streak(self):
        assert availability_score(154, 1799) == 0
        assert availability_score(154, 1800) == 45


class TestNetworkQuality:

    def test_absent_metrics_score_zero(self):
        assert network_quality_score(None, None) == 0

    def test_linear_parts(self):
        assert network_quality_score(200, 100) == pytest.approx(15)

    def test_caps(self):
        assert network_quality_score(4000, 0) == 30
        assert network_quality_score(0, 500) == 0

    def test_out_of_range_inputs_clamped(self):
        assert network_quality_score(-100, -100) == 10
        assert network_quality_score(400, -1000) == 30


class TestResourceHeadroom:

    def test_neutral_default_when_absent(self):
        assert resource_headroom_score(None, None, None) == pytest.approx(5)

    def test_fully_used(self):
        assert resource_headroom_score(100, 100, 100) == 0

    def test_over_utilisation_clamped(self):
        assert resource_headroom_score(150, 100, 100) == 0

    def test_negative_usage_clamped(self):
        assert resource_headroom_score(-50, -50, -50) == 10

    def test_mixed(self):
        assert resource_headroom_score(0, None, None) == pytest.approx(8)


class TestConsistency:

    def test_coverage_target_is_eighty_percent_of_window(self):
        assert consistency_score(134.4, 100) == pytest.approx(12)

    def test_recency_decay(self):
        assert consistency_score(0, 0) == pytest.approx(3)
        assert consistency_score(0, 36) == pytest.approx(1.5)
        assert consistency_score(0, 72) == pytest.approx(0)
        assert consistency_score(0, 73) == 0

    def test_bounded_for_future_last_seen(self):
        assert consistency_score(500, -10) == pytest.approx(15)


# =============================================================================
# GRACE
# =============================================================================

class TestGraceEligibility:

    def test_natural_age(self):
        assert is_grace_eligible(make_entry("a", registered_days_ago=7), NOW)
        assert not is_grace_eligible(make_entry("a", registered_days_ago=7.01), NOW)

    def test_manual_flag_active(self):
        entry = make_entry(
            "a", registered_days_ago=100,
            is_in_grace_period=True, grace_period_ends_at=NOW + timedelta(days=1),
        )
        assert is_grace_eligible(entry, NOW)

    def test_manual_flag_expired(self):
        entry = make_entry(
            "a", registered_days_ago=100,
            is_in_grace_period=True, grace_period_ends_at=NOW - timedelta(seconds=1),
        )
        assert not is_grace_eligible(entry, NOW)

    def test_flag_without_end_is_inactive(self):
        entry = make_entry("a", registered_days_ago=100, is_in_grace_period=True)
        assert not is_grace_eligible(entry, NOW)

    def test_unknown_node(self):
        assert not is_grace_eligible(None, NOW)
        assert not is_grace_eligible(make_entry("a", registered_days_ago=None), NOW)


# =============================================================================
# COMPOSITE SCORE
# =============================================================================

class TestCompositeScore:

    def test_established_node_scenario(self):
        """160 online hours, full network, no resource data, 60 days registered."""
        records = hourly_heartbeats("node-a", 160, speed=400, latency=0)
        records[5]["status"]["uptime"] = 90000
        node = score_nodes(records, [make_entry("node-a", registered_days_ago=60)])["node-a"]

        assert node.availability_score == pytest.approx(45)
        assert node.network_quality_score == pytest.approx(30)
        assert node.resource_headroom_score == pytest.approx(5)
        assert node.consistency_score == pytest.approx(15)
        assert node.reputation_score == 95
        assert node.capped_max_uptime == 86400
        assert not node.is_new_node

    def test_brand_new_node_forced_to_max(self):
        records = hourly_heartbeats("fresh", 3, uptime=60)
        node = score_nodes(records, [make_entry("fresh", registered_days_ago=1)])["fresh"]

        assert node.is_new_node
        assert node.calculated_score < 100
        assert node.reputation_score == 100

    def test_override_needs_ten_or_fewer_heartbeats(self):
        entries = [make_entry("ten", registered_days_ago=2), make_entry("eleven", registered_days_ago=2)]
        records = hourly_heartbeats("ten", 10, uptime=60) + hourly_heartbeats("eleven", 11, uptime=60)
        nodes = score_nodes(records, entries)

        assert nodes["ten"].reputation_score == 100
        assert nodes["eleven"].reputation_score == round(nodes["eleven"].calculated_score, 2)
        assert nodes["eleven"].reputation_score < 100

    def test_old_node_with_few_heartbeats_not_overridden(self):
        records = hourly_heartbeats("old", 3, uptime=60)
        node = score_nodes(records, [make_entry("old", registered_days_ago=30)])["old"]

        assert node.reputation_score < 100

    def test_rounded_to_two_decimals(self):
        records = hourly_heartbeats("a", 7, speed=123.456, latency=77.7, cpu=33.3)
        node = score_nodes(records, [make_entry("a")])["a"]

        assert node.reputation_score == round(node.calculated_score, 2)

    @pytest.mark.parametrize("hours,speed,latency,cpu,uptime", [
        (1, None, None, None, None),
        (168, 10000, 0, 0, 10 ** 7),
        (50, 5, 1000, 100, 1800),
        (120, 399, 1, 99, 86400),
    ])
    def test_composite_within_bounds(self, hours, speed, latency, cpu, uptime):
        records = hourly_heartbeats("a", hours, speed=speed, latency=latency, cpu=cpu, uptime=uptime)
        node = score_nodes(records, [make_entry("a")])["a"]

        assert 0 <= node.reputation_score <= 100

    def test_heartbeats_ahead_of_now_do_not_exceed_max(self):
        records = hourly_heartbeats(
            "skewed", 160, now=NOW + timedelta(hours=2),
            speed=400, latency=0, cpu=0, memory=(0, 16), storage=(0, 500),
        )
        node = score_nodes(records, [make_entry("skewed")])["skewed"]

        assert node.hours_since_last_seen == 0
        assert node.consistency_score == pytest.approx(15)
        assert node.reputation_score == 100

    def test_negative_metrics_stay_in_range(self):
        records = hourly_heartbeats("odd", 160, speed=-400, latency=-50, cpu=-80)
        node = score_nodes(records, [make_entry("odd")])["odd"]

        assert 0 <= node.network_quality_score <= 30
        assert 0 <= node.resource_headroom_score <= 10
        assert 0 <= node.reputation_score <= 100


# =============================================================================
# DISPLAY FIELDS
# =============================================================================

class TestDisplayFields:

    def test_defaults_without_registry_entry(self):
        node = score_nodes(hourly_heartbeats("anon", 2))["anon"]

        assert node.device_name == "anon"
        assert node.country == "Unknown"
        assert node.location == ""
        assert node.wallet_address is None
        assert node.days_since_registration is None
        assert not node.meets_thirty_day_requirement

    def test_registry_metadata_carried(self):
        entry = make_entry("a", registered_days_ago=45, name="Rack 7", country="DE", wallet_address="0xabc")
        node = score_nodes(hourly_heartbeats("a", 2), [entry])["a"]

        assert node.device_name == "Rack 7"
        assert node.country == "DE"
        assert node.wallet_address == "0xabc"
        assert node.days_since_registration == 45.0
        assert node.meets_thirty_day_requirement

    def test_to_dict_is_json_ready(self):
        records = hourly_heartbeats("a", 24, speed=200, latency=20, uptime=43200)
        entry = score_nodes(records, [make_entry("a")])["a"].to_dict()

        assert entry["node_id"] == "a"
        assert entry["last_seen"] == NOW.isoformat()
        assert entry["activity_score"] == round(24 / 168 * 10, 2)
        assert entry["uptime_score"] == 5.0
        assert entry["uptime_hours"] == 12.0
        assert entry["performance_score"] == entry["network_quality_score"]
        assert entry["hours_since_last_seen"] == 0.0
