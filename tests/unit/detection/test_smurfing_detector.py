"""
Unit tests for smurfing (fan-in / fan-out) detection.
"""

import copy
import pytest

from ringwatch.analyzers.detectors import SmurfingDetector
from ringwatch.constants import PatternTags, PatternTypes


def fan_in_rows():
    """Aggregator AGG receives 5 large and 6 small deposits within a few hours."""
    rows = [(f"BIG{i}", "AGG", 10000, i * 30) for i in range(5)]
    rows += [(f"SMALL{i}", "AGG", 10, 200 + i * 30) for i in range(6)]
    return rows


class TestSmurfingDetection:
    """Test fan-in and fan-out smurfing detection."""

    @pytest.fixture
    def detector(self, detection_config):
        return SmurfingDetector(detection_config)

    def test_fan_in_ring_holds_aggregator_and_small_senders(self, detector, make_result):
        print(f"\n{'#'*80}")
        print("# TEST: Fan-in aggregator with small-amount senders")
        print(f"{'#'*80}")

        result = make_result(fan_in_rows())

        rings = detector.detect(result)

        assert len(rings) == 1
        ring = rings[0]
        print(f"Ring members: {ring.member_accounts}")

        assert ring.pattern_type == PatternTypes.SMURFING_FAN_IN
        assert ring.member_accounts == ["AGG"] + [f"SMALL{i}" for i in range(6)]
        assert PatternTags.FAN_IN_AGGREGATOR in result.accounts["AGG"].patterns
        assert PatternTags.FAN_IN_SENDER in result.accounts["SMALL0"].patterns
        assert result.accounts["BIG0"].patterns == []

    def test_members_provisionally_linked_to_candidate(self, detector, make_result):
        result = make_result(fan_in_rows())

        ring = detector.detect(result)[0]

        assert ring.ring_id is None
        for account_id in ring.member_accounts:
            assert result.accounts[account_id].ring_id == ring.candidate_id
        assert result.accounts["BIG0"].ring_id is None

    def test_fan_in_below_threshold(self, detector, make_result):
        rows = [(f"S{i}", "AGG", 10, i * 10) for i in range(9)]
        result = make_result(rows)

        assert detector.detect(result) == []

    def test_fan_in_without_temporal_clustering(self, detector, make_result):
        # One deposit every 80 hours never fills a 72-hour window
        rows = [(f"S{i}", "AGG", 10, i * 80 * 60) for i in range(12)]
        result = make_result(rows)

        assert detector.detect(result) == []
        assert result.accounts["AGG"].patterns == []

    def test_fan_out_includes_every_receiver(self, detector, make_result):
        rows = [("DISP", f"R{i}", 1000 + i * 500, i * 20) for i in range(10)]
        result = make_result(rows)

        rings = detector.detect(result)

        assert len(rings) == 1
        ring = rings[0]
        assert ring.pattern_type == PatternTypes.SMURFING_FAN_OUT
        assert ring.member_accounts == ["DISP"] + [f"R{i}" for i in range(10)]
        assert PatternTags.FAN_OUT_DISPERSER in result.accounts["DISP"].patterns
        assert PatternTags.FAN_OUT_RECEIVER in result.accounts["R9"].patterns

    def test_repeated_receivers_listed_once(self, detector, make_result):
        rows = [("DISP", f"R{i % 3}", 100, i * 10) for i in range(12)]
        result = make_result(rows)

        ring = detector.detect(result)[0]

        assert ring.member_accounts == ["DISP", "R0", "R1", "R2"]

    def test_fewer_than_three_transactions_never_cluster(self, detection_config, make_transactions):
        config = copy.deepcopy(detection_config)
        config["smurfing_detection"]["min_window_transactions"] = 1
        detector = SmurfingDetector(config)

        txs = make_transactions([("A", "B", 10, 0), ("A", "B", 10, 1)])

        assert detector._has_temporal_clustering(txs) is False

    def test_window_resets_after_gap(self, detector, make_transactions):
        # 3 early transactions, then 5 inside a later window
        rows = [("S", "AGG", 10, i) for i in range(3)]
        rows += [("S", "AGG", 10, 100 * 60 + i) for i in range(5)]

        assert detector._has_temporal_clustering(make_transactions(rows)) is True

    def test_self_transfers_do_not_crash(self, detector, make_result):
        rows = [("X", "X", 10, i) for i in range(12)]
        result = make_result(rows)

        rings = detector.detect(result)

        assert {ring.pattern_type for ring in rings} <= {
            PatternTypes.SMURFING_FAN_IN, PatternTypes.SMURFING_FAN_OUT
        }
        for ring in rings:
            assert ring.member_accounts == ["X"]
