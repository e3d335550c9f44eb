"""
End-to-end tests for the detection pipeline.

Verifies:
- A simple triangle of transfers yields exactly one cycle ring
- Final rings never share members
- Isolated accounts never reach the suspicious-account output
- Self-transfers never produce rings on their own or crash a stage
- Re-running on a rebuilt graph reproduces identical results
"""

import pytest

from ringwatch import setup_metrics
from ringwatch.analyzers import FraudDetectionPipeline, build_account_graph
from ringwatch.constants import AlertTypes, MODEL_VERSION, PatternTypes
from ringwatch.models import Account


def mixed_batch_rows():
    rows = []
    # Cycle
    rows += [("C1", "C2", 900, 0), ("C2", "C3", 880, 30), ("C3", "C1", 860, 60)]
    # Fan-in
    rows += [(f"BIG{i}", "AGG", 9000, 100 + i * 20) for i in range(5)]
    rows += [(f"SM{i}", "AGG", 15, 300 + i * 20) for i in range(7)]
    # Chain
    rows += [("L1", "L2", 400, 600), ("L2", "L3", 390, 660), ("L3", "L4", 380, 720)]
    # Noise and self-transfers
    rows += [("N1", "N2", 50, 900), ("N2", "N3", 20, 3000), ("SELF", "SELF", 70, 1200)]
    return rows


@pytest.fixture
def pipeline():
    return FraudDetectionPipeline()


class TestEndToEnd:

    def test_triangle_yields_single_cycle_ring(self, pipeline, make_result):
        print(f"\n{'#'*80}")
        print("# TEST: A -> B -> C -> A end to end")
        print(f"{'#'*80}")

        result = make_result([("A", "B", 100, 0), ("B", "C", 100, 60), ("C", "A", 100, 120)])

        report = pipeline.run_detection(result)

        print(f"Rings: {report['fraud_rings']}")
        assert len(result.rings) == 1
        ring = next(iter(result.rings.values()))
        assert ring.ring_id == "RING_001"
        assert ring.pattern_type == PatternTypes.CYCLE
        assert set(ring.member_accounts) == {"A", "B", "C"}
        for account_id in "ABC":
            assert "cycle_length_3" in result.accounts[account_id].patterns
            assert result.accounts[account_id].ring_id == "RING_001"

        mean_score = sum(result.accounts[a].suspicion_score for a in "ABC") / 3
        assert ring.risk_score > 0
        assert ring.risk_score == pytest.approx(min(100.0, mean_score * 1.2 * 1.09))

        assert report["summary"]["fraud_rings_detected"] == 1
        assert report["summary"]["model_version"] == MODEL_VERSION

    def test_four_cycle(self, pipeline, make_result):
        rows = [("A", "B", 100, 0), ("B", "C", 100, 60), ("C", "D", 100, 120), ("D", "A", 100, 180)]
        result = make_result(rows)

        pipeline.run_detection(result)

        assert len(result.rings) == 1
        ring = next(iter(result.rings.values()))
        assert ring.pattern_type == PatternTypes.CYCLE
        assert set(ring.member_accounts) == {"A", "B", "C", "D"}
        for account_id in "ABCD":
            assert "cycle_length_4" in result.accounts[account_id].patterns

    def test_cycle_alerts(self, pipeline, make_result):
        result = make_result([("A", "B", 100, 0), ("B", "C", 100, 60), ("C", "A", 100, 120)])

        report = pipeline.run_detection(result)

        alert_types = {alert["type"] for alert in report["alerts"]}
        assert AlertTypes.MULTIPLE_CYCLES in alert_types
        assert pipeline.get_alert_history("NETWORK")

    def test_isolated_account_not_reported(self, pipeline, make_result):
        result = make_result([("A", "B", 100, 0)])
        result.accounts["ISOLATED"] = Account("ISOLATED")

        report = pipeline.run_detection(result)

        ids = {entry["account_id"] for entry in report["suspicious_accounts"]}
        assert "ISOLATED" not in ids
        assert result.accounts["ISOLATED"].suspicion_score <= 40

    def test_self_transfers_only(self, pipeline, make_result):
        result = make_result([("X", "X", 100, i * 5) for i in range(4)])

        pipeline.run_detection(result)

        assert all(ring.pattern_type != PatternTypes.CYCLE for ring in result.rings.values())

    def test_mixed_batch_rings_disjoint(self, pipeline, make_result):
        result = make_result(mixed_batch_rows())

        report = pipeline.run_detection(result)

        members = [m for ring in result.rings.values() for m in ring.member_accounts]
        assert len(members) == len(set(members))
        assert report["summary"]["total_accounts_analyzed"] == len(result.accounts)
        assert report["summary"]["suspicious_accounts_flagged"] == len(report["suspicious_accounts"])

        scores = [entry["suspicion_score"] for entry in report["suspicious_accounts"]]
        assert scores == sorted(scores, reverse=True)
        risks = [entry["risk_score"] for entry in report["fraud_rings"]]
        assert risks == sorted(risks, reverse=True)

        for account in result.accounts.values():
            assert account.ring_id is None or account.ring_id in result.rings

    def test_detect_builds_graph(self, pipeline, make_transactions):
        result = pipeline.detect(make_transactions([("A", "B", 100, 0)]))

        assert set(result.accounts) == {"A", "B"}
        assert result.summary["total_accounts_analyzed"] == 2

    def test_empty_batch(self, pipeline):
        result = pipeline.detect([])

        assert result.summary["total_accounts_analyzed"] == 0
        assert result.rings == {}


class TestDeterminism:

    def test_rerun_on_rebuilt_graph_is_identical(self, pipeline, make_transactions):
        transactions = make_transactions(mixed_batch_rows())

        first = build_account_graph(transactions)
        second = build_account_graph(transactions)
        first_report = pipeline.run_detection(first)
        second_report = pipeline.run_detection(second)

        assert {a: acc.suspicion_score for a, acc in first.accounts.items()} == \
               {a: acc.suspicion_score for a, acc in second.accounts.items()}
        assert {rid: r.member_accounts for rid, r in first.rings.items()} == \
               {rid: r.member_accounts for rid, r in second.rings.items()}

        for key in ["total_accounts_analyzed", "suspicious_accounts_flagged", "fraud_rings_detected"]:
            assert first_report["summary"][key] == second_report["summary"][key]


class TestCollaboratorsAndMetrics:

    def test_default_collaborators_fill_advanced_analytics(self, pipeline, make_result):
        result = make_result(mixed_batch_rows())

        report = pipeline.run_detection(result)

        assert set(report["advanced_analytics"]) == {"flow_analysis", "temporal_heatmap"}

    def test_without_collaborators(self, make_result):
        pipeline = FraudDetectionPipeline(collaborators=[])
        result = make_result([("A", "B", 100, 0)])

        assert pipeline.run_detection(result)["advanced_analytics"] == {}

    def test_metrics_recorded(self, make_result):
        metrics = setup_metrics("ringwatch-pipeline-test")
        pipeline = FraudDetectionPipeline(metrics_registry=metrics)

        pipeline.run_detection(make_result([("A", "B", 100, 0)]))

        text = metrics.get_metrics_text()
        assert 'detection_runs_total{outcome="success"}' in text
        assert "detection_run_duration_seconds_count" in text

    def test_stage_failure_propagates(self, pipeline, make_result):
        class ExplodingCollaborator:
            name = "exploding"

            def analyze(self, result):
                raise RuntimeError("boom")

        pipeline.collaborators = [ExplodingCollaborator()]

        with pytest.raises(RuntimeError):
            pipeline.run_detection(make_result([("A", "B", 100, 0)]))
