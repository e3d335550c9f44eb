"""
Unit tests for the anomaly ensemble and the predictor blend.

The population is 20 near-identical senders and one sink receiving every
transfer, which makes the sink the clear outlier of the batch.
"""

import pytest

from ringwatch.analyzers.scoring import EnsembleRiskModel, RiskPredictor
from ringwatch.constants import MODEL_VERSION


@pytest.fixture
def model(detection_config):
    return EnsembleRiskModel(detection_config)


@pytest.fixture
def star_result(make_result):
    return make_result([(f"S{i:02d}", "SINK", 100 + i, i * 90) for i in range(20)])


class TestEnsembleRiskModel:

    def test_breakdown_shape_and_bounds(self, model, star_result):
        breakdown = model.score_population(list(star_result.accounts.values()))

        assert set(breakdown) == set(star_result.accounts)
        for scores in breakdown.values():
            assert scores["model_version"] == MODEL_VERSION
            for key in ["ensemble_score", "isolation_forest_score", "lof_score",
                        "risk_predictor_score", "confidence"]:
                assert 0.0 <= scores[key] <= 100.0

    def test_outlier_scores_higher(self, model, star_result):
        print(f"\n{'#'*80}")
        print("# TEST: Sink account is the batch outlier")
        print(f"{'#'*80}")

        breakdown = model.score_population(list(star_result.accounts.values()))
        sink = breakdown["SINK"]
        senders = [scores for account_id, scores in breakdown.items() if account_id != "SINK"]

        print(f"Sink: {sink}")
        assert sink["isolation_forest_score"] > max(s["isolation_forest_score"] for s in senders)
        assert sink["lof_score"] >= max(s["lof_score"] for s in senders)
        assert sink["ensemble_score"] > max(s["ensemble_score"] for s in senders)

    def test_deterministic(self, model, star_result):
        accounts = list(star_result.accounts.values())

        assert model.score_population(accounts) == model.score_population(accounts)

    def test_single_account_population(self, model, make_result):
        result = make_result([("A", "A", 100, 0)])
        account = result.accounts["A"]

        scores = model.predict_risk(account, [account])

        assert scores["isolation_forest_score"] == 0.0
        assert scores["lof_score"] == 0.0

    def test_predict_risk_matches_population(self, model, star_result):
        accounts = list(star_result.accounts.values())

        single = model.predict_risk(star_result.accounts["S05"], accounts)

        assert single == model.score_population(accounts)["S05"]

    def test_confidence_full_agreement(self):
        assert EnsembleRiskModel._confidence(0.4, 0.4, 0.4) == pytest.approx(100.0)


class TestRiskBlend:

    def test_blend_formula(self, model, detection_config, make_result):
        result = make_result([("A", "B", 100, 0)])
        population = list(result.accounts.values())
        result.accounts["A"].suspicion_score = 80.0
        predictor_score = RiskPredictor(detection_config).predict_risk_score(result.accounts["A"], population)

        model.apply_risk_blend(result)

        assert result.accounts["A"].suspicion_score == pytest.approx(0.7 * 80.0 + 0.3 * predictor_score)

    def test_blend_capped(self, model, make_result):
        result = make_result([("A", "B", 100, 0)])
        result.accounts["A"].suspicion_score = 1000.0

        model.apply_risk_blend(result)

        assert result.accounts["A"].suspicion_score == 100.0
