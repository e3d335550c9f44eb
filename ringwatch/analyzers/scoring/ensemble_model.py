from typing import Dict, List
import numpy as np
from loguru import logger
from sklearn.ensemble import IsolationForest
from sklearn.neighbors import LocalOutlierFactor

from ringwatch.analyzers.base_detector import BaseStage
from ringwatch.analyzers.scoring.risk_predictor import RiskPredictor
from ringwatch.constants import MODEL_VERSION
from ringwatch.models import Account, DetectionResult


def isolation_features(account: Account) -> List[float]:
    return [
        account.transaction_count,
        account.incoming_count,
        account.outgoing_count,
        account.total_received,
        account.total_sent,
        len(account.incoming_from),
        len(account.outgoing_to),
    ]


def outlier_features(account: Account, amount_scale: float) -> List[float]:
    # Squared amount differences shrink by amount_scale in the Euclidean distance
    amount_divisor = np.sqrt(amount_scale)
    return [
        account.transaction_count,
        account.incoming_count,
        account.outgoing_count,
        account.total_received / amount_divisor,
        account.total_sent / amount_divisor,
    ]


class EnsembleRiskModel(BaseStage):
    """
    Ensemble of an isolation forest, a local outlier factor model and the
    rule-based risk predictor.

    The anomaly sub-models are fitted on the current batch only, so their
    scores are relative to the population being analyzed. Both are bounded
    in [0, 1] and grow for population outliers:

    * isolation forest: 2 ** (-E[h(x)] / c(n)) from sklearn's score_samples
    * local outlier factor: min(1, LOF / 2), where LOF is ~1 for inliers

    Only the risk predictor feeds the suspicion score blend.
    """

    def __init__(self, config: Dict):
        super().__init__(config)
        self.model_weights = self.config["ensemble"]["model_weights"]
        self.risk_predictor = RiskPredictor(config)

    def _validate_config(self) -> None:
        self._require_section("ensemble")
        self._require_section("risk_predictor")

    def apply_risk_blend(self, result: DetectionResult) -> None:
        """Blend the rule-based predictor into every account's suspicion score."""
        prior_weight = self._get_config_value("ensemble", "prior_weight", 0.7)
        predictor_weight = self._get_config_value("ensemble", "predictor_weight", 0.3)

        all_accounts = list(result.accounts.values())
        for account in all_accounts:
            predictor_score = self.risk_predictor.predict_risk_score(account, all_accounts)
            blended = account.suspicion_score * prior_weight + predictor_score * predictor_weight
            account.suspicion_score = min(100.0, blended)

        logger.info(f"Blended predictor risk into {len(all_accounts)} account scores")

    def isolation_scores(self, accounts: List[Account]) -> np.ndarray:
        if len(accounts) < 2:
            return np.zeros(len(accounts))

        X = np.array([isolation_features(a) for a in accounts], dtype=float)
        model = IsolationForest(
            n_estimators=self._get_config_value("ensemble", "isolation_trees", 100),
            random_state=self._get_config_value("ensemble", "random_state", 42),
        )
        model.fit(X)

        return np.clip(-model.score_samples(X), 0.0, 1.0)

    def outlier_scores(self, accounts: List[Account]) -> np.ndarray:
        if len(accounts) < 2:
            return np.zeros(len(accounts))

        amount_scale = self._get_config_value("ensemble", "lof_amount_scale", 1000.0)
        k = self._get_config_value("ensemble", "lof_neighbors", 5)

        X = np.array([outlier_features(a, amount_scale) for a in accounts], dtype=float)
        model = LocalOutlierFactor(n_neighbors=min(k, len(accounts) - 1), metric="euclidean")
        model.fit(X)

        lof = -model.negative_outlier_factor_
        return np.clip(lof / 2.0, 0.0, 1.0)

    def score_population(self, accounts: List[Account]) -> Dict[str, Dict]:
        """
        Ensemble breakdown for every account of the population.

        Returns:
            Mapping of account id to ensemble_score, per-model scores (0-100),
            confidence and model_version
        """
        isolation = self.isolation_scores(accounts)
        outlier = self.outlier_scores(accounts)

        breakdown = {}
        for index, account in enumerate(accounts):
            predictor = self.risk_predictor.predict(account)
            iso_score = float(isolation[index])
            lof_score = float(outlier[index])

            ensemble_score = (
                iso_score * self.model_weights["isolation_forest"]
                + lof_score * self.model_weights["local_outlier_factor"]
                + predictor * self.model_weights["risk_predictor"]
            )

            breakdown[account.account_id] = {
                "ensemble_score": ensemble_score * 100,
                "isolation_forest_score": iso_score * 100,
                "lof_score": lof_score * 100,
                "risk_predictor_score": predictor * 100,
                "confidence": self._confidence(iso_score, lof_score, predictor),
                "model_version": MODEL_VERSION,
            }

        return breakdown

    def predict_risk(self, account: Account, all_accounts: List[Account]) -> Dict:
        return self.score_population(all_accounts)[account.account_id]

    @staticmethod
    def _confidence(*scores: float) -> float:
        """Agreement between models: lower variance means higher confidence."""
        variance = float(np.var(scores))
        return max(0.0, 1.0 - variance) * 100
