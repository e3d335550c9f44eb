from typing import Dict, List

from ringwatch.analyzers.base_detector import BaseStage
from ringwatch.models import Account
from ringwatch.utils import minutes_between


class RiskPredictor(BaseStage):
    """Rule-based risk predictor over bucketed per-account heuristics."""

    def __init__(self, config: Dict):
        super().__init__(config)
        self.feature_weights = self.config["risk_predictor"]["feature_weights"]

    def _validate_config(self) -> None:
        self._require_section("risk_predictor")
        weights = self.config["risk_predictor"].get("feature_weights", {})
        for key in ["transaction_count", "in_out_ratio", "amount_ratio", "velocity", "connectivity"]:
            if key not in weights:
                raise ValueError(f"Missing risk predictor feature weight: {key}")

    def predict(self, account: Account) -> float:
        """Base risk in [0, 1]."""
        score = 0.0
        score += min(1.0, account.transaction_count / 10.0) * self.feature_weights["transaction_count"]
        score += self._in_out_ratio_score(account) * self.feature_weights["in_out_ratio"]
        score += self._amount_ratio_score(account) * self.feature_weights["amount_ratio"]
        score += self._velocity_score(account) * self.feature_weights["velocity"]
        score += self._connectivity_score(account) * self.feature_weights["connectivity"]
        return min(1.0, score)

    def predict_risk_score(self, account: Account, all_accounts: List[Account]) -> float:
        """
        Population-aware risk on a 0-100 scale.

        Accounts whose transaction count exceeds the population mean by the
        configured factor receive a flat boost.
        """
        boost = self._get_config_value("risk_predictor", "population_boost", 0.1)
        boost_factor = self._get_config_value("risk_predictor", "population_boost_factor", 2.0)

        base_score = self.predict(account)

        avg_tx = (
            sum(a.transaction_count for a in all_accounts) / len(all_accounts)
            if all_accounts else 1.0
        )
        if account.transaction_count > avg_tx * boost_factor:
            base_score += boost

        return min(100.0, base_score * 100)

    @staticmethod
    def _in_out_ratio_score(account: Account) -> float:
        if account.incoming_count == 0 or account.outgoing_count == 0:
            return 0.5

        ratio = account.incoming_count / account.outgoing_count
        if ratio > 3 or ratio < 0.33:
            return 0.9
        if ratio > 2 or ratio < 0.5:
            return 0.6
        return 0.2

    @staticmethod
    def _amount_ratio_score(account: Account) -> float:
        if account.total_received == 0 or account.total_sent == 0:
            return 0.4

        ratio = account.total_received / account.total_sent
        if ratio > 5 or ratio < 0.2:
            return 0.9
        if ratio > 3 or ratio < 0.33:
            return 0.7
        return 0.3

    @staticmethod
    def _velocity_score(account: Account) -> float:
        txs = account.transactions_by_time()
        if len(txs) < 2:
            return 0.2

        total_minutes = sum(
            minutes_between(previous.timestamp, current.timestamp)
            for previous, current in zip(txs, txs[1:])
        )
        avg_minutes = total_minutes // (len(txs) - 1)

        if avg_minutes < 30:
            return 0.9
        if avg_minutes < 60:
            return 0.7
        if avg_minutes < 120:
            return 0.4
        return 0.2

    @staticmethod
    def _connectivity_score(account: Account) -> float:
        connections = len(account.incoming_from) + len(account.outgoing_to)

        if connections > 10:
            return 0.9
        if connections > 5:
            return 0.7
        if connections > 2:
            return 0.4
        return 0.2
