from loguru import logger

from ringwatch.analyzers.base_detector import BaseStage
from ringwatch.models import Account, DetectionResult
from ringwatch.utils import round_half_up


class SuspicionScoreCalculator(BaseStage):
    """
    Weighted blend of pattern, behavior and centrality sub-scores.

    Each run overwrites every account's suspicion score on a 0-100 scale.
    """

    def __init__(self, config):
        super().__init__(config)
        self.pattern_weights = self.config["scoring"]["pattern_weights"]

    def _validate_config(self) -> None:
        """Validate that scoring configuration is present."""
        self._require_section("scoring")
        if "pattern_weights" not in self.config["scoring"]:
            raise ValueError("Missing 'pattern_weights' in scoring configuration")

    def calculate_scores(self, result: DetectionResult) -> None:
        total_accounts = len(result.accounts)

        for account in result.accounts.values():
            score = self.calculate_account_score(account, total_accounts)
            account.suspicion_score = min(100.0, round_half_up(score * 100, 1))

        logger.info(f"Scored {total_accounts} accounts")

    def calculate_account_score(self, account: Account, total_accounts: int) -> float:
        pattern_weight = self._get_config_value("scoring", "pattern_weight", 0.5)
        behavior_weight = self._get_config_value("scoring", "behavior_weight", 0.3)
        centrality_weight = self._get_config_value("scoring", "centrality_weight", 0.2)
        patterned_floor = self._get_config_value("scoring", "patterned_floor", 0.5)

        score = (
            self.calculate_pattern_score(account) * pattern_weight
            + self.calculate_behavior_score(account) * behavior_weight
            + self.calculate_centrality_score(account, total_accounts) * centrality_weight
        )

        if account.patterns:
            score = max(score, patterned_floor)

        return score

    def calculate_pattern_score(self, account: Account) -> float:
        if not account.patterns:
            return 0.0

        unknown_weight = self._get_config_value("scoring", "unknown_pattern_weight", 0.5)
        count_boost = self._get_config_value("scoring", "pattern_count_boost", 0.1)
        max_boost = self._get_config_value("scoring", "max_pattern_count_boost", 0.3)

        unique_patterns = set(account.patterns)
        max_weight = max(self.pattern_weights.get(p, unknown_weight) for p in unique_patterns)
        boost = min(max_boost, len(unique_patterns) * count_boost)

        return min(1.0, max_weight + boost)

    def calculate_behavior_score(self, account: Account) -> float:
        score = 0.0

        # Transaction count tiers
        if account.transaction_count >= 5:
            score += 0.3
        elif account.transaction_count >= 3:
            score += 0.25
        elif account.transaction_count >= 2:
            score += 0.2
        elif account.transaction_count >= 1:
            score += 0.1

        # Incoming/outgoing count balance
        if account.incoming_count > 0 and account.outgoing_count > 0:
            ratio = account.incoming_count / account.outgoing_count
            if ratio > 2.0 or ratio < 0.5:
                score += 0.35
            else:
                score += 0.2
        elif account.incoming_count > 0 or account.outgoing_count > 0:
            score += 0.15

        # Received/sent amount balance
        if account.total_received > 0 and account.total_sent > 0:
            amount_ratio = account.total_received / account.total_sent
            if amount_ratio > 3.0 or amount_ratio < 0.33:
                score += 0.3
            elif amount_ratio > 2.0 or amount_ratio < 0.5:
                score += 0.2
            else:
                score += 0.1

        return min(1.0, score)

    def calculate_centrality_score(self, account: Account, total_accounts: int) -> float:
        score = 0.0

        if total_accounts > 0:
            degree_score = len(account.counterparties) / total_accounts
            score += min(0.6, degree_score * 2)

            frequency_score = account.transaction_count / total_accounts
            score += min(0.4, frequency_score * 3)

        if account.ring_id is not None:
            score += self._get_config_value("scoring", "ring_bonus", 0.2)

        return min(1.0, score)
