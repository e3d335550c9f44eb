from typing import List
from loguru import logger

from ringwatch.analyzers.base_detector import BaseStage
from ringwatch.constants import PatternTags
from ringwatch.models import DetectionResult, Transaction
from ringwatch.utils import hours_between, minutes_between


class TemporalAnalyzer(BaseStage):
    """
    Per-account behavioral tagging from transaction timing.
    Adds high_velocity, unusual_timing and round_tripping tags; creates no rings.
    """

    def _validate_config(self) -> None:
        """Validate that temporal_analysis configuration is present."""
        self._require_section("temporal_analysis")

    def analyze(self, result: DetectionResult) -> None:
        min_transactions = self._get_config_value("temporal_analysis", "min_transactions", 2)
        tagged = 0

        for account in result.accounts.values():
            if len(account.transactions) < min_transactions:
                continue

            txs = account.transactions_by_time()
            before = len(account.patterns)

            if self._has_high_velocity(txs):
                account.add_pattern(PatternTags.HIGH_VELOCITY)

            if self._has_unusual_timing(txs):
                account.add_pattern(PatternTags.UNUSUAL_TIMING)

            if self._has_round_tripping(txs):
                account.add_pattern(PatternTags.ROUND_TRIPPING)

            if len(account.patterns) > before:
                tagged += 1

        logger.info(f"Temporal analysis tagged {tagged} accounts")

    def _has_high_velocity(self, txs: List[Transaction]) -> bool:
        window_minutes = self._get_config_value("temporal_analysis", "velocity_window_minutes", 60)
        min_transactions = self._get_config_value("temporal_analysis", "velocity_min_transactions", 5)

        rapid_count = 0
        window_start = txs[0].timestamp

        for tx in txs:
            if minutes_between(window_start, tx.timestamp) <= window_minutes:
                rapid_count += 1
                if rapid_count >= min_transactions:
                    return True
            else:
                window_start = tx.timestamp
                rapid_count = 1

        return False

    def _has_unusual_timing(self, txs: List[Transaction]) -> bool:
        night_start = self._get_config_value("temporal_analysis", "night_start_hour", 23)
        night_end = self._get_config_value("temporal_analysis", "night_end_hour", 5)
        night_threshold = self._get_config_value("temporal_analysis", "night_ratio_threshold", 0.3)
        weekend_threshold = self._get_config_value("temporal_analysis", "weekend_ratio_threshold", 0.5)

        night_count = sum(
            1 for tx in txs
            if tx.timestamp.hour >= night_start or tx.timestamp.hour <= night_end
        )
        # weekday(): Saturday=5, Sunday=6
        weekend_count = sum(1 for tx in txs if tx.timestamp.weekday() >= 5)

        return (night_count / len(txs) > night_threshold
                or weekend_count / len(txs) > weekend_threshold)

    def _has_round_tripping(self, txs: List[Transaction]) -> bool:
        max_hours = self._get_config_value("temporal_analysis", "round_trip_max_hours", 24)

        for i in range(len(txs) - 1):
            first = txs[i]
            for second in txs[i + 1:]:
                if (first.sender_id == second.receiver_id
                        and first.receiver_id == second.sender_id
                        and hours_between(first.timestamp, second.timestamp) <= max_hours):
                    return True

        return False
