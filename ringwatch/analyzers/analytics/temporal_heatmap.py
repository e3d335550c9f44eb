from collections import defaultdict
from typing import Dict, List
from loguru import logger

from ringwatch.analyzers.base_detector import BaseStage
from ringwatch.models import DetectionResult, Transaction
from ringwatch.utils import minutes_between


class SuspiciousTimes:
    UNUSUAL_NIGHT_ACTIVITY = "UNUSUAL_NIGHT_ACTIVITY"
    WEEKEND_SPIKE = "WEEKEND_SPIKE"
    RAPID_TRANSACTIONS = "RAPID_TRANSACTIONS"


class TemporalHeatmap(BaseStage):
    """
    Batch-level time-of-activity profile.

    Days follow ISO numbering (Monday=1 .. Sunday=7); amount slots are keyed
    "<day>-<hour:02d>".
    """

    name = "temporal_heatmap"

    def _validate_config(self) -> None:
        self._require_section("temporal_heatmap")

    def analyze(self, result: DetectionResult) -> Dict:
        return self.generate_heatmap(result.transactions)

    def generate_heatmap(self, transactions: List[Transaction]) -> Dict:
        night_threshold = self._get_config_value("temporal_heatmap", "night_ratio_threshold", 0.2)
        weekend_threshold = self._get_config_value("temporal_heatmap", "weekend_ratio_threshold", 0.3)
        rapid_threshold = self._get_config_value("temporal_heatmap", "rapid_ratio_threshold", 0.5)

        hourly = {hour: 0 for hour in range(24)}
        daily: Dict[int, int] = defaultdict(int)
        amount_by_time: Dict[str, float] = defaultdict(float)

        for tx in transactions:
            hour = tx.timestamp.hour
            day = tx.timestamp.isoweekday()
            hourly[hour] += 1
            daily[day] += 1
            amount_by_time[f"{day}-{hour:02d}"] += tx.amount

        total = len(transactions)
        suspicious_times = []

        night_count = sum(hourly[hour] for hour in range(0, 5))
        if night_count > total * night_threshold:
            suspicious_times.append(SuspiciousTimes.UNUSUAL_NIGHT_ACTIVITY)

        weekend_count = sum(count for day, count in daily.items() if day >= 6)
        if weekend_count > total * weekend_threshold:
            suspicious_times.append(SuspiciousTimes.WEEKEND_SPIKE)

        if self._count_rapid_transactions(transactions) > total * rapid_threshold:
            suspicious_times.append(SuspiciousTimes.RAPID_TRANSACTIONS)

        logger.debug(f"Temporal heatmap flags: {suspicious_times}")

        return {
            "hourly_distribution": hourly,
            "daily_distribution": dict(sorted(daily.items())),
            "amount_by_time": dict(amount_by_time),
            "suspicious_times": suspicious_times,
            "peak_hour": max(hourly, key=lambda hour: hourly[hour]),
            "risk_score": self._temporal_risk(hourly, daily),
        }

    def _count_rapid_transactions(self, transactions: List[Transaction]) -> int:
        gap_minutes = self._get_config_value("temporal_heatmap", "rapid_gap_minutes", 5)

        ordered = sorted(transactions, key=lambda tx: tx.timestamp)
        return sum(
            1 for previous, current in zip(ordered, ordered[1:])
            if minutes_between(previous.timestamp, current.timestamp) < gap_minutes
        )

    @staticmethod
    def _temporal_risk(hourly: Dict[int, int], daily: Dict[int, int]) -> float:
        risk = 0.0

        night_total = sum(count for hour, count in hourly.items() if hour <= 4 or hour >= 23)
        day_total = sum(count for hour, count in hourly.items() if 9 <= hour <= 17)
        if night_total > day_total * 0.5:
            risk += 0.4

        weekend_total = sum(count for day, count in daily.items() if day >= 6)
        weekday_total = sum(count for day, count in daily.items() if day <= 5)
        if weekend_total > weekday_total * 0.3:
            risk += 0.3

        if max(hourly.values(), default=0) > 10:
            risk += 0.3

        return min(1.0, risk)
