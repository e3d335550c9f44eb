import threading
from collections import OrderedDict, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Deque, Dict, List
from loguru import logger

from ringwatch.analyzers.base_detector import BaseStage
from ringwatch.constants import AlertTypes, NETWORK_TARGET_ID
from ringwatch.models import DetectionResult


@dataclass(frozen=True)
class Alert:
    alert_type: str
    message: str
    target_id: str
    severity: float
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict:
        return {
            "type": self.alert_type,
            "message": self.message,
            "target_id": self.target_id,
            "severity": self.severity,
            "timestamp": self.timestamp.isoformat(),
        }


class AlertSystem(BaseStage):
    """
    Rule-based alerting over a finished detection result.

    Alerts are kept in a history keyed by target id. Each target holds at most
    ``max_history_per_target`` alerts and at most ``max_history_targets``
    targets are tracked; the oldest alert or least recently alerted target is
    evicted first.
    """

    def __init__(self, config: Dict):
        super().__init__(config)
        self._history: "OrderedDict[str, Deque[Alert]]" = OrderedDict()
        self._lock = threading.Lock()

    def _validate_config(self) -> None:
        self._require_section("alerts")

    def generate_alerts(self, result: DetectionResult) -> List[Alert]:
        ring_threshold = self._get_config_value("alerts", "high_risk_ring_threshold", 80)
        critical_threshold = self._get_config_value("alerts", "critical_account_threshold", 90)
        suspicious_threshold = self._get_config_value("alerts", "suspicious_account_threshold", 70)
        cycles_threshold = self._get_config_value("alerts", "multiple_cycles_threshold", 2)
        cycles_severity = self._get_config_value("alerts", "multiple_cycles_severity", 85.0)

        alerts: List[Alert] = []

        for ring in result.rings.values():
            if ring.risk_score > ring_threshold:
                alerts.append(Alert(
                    AlertTypes.HIGH_RISK_RING,
                    "Critical: High risk fraud ring detected",
                    ring.ring_id,
                    ring.risk_score,
                ))

        for account in result.accounts.values():
            if account.suspicion_score > critical_threshold:
                alerts.append(Alert(
                    AlertTypes.CRITICAL_ACCOUNT,
                    "Critical: Highly suspicious account activity",
                    account.account_id,
                    account.suspicion_score,
                ))
            elif account.suspicion_score > suspicious_threshold:
                alerts.append(Alert(
                    AlertTypes.SUSPICIOUS_ACCOUNT,
                    "Warning: Suspicious account detected",
                    account.account_id,
                    account.suspicion_score,
                ))

        cycle_accounts = sum(
            1 for account in result.accounts.values() if account.has_pattern_containing("cycle")
        )
        if cycle_accounts > cycles_threshold:
            alerts.append(Alert(
                AlertTypes.MULTIPLE_CYCLES,
                "Multiple circular patterns detected in network",
                NETWORK_TARGET_ID,
                cycles_severity,
            ))

        self._record(alerts)
        result.alerts = alerts

        logger.info(f"Generated {len(alerts)} alerts")
        return alerts

    def get_alert_history(self, target_id: str) -> List[Alert]:
        with self._lock:
            return list(self._history.get(target_id, ()))

    def _record(self, alerts: List[Alert]) -> None:
        per_target = self._get_config_value("alerts", "max_history_per_target", 100)
        max_targets = self._get_config_value("alerts", "max_history_targets", 10000)

        with self._lock:
            for alert in alerts:
                history = self._history.get(alert.target_id)
                if history is None:
                    history = deque(maxlen=per_target)
                    self._history[alert.target_id] = history
                else:
                    self._history.move_to_end(alert.target_id)
                history.append(alert)

            while len(self._history) > max_targets:
                evicted, _ = self._history.popitem(last=False)
                logger.debug(f"Evicted alert history for {evicted}")
