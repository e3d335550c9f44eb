from typing import Dict, List
from loguru import logger

from ringwatch.analyzers.base_detector import BaseStage
from ringwatch.constants import MODEL_VERSION, get_risk_level
from ringwatch.models import DetectionResult
from ringwatch.utils import round_half_up


class ReportBuilder(BaseStage):
    """Builds the externally visible report structures on the result."""

    def _validate_config(self) -> None:
        self._require_section("report")

    def build(self, result: DetectionResult) -> Dict:
        result.suspicious_accounts = self._build_suspicious_accounts(result)
        result.fraud_rings = self._build_fraud_rings(result)
        result.summary = {
            "total_accounts_analyzed": len(result.accounts),
            "suspicious_accounts_flagged": len(result.suspicious_accounts),
            "fraud_rings_detected": len(result.fraud_rings),
            "processing_time_seconds": round(result.processing_time, 3),
            "model_version": MODEL_VERSION,
        }

        logger.info(
            "Report built",
            extra={
                "suspicious_accounts": len(result.suspicious_accounts),
                "fraud_rings": len(result.fraud_rings),
            }
        )
        return result.to_report()

    def _build_suspicious_accounts(self, result: DetectionResult) -> List[Dict]:
        threshold = self._get_config_value("report", "suspicious_score_threshold", 40)

        entries = []
        for account in result.accounts.values():
            if account.suspicion_score > threshold or account.patterns:
                entries.append({
                    "account_id": account.account_id,
                    "suspicion_score": round_half_up(account.suspicion_score, 1),
                    "detected_patterns": list(account.patterns),
                    "ring_id": account.ring_id or "",
                })

        entries.sort(key=lambda entry: entry["suspicion_score"], reverse=True)
        return entries

    @staticmethod
    def _build_fraud_rings(result: DetectionResult) -> List[Dict]:
        entries = [
            {
                "ring_id": ring.ring_id,
                "member_accounts": list(ring.member_accounts),
                "pattern_type": ring.pattern_type,
                "risk_score": round_half_up(ring.risk_score, 1),
                "risk_level": get_risk_level(ring.risk_score),
            }
            for ring in result.rings.values()
        ]

        entries.sort(key=lambda entry: entry["risk_score"], reverse=True)
        return entries
