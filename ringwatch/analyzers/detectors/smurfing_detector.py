from datetime import timedelta
from typing import List
from loguru import logger

from ringwatch.analyzers.base_detector import BasePatternDetector
from ringwatch.constants import PatternTypes, PatternTags
from ringwatch.models import Account, DetectionResult, FraudRing, Transaction


class SmurfingDetector(BasePatternDetector):
    """
    Detector for smurfing (structuring) topologies.

    Fan-in: many senders deposit small amounts into one aggregator within a
    short window. Fan-out: one disperser spreads funds to many receivers
    within a short window. Ring members are provisionally linked to the
    candidate through ``Account.ring_id`` until consolidation.
    """

    def _validate_config(self) -> None:
        """Validate that smurfing_detection configuration is present."""
        self._require_section("smurfing_detection")

    def detect(self, result: DetectionResult) -> List[FraudRing]:
        fan_in_rings = self._detect_fan_in(result)
        fan_out_rings = self._detect_fan_out(result)

        logger.info(
            f"Smurfing detection: {len(fan_in_rings)} fan-in and {len(fan_out_rings)} fan-out candidate rings"
        )
        return fan_in_rings + fan_out_rings

    def _detect_fan_in(self, result: DetectionResult) -> List[FraudRing]:
        threshold = self._get_config_value("smurfing_detection", "fan_in_threshold", 10)
        rings = []

        for account in list(result.accounts.values()):
            if account.incoming_count < threshold:
                continue

            incoming = account.incoming_transactions()
            if not self._has_temporal_clustering(incoming):
                continue

            senders = self._find_small_amount_senders(incoming)
            ring = self._register_ring(
                result, PatternTypes.SMURFING_FAN_IN, account, PatternTags.FAN_IN_AGGREGATOR,
                senders, PatternTags.FAN_IN_SENDER
            )
            rings.append(ring)
            logger.debug(f"Fan-in aggregator {account.account_id} with {len(senders)} small-amount senders")

        return rings

    def _detect_fan_out(self, result: DetectionResult) -> List[FraudRing]:
        threshold = self._get_config_value("smurfing_detection", "fan_out_threshold", 10)
        rings = []

        for account in list(result.accounts.values()):
            if account.outgoing_count < threshold:
                continue

            outgoing = account.outgoing_transactions()
            if not self._has_temporal_clustering(outgoing):
                continue

            receivers = list(dict.fromkeys(tx.receiver_id for tx in outgoing))
            ring = self._register_ring(
                result, PatternTypes.SMURFING_FAN_OUT, account, PatternTags.FAN_OUT_DISPERSER,
                receivers, PatternTags.FAN_OUT_RECEIVER
            )
            rings.append(ring)
            logger.debug(f"Fan-out disperser {account.account_id} with {len(receivers)} receivers")

        return rings

    def _register_ring(
        self,
        result: DetectionResult,
        pattern_type: str,
        hub: Account,
        hub_tag: str,
        counterparty_ids: List[str],
        counterparty_tag: str
    ) -> FraudRing:
        hub.add_pattern(hub_tag)
        for account_id in counterparty_ids:
            counterparty = result.get_account(account_id)
            if counterparty is not None:
                counterparty.add_pattern(counterparty_tag)

        ring = result.add_candidate(
            self._build_candidate(result, pattern_type, [hub.account_id] + counterparty_ids)
        )

        for account_id in ring.member_accounts:
            result.accounts[account_id].ring_id = ring.candidate_id

        return ring

    def _has_temporal_clustering(self, transactions: List[Transaction]) -> bool:
        """
        Check whether transactions cluster inside a sliding chronological window.

        A window opens at a transaction and closes at the first transaction
        falling outside ``time_window_hours`` of its start; the next window
        opens there.
        """
        min_transactions = self._get_config_value("smurfing_detection", "min_clustering_transactions", 3)
        window_hours = self._get_config_value("smurfing_detection", "time_window_hours", 72)
        min_in_window = self._get_config_value("smurfing_detection", "min_window_transactions", 5)

        if len(transactions) < min_transactions:
            return False

        ordered = sorted(transactions, key=lambda tx: tx.timestamp)
        window = timedelta(hours=window_hours)
        window_start = ordered[0].timestamp
        tx_in_window = 0

        for tx in ordered:
            if tx.timestamp < window_start + window:
                tx_in_window += 1
            else:
                if tx_in_window >= min_in_window:
                    return True
                window_start = tx.timestamp
                tx_in_window = 1

        return tx_in_window >= min_in_window

    def _find_small_amount_senders(self, transactions: List[Transaction]) -> List[str]:
        ratio = self._get_config_value("smurfing_detection", "small_amount_ratio", 0.3)

        if not transactions:
            return []

        avg_amount = sum(tx.amount for tx in transactions) / len(transactions)
        threshold = avg_amount * ratio

        return list(dict.fromkeys(tx.sender_id for tx in transactions if tx.amount < threshold))
