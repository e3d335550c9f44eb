from typing import Dict, List, Set
from loguru import logger

from ringwatch.analyzers.base_detector import BaseStage
from ringwatch.constants import PatternTypes
from ringwatch.models import DetectionResult, FraudRing
from ringwatch.utils.pattern_utils import generate_ring_id


class RingConsolidator(BaseStage):
    """
    Resolves overlapping candidate rings into the final ring set.

    Candidates are accepted greedily by descending risk; a candidate sharing
    any member with an already accepted ring is dropped. Remaining
    high-scoring accounts become single-member solo rings.
    """

    def _validate_config(self) -> None:
        self._require_section("consolidation")

    def consolidate(self, result: DetectionResult) -> Dict[str, FraudRing]:
        solo_threshold = self._get_config_value("consolidation", "solo_score_threshold", 50)

        # Provisional links set during detection are not final assignments
        for account in result.accounts.values():
            account.ring_id = None

        # sorted() is stable, so equal risks keep detection order
        ordered = sorted(result.candidate_rings, key=lambda ring: ring.risk_score, reverse=True)

        assigned: Set[str] = set()
        final_rings: Dict[str, FraudRing] = {}

        for candidate in ordered:
            if any(member in assigned for member in candidate.member_accounts):
                logger.debug(f"Dropping overlapping candidate {candidate.candidate_id}")
                continue

            ring = self._accept(result, candidate, len(final_rings) + 1)
            final_rings[ring.ring_id] = ring
            assigned.update(ring.member_accounts)

        solo_count = 0
        for account_id, account in result.accounts.items():
            if account.ring_id is None and account.suspicion_score > solo_threshold:
                solo = FraudRing(pattern_type=PatternTypes.SOLO, member_accounts=[account_id])
                ring = self._accept(result, solo, len(final_rings) + 1)
                final_rings[ring.ring_id] = ring
                solo_count += 1

        result.rings = final_rings
        logger.info(
            f"Consolidated {len(result.candidate_rings)} candidates into {len(final_rings)} rings "
            f"({solo_count} solo)"
        )
        return final_rings

    def _accept(self, result: DetectionResult, ring: FraudRing, sequence: int) -> FraudRing:
        ring.ring_id = generate_ring_id(sequence)

        members: List[str] = list(ring.member_accounts)
        ring.account_scores = {}
        for account_id in members:
            account = result.get_account(account_id)
            if account is None:
                continue
            account.ring_id = ring.ring_id
            ring.add_account_with_score(account_id, account.suspicion_score)

        ring.calculate_risk_score(
            self._get_config_value("consolidation", "pattern_multipliers"),
            self._get_config_value("consolidation", "size_factor", 0.03),
        )
        return ring
