from typing import Dict, List, Set, Tuple
from loguru import logger

from ringwatch.analyzers.base_detector import BasePatternDetector
from ringwatch.constants import PatternTypes, PatternTags
from ringwatch.models import DetectionResult, FraudRing
from ringwatch.utils.pattern_utils import canonical_member_key


class LayeredNetworkDetector(BasePatternDetector):
    """
    Detector for layering chains.
    Records forward transfer paths through intermediary accounts.
    """

    def _validate_config(self) -> None:
        """Validate that layered_detection configuration is present."""
        self._require_section("layered_detection")

    def detect(self, result: DetectionResult) -> List[FraudRing]:
        """
        Detect layered chains in the account graph.

        Args:
            result: Detection context; accounts are tagged and candidates registered

        Returns:
            Candidate layered rings added to the result
        """
        min_chain_length = self._get_config_value("layered_detection", "min_chain_length", 2)
        max_chain_length = self._get_config_value("layered_detection", "max_chain_length", 5)

        unique_layers: Dict[Tuple[str, ...], None] = {}
        processed: Set[str] = set()

        for account_id in result.accounts:
            if account_id in processed:
                continue

            for chain in self._find_chains(result, account_id, min_chain_length, max_chain_length):
                unique_layers.setdefault(canonical_member_key(chain), None)
                processed.update(chain)

        singletons = [
            account_id for account_id, account in result.accounts.items()
            if account.patterns and account_id not in processed
        ]
        for account_id in singletons:
            unique_layers.setdefault((account_id,), None)

        rings = []
        for layer in unique_layers:
            if len(layer) < min_chain_length:
                continue

            for account_id in layer:
                account = result.get_account(account_id)
                if account is not None:
                    account.add_pattern(PatternTags.LAYERED_NETWORK)

            rings.append(result.add_candidate(
                self._build_candidate(result, PatternTypes.LAYERED, layer)
            ))

        logger.info(
            f"Layered detection: {len(rings)} candidate rings, "
            f"{len(singletons)} tagged accounts outside any chain"
        )
        return rings

    def _find_chains(
        self,
        result: DetectionResult,
        start_id: str,
        min_length: int,
        max_length: int
    ) -> List[List[str]]:
        """
        Depth-first enumeration of simple forward paths from start_id.

        Every path prefix with at least min_length accounts is recorded;
        paths never exceed max_length accounts.
        """
        chains: List[List[str]] = []
        path: List[str] = []
        visited: Set[str] = set()

        def dfs(current_id: str) -> None:
            path.append(current_id)
            visited.add(current_id)

            if len(path) >= min_length:
                chains.append(list(path))

            current = result.get_account(current_id)
            if current is not None and len(path) < max_length:
                for next_id in sorted(current.outgoing_to):
                    if next_id not in visited:
                        dfs(next_id)

            path.pop()
            visited.discard(current_id)

        dfs(start_id)
        return chains
