from typing import List, Tuple
import networkx as nx
from loguru import logger

from ringwatch.analyzers.base_detector import BasePatternDetector
from ringwatch.analyzers.graph_builder import to_networkx
from ringwatch.constants import PatternTypes, PatternTags
from ringwatch.models import DetectionResult, FraudRing
from ringwatch.utils.pattern_utils import canonical_member_key


class CycleDetector(BasePatternDetector):
    """
    Detector for circular transaction patterns.
    Identifies short cycles of outgoing transfers that return funds to their origin.
    """

    def _validate_config(self) -> None:
        """Validate that cycle_detection configuration is present."""
        self._require_section("cycle_detection")

    def detect(self, result: DetectionResult) -> List[FraudRing]:
        """
        Detect cycle rings in the account graph.

        Args:
            result: Detection context; accounts are tagged and candidates registered

        Returns:
            Candidate cycle rings added to the result
        """
        min_cycle_length = self._get_config_value("cycle_detection", "min_cycle_length", 3)
        max_cycle_length = self._get_config_value("cycle_detection", "max_cycle_length", 5)

        G = to_networkx(result)
        cycles = self._find_cycles(G, min_cycle_length, max_cycle_length)
        accepted = self._remove_covered_cycles(cycles)

        rings = []
        for cycle in accepted:
            tag = PatternTags.cycle_length(len(cycle))
            for account_id in cycle:
                account = result.get_account(account_id)
                if account is not None:
                    account.add_pattern(tag)

            ring = self._build_candidate(result, PatternTypes.CYCLE, cycle)
            if result.has_candidate(ring.member_key):
                logger.debug(f"Skipping cycle {ring.member_key}: membership already registered")
                continue

            rings.append(result.add_candidate(ring))

        logger.info(f"Cycle detection: {len(cycles)} distinct cycles, {len(rings)} candidate rings")
        return rings

    def _find_cycles(self, G: nx.DiGraph, min_length: int, max_length: int) -> List[Tuple[str, ...]]:
        """
        Enumerate canonical member sets of simple cycles within the length bounds.

        Args:
            G: Directed outgoing-edge view of the account graph
            min_length: Minimum number of accounts in a cycle
            max_length: Maximum number of accounts in a cycle

        Returns:
            Distinct sorted member tuples
        """
        seen = set()

        for scc in nx.strongly_connected_components(G):
            if len(scc) < min_length:
                continue

            scc_graph = G.subgraph(scc)
            for cycle in nx.simple_cycles(scc_graph, length_bound=max_length):
                if len(cycle) < min_length:
                    continue
                seen.add(canonical_member_key(cycle))

        return sorted(seen)

    def _remove_covered_cycles(self, cycles: List[Tuple[str, ...]]) -> List[Tuple[str, ...]]:
        """Keep cycles largest first, dropping any cycle contained in an already kept one."""
        kept: List[frozenset] = []
        accepted = []

        for cycle in sorted(cycles, key=lambda c: (-len(c), c)):
            members = frozenset(cycle)
            if any(members <= existing for existing in kept):
                continue
            kept.append(members)
            accepted.append(cycle)

        return accepted
