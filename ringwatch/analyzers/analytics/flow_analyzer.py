from typing import Dict, List
import networkx as nx
from loguru import logger

from ringwatch.analyzers.base_detector import BaseStage
from ringwatch.analyzers.graph_builder import to_networkx
from ringwatch.constants import get_risk_level
from ringwatch.models import Account, DetectionResult


PATH_PATTERNS = {
    2: "DIRECT_TRANSFER",
    3: "TWO_HOP_LAYER",
    4: "THREE_HOP_LAYER",
}


class FlowAnalyzer(BaseStage):
    """
    Money-flow analytics over a finished detection result.

    Produces money hubs, short suspicious paths through low-activity
    intermediaries, per-account flow velocity, network statistics and a
    laundering risk index. Output is informational only.
    """

    name = "flow_analysis"

    def _validate_config(self) -> None:
        self._require_section("flow_analysis")

    def analyze(self, result: DetectionResult) -> Dict:
        G = to_networkx(result)

        hubs = self.find_money_hubs(result)
        paths = self.find_suspicious_paths(result, G)

        analysis = {
            "money_hubs": hubs,
            "suspicious_paths": paths,
            "flow_velocity": self.calculate_flow_velocity(result),
            "network_stats": self.calculate_network_stats(G),
            "laundering_risk_index": self.calculate_laundering_risk_index(result, hubs, paths),
            "total_flow": sum(a.total_sent + a.total_received for a in result.accounts.values()),
        }

        logger.info(f"Flow analysis found {len(hubs)} hubs and {len(paths)} suspicious paths")
        return analysis

    def find_money_hubs(self, result: DetectionResult) -> List[Dict]:
        min_flow = self._get_config_value("flow_analysis", "hub_min_flow", 5000)
        min_connections = self._get_config_value("flow_analysis", "hub_min_connections", 5)
        max_hubs = self._get_config_value("flow_analysis", "max_hubs", 5)

        hubs = []
        for account in result.accounts.values():
            total_flow = account.total_sent + account.total_received
            connections = len(account.incoming_from) + len(account.outgoing_to)

            if total_flow > min_flow or connections > min_connections:
                hub_score = self._hub_score(total_flow, connections)
                total_count = account.incoming_count + account.outgoing_count
                hubs.append({
                    "account_id": account.account_id,
                    "total_flow": total_flow,
                    "connections": connections,
                    "incoming": account.total_received,
                    "outgoing": account.total_sent,
                    "incoming_ratio": account.incoming_count / total_count if total_count else 0.0,
                    "suspicion_score": account.suspicion_score,
                    "hub_score": hub_score,
                    "risk_level": get_risk_level(hub_score * 100),
                })

        hubs.sort(key=lambda hub: hub["hub_score"], reverse=True)
        return hubs[:max_hubs]

    def find_suspicious_paths(self, result: DetectionResult, G: nx.DiGraph) -> List[Dict]:
        max_length = self._get_config_value("flow_analysis", "max_path_length", 3)
        max_activity = self._get_config_value("flow_analysis", "max_intermediate_activity", 3)
        max_paths = self._get_config_value("flow_analysis", "max_paths", 10)

        paths = []
        for start in result.accounts:
            for path in self._enumerate_paths(G, start, max_length):
                intermediates = [result.accounts[node] for node in path[1:-1]]
                if any(account.transaction_count > max_activity for account in intermediates):
                    continue

                paths.append({
                    "path": path,
                    "length": len(path),
                    "total_amount": self._path_amount(result, path),
                    "avg_risk": sum(result.accounts[node].suspicion_score for node in path) / len(path),
                    "pattern": PATH_PATTERNS.get(len(path), "MULTI_HOP"),
                })

        paths.sort(key=lambda p: p["avg_risk"], reverse=True)
        return paths[:max_paths]

    def calculate_flow_velocity(self, result: DetectionResult) -> Dict[str, float]:
        window_hours = self._get_config_value("flow_analysis", "velocity_window_hours", 24.0)
        return {
            account_id: account.transaction_count / window_hours
            for account_id, account in result.accounts.items()
            if account.transaction_count > 1
        }

    @staticmethod
    def calculate_network_stats(G: nx.DiGraph) -> Dict:
        nodes = G.number_of_nodes()
        edges = G.number_of_edges()
        return {
            "total_nodes": nodes,
            "total_edges": edges,
            "density": nx.density(G) if nodes > 1 else 0.0,
            "avg_connections": edges / nodes if nodes else 0.0,
            "is_connected": nx.is_weakly_connected(G) if nodes else False,
        }

    @staticmethod
    def calculate_laundering_risk_index(result: DetectionResult, hubs: List[Dict], paths: List[Dict]) -> float:
        suspicious = sum(1 for account in result.accounts.values() if account.suspicion_score > 70)
        risk = len(hubs) * 0.1 + len(paths) * 0.05 + suspicious * 0.15
        return min(100.0, risk * 10)

    @staticmethod
    def _hub_score(total_flow: float, connections: int) -> float:
        return (total_flow / 10000) * 0.6 + (connections / 10.0) * 0.4

    @staticmethod
    def _enumerate_paths(G: nx.DiGraph, start: str, max_length: int) -> List[List[str]]:
        """Simple forward paths from start holding 2 to max_length accounts."""
        paths = []

        def dfs(node: str, path: List[str]):
            if len(path) >= 2:
                paths.append(list(path))
            if len(path) >= max_length:
                return
            for successor in sorted(G.successors(node)):
                if successor not in path:
                    path.append(successor)
                    dfs(successor, path)
                    path.pop()

        dfs(start, [start])
        return paths

    @staticmethod
    def _path_amount(result: DetectionResult, path: List[str]) -> float:
        total = 0.0
        for sender_id, receiver_id in zip(path, path[1:]):
            account: Account = result.accounts[sender_id]
            first = next(
                (tx for tx in account.outgoing_transactions() if tx.receiver_id == receiver_id),
                None
            )
            if first is not None:
                total += first.amount
        return total
