import time
from typing import Dict, Iterable, List, Optional
from loguru import logger

from ringwatch import MetricsRegistry
from ringwatch.analyzers.alert_system import AlertSystem
from ringwatch.analyzers.analytics import FlowAnalyzer, TemporalHeatmap
from ringwatch.analyzers.detection_config_loader import get_config_summary, load_detection_config
from ringwatch.analyzers.detectors import (
    CycleDetector,
    SmurfingDetector,
    LayeredNetworkDetector,
    TemporalAnalyzer
)
from ringwatch.analyzers.graph_builder import build_account_graph
from ringwatch.analyzers.report_builder import ReportBuilder
from ringwatch.analyzers.ring_consolidator import RingConsolidator
from ringwatch.analyzers.scoring import EnsembleRiskModel, SuspicionScoreCalculator
from ringwatch.models import DetectionResult, Transaction
from ringwatch.utils.decorators import log_errors


class FraudDetectionPipeline:
    """
    Orchestrator for one batch of mule-ring detection.
    Runs every stage sequentially against a run-owned DetectionResult.
    """

    def __init__(
        self,
        config_path: str = None,
        collaborators: Optional[List] = None,
        metrics_registry: Optional[MetricsRegistry] = None
    ):
        self.config = load_detection_config(config_path)
        self.metrics_registry = metrics_registry
        logger.info("Loaded detection configuration", extra=get_config_summary(self.config))

        self._init_stages()

        if collaborators is None:
            collaborators = [FlowAnalyzer(self.config), TemporalHeatmap(self.config)]
        self.collaborators = collaborators

    def _init_stages(self) -> None:
        """Initialize all pipeline stage instances."""
        self.temporal_analyzer = TemporalAnalyzer(self.config)
        self.score_calculator = SuspicionScoreCalculator(self.config)
        self.cycle_detector = CycleDetector(self.config)
        self.smurfing_detector = SmurfingDetector(self.config)
        self.layered_detector = LayeredNetworkDetector(self.config)
        self.ensemble_model = EnsembleRiskModel(self.config)
        self.ring_consolidator = RingConsolidator(self.config)
        self.alert_system = AlertSystem(self.config)
        self.report_builder = ReportBuilder(self.config)
        logger.info("Initialized all pipeline stages")

    def detect(self, transactions: Iterable[Transaction]) -> DetectionResult:
        """Build the account graph for a batch and run detection over it."""
        result = build_account_graph(transactions)
        self.run_detection(result)
        return result

    @log_errors
    def run_detection(self, result: DetectionResult) -> Dict:
        """
        Run every detection stage over the result, mutating it in place.

        Args:
            result: Detection context holding the account graph

        Returns:
            The externally visible report
        """
        start_time = time.perf_counter()
        logger.info(f"Starting detection over {len(result.accounts)} accounts")

        try:
            self.temporal_analyzer.analyze(result)
            self.score_calculator.calculate_scores(result)

            cycle_rings = self.cycle_detector.detect(result)
            logger.info(f"Found {len(cycle_rings)} cycle candidates")

            smurfing_rings = self.smurfing_detector.detect(result)
            logger.info(f"Found {len(smurfing_rings)} smurfing candidates")

            layered_rings = self.layered_detector.detect(result)
            logger.info(f"Found {len(layered_rings)} layered candidates")

            # Second pass sees the pattern tags and provisional ring links
            self.score_calculator.calculate_scores(result)
            self.ensemble_model.apply_risk_blend(result)

            self.ring_consolidator.consolidate(result)
            self.alert_system.generate_alerts(result)

            for collaborator in self.collaborators:
                result.advanced_analytics[collaborator.name] = collaborator.analyze(result)

            result.processing_time = time.perf_counter() - start_time
            report = self.report_builder.build(result)

        except Exception as e:
            if self.metrics_registry:
                self.metrics_registry.record_error(type(e).__name__, "pipeline")
            raise

        if self.metrics_registry:
            self.metrics_registry.record_run(
                result.processing_time,
                rings=len(result.fraud_rings),
                flagged=len(result.suspicious_accounts)
            )

        logger.success(
            f"Detection completed in {result.processing_time:.3f}s: "
            f"{len(result.fraud_rings)} rings, {len(result.suspicious_accounts)} suspicious accounts"
        )
        return report

    def get_alert_history(self, target_id: str):
        return self.alert_system.get_alert_history(target_id)
