"""
Mule-ring detection analysis.
Provides the pipeline orchestrator and its detection, scoring and reporting stages.
"""

from .pipeline import FraudDetectionPipeline
from .base_detector import BaseStage, BasePatternDetector
from .detection_config_loader import load_detection_config
from .graph_builder import build_account_graph, to_networkx

__all__ = [
    'FraudDetectionPipeline',
    'BaseStage',
    'BasePatternDetector',
    'load_detection_config',
    'build_account_graph',
    'to_networkx'
]
