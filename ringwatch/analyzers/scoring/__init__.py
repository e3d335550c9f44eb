"""
Account scoring: suspicion score, rule-based risk predictor and anomaly ensemble.
"""

from .suspicion_score_calculator import SuspicionScoreCalculator
from .risk_predictor import RiskPredictor
from .ensemble_model import EnsembleRiskModel

__all__ = [
    'SuspicionScoreCalculator',
    'RiskPredictor',
    'EnsembleRiskModel'
]
