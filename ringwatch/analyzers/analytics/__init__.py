"""
Advanced analytics collaborators.
Each exposes a ``name`` and ``analyze(result)`` filling one advanced_analytics entry.
"""

from .flow_analyzer import FlowAnalyzer
from .temporal_heatmap import TemporalHeatmap

__all__ = [
    'FlowAnalyzer',
    'TemporalHeatmap'
]
