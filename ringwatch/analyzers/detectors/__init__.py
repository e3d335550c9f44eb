"""
Pattern detector modules.
Each detector specializes in identifying specific patterns.
"""

from .cycle_detector import CycleDetector
from .smurfing_detector import SmurfingDetector
from .layered_network_detector import LayeredNetworkDetector
from .temporal_analyzer import TemporalAnalyzer

__all__ = [
    'CycleDetector',
    'SmurfingDetector',
    'LayeredNetworkDetector',
    'TemporalAnalyzer'
]
