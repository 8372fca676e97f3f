"""
Pixel heuristic detection module
Split into skin maps, template matching and shape analysis
"""
from .cv_detector import CVDetector

__all__ = ['CVDetector']
