"""Victory sign detector implementations"""
from .hand_detector_base import HandDetectorBase
from .cv import CVDetector
from .mediapipe_detector import MediaPipeDetector
from .landmark_geometry import analyze_landmarks
from .detector_factory import create_detector, DETECTION_MODES, DEGRADED_MESSAGE

__all__ = [
    'HandDetectorBase', 'CVDetector', 'MediaPipeDetector',
    'analyze_landmarks', 'create_detector', 'DETECTION_MODES', 'DEGRADED_MESSAGE',
]
