"""Victory sign emergency detection - Core package"""
from .detectors import HandDetectorBase, CVDetector, MediaPipeDetector, create_detector
from .core.config import *
from .core.models import (
    GestureType, FrameVerdict, GestureAlert, DetectionStatus, DetectorUnavailableError
)
from .session.consensus import ConsensusStateMachine, ConsensusPhase, ConsensusDecision
from .session.detection_session import DetectionSession
from .session.alerts import AlertHistory, emit_alert

__version__ = "1.0.0"
