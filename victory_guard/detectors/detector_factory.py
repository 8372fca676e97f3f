"""
Detector selection with fallback from landmarks to pixel heuristics
"""
import logging

from .cv import CVDetector
from .mediapipe_detector import MediaPipeDetector
from ..core.models import DetectorUnavailableError

logger = logging.getLogger(__name__)

DETECTION_MODES = ("auto", "mediapipe", "cv")
DEGRADED_MESSAGE = "detection unavailable: using pixel heuristics"

# Priority order for "auto"
_STRATEGIES = (MediaPipeDetector, CVDetector)


def create_detector(mode, profile):
    """
    Build the detection strategy for a session

    Args:
        mode: "mediapipe", "cv" or "auto" (landmarks first, pixels on failure)
        profile: SensitivityProfile handed to the detector

    Returns:
        HandDetectorBase; `degraded` is True when "auto" had to fall back

    Raises:
        ValueError: unknown mode
        DetectorUnavailableError: "mediapipe" requested but unavailable
    """
    if mode not in DETECTION_MODES:
        raise ValueError(f"Unknown detection mode {mode!r}, expected one of {', '.join(DETECTION_MODES)}")

    if mode == "mediapipe":
        return MediaPipeDetector(profile)
    if mode == "cv":
        return CVDetector(profile)

    for position, strategy in enumerate(_STRATEGIES):
        try:
            detector = strategy(profile)
        except DetectorUnavailableError as e:
            logger.warning("%s detector unavailable: %s", strategy.name, e)
            continue
        detector.degraded = position > 0
        if detector.degraded:
            logger.warning(DEGRADED_MESSAGE)
        return detector

    raise DetectorUnavailableError("No detection strategy could be initialised")
