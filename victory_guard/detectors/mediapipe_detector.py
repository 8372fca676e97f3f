"""
MediaPipe-based hand landmark detection feeding the geometry analyzer
"""
import logging

import cv2

from .hand_detector_base import HandDetectorBase
from .landmark_geometry import analyze_landmarks, SOURCE as LANDMARK_SOURCE
from ..core.config import MP_MODEL_COMPLEXITY, MP_MIN_DETECTION_CONFIDENCE, MP_MIN_TRACKING_CONFIDENCE
from ..core.models import FrameVerdict, DetectorUnavailableError
from ..core.utils import ensure_bgr

logger = logging.getLogger(__name__)


class MediaPipeDetector(HandDetectorBase):
    name = "mediapipe"

    def __init__(self, profile, static_image_mode=False):
        super().__init__(profile)
        try:
            import mediapipe as mp
            self.mp_hands = mp.solutions.hands
            self.hands = self.mp_hands.Hands(
                static_image_mode=static_image_mode,
                model_complexity=MP_MODEL_COMPLEXITY,
                min_detection_confidence=MP_MIN_DETECTION_CONFIDENCE,
                min_tracking_confidence=MP_MIN_TRACKING_CONFIDENCE,
                max_num_hands=1
            )
        except Exception as e:
            raise DetectorUnavailableError(f"MediaPipe hands unavailable: {e}") from e

        self._last_landmarks = None

    @property
    def last_landmarks(self):
        return self._last_landmarks

    def analyze(self, frame):
        if frame is None:
            self._last_landmarks = None
            return FrameVerdict.negative(source=LANDMARK_SOURCE, reason='no_frame')

        try:
            # Convert to RGB for MediaPipe (writeable flag improves performance)
            rgb_frame = cv2.cvtColor(ensure_bgr(frame), cv2.COLOR_BGR2RGB)
            rgb_frame.flags.writeable = False
            results = self.hands.process(rgb_frame)
        except Exception as e:
            # Timestamp mismatches and decode errors drop this frame only
            logger.warning("MediaPipe failed on frame: %s", e)
            self._last_landmarks = None
            return FrameVerdict.negative(source=LANDMARK_SOURCE, reason='backend_error')

        if not results.multi_hand_landmarks:
            self._last_landmarks = None
            return FrameVerdict.negative(source=LANDMARK_SOURCE, reason='no_hand')

        hand_landmarks = results.multi_hand_landmarks[0]
        self._last_landmarks = hand_landmarks
        return analyze_landmarks(hand_landmarks, self.profile)

    def cleanup(self):
        """Release MediaPipe resources"""
        self._last_landmarks = None
        try:
            self.hands.close()
        except Exception as e:
            logger.debug("Ignoring MediaPipe close error: %s", e)
