"""
Base class for victory sign detection strategies
"""
from abc import ABC, abstractmethod


class HandDetectorBase(ABC):
    name = "base"

    def __init__(self, profile):
        self.profile = profile
        self.degraded = False

    @abstractmethod
    def analyze(self, frame):
        """
        Classify a single frame

        Args:
            frame: BGR image from the camera, or None when no frame is available

        Returns:
            FrameVerdict. Implementations never raise; any failure,
            including a missing frame, is reported as a negative verdict.
        """
        pass

    def set_profile(self, profile):
        self.profile = profile

    @property
    def last_landmarks(self):
        """Landmarks of the last analysed frame, if the strategy produces any"""
        return None

    @abstractmethod
    def cleanup(self):
        pass
