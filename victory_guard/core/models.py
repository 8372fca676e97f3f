"""
Value types shared by detectors, the consensus machine and alert emission
"""
import base64
import enum
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


class GestureType(str, enum.Enum):
    VICTORY = "victory"
    MANUAL = "manual"
    NONE = "none"


class DetectorUnavailableError(RuntimeError):
    """Raised when a detection backend cannot be initialised."""


def _clamp_unit(value):
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(value):
        return 0.0
    return min(1.0, max(0.0, value))


@dataclass(frozen=True)
class FrameVerdict:
    """Per-frame output of a single analyzer."""
    is_victory: bool
    confidence: float = 0.0
    source: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'is_victory', bool(self.is_victory))
        object.__setattr__(self, 'confidence', _clamp_unit(self.confidence))

    @classmethod
    def negative(cls, confidence=0.0, source="", **metadata):
        return cls(False, confidence, source, metadata)


@dataclass(frozen=True)
class GestureAlert:
    """
    Alert record handed to the alert-history collaborator.

    The detection core never mutates an alert once emitted.
    """
    id: str
    timestamp: datetime
    gesture_type: GestureType
    confidence: float
    evidence_image: Optional[bytes] = None
    location: str = ""
    processed: bool = False

    def evidence_base64(self):
        """Evidence JPEG as a Base64 string, or None"""
        if self.evidence_image is None:
            return None
        return base64.b64encode(self.evidence_image).decode('ascii')

    def to_dict(self):
        return {
            'id': self.id,
            'timestamp': self.timestamp.isoformat(),
            'gesture_type': self.gesture_type.value,
            'confidence': self.confidence,
            'image_data': self.evidence_base64(),
            'location': self.location,
            'processed': self.processed,
        }


@dataclass(frozen=True)
class DetectionStatus:
    """Live status for a UI: stabilized gesture plus cooldown feedback."""
    gesture: GestureType = GestureType.NONE
    confidence: float = 0.0
    cooldown_active: bool = False
    cooldown_progress: float = 0.0
    degraded: bool = False
    detector_name: str = ""
    message: str = ""
