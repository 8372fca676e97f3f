"""
Configuration constants for the victory sign detection system
"""
import json
import logging
import math
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path

logger = logging.getLogger(__name__)

# Camera settings
CAMERA_WIDTH = 640
CAMERA_HEIGHT = 480
CAMERA_FPS = 30

# Hand landmark schema (MediaPipe ordering)
NUM_LANDMARKS = 21
WRIST = 0
FINGER_TIPS = {'thumb': 4, 'index': 8, 'middle': 12, 'ring': 16, 'pinky': 20}
FINGER_BASES = {'thumb': 1, 'index': 5, 'middle': 9, 'ring': 13, 'pinky': 17}
HAND_CONNECTIONS = (
    (0, 1), (1, 2), (2, 3), (3, 4),
    (0, 5), (5, 6), (6, 7), (7, 8),
    (5, 9), (9, 10), (10, 11), (11, 12),
    (9, 13), (13, 14), (14, 15), (15, 16),
    (13, 17), (0, 17), (17, 18), (18, 19), (19, 20),
)

# MediaPipe settings
MP_MODEL_COMPLEXITY = 0  # 0=Lite (fastest), 1=Full (most accurate)
MP_MIN_DETECTION_CONFIDENCE = 0.5
MP_MIN_TRACKING_CONFIDENCE = 0.5

# Luminance pre-filter (sampled every LUMA_SAMPLE_STEP pixels on each axis)
LUMA_SAMPLE_STEP = 4
DARK_PIXEL_LEVEL = 30
DARK_FRAME_FRACTION = 0.85
BRIGHT_PIXEL_LEVEL = 240
BRIGHT_FRAME_FRACTION = 0.8
ABSENCE_CONFIDENCE = 0.95

# Skin rules (raw RGB floors, normalized rgb bands) and 3x3 map refinement
SKIN_MIN_RED = 60
SKIN_MIN_GREEN = 40
SKIN_MIN_BLUE = 20
SKIN_WHITE_LEVEL = 250
SKIN_MIN_CHANNEL_SPREAD = 15
SKIN_RED_BAND = (0.35, 0.465)
SKIN_GREEN_BAND = (0.27, 0.37)
SKIN_BLUE_BAND = (0.12, 0.25)
SKIN_MIN_RED_GREEN_GAP = 0.08
REFINE_REMOVE_BELOW = 4
REFINE_FILL_FROM = 6

# Shape heuristics
IDEAL_SKIN_RATIO = 0.15
IDEAL_EDGE_RATIO = 0.04
DIAGONAL_LENGTH = 7

# Evidence capture
EVIDENCE_JPEG_QUALITY = 95
DEFAULT_LOCATION = "Primary Camera"
COOLDOWN_PROGRESS_INTERVAL_MS = 50

# Gestures
GESTURE_DISPLAY_NAMES = {
    "victory": "Victory Sign Emergency",
    "manual": "Manual Capture",
    "none": "No Gesture",
}

# BGR colours used by overlays, keyed by gesture
GESTURE_COLORS = {
    "victory": (0, 0, 255),
    "manual": (255, 128, 0),
    "none": (160, 160, 160),
}

SENSITIVITY_LEVELS = ("low", "medium", "high")
DEFAULT_SENSITIVITY = "medium"

CONFIG_ENV_VAR = "VICTORY_GUARD_CONFIG"
CONFIG_FILE_NAME = "victory_guard_config.json"


@dataclass(frozen=True)
class SensitivityProfile:
    """Every tunable threshold of the detection pipeline for one sensitivity level."""
    name: str

    # Consensus / debounce
    required_positive_frames: int
    history_size: int
    min_confidence: float
    cooldown_ms: int
    poll_interval_ms: int

    # Landmark geometry
    extension_ratio: float
    tip_separation_threshold: float
    finger_angle_threshold_deg: float
    base_confidence: float
    confidence_bonus: float

    # Pixel heuristics
    min_skin_ratio: float
    max_skin_ratio: float
    min_template_score: float
    edge_min_neighbors: int
    v_shape_min_score: int
    sample_stride: int
    template_weight: float
    shape_weight: float

    @property
    def cooldown_s(self):
        return self.cooldown_ms / 1000.0

    @property
    def poll_interval_s(self):
        return self.poll_interval_ms / 1000.0


# Extension ratio 1.5 is the conservative setting; 1.2 also shows up in
# practice and is used for the most sensitive level.
SENSITIVITY_PROFILES = {
    "low": SensitivityProfile(
        name="low",
        required_positive_frames=3,
        history_size=4,
        min_confidence=0.75,
        cooldown_ms=5000,
        poll_interval_ms=200,
        extension_ratio=1.5,
        tip_separation_threshold=0.08,
        finger_angle_threshold_deg=15.0,
        base_confidence=0.75,
        confidence_bonus=0.1,
        min_skin_ratio=0.12,
        max_skin_ratio=0.35,
        min_template_score=0.65,
        edge_min_neighbors=3,
        v_shape_min_score=7,
        sample_stride=4,
        template_weight=0.7,
        shape_weight=0.3,
    ),
    "medium": SensitivityProfile(
        name="medium",
        required_positive_frames=2,
        history_size=4,
        min_confidence=0.65,
        cooldown_ms=3000,
        poll_interval_ms=150,
        extension_ratio=1.5,
        tip_separation_threshold=0.05,
        finger_angle_threshold_deg=12.0,
        base_confidence=0.75,
        confidence_bonus=0.1,
        min_skin_ratio=0.08,
        max_skin_ratio=0.35,
        min_template_score=0.6,
        edge_min_neighbors=2,
        v_shape_min_score=5,
        sample_stride=3,
        template_weight=0.7,
        shape_weight=0.3,
    ),
    "high": SensitivityProfile(
        name="high",
        required_positive_frames=1,
        history_size=3,
        min_confidence=0.55,
        cooldown_ms=1500,
        poll_interval_ms=100,
        extension_ratio=1.2,
        tip_separation_threshold=0.05,
        finger_angle_threshold_deg=10.0,
        base_confidence=0.75,
        confidence_bonus=0.1,
        min_skin_ratio=0.06,
        max_skin_ratio=0.4,
        min_template_score=0.55,
        edge_min_neighbors=2,
        v_shape_min_score=3,
        sample_stride=2,
        template_weight=0.8,
        shape_weight=0.2,
    ),
}


def _config_path():
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return Path(__file__).parent.parent.parent / CONFIG_FILE_NAME


def _coerce_override(field_type, value):
    """Cast a JSON value to the profile field type; raises ValueError when it does not fit"""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"expected a number, got {value!r}")
    number = float(value)
    if not math.isfinite(number) or number < 0:
        raise ValueError(f"expected a non-negative number, got {value!r}")
    if field_type is int:
        if not number.is_integer():
            raise ValueError(f"expected an integer, got {value!r}")
        return int(number)
    return number


def validate_profile(profile):
    """
    Check cross-field constraints of a profile

    Raises:
        ValueError: if the consensus or pixel thresholds cannot work together
    """
    if not 1 <= profile.required_positive_frames <= profile.history_size:
        raise ValueError(
            f"required_positive_frames must be between 1 and history_size "
            f"({profile.required_positive_frames} / {profile.history_size})"
        )
    if profile.sample_stride < 1:
        raise ValueError("sample_stride must be at least 1")
    if profile.min_skin_ratio > profile.max_skin_ratio:
        raise ValueError("min_skin_ratio exceeds max_skin_ratio")
    return profile


def _load_profile_overrides(config_path=None):
    """
    Read per-level threshold overrides from JSON

    Expected layout: {"profiles": {"medium": {"cooldown_ms": 2000, ...}}}.
    Unknown levels, unknown keys and values of the wrong type are ignored
    with a warning.
    """
    config_path = Path(config_path) if config_path else _config_path()
    if not config_path.exists():
        return {}
    try:
        with open(config_path, 'r') as f:
            config = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("Failed to load %s: %s", config_path, e)
        return {}

    overrides = config.get('profiles', {}) if isinstance(config, dict) else {}
    field_types = {f.name: f.type for f in fields(SensitivityProfile) if f.name != 'name'}
    result = {}
    for level, values in overrides.items():
        if level not in SENSITIVITY_LEVELS or not isinstance(values, dict):
            logger.warning("Ignoring override for unknown sensitivity %r", level)
            continue
        unknown = set(values) - set(field_types)
        if unknown:
            logger.warning("Ignoring unknown keys for %s: %s", level, sorted(unknown))
        result[level] = {}
        for key, value in values.items():
            if key not in field_types:
                continue
            try:
                result[level][key] = _coerce_override(field_types[key], value)
            except ValueError as e:
                logger.warning("Ignoring %s.%s: %s", level, key, e)
    return result


def load_sensitivity_profiles(config_path=None):
    """Built-in profile table with any valid JSON overrides applied"""
    profiles = dict(SENSITIVITY_PROFILES)
    for level, values in _load_profile_overrides(config_path).items():
        try:
            profiles[level] = validate_profile(replace(profiles[level], **values))
        except ValueError as e:
            logger.warning("Ignoring overrides for %s: %s", level, e)
    return profiles


_PROFILES = load_sensitivity_profiles()


def get_sensitivity_profile(level=DEFAULT_SENSITIVITY):
    """
    Look up a sensitivity profile by name

    Args:
        level: "low", "medium" or "high" (a SensitivityProfile is returned as-is)

    Returns:
        SensitivityProfile

    Raises:
        ValueError: if the level is unknown
    """
    if isinstance(level, SensitivityProfile):
        return level
    key = str(level).lower()
    if key not in _PROFILES:
        raise ValueError(
            f"Unknown sensitivity {level!r}, expected one of {', '.join(SENSITIVITY_LEVELS)}"
        )
    return _PROFILES[key]
