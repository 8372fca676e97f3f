"""
Victory sign classification from a 21-point hand skeleton
Uses wrist-relative distances to decide which fingers are extended,
then checks the index/middle spread
"""
import logging

import numpy as np

from ..core.config import (
    NUM_LANDMARKS, WRIST, FINGER_TIPS, FINGER_BASES, get_sensitivity_profile
)
from ..core.models import FrameVerdict
from ..core.utils import landmarks_to_array, angle_between, safe_divide

logger = logging.getLogger(__name__)

SOURCE = "landmarks"


def finger_extension(points, extension_ratio, use_z=False):
    """
    Extended/contracted state of the four long fingers

    A finger counts as extended when the wrist-to-tip distance exceeds
    extension_ratio times the wrist-to-base distance.

    Returns:
        dict finger name -> bool
    """
    coords = points if use_z else points[:, :2]
    wrist = coords[WRIST]
    extended = {}
    for finger in ('index', 'middle', 'ring', 'pinky'):
        d_tip = np.linalg.norm(coords[FINGER_TIPS[finger]] - wrist)
        d_base = np.linalg.norm(coords[FINGER_BASES[finger]] - wrist)
        extended[finger] = bool(d_tip > extension_ratio * d_base)
    return extended


def tip_separation(points, use_z=False):
    """Index/middle tip distance normalised by the wrist to middle-base length"""
    coords = points if use_z else points[:, :2]
    hand_scale = np.linalg.norm(coords[FINGER_BASES['middle']] - coords[WRIST])
    gap = np.linalg.norm(coords[FINGER_TIPS['index']] - coords[FINGER_TIPS['middle']])
    return float(safe_divide(gap, hand_scale, default=0.0))


def finger_spread_angle(points):
    """Angle between the index (5->8) and middle (9->12) finger directions"""
    coords = points[:, :2]
    index_dir = coords[FINGER_TIPS['index']] - coords[FINGER_BASES['index']]
    middle_dir = coords[FINGER_TIPS['middle']] - coords[FINGER_BASES['middle']]
    return angle_between(index_dir, middle_dir)


def analyze_landmarks(landmarks, profile=None, use_z=False):
    """
    Decide whether a landmark set forms a victory sign

    Args:
        landmarks: 21-point hand landmark set (see landmarks_to_array)
        profile: SensitivityProfile, defaults to the medium profile
        use_z: include the z coordinate in distance computations

    Returns:
        FrameVerdict; malformed or missing input yields (False, 0.0)
    """
    if landmarks is None:
        return FrameVerdict.negative(source=SOURCE, reason='no_landmarks')

    profile = profile or get_sensitivity_profile()

    try:
        points = landmarks_to_array(landmarks)
        if points.shape[0] < NUM_LANDMARKS:
            return FrameVerdict.negative(source=SOURCE, reason='too_few_landmarks')
        if not np.all(np.isfinite(points)):
            return FrameVerdict.negative(source=SOURCE, reason='non_finite_landmarks')

        extended = finger_extension(points, profile.extension_ratio, use_z)
        separation = tip_separation(points, use_z)
        angle = finger_spread_angle(points)
    except (ValueError, TypeError, IndexError, ArithmeticError) as e:
        logger.debug("Landmark analysis failed: %s", e)
        return FrameVerdict.negative(source=SOURCE, reason='malformed_landmarks')

    metadata = {
        'extended': extended,
        'tip_separation': separation,
        'spread_angle': angle,
    }

    ring_or_pinky_down = not extended['ring'] or not extended['pinky']
    is_victory = (
        extended['index'] and
        extended['middle'] and
        ring_or_pinky_down and
        separation > profile.tip_separation_threshold
    )

    if not is_victory:
        return FrameVerdict(False, 0.0, SOURCE, metadata)

    confidence = profile.base_confidence
    if separation > 2 * profile.tip_separation_threshold:
        confidence += profile.confidence_bonus
    if not extended['ring'] and not extended['pinky']:
        confidence += profile.confidence_bonus
    if angle > 1.5 * profile.finger_angle_threshold_deg:
        confidence += profile.confidence_bonus

    return FrameVerdict(True, min(1.0, confidence), SOURCE, metadata)
