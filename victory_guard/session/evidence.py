"""
Evidence image capture: annotate the current frame and encode it as JPEG
"""
import io
import logging
import time
from datetime import datetime
from pathlib import Path

import cv2
import numpy as np
from PIL import Image

from ..core.config import (
    EVIDENCE_JPEG_QUALITY, DEFAULT_LOCATION, GESTURE_COLORS, HAND_CONNECTIONS
)
from ..core.models import GestureType
from ..core.utils import landmarks_to_array, denormalize_coordinates, ensure_bgr

logger = logging.getLogger(__name__)

EMERGENCY_BANNER = "EMERGENCY ALERT - V SIGN DETECTED"


def read_source_frame(frame_source):
    """Current frame from a frame source object or a raw array, or None"""
    if frame_source is None:
        return None
    if isinstance(frame_source, np.ndarray):
        return frame_source
    return frame_source.read_frame()


def draw_hand_skeleton(frame, landmarks, color):
    """Draw landmark markers and connecting bones"""
    h, w = frame.shape[:2]
    points = landmarks_to_array(landmarks)
    pixels = [denormalize_coordinates(x, y, w, h) for x, y, _ in points]

    for start, end in HAND_CONNECTIONS:
        if start < len(pixels) and end < len(pixels):
            cv2.line(frame, pixels[start], pixels[end], color, 2)
    for px in pixels:
        cv2.circle(frame, px, 4, color, -1)
        cv2.circle(frame, px, 4, (255, 255, 255), 1)
    return frame


def draw_caption(frame, location, captured_at, confidence=None):
    """Semi-transparent footer with timestamp and location"""
    h, w = frame.shape[:2]
    overlay = frame.copy()
    cv2.rectangle(overlay, (0, h - 65), (w, h), (0, 0, 0), -1)
    cv2.addWeighted(overlay, 0.7, frame, 0.3, 0, frame)

    cv2.putText(frame, f"Captured: {captured_at.strftime('%Y-%m-%d %H:%M:%S')}",
               (10, h - 40), cv2.FONT_HERSHEY_SIMPLEX, 0.55, (255, 255, 255), 1)
    location_text = f"Location: {location}"
    if confidence is not None:
        location_text += f"  Confidence: {confidence * 100:.1f}%"
    cv2.putText(frame, location_text,
               (10, h - 18), cv2.FONT_HERSHEY_SIMPLEX, 0.55, (255, 255, 255), 1)
    return frame


def draw_emergency_banner(frame):
    h = frame.shape[0]
    cv2.putText(frame, EMERGENCY_BANNER, (10, h - 72),
               cv2.FONT_HERSHEY_SIMPLEX, 0.7, (0, 0, 255), 2)
    return frame


def encode_jpeg(frame, quality=EVIDENCE_JPEG_QUALITY):
    rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
    buffer = io.BytesIO()
    Image.fromarray(rgb).save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


class EvidenceCapture:
    """Rasterizes annotated evidence frames for alerts"""

    def __init__(self, location=DEFAULT_LOCATION, jpeg_quality=EVIDENCE_JPEG_QUALITY,
                 draw_overlays=True):
        self.location = location
        self.jpeg_quality = jpeg_quality
        self.draw_overlays = draw_overlays

    def capture(self, frame_source, gesture=GestureType.NONE, landmarks=None, confidence=None):
        """
        Annotate and encode the current frame

        Args:
            frame_source: object with read_frame(), a BGR ndarray, or None
            gesture: GestureType used for colours and the emergency banner
            landmarks: optional hand landmarks to draw
            confidence: optional confidence burned into the caption

        Returns:
            JPEG bytes, or None when no frame is available or encoding fails
        """
        try:
            frame = read_source_frame(frame_source)
            if frame is None:
                return None
            frame = ensure_bgr(np.asarray(frame)).copy()
            gesture = GestureType(gesture)

            if self.draw_overlays:
                if landmarks is not None:
                    draw_hand_skeleton(frame, landmarks, GESTURE_COLORS[gesture.value])
                draw_caption(frame, self.location, datetime.now(), confidence)
                if gesture is GestureType.VICTORY:
                    draw_emergency_banner(frame)

            return encode_jpeg(frame, self.jpeg_quality)
        except Exception as e:
            logger.error("Evidence capture failed: %s", e)
            return None


def save_evidence(image, gesture, directory):
    """
    Write evidence JPEG bytes as <gesture>-alert-<epoch ms>.jpg

    Returns:
        Path of the written file, or None on failure
    """
    if not image:
        return None
    try:
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{GestureType(gesture).value}-alert-{int(time.time() * 1000)}.jpg"
        path.write_bytes(image)
        return path
    except (OSError, ValueError) as e:
        logger.error("Failed to save evidence image: %s", e)
        return None
