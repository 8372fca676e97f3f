"""
Utility functions for the victory sign detection system
"""
import math
import platform
import time

import cv2
import numpy as np


def find_camera(max_attempts=5, start_index=0):
    """
    Find and open an available camera with OS-specific optimizations

    Args:
        max_attempts: Maximum number of camera indices to try
        start_index: First camera index to try

    Returns:
        cv2.VideoCapture object or None if no camera found
    """
    os_name = platform.system()

    if os_name == 'Darwin':
        backends = [cv2.CAP_AVFOUNDATION]
    elif os_name == 'Windows':
        backends = [cv2.CAP_DSHOW, cv2.CAP_ANY]
    else:
        backends = [cv2.CAP_V4L2, cv2.CAP_ANY]

    for camera_index in range(start_index, start_index + max_attempts):
        for backend in backends:
            test_cap = cv2.VideoCapture(camera_index, backend)
            if not test_cap.isOpened():
                test_cap.release()
                continue

            ret, frame = test_cap.read()
            if ret:
                return test_cap
            test_cap.release()

    return None


def setup_camera(cap, width=640, height=480, fps=30):
    """Configure camera resolution and frame rate"""
    cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
    cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
    cap.set(cv2.CAP_PROP_FPS, fps)


class FPSCounter:
    """Exponentially smoothed frames-per-second estimate for the preview"""

    def __init__(self, smoothing=0.9):
        self.fps = 0.0
        self.smoothing = smoothing
        self._last_tick = time.monotonic()

    def update(self):
        now = time.monotonic()
        elapsed = now - self._last_tick
        if elapsed > 0:
            self.fps = self.fps * self.smoothing + (1.0 / elapsed) * (1 - self.smoothing)
        self._last_tick = now
        return self.fps

    def get_fps(self):
        return int(self.fps)


def draw_text_with_background(frame, text, position, font=cv2.FONT_HERSHEY_SIMPLEX,
                              font_scale=1, text_color=(255, 255, 255),
                              bg_color=(0, 0, 0), thickness=2, padding=5):
    """Draw text over a filled box so it stays readable on any frame"""
    x, y = position
    (text_w, text_h), _ = cv2.getTextSize(text, font, font_scale, thickness)
    cv2.rectangle(frame, (x - padding, y - text_h - padding),
                  (x + text_w + padding, y + padding), bg_color, -1)
    cv2.putText(frame, text, (x, y), font, font_scale, text_color, thickness)


def denormalize_coordinates(norm_x, norm_y, width, height):
    """Convert normalized (0-1) coordinates back to pixel coordinates"""
    return int(norm_x * width), int(norm_y * height)


def landmarks_to_array(landmarks):
    """
    Convert a landmark set into an (N, 3) float array.

    Accepts a MediaPipe NormalizedLandmarkList, an iterable of objects with
    .x/.y (and optionally .z), a sequence of 2- or 3-tuples, or an ndarray.
    Missing z values are filled with 0.
    """
    if hasattr(landmarks, 'landmark'):
        landmarks = landmarks.landmark

    if isinstance(landmarks, np.ndarray):
        arr = landmarks.astype(float)
    else:
        rows = []
        for lm in landmarks:
            if hasattr(lm, 'x'):
                rows.append((lm.x, lm.y, getattr(lm, 'z', 0.0)))
            else:
                rows.append(tuple(lm))
        arr = np.array(rows, dtype=float)

    if arr.ndim != 2 or arr.shape[1] not in (2, 3):
        raise ValueError(f"Expected (N, 2) or (N, 3) landmarks, got shape {arr.shape}")
    if arr.shape[1] == 2:
        arr = np.hstack([arr, np.zeros((arr.shape[0], 1))])
    return arr


def angle_between(v1, v2):
    """
    Angle in degrees between two vectors.

    A zero-length vector yields 0 instead of dividing by zero.
    """
    v1 = np.asarray(v1, dtype=float)
    v2 = np.asarray(v2, dtype=float)
    n1 = np.linalg.norm(v1)
    n2 = np.linalg.norm(v2)
    if n1 == 0 or n2 == 0:
        return 0.0
    cos_angle = float(np.dot(v1, v2) / (n1 * n2))
    return math.degrees(math.acos(max(-1.0, min(1.0, cos_angle))))


def ensure_bgr(frame):
    """Convert grayscale or BGRA frames to 3-channel BGR"""
    if len(frame.shape) == 2:
        return cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
    elif frame.shape[2] == 4:
        return cv2.cvtColor(frame, cv2.COLOR_BGRA2BGR)
    return frame


def safe_divide(numerator, denominator, default=0):
    """Safely divide two numbers, returning default if denominator is zero"""
    return numerator / denominator if denominator != 0 else default
