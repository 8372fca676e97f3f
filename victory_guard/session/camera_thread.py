"""
Frame sources and the periodic task driving a detection session
"""
import logging
import threading
import time

import cv2

from ..core.config import CAMERA_WIDTH, CAMERA_HEIGHT, CAMERA_FPS
from ..core.utils import find_camera, setup_camera

logger = logging.getLogger(__name__)


class CameraFrameSource:
    """Live camera frames through OpenCV"""

    def __init__(self, camera_index=0, width=CAMERA_WIDTH, height=CAMERA_HEIGHT,
                 fps=CAMERA_FPS, mirror=True):
        self.camera_index = camera_index
        self.width = width
        self.height = height
        self.fps = fps
        self.mirror = mirror
        self.cap = None
        self.frame_lock = threading.Lock()
        self._last_frame = None

    def open(self):
        """Open the camera; returns False when none can be found"""
        self.cap = find_camera(start_index=self.camera_index)
        if self.cap is None:
            logger.error("Could not open camera")
            return False
        setup_camera(self.cap, self.width, self.height, self.fps)
        return True

    def is_available(self):
        return self.cap is not None and self.cap.isOpened()

    def read_frame(self):
        """Latest BGR frame, or None if the camera is unavailable"""
        if not self.is_available():
            return None
        with self.frame_lock:
            ret, frame = self.cap.read()
            if not ret:
                return None
            if self.mirror:
                frame = cv2.flip(frame, 1)
            self._last_frame = frame
            return frame

    @property
    def last_frame(self):
        with self.frame_lock:
            return self._last_frame

    def release(self):
        with self.frame_lock:
            if self.cap is not None:
                self.cap.release()
            self.cap = None


class StaticFrameSource:
    """Serves a fixed frame (or None); used for replays and tests"""

    def __init__(self, frame=None):
        self.frame = frame

    def is_available(self):
        return self.frame is not None

    def read_frame(self):
        return self.frame

    def release(self):
        self.frame = None


class PeriodicTask:
    """
    Runs a callback at a fixed interval on a daemon thread.

    The next run starts only after the previous one returned. `cancel`
    is idempotent and waits for an in-flight run to finish.
    """

    def __init__(self, callback, interval_s, name="detection-poll"):
        self.callback = callback
        self.interval_s = interval_s
        self.name = name
        self._stop_event = threading.Event()
        self._thread = None

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return False
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        return True

    def _run(self):
        while not self._stop_event.is_set():
            started = time.monotonic()
            try:
                self.callback()
            except Exception:
                logger.exception("Error in %s loop", self.name)
            elapsed = time.monotonic() - started
            self._stop_event.wait(max(0.0, self.interval_s - elapsed))

    def cancel(self, timeout=2.0):
        self._stop_event.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
