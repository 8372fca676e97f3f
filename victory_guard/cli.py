"""
Command line preview for the victory sign detector
"""
import argparse
import logging
import sys

import cv2

from .core.config import (
    SENSITIVITY_LEVELS, DEFAULT_SENSITIVITY, DEFAULT_LOCATION, get_sensitivity_profile
)
from .core.models import DetectorUnavailableError
from .core.utils import FPSCounter, draw_text_with_background
from .detectors import DETECTION_MODES, CVDetector, create_detector
from .detectors.cv.visualization import (
    draw_status_overlay, draw_skin_preview, draw_extended_debug_metrics
)
from .session.alerts import AlertHistory
from .session.camera_thread import CameraFrameSource
from .session.detection_session import DetectionSession
from .session.evidence import draw_hand_skeleton

logger = logging.getLogger(__name__)

WINDOW_NAME = "Victory Guard"
SENSITIVITY_KEYS = {ord(str(i + 1)): level for i, level in enumerate(SENSITIVITY_LEVELS)}


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Detect victory sign emergency gestures from a camera")
    parser.add_argument("--mode", choices=DETECTION_MODES, default="auto",
                        help="detector strategy (auto falls back to pixel heuristics)")
    parser.add_argument("--sensitivity", choices=SENSITIVITY_LEVELS, default=DEFAULT_SENSITIVITY)
    parser.add_argument("--location", default=DEFAULT_LOCATION,
                        help="location label burned into evidence images")
    parser.add_argument("--evidence-dir", default=None,
                        help="directory where alert evidence JPEGs are written")
    parser.add_argument("--camera", type=int, default=0, help="first camera index to try")
    parser.add_argument("--debug", action="store_true", help="show debug metrics overlay")
    return parser.parse_args(argv)


def render_preview(session, frame, fps, debug=False):
    status = session.status()
    annotated = frame.copy()

    landmarks = session.detector.last_landmarks
    if landmarks is not None:
        draw_hand_skeleton(annotated, landmarks, (0, 255, 0))

    draw_status_overlay(annotated, status, session.profile.name, fps)

    if debug and isinstance(session.detector, CVDetector):
        draw_skin_preview(annotated, session.detector.last_skin_map)
        draw_extended_debug_metrics(annotated, session.detector.debug_metrics,
                                    session.consensus.history)

    h = annotated.shape[0]
    draw_text_with_background(annotated, "r: reset  c: capture  1-3: sensitivity  q: quit",
                              (10, h - 10), font_scale=0.45, thickness=1)
    return annotated


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    source = CameraFrameSource(camera_index=args.camera)
    if not source.open():
        print("Could not open camera")
        return 1

    try:
        detector = create_detector(args.mode, get_sensitivity_profile(args.sensitivity))
    except DetectorUnavailableError as e:
        print(f"Detector unavailable: {e}")
        source.release()
        return 1

    history = AlertHistory()
    history.add_listener(lambda alert: print(f"ALERT {alert.id} {alert.gesture_type.value} "
                                             f"{alert.confidence * 100:.0f}% at {alert.location}"))

    session = DetectionSession(source, detector=detector, sensitivity=args.sensitivity,
                               location=args.location, alert_sink=history,
                               evidence_dir=args.evidence_dir)
    if session.status().degraded:
        print(session.status().message)

    fps_counter = FPSCounter()
    session.start()
    try:
        while True:
            frame = source.last_frame
            if frame is not None:
                fps_counter.update()
                cv2.imshow(WINDOW_NAME, render_preview(session, frame, fps_counter.get_fps(), args.debug))

            key = cv2.waitKey(30) & 0xFF
            if key in (ord('q'), 27):
                break
            elif key == ord('r'):
                session.reset()
            elif key == ord('c'):
                session.manual_capture()
            elif key in SENSITIVITY_KEYS:
                session.set_sensitivity(SENSITIVITY_KEYS[key])
    except KeyboardInterrupt:
        pass
    finally:
        session.dispose()
        source.release()
        cv2.destroyAllWindows()

    print(f"{len(history)} alert(s) raised")
    return 0


if __name__ == "__main__":
    sys.exit(main())
