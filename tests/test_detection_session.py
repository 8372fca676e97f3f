import unittest
from unittest.mock import MagicMock
from dataclasses import replace
import sys
import os
import time

import numpy as np

# Add path to source
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from victory_guard.core.config import get_sensitivity_profile
from victory_guard.core.models import FrameVerdict, GestureType
from victory_guard.detectors import HandDetectorBase, DEGRADED_MESSAGE
from victory_guard.session.alerts import AlertHistory
from victory_guard.session.camera_thread import CameraFrameSource, StaticFrameSource, PeriodicTask
from victory_guard.session.detection_session import DetectionSession


class FakeClock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class ScriptedDetector(HandDetectorBase):
    """Returns the same verdict for every frame, counting calls"""
    name = "scripted"

    def __init__(self, profile, verdict):
        super().__init__(profile)
        self.verdict = verdict
        self.calls = 0
        self.cleaned_up = False

    def analyze(self, frame):
        self.calls += 1
        if frame is None:
            return FrameVerdict.negative(source=self.name)
        return self.verdict

    def cleanup(self):
        self.cleaned_up = True


class ExplodingDetector(ScriptedDetector):
    def analyze(self, frame):
        raise RuntimeError("boom")


def gray_frame():
    frame = np.zeros((120, 160, 3), dtype=np.uint8)
    frame[:] = 128
    return frame


class TestDetectionSession(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.history = AlertHistory()
        self.profile = replace(get_sensitivity_profile("high"), cooldown_ms=500)
        self.detector = ScriptedDetector(self.profile, FrameVerdict(True, 0.9, "scripted"))

    def make_session(self, frame_source=None, detector=None):
        return DetectionSession(
            StaticFrameSource(gray_frame()) if frame_source is None else frame_source,
            detector=detector or self.detector,
            sensitivity=self.profile,
            alert_sink=self.history,
            clock=self.clock,
        )

    def test_trigger_emits_alert_with_evidence(self):
        session = self.make_session()
        status = session.poll_once()

        self.assertEqual(status.gesture, GestureType.VICTORY)
        self.assertTrue(status.cooldown_active)
        self.assertEqual(len(self.history), 1)
        alert = self.history.alerts()[0]
        self.assertEqual(alert.gesture_type, GestureType.VICTORY)
        self.assertFalse(alert.processed)
        self.assertTrue(alert.evidence_image.startswith(b'\xff\xd8'))

    def test_cooldown_limits_alerts(self):
        session = self.make_session()
        for _ in range(4):
            session.poll_once()
            self.clock.advance(0.1)
        self.assertEqual(len(self.history), 1)

        self.clock.advance(0.5)
        session.poll_once()
        self.assertEqual(len(self.history), 2)

    def test_manual_capture_during_cooldown(self):
        session = self.make_session()
        session.poll_once()
        self.clock.advance(0.1)

        alert = session.manual_capture()
        self.assertEqual(alert.gesture_type, GestureType.MANUAL)
        self.assertEqual(alert.confidence, 1.0)
        self.assertTrue(alert.evidence_image.startswith(b'\xff\xd8'))
        self.assertEqual(len(self.history), 2)
        self.assertTrue(session.status().cooldown_active)

    def test_manual_capture_without_frame(self):
        session = self.make_session(frame_source=StaticFrameSource(None))
        alert = session.manual_capture()
        self.assertEqual(alert.gesture_type, GestureType.MANUAL)
        self.assertIsNone(alert.evidence_image)

    def test_missing_frame_is_negative(self):
        session = self.make_session(frame_source=StaticFrameSource(None))
        status = session.poll_once()
        self.assertEqual(status.gesture, GestureType.NONE)
        self.assertEqual(len(self.history), 0)

    def test_detector_failure_does_not_escape(self):
        session = self.make_session(detector=ExplodingDetector(self.profile, None))
        status = session.poll_once()
        self.assertEqual(status.gesture, GestureType.NONE)
        self.assertEqual(len(self.history), 0)

    def test_sink_failure_does_not_escape(self):
        def broken_sink(alert):
            raise IOError("disk full")

        session = DetectionSession(StaticFrameSource(gray_frame()), detector=self.detector,
                                   sensitivity=self.profile, alert_sink=broken_sink, clock=self.clock)
        status = session.poll_once()
        self.assertEqual(status.gesture, GestureType.VICTORY)

    def test_unknown_sensitivity(self):
        session = self.make_session()
        with self.assertRaises(ValueError):
            session.set_sensitivity("extreme")
        self.assertIs(session.profile, self.profile)

    def test_sensitivity_change_applies_to_detector_and_consensus(self):
        session = self.make_session()
        session.poll_once()
        session.set_sensitivity("low")
        low = get_sensitivity_profile("low")
        self.assertIs(session.profile, low)
        self.assertIs(self.detector.profile, low)
        self.assertEqual(len(session.consensus.history), 0)
        self.assertFalse(session.status().cooldown_active)

    def test_reset_clears_cooldown(self):
        session = self.make_session()
        session.poll_once()
        session.reset()
        self.assertFalse(session.status().cooldown_active)
        session.poll_once()
        self.assertEqual(len(self.history), 2)

    def test_degraded_status_message(self):
        self.detector.degraded = True
        status = self.make_session().status()
        self.assertTrue(status.degraded)
        self.assertEqual(status.message, DEGRADED_MESSAGE)
        self.assertEqual(status.detector_name, "scripted")

    def test_evidence_written_to_directory(self):
        import tempfile
        with tempfile.TemporaryDirectory() as tmp:
            session = DetectionSession(StaticFrameSource(gray_frame()), detector=self.detector,
                                       sensitivity=self.profile, alert_sink=self.history,
                                       clock=self.clock, evidence_dir=tmp)
            session.poll_once()
            files = os.listdir(tmp)
            self.assertEqual(len(files), 1)
            self.assertTrue(files[0].startswith("victory-alert-"))

    def wait_for(self, condition, timeout=2.0):
        deadline = time.monotonic() + timeout
        while not condition() and time.monotonic() < deadline:
            time.sleep(0.01)
        self.assertTrue(condition())

    def test_commands_wait_for_next_poll_while_running(self):
        self.profile = replace(self.profile, poll_interval_ms=60000)
        self.detector.profile = self.profile
        session = self.make_session()
        session.start()
        try:
            # first cycle runs as soon as the task starts, then sleeps a minute
            self.wait_for(lambda: len(self.history) == 1)

            session.set_sensitivity("low")
            self.assertIs(session.profile, self.profile)
            self.assertIs(self.detector.profile, self.profile)
            self.assertTrue(session.status().cooldown_active)
            self.assertEqual(len(session.consensus.history), 1)

            session.poll_once()
            low = get_sensitivity_profile("low")
            self.assertIs(session.profile, low)
            self.assertIs(self.detector.profile, low)
            self.assertIs(session.consensus.profile, low)
            self.assertEqual(session._poll_task.interval_s, low.poll_interval_s)
            # history was cleared before this poll's verdict went in
            self.assertEqual(len(session.consensus.history), 1)
            self.assertFalse(session.status().cooldown_active)
            self.assertEqual(len(self.history), 1)
        finally:
            session.stop()

    def test_reset_waits_for_next_poll_while_running(self):
        self.profile = replace(self.profile, poll_interval_ms=60000)
        session = self.make_session()
        session.start()
        try:
            self.wait_for(lambda: len(self.history) == 1)
            session.reset()
            self.assertTrue(session.status().cooldown_active)
            session.poll_once()
            self.assertEqual(len(self.history), 2)
        finally:
            session.stop()

    def test_stop_is_idempotent(self):
        session = self.make_session()
        session.stop()
        self.assertTrue(session.start())
        self.assertFalse(session.start())
        session.stop()
        session.stop()
        self.assertFalse(session.running)

    def test_dispose_releases_detector(self):
        with self.make_session() as session:
            session.start()
        self.assertFalse(session.running)
        self.assertTrue(self.detector.cleaned_up)


class TestPeriodicTask(unittest.TestCase):
    def test_runs_until_cancelled(self):
        calls = []
        task = PeriodicTask(lambda: calls.append(1), 0.01)
        task.start()
        time.sleep(0.1)
        task.cancel()
        self.assertFalse(task.running)
        count = len(calls)
        self.assertGreater(count, 0)
        time.sleep(0.05)
        self.assertEqual(len(calls), count)

    def test_callback_errors_keep_loop_alive(self):
        calls = []

        def flaky():
            calls.append(1)
            raise ValueError("bad frame")

        task = PeriodicTask(flaky, 0.01)
        task.start()
        time.sleep(0.1)
        task.cancel()
        self.assertGreater(len(calls), 1)

    def test_cancel_before_start(self):
        task = PeriodicTask(lambda: None, 0.01)
        task.cancel()
        task.cancel()
        self.assertFalse(task.running)


class TestCameraFrameSource(unittest.TestCase):
    def test_last_frame_is_the_frame_handed_out(self):
        source = CameraFrameSource(mirror=True)
        raw = np.zeros((4, 6, 3), dtype=np.uint8)
        raw[:, 0] = 255
        source.cap = MagicMock()
        source.cap.isOpened.return_value = True
        source.cap.read.return_value = (True, raw)

        self.assertIsNone(source.last_frame)
        frame = source.read_frame()
        self.assertTrue((frame[:, -1] == 255).all())
        self.assertIs(source.last_frame, frame)
        self.assertIs(source.last_frame, frame)
        self.assertEqual(source.cap.read.call_count, 1)

    def test_closed_camera(self):
        source = CameraFrameSource()
        self.assertIsNone(source.read_frame())
        source.release()
        self.assertFalse(source.is_available())


if __name__ == '__main__':
    unittest.main()
