import unittest
from datetime import datetime, timedelta
import base64
import io
import os
import re
import sys
import tempfile

import numpy as np
from PIL import Image

# Add path to source
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from victory_guard.core.models import GestureAlert, GestureType, FrameVerdict
from victory_guard.session.alerts import AlertHistory, emit_alert, gesture_display_name
from victory_guard.session.camera_thread import StaticFrameSource
from victory_guard.session.evidence import EvidenceCapture, save_evidence


def frame(height=120, width=160):
    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[:, :, 1] = 90
    return image


class TestEvidenceCapture(unittest.TestCase):
    def setUp(self):
        self.capture = EvidenceCapture(location="Lobby")

    def test_capture_from_array(self):
        image = self.capture.capture(frame(), GestureType.VICTORY, confidence=0.9)
        self.assertTrue(image.startswith(b'\xff\xd8'))
        decoded = Image.open(io.BytesIO(image))
        self.assertEqual(decoded.size, (160, 120))

    def test_capture_from_frame_source(self):
        image = self.capture.capture(StaticFrameSource(frame()), GestureType.MANUAL)
        self.assertTrue(image.startswith(b'\xff\xd8'))

    def test_capture_with_landmarks(self):
        landmarks = np.random.RandomState(0).uniform(0, 1, size=(21, 2))
        image = self.capture.capture(frame(), GestureType.VICTORY, landmarks=landmarks)
        self.assertTrue(image.startswith(b'\xff\xd8'))

    def test_grayscale_frame(self):
        gray = np.full((60, 80), 100, dtype=np.uint8)
        self.assertTrue(self.capture.capture(gray).startswith(b'\xff\xd8'))

    def test_no_frame_available(self):
        self.assertIsNone(self.capture.capture(None))
        self.assertIsNone(self.capture.capture(StaticFrameSource(None)))

    def test_broken_frame_returns_none(self):
        self.assertIsNone(self.capture.capture(np.zeros((3,), dtype=np.uint8)))

    def test_source_frame_is_not_modified(self):
        original = frame()
        before = original.copy()
        self.capture.capture(original, GestureType.VICTORY, landmarks=np.full((21, 2), 0.5))
        self.assertTrue(np.array_equal(original, before))

    def test_save_evidence(self):
        image = self.capture.capture(frame(), GestureType.VICTORY)
        with tempfile.TemporaryDirectory() as tmp:
            path = save_evidence(image, GestureType.VICTORY, os.path.join(tmp, "evidence"))
            self.assertTrue(path.exists())
            self.assertTrue(re.match(r"^victory-alert-\d+\.jpg$", path.name))
            self.assertEqual(path.read_bytes(), image)
        self.assertIsNone(save_evidence(None, GestureType.VICTORY, "unused"))


class TestAlerts(unittest.TestCase):
    def make_alert(self, alert_id, minutes_ago):
        return GestureAlert(id=alert_id, timestamp=datetime.now() - timedelta(minutes=minutes_ago),
                            gesture_type=GestureType.VICTORY, confidence=0.8)

    def test_emit_alert_fields(self):
        alert = emit_alert(GestureType.VICTORY, 0.87, b'\xff\xd8jpeg', "Lobby")
        self.assertRegex(alert.id, r"^alert-\d+-[a-z0-9]{9}$")
        self.assertEqual(alert.gesture_type, GestureType.VICTORY)
        self.assertAlmostEqual(alert.confidence, 0.87)
        self.assertEqual(alert.location, "Lobby")
        self.assertFalse(alert.processed)

    def test_alert_ids_are_unique(self):
        ids = {emit_alert("manual", 1.0).id for _ in range(100)}
        self.assertEqual(len(ids), 100)

    def test_to_dict_encodes_evidence(self):
        alert = emit_alert(GestureType.MANUAL, 1.0, b'abc')
        data = alert.to_dict()
        self.assertEqual(data['gesture_type'], "manual")
        self.assertEqual(base64.b64decode(data['image_data']), b'abc')
        self.assertIsNone(emit_alert(GestureType.MANUAL, 1.0).to_dict()['image_data'])

    def test_display_names(self):
        self.assertEqual(gesture_display_name("victory"), "Victory Sign Emergency")
        self.assertEqual(gesture_display_name("wave"), "Unknown")

    def test_history_newest_first(self):
        history = AlertHistory()
        history.push(self.make_alert("old", 10))
        history.push(self.make_alert("new", 1))
        self.assertEqual([a.id for a in history.alerts()], ["new", "old"])

    def test_mark_processed_and_delete(self):
        history = AlertHistory()
        history.push(self.make_alert("a", 1))
        updated = history.mark_processed("a")
        self.assertTrue(updated.processed)
        self.assertTrue(history.get("a").processed)
        self.assertIsNone(history.mark_processed("missing"))
        self.assertTrue(history.delete("a"))
        self.assertFalse(history.delete("a"))
        self.assertEqual(len(history), 0)

    def test_max_alerts(self):
        history = AlertHistory(max_alerts=2)
        for i in range(3):
            history.push(self.make_alert(str(i), 10 - i))
        self.assertIsNone(history.get("0"))
        self.assertEqual(len(history), 2)

    def test_listener_errors_are_contained(self):
        received = []

        def broken(alert):
            raise RuntimeError("listener down")

        history = AlertHistory()
        history.add_listener(broken)
        history.add_listener(received.append)
        history(self.make_alert("x", 0))
        self.assertEqual([a.id for a in received], ["x"])


class TestFrameVerdict(unittest.TestCase):
    def test_confidence_is_clamped(self):
        self.assertEqual(FrameVerdict(True, 1.7).confidence, 1.0)
        self.assertEqual(FrameVerdict(True, -0.2).confidence, 0.0)
        self.assertEqual(FrameVerdict(True, float('nan')).confidence, 0.0)

    def test_negative_helper(self):
        verdict = FrameVerdict.negative(0.95, "pixels", reason='exposure')
        self.assertFalse(verdict.is_victory)
        self.assertEqual(verdict.metadata, {'reason': 'exposure'})


if __name__ == '__main__':
    unittest.main()
