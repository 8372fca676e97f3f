"""
Alert emission and an in-memory alert history sink
"""
import logging
import random
import string
import threading
import time
from dataclasses import replace
from datetime import datetime

from ..core.config import GESTURE_DISPLAY_NAMES, DEFAULT_LOCATION
from ..core.models import GestureAlert, GestureType

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_alert_id():
    suffix = ''.join(random.choices(_ID_ALPHABET, k=9))
    return f"alert-{int(time.time() * 1000)}-{suffix}"


def emit_alert(gesture, confidence, evidence=None, location=DEFAULT_LOCATION):
    """Build a fresh, unprocessed alert record"""
    return GestureAlert(
        id=new_alert_id(),
        timestamp=datetime.now(),
        gesture_type=GestureType(gesture),
        confidence=float(confidence),
        evidence_image=evidence,
        location=location,
        processed=False,
    )


def gesture_display_name(gesture):
    try:
        return GESTURE_DISPLAY_NAMES[GestureType(gesture).value]
    except ValueError:
        return "Unknown"


class AlertHistory:
    """Thread-safe in-memory alert store with listener callbacks"""

    def __init__(self, max_alerts=None):
        self.max_alerts = max_alerts
        self._alerts = []
        self._listeners = []
        self._lock = threading.Lock()

    def add_listener(self, callback):
        self._listeners.append(callback)

    def push(self, alert):
        with self._lock:
            self._alerts.append(alert)
            if self.max_alerts is not None and len(self._alerts) > self.max_alerts:
                self._alerts.pop(0)
        logger.info("%s alert %s (%.0f%%) at %s", gesture_display_name(alert.gesture_type),
                    alert.id, alert.confidence * 100, alert.location)
        for callback in list(self._listeners):
            try:
                callback(alert)
            except Exception:
                logger.exception("Alert listener failed")

    def __call__(self, alert):
        self.push(alert)

    def alerts(self):
        """Alerts sorted newest first"""
        with self._lock:
            return sorted(self._alerts, key=lambda a: a.timestamp, reverse=True)

    def get(self, alert_id):
        with self._lock:
            for alert in self._alerts:
                if alert.id == alert_id:
                    return alert
        return None

    def mark_processed(self, alert_id, processed=True):
        with self._lock:
            for i, alert in enumerate(self._alerts):
                if alert.id == alert_id:
                    self._alerts[i] = replace(alert, processed=processed)
                    return self._alerts[i]
        return None

    def delete(self, alert_id):
        with self._lock:
            before = len(self._alerts)
            self._alerts = [a for a in self._alerts if a.id != alert_id]
            return len(self._alerts) != before

    def __len__(self):
        with self._lock:
            return len(self._alerts)
