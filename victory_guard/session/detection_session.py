"""
Detection session: one camera feed, one detector, one consensus state
"""
import logging
import threading
import time

from .alerts import AlertHistory, emit_alert
from .camera_thread import PeriodicTask
from .consensus import ConsensusStateMachine
from .evidence import EvidenceCapture, read_source_frame, save_evidence
from ..core.config import (
    DEFAULT_SENSITIVITY, DEFAULT_LOCATION, COOLDOWN_PROGRESS_INTERVAL_MS,
    get_sensitivity_profile
)
from ..core.models import DetectionStatus, FrameVerdict, GestureType
from ..detectors import create_detector, DEGRADED_MESSAGE

logger = logging.getLogger(__name__)


class DetectionSession:
    """
    Drives frames through a detector and the consensus machine.

    Sensitivity changes and resets may be requested from any thread; they
    are queued and applied at the start of the next poll so a detection
    cycle never sees a half-updated state.
    """

    def __init__(self, frame_source, detector=None, sensitivity=DEFAULT_SENSITIVITY,
                 mode="auto", location=DEFAULT_LOCATION, alert_sink=None,
                 clock=time.monotonic, evidence_dir=None, status_listener=None):
        self.frame_source = frame_source
        self.profile = get_sensitivity_profile(sensitivity)
        self.detector = detector if detector is not None else create_detector(mode, self.profile)
        self.consensus = ConsensusStateMachine(self.profile, clock=clock)
        self.evidence = EvidenceCapture(location=location)
        self.location = location
        self.alert_sink = alert_sink if alert_sink is not None else AlertHistory()
        self.evidence_dir = evidence_dir
        self.status_listener = status_listener

        self._state_lock = threading.RLock()
        self._command_lock = threading.Lock()
        self._pending_profile = None
        self._pending_reset = False

        self._poll_task = None
        self._progress_task = None
        self._status = self._build_status()

    # Commands

    def set_sensitivity(self, level):
        """Queue a sensitivity change; raises ValueError for unknown levels"""
        profile = get_sensitivity_profile(level)
        with self._command_lock:
            self._pending_profile = profile
        if not self.running:
            self._apply_pending_commands()
        return profile

    def reset(self):
        """Queue a full reset of the consensus state (history, counters, cooldown)"""
        with self._command_lock:
            self._pending_reset = True
        if not self.running:
            self._apply_pending_commands()

    def manual_capture(self):
        """
        Capture evidence and emit a manual alert immediately.

        Bypasses consensus and cooldown gating entirely.
        """
        with self._state_lock:
            frame = self._read_frame()
            landmarks = self.detector.last_landmarks
        evidence = self.evidence.capture(frame, GestureType.MANUAL, landmarks, 1.0)
        if evidence is None:
            logger.warning("Manual capture without evidence image: frame unavailable")
        alert = emit_alert(GestureType.MANUAL, 1.0, evidence, self.location)
        self._deliver(alert)
        return alert

    # Detection cycle

    def _apply_pending_commands(self):
        with self._command_lock:
            profile, self._pending_profile = self._pending_profile, None
            reset, self._pending_reset = self._pending_reset, False

        with self._state_lock:
            if profile is not None:
                self.profile = profile
                self.detector.set_profile(profile)
                self.consensus.set_profile(profile)
                if self._poll_task is not None:
                    self._poll_task.interval_s = profile.poll_interval_s
            if reset:
                self.consensus.reset()
                logger.info("Detection state reset")
            if profile is not None or reset:
                self._status = self._build_status()

    def _read_frame(self):
        try:
            return read_source_frame(self.frame_source)
        except Exception as e:
            logger.warning("Frame source failed: %s", e)
            return None

    def _analyze(self, frame):
        if frame is None:
            return FrameVerdict.negative(reason='no_frame')
        try:
            return self.detector.analyze(frame)
        except Exception as e:
            logger.warning("Detector %s raised: %s", self.detector.name, e)
            return FrameVerdict.negative(reason='detector_error')

    def poll_once(self):
        """
        Run one detection cycle

        Returns:
            DetectionStatus after the frame has been folded into the state
        """
        self._apply_pending_commands()
        try:
            with self._state_lock:
                frame = self._read_frame()
                verdict = self._analyze(frame)
                decision = self.consensus.consume(verdict)
                if decision.triggered:
                    evidence = self.evidence.capture(
                        frame, GestureType.VICTORY, self.detector.last_landmarks, decision.confidence
                    )
                    self._deliver(emit_alert(GestureType.VICTORY, decision.confidence,
                                             evidence, self.location))
                self._status = self._build_status()
        except Exception:
            logger.exception("Detection cycle failed")
        self._notify()
        return self._status

    def _deliver(self, alert):
        if self.evidence_dir is not None and alert.evidence_image:
            save_evidence(alert.evidence_image, alert.gesture_type, self.evidence_dir)
        try:
            push = getattr(self.alert_sink, 'push', self.alert_sink)
            push(alert)
        except Exception:
            logger.exception("Alert sink rejected alert %s", alert.id)

    # Status

    def _build_status(self):
        active, progress = self.consensus.cooldown_status()
        return DetectionStatus(
            gesture=self.consensus.current_gesture,
            confidence=self.consensus.current_confidence,
            cooldown_active=active,
            cooldown_progress=progress,
            degraded=self.detector.degraded,
            detector_name=self.detector.name,
            message=DEGRADED_MESSAGE if self.detector.degraded else "",
        )

    def status(self):
        with self._state_lock:
            self._status = self._build_status()
            return self._status

    def _notify(self):
        if self.status_listener is None:
            return
        try:
            self.status_listener(self._status)
        except Exception:
            logger.exception("Status listener failed")

    def _tick_cooldown(self):
        status = self.status()
        if status.cooldown_active:
            self._notify()

    # Lifecycle

    @property
    def running(self):
        return self._poll_task is not None

    def start(self):
        if self.running:
            return False
        self._poll_task = PeriodicTask(self.poll_once, self.profile.poll_interval_s)
        self._poll_task.start()
        if self.status_listener is not None:
            self._progress_task = PeriodicTask(
                self._tick_cooldown, COOLDOWN_PROGRESS_INTERVAL_MS / 1000.0, name="cooldown-progress"
            )
            self._progress_task.start()
        logger.info("Detection started (%s, sensitivity %s)", self.detector.name, self.profile.name)
        return True

    def stop(self):
        """Cancel both timers, then drop transient detection state. Idempotent."""
        poll_task, self._poll_task = self._poll_task, None
        progress_task, self._progress_task = self._progress_task, None
        if poll_task is not None:
            poll_task.cancel()
        if progress_task is not None:
            progress_task.cancel()
        if poll_task is None and progress_task is None:
            return
        with self._state_lock:
            self.consensus.reset()
            self._status = self._build_status()
        logger.info("Detection stopped")

    def dispose(self):
        self.stop()
        self.detector.cleanup()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.dispose()
        return False
