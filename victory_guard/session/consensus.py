"""
Multi-frame consensus and cooldown for victory sign verdicts
"""
import enum
import logging
import time
from collections import deque
from dataclasses import dataclass

from ..core.models import FrameVerdict, GestureType

logger = logging.getLogger(__name__)


class ConsensusPhase(enum.Enum):
    IDLE = "idle"
    ACCUMULATING = "accumulating"
    TRIGGERED = "triggered"
    COOLDOWN_EXPIRING = "cooldown_expiring"


@dataclass(frozen=True)
class ConsensusDecision:
    gesture: GestureType
    confidence: float
    triggered: bool = False


class ConsensusStateMachine:
    """
    Debounces per-frame verdicts into edge-triggered victory decisions.

    Every consumed verdict is appended to a bounded history. A verdict is
    positive when it reports a victory with at least the profile's
    minimum confidence. `required_positive_frames` consecutive positives
    trigger once; further triggers are suppressed until the cooldown has
    elapsed, measured with the injected clock.
    """

    def __init__(self, profile, clock=time.monotonic):
        self.clock = clock
        self.profile = profile
        self.history = deque(maxlen=profile.history_size)
        self.consecutive_positive = 0
        self.last_trigger_time = None
        self.phase = ConsensusPhase.IDLE
        self.current_gesture = GestureType.NONE
        self.current_confidence = 0.0

    def reset(self):
        """Clear history, counters and cooldown"""
        self.history = deque(maxlen=self.profile.history_size)
        self.consecutive_positive = 0
        self.last_trigger_time = None
        self.phase = ConsensusPhase.IDLE
        self.current_gesture = GestureType.NONE
        self.current_confidence = 0.0

    def set_profile(self, profile):
        self.profile = profile
        self.reset()
        logger.info("Detection sensitivity set to %s", profile.name)

    def cooldown_remaining(self):
        if self.last_trigger_time is None:
            return 0.0
        elapsed = self.clock() - self.last_trigger_time
        return max(0.0, self.profile.cooldown_s - elapsed)

    def in_cooldown(self):
        return self.cooldown_remaining() > 0

    def cooldown_status(self):
        """
        Returns:
            (active, progress) with progress rising from 0 to 1 over the cooldown
        """
        remaining = self.cooldown_remaining()
        if remaining <= 0 or self.profile.cooldown_s <= 0:
            return False, 0.0
        return True, 1.0 - remaining / self.profile.cooldown_s

    def _is_positive(self, verdict):
        return (
            verdict is not None and
            verdict.is_victory and
            verdict.confidence >= self.profile.min_confidence
        )

    def consume(self, verdict):
        """
        Fold one frame verdict into the state

        Args:
            verdict: FrameVerdict (None counts as a negative frame)

        Returns:
            ConsensusDecision; `triggered` is True only on the frame that
            crosses the threshold outside of a cooldown
        """
        if verdict is None:
            verdict = FrameVerdict.negative(reason='no_verdict')
        self.history.append(verdict)

        if not self._is_positive(verdict):
            self.consecutive_positive = 0
            self.phase = ConsensusPhase.IDLE
            self.current_gesture = GestureType.NONE
            self.current_confidence = min(0.1, verdict.confidence)
            return ConsensusDecision(self.current_gesture, self.current_confidence)

        self.consecutive_positive = min(self.consecutive_positive + 1, len(self.history))

        if self.in_cooldown():
            # Display follows the analyzer but no second alert
            self.phase = ConsensusPhase.COOLDOWN_EXPIRING
            self.current_gesture = GestureType.VICTORY
            self.current_confidence = verdict.confidence
            return ConsensusDecision(self.current_gesture, self.current_confidence)

        required = self.profile.required_positive_frames
        if self.consecutive_positive >= required:
            self.phase = ConsensusPhase.TRIGGERED
            self.current_gesture = GestureType.VICTORY
            self.current_confidence = verdict.confidence
            self.last_trigger_time = self.clock()
            self.consecutive_positive = 0
            logger.info("Victory gesture detected with confidence %.2f", verdict.confidence)
            return ConsensusDecision(self.current_gesture, self.current_confidence, triggered=True)

        self.phase = ConsensusPhase.ACCUMULATING
        self.current_gesture = GestureType.NONE
        self.current_confidence = verdict.confidence * self.consecutive_positive / required
        return ConsensusDecision(self.current_gesture, self.current_confidence)
