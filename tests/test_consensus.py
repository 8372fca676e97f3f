import unittest
from dataclasses import replace
import sys
import os

# Add path to source
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from victory_guard.core.config import get_sensitivity_profile, SENSITIVITY_LEVELS
from victory_guard.core.models import FrameVerdict, GestureType
from victory_guard.session.consensus import ConsensusStateMachine, ConsensusPhase


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


POSITIVE = FrameVerdict(True, 0.9, "test")
WEAK_POSITIVE = FrameVerdict(True, 0.3, "test")
NEGATIVE = FrameVerdict(False, 0.05, "test")


class TestConsensusStateMachine(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.fast_profile = replace(
            get_sensitivity_profile("high"),
            required_positive_frames=1, cooldown_ms=500, min_confidence=0.5
        )

    def test_all_negative_never_triggers(self):
        machine = ConsensusStateMachine(get_sensitivity_profile("high"), clock=self.clock)
        for _ in range(50):
            decision = machine.consume(NEGATIVE)
            self.assertFalse(decision.triggered)
            self.assertEqual(decision.gesture, GestureType.NONE)
            self.assertLessEqual(decision.confidence, 0.1)
            self.clock.advance(0.1)
        self.assertEqual(machine.phase, ConsensusPhase.IDLE)

    def test_cooldown_suppresses_second_trigger(self):
        machine = ConsensusStateMachine(self.fast_profile, clock=self.clock)
        self.assertTrue(machine.consume(POSITIVE).triggered)

        self.clock.advance(0.1)
        decision = machine.consume(POSITIVE)
        self.assertFalse(decision.triggered)
        self.assertEqual(decision.gesture, GestureType.VICTORY)
        self.assertEqual(machine.phase, ConsensusPhase.COOLDOWN_EXPIRING)

    def test_trigger_again_after_cooldown(self):
        machine = ConsensusStateMachine(self.fast_profile, clock=self.clock)
        self.assertTrue(machine.consume(POSITIVE).triggered)
        self.clock.advance(0.6)
        self.assertTrue(machine.consume(POSITIVE).triggered)

    def test_consecutive_frames_required(self):
        machine = ConsensusStateMachine(get_sensitivity_profile("medium"), clock=self.clock)
        first = machine.consume(POSITIVE)
        self.assertFalse(first.triggered)
        self.assertEqual(first.gesture, GestureType.NONE)
        self.assertAlmostEqual(first.confidence, 0.45)
        self.assertEqual(machine.phase, ConsensusPhase.ACCUMULATING)

        second = machine.consume(POSITIVE)
        self.assertTrue(second.triggered)
        self.assertEqual(second.gesture, GestureType.VICTORY)
        self.assertEqual(machine.consecutive_positive, 0)

    def test_negative_breaks_the_run(self):
        machine = ConsensusStateMachine(get_sensitivity_profile("medium"), clock=self.clock)
        machine.consume(POSITIVE)
        machine.consume(NEGATIVE)
        self.assertFalse(machine.consume(POSITIVE).triggered)

    def test_low_confidence_positive_counts_as_negative(self):
        machine = ConsensusStateMachine(self.fast_profile, clock=self.clock)
        decision = machine.consume(WEAK_POSITIVE)
        self.assertFalse(decision.triggered)
        self.assertEqual(machine.consecutive_positive, 0)

    def test_missing_verdict_is_negative(self):
        machine = ConsensusStateMachine(self.fast_profile, clock=self.clock)
        machine.consume(POSITIVE)
        decision = machine.consume(None)
        self.assertFalse(decision.triggered)
        self.assertEqual(len(machine.history), 2)
        self.assertFalse(machine.history[-1].is_victory)
        self.assertEqual(machine.consecutive_positive, 0)

    def test_history_keeps_most_recent_in_order(self):
        machine = ConsensusStateMachine(get_sensitivity_profile("high"), clock=self.clock)
        verdicts = [FrameVerdict(i % 2 == 0, i / 10.0, "test") for i in range(5)]
        for verdict in verdicts:
            machine.consume(verdict)
        size = get_sensitivity_profile("high").history_size
        self.assertEqual(list(machine.history), verdicts[-size:])

    def test_reset_is_idempotent(self):
        machine = ConsensusStateMachine(self.fast_profile, clock=self.clock)
        machine.consume(POSITIVE)
        machine.reset()
        snapshot = (list(machine.history), machine.consecutive_positive,
                    machine.last_trigger_time, machine.phase, machine.current_gesture)
        machine.reset()
        self.assertEqual(snapshot, (list(machine.history), machine.consecutive_positive,
                                    machine.last_trigger_time, machine.phase, machine.current_gesture))
        self.assertEqual(snapshot[0], [])
        self.assertIsNone(snapshot[2])

    def test_reset_clears_cooldown(self):
        machine = ConsensusStateMachine(self.fast_profile, clock=self.clock)
        self.assertTrue(machine.consume(POSITIVE).triggered)
        machine.reset()
        self.assertFalse(machine.in_cooldown())
        self.assertTrue(machine.consume(POSITIVE).triggered)

    def test_cooldown_status_progress(self):
        machine = ConsensusStateMachine(self.fast_profile, clock=self.clock)
        self.assertEqual(machine.cooldown_status(), (False, 0.0))
        machine.consume(POSITIVE)
        self.clock.advance(0.25)
        active, progress = machine.cooldown_status()
        self.assertTrue(active)
        self.assertAlmostEqual(progress, 0.5)
        self.clock.advance(0.5)
        self.assertEqual(machine.cooldown_status(), (False, 0.0))

    def test_sensitivity_change_resets_state(self):
        machine = ConsensusStateMachine(get_sensitivity_profile("low"), clock=self.clock)
        machine.consume(POSITIVE)
        machine.consume(POSITIVE)
        self.assertEqual(len(machine.history), 2)

        machine.set_profile(get_sensitivity_profile("high"))
        self.assertEqual(len(machine.history), 0)
        self.assertEqual(machine.consecutive_positive, 0)
        self.assertEqual(machine.history.maxlen, get_sensitivity_profile("high").history_size)

    def test_required_frames_do_not_grow_with_sensitivity(self):
        required = [get_sensitivity_profile(level).required_positive_frames
                    for level in SENSITIVITY_LEVELS]
        self.assertEqual(required, sorted(required, reverse=True))


if __name__ == '__main__':
    unittest.main()
