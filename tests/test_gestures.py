"""
Test cases for the motion classifier and the per-frame gesture controller.
"""
import unittest
import sys
from pathlib import Path

# Add repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from mushti.action_log import ActionLog
from mushti.config import Cfg, MotionConfig, MushtiConfig, ThumbSpec, motion_from_dict
from mushti.gestures import GestureController, MotionClassifier, create_motion_classifier
from mushti.types import COURAGE, STEADINESS, EventSinkProto, GestureContext, GestureEvent
from tests.synthetic_hands import fist, open_hand, wrist_only

ALLOW = GestureContext(courage_allowed=True)
VETO = GestureContext(courage_allowed=False)


class TestGraceMode(unittest.TestCase):
    """Test single-anchor classification right after the fist is released."""

    def setUp(self):
        self.classifier = create_motion_classifier(MotionConfig())

    def test_upward_move_fires_courage(self):
        self.classifier.start_grace(0.5, 1000)
        event = self.classifier.update(wrist_only(0.5 - 0.07), 1200, ALLOW)

        self.assertEqual(event, GestureEvent(label=COURAGE, confidence=1.0))
        self.assertFalse(self.classifier.has_grace_anchor)
        self.assertEqual(self.classifier.last_label, COURAGE)
        self.assertEqual(self.classifier.last_fired_at, 1200)

    def test_downward_move_below_then_above_threshold(self):
        self.classifier.start_grace(0.5, 1000)

        self.assertIsNone(self.classifier.update(wrist_only(0.5 + 0.05), 1200, ALLOW))
        self.assertTrue(self.classifier.has_grace_anchor)

        event = self.classifier.update(wrist_only(0.5 + 0.07), 1500, ALLOW)
        self.assertEqual(event.label, STEADINESS)
        self.assertAlmostEqual(event.confidence, 1.0)

    def test_fires_only_once_per_anchor(self):
        self.classifier.start_grace(0.5, 1000)
        self.assertIsNotNone(self.classifier.update(wrist_only(0.43), 1200, ALLOW))

        self.assertIsNone(self.classifier.update(wrist_only(0.40), 1210, ALLOW))
        self.assertIsNone(self.classifier.update(wrist_only(0.60), 1220, ALLOW))

    def test_expired_anchor_returns_none_and_clears(self):
        self.classifier.start_grace(0.5, 1000)
        event = self.classifier.update(wrist_only(0.2), 1000 + 2001, ALLOW)

        self.assertIsNone(event)
        self.assertFalse(self.classifier.has_grace_anchor)
        # Buffering does not start within the expiring call
        self.assertEqual(len(self.classifier.samples), 0)

    def test_anchor_still_valid_at_window_edge(self):
        self.classifier.start_grace(0.5, 1000)
        event = self.classifier.update(wrist_only(0.6), 3000, ALLOW)

        self.assertEqual(event.label, STEADINESS)

    def test_veto_suppresses_courage_and_keeps_anchor(self):
        self.classifier.start_grace(0.5, 1000)

        self.assertIsNone(self.classifier.update(wrist_only(0.43), 1200, VETO))
        self.assertTrue(self.classifier.has_grace_anchor)
        self.assertIsNone(self.classifier.last_label)
        self.assertIsNone(self.classifier.last_fired_at)

        event = self.classifier.update(wrist_only(0.57), 1300, VETO)
        self.assertEqual(event.label, STEADINESS)

    def test_missing_context_allows_courage(self):
        self.classifier.start_grace(0.5, 1000)
        event = self.classifier.update(wrist_only(0.43), 1200)

        self.assertEqual(event.label, COURAGE)

    def test_start_grace_overwrites_anchor(self):
        self.classifier.start_grace(0.5, 1000)
        self.classifier.start_grace(0.3, 5000)

        self.assertEqual(self.classifier.grace_anchor.y, 0.3)
        self.assertIsNone(self.classifier.update(wrist_only(0.32), 5100, ALLOW))

    def test_cancel_grace_keeps_samples(self):
        self.classifier.update(wrist_only(0.5), 100)
        self.classifier.start_grace(0.5, 200)
        self.classifier.cancel_grace()

        self.assertFalse(self.classifier.has_grace_anchor)
        self.assertEqual(len(self.classifier.samples), 1)


class TestBufferingMode(unittest.TestCase):
    """Test long-window displacement classification."""

    def setUp(self):
        self.classifier = MotionClassifier(MotionConfig())

    def feed(self, ys, start, step=10, context=None):
        events = []
        for i, y in enumerate(ys):
            events.append(self.classifier.update(wrist_only(y), start + i * step, context))
        return events

    def test_nineteen_samples_never_fire(self):
        events = self.feed([0.5] * 10 + [0.7] * 9, 5000)

        self.assertEqual(events, [None] * 19)

    def test_twentieth_sample_fires_once(self):
        events = self.feed([0.5] * 19 + [0.6], 5000)

        self.assertEqual(events[:19], [None] * 19)
        self.assertEqual(events[19].label, STEADINESS)
        self.assertAlmostEqual(events[19].confidence, 0.1 / 0.16)
        self.assertEqual(sum(1 for e in events if e is not None), 1)

    def test_small_displacement_does_not_fire(self):
        events = self.feed([0.5] * 19 + [0.55], 5000)

        self.assertEqual(events, [None] * 20)

    def test_negative_displacement_is_courage(self):
        events = self.feed([0.5] * 19 + [0.3], 5000)

        self.assertEqual(events[19].label, COURAGE)
        self.assertAlmostEqual(events[19].confidence, 1.0)

    def test_old_samples_are_pruned(self):
        self.feed([0.5] * 19, 0)
        self.classifier.update(wrist_only(0.9), 5000)

        self.assertEqual(len(self.classifier.samples), 1)

    def test_veto_in_buffering(self):
        events = self.feed([0.5] * 19 + [0.3], 5000, context=VETO)
        self.assertEqual(events, [None] * 20)
        self.assertIsNone(self.classifier.last_label)

        self.classifier.reset()
        events = self.feed([0.5] * 19 + [0.7], 5000, context=VETO)
        self.assertEqual(events[19].label, STEADINESS)


class TestCooldownAndHysteresis(unittest.TestCase):
    """Test cooldown and same-label relabel suppression."""

    def setUp(self):
        self.classifier = MotionClassifier(MotionConfig(min_samples=2))
        self.classifier.update(wrist_only(0.5), 9990)
        self.first = self.classifier.update(wrist_only(0.6), 10000)

    def test_first_window_fires(self):
        self.assertEqual(self.first.label, STEADINESS)

    def test_cooldown_blocks_any_label(self):
        self.assertIsNone(self.classifier.update(wrist_only(0.2), 10500))
        self.assertIsNone(self.classifier.update(wrist_only(0.9), 11900))

    def test_same_label_suppressed_within_hysteresis(self):
        self.assertIsNone(self.classifier.update(wrist_only(0.6), 12490))
        self.assertIsNone(self.classifier.update(wrist_only(0.7), 12500))

        event = self.classifier.update(wrist_only(0.8), 13100)
        self.assertEqual(event.label, STEADINESS)

    def test_opposite_label_fires_after_cooldown(self):
        self.classifier.update(wrist_only(0.7), 12490)
        event = self.classifier.update(wrist_only(0.6), 12500)

        self.assertEqual(event.label, COURAGE)


class TestClassifierLifecycle(unittest.TestCase):
    """Test reset, reconfiguration and read-only snapshots."""

    def test_polarity_map(self):
        config = motion_from_dict({"min_samples": 2, "labels": {"STEADINESS": "negative", "COURAGE": "positive"}})
        classifier = MotionClassifier(config)
        classifier.update(wrist_only(0.5), 5000)
        event = classifier.update(wrist_only(0.6), 5010)

        self.assertEqual(event.label, COURAGE)

    def test_reset_clears_everything(self):
        classifier = MotionClassifier(MotionConfig(min_samples=2))
        classifier.update(wrist_only(0.5), 5000)
        classifier.update(wrist_only(0.6), 5010)
        classifier.start_grace(0.6, 5020)

        classifier.reset()

        self.assertEqual(len(classifier.samples), 0)
        self.assertFalse(classifier.has_grace_anchor)
        self.assertIsNone(classifier.last_fired_at)
        self.assertIsNone(classifier.last_label)

    def test_reset_with_new_config(self):
        classifier = MotionClassifier(MotionConfig())
        classifier.update(wrist_only(0.5), 5000)
        new_config = MotionConfig(min_samples=3)

        classifier.reset(new_config)

        self.assertIs(classifier.config, new_config)
        self.assertEqual(len(classifier.samples), 0)

    def test_reset_samples_keeps_anchor(self):
        classifier = MotionClassifier(MotionConfig())
        classifier.update(wrist_only(0.5), 100)
        classifier.start_grace(0.5, 200)
        classifier.reset_samples()

        self.assertEqual(len(classifier.samples), 0)
        self.assertTrue(classifier.has_grace_anchor)

    def test_empty_frame_is_ignored(self):
        classifier = MotionClassifier(MotionConfig())
        classifier.start_grace(0.5, 100)

        self.assertIsNone(classifier.update((), 200))
        self.assertIsNone(classifier.update(None, 200))
        self.assertTrue(classifier.has_grace_anchor)
        self.assertEqual(len(classifier.samples), 0)

    def test_diagnostics_do_not_mutate(self):
        classifier = MotionClassifier(MotionConfig())
        self.assertIsNone(classifier.get_diagnostics(0).displacement)

        classifier.update(wrist_only(0.5), 100)
        classifier.update(wrist_only(0.55), 110)
        classifier.start_grace(0.55, 500)

        diagnostics = classifier.get_diagnostics(1000)
        self.assertEqual(diagnostics.sample_count, 2)
        self.assertAlmostEqual(diagnostics.displacement, 0.05)
        self.assertTrue(diagnostics.grace_active)
        self.assertEqual(diagnostics.grace_remaining_ms, 1500)
        self.assertEqual(diagnostics.cooldown_remaining_ms, 0)
        self.assertEqual(diagnostics.min_samples, 20)
        self.assertEqual(diagnostics.upward_threshold, 0.06)

        late = classifier.get_diagnostics(5000)
        self.assertFalse(late.grace_active)
        self.assertEqual(late.grace_remaining_ms, 0)
        self.assertTrue(classifier.has_grace_anchor)
        self.assertEqual(len(classifier.samples), 2)

    def test_get_state(self):
        classifier = MotionClassifier(MotionConfig(min_samples=2))
        self.assertFalse(classifier.get_state(0).has_samples)

        classifier.update(wrist_only(0.5), 5000)
        classifier.update(wrist_only(0.6), 5010)
        state = classifier.get_state(6010)

        self.assertTrue(state.has_samples)
        self.assertTrue(state.in_cooldown)
        self.assertFalse(state.ready)
        self.assertEqual(state.cooldown_remaining_ms, 1000)
        self.assertTrue(classifier.get_state(7010).ready)

    def test_instances_do_not_share_state(self):
        a = create_motion_classifier()
        b = create_motion_classifier()
        a.update(wrist_only(0.5), 100)

        self.assertEqual(len(b.samples), 0)


class TestGestureController(unittest.TestCase):
    """Test per-frame orchestration of pose, pitch and motion."""

    def setUp(self):
        self.log = ActionLog()
        self.controller = GestureController(MushtiConfig(thumb=ThumbSpec()), MotionConfig(), sink=self.log)

    def release(self, t, y=0.6):
        self.controller.process_frame(fist((0.5, y)), t)
        return self.controller.process_frame(open_hand((0.5, y)), t + 100)

    def test_sink_satisfies_protocol(self):
        self.assertIsInstance(self.log, EventSinkProto)

    def test_release_then_raise_with_pitch_up_fires_courage(self):
        held = self.controller.process_frame(fist((0.5, 0.6)), 1000)
        self.assertTrue(held.pose.is_fist)
        self.assertIsNone(held.event)
        self.assertFalse(self.controller.classifier.has_grace_anchor)

        released = self.controller.process_frame(open_hand((0.5, 0.6)), 1100)
        self.assertIsNone(released.event)
        self.assertTrue(released.diagnostics.grace_active)

        result = self.controller.process_frame(open_hand((0.5, 0.53), wrist_z=0.03), 1200)
        self.assertTrue(result.pitch.pitch_up)
        self.assertEqual(result.event.label, COURAGE)
        self.assertTrue(result.action_locked)
        self.assertEqual(len(self.log.entries), 1)

    def test_one_event_per_release(self):
        self.release(1000)
        first = self.controller.process_frame(open_hand((0.5, 0.7)), 1200)
        self.assertEqual(first.event.label, STEADINESS)

        again = self.controller.process_frame(open_hand((0.5, 0.4), wrist_z=0.03), 1300)
        self.assertIsNone(again.event)
        self.assertEqual(len(self.log.entries), 1)

    def test_next_fist_clears_the_latch(self):
        self.release(1000)
        self.controller.process_frame(open_hand((0.5, 0.7)), 1200)

        held = self.controller.process_frame(fist((0.5, 0.6)), 1400)
        self.assertFalse(held.action_locked)

        self.controller.process_frame(open_hand((0.5, 0.6)), 1500)
        result = self.controller.process_frame(open_hand((0.5, 0.67)), 1600)
        self.assertEqual(result.event.label, STEADINESS)
        self.assertEqual(len(self.log.entries), 2)

    def test_level_pitch_vetoes_courage(self):
        self.release(1000)

        raised = self.controller.process_frame(open_hand((0.5, 0.5)), 1200)
        self.assertFalse(raised.pitch.pitch_up)
        self.assertIsNone(raised.event)
        self.assertTrue(self.controller.classifier.has_grace_anchor)

        lowered = self.controller.process_frame(open_hand((0.5, 0.7)), 1300)
        self.assertEqual(lowered.event.label, STEADINESS)

    def test_fist_held_never_classifies(self):
        for i in range(40):
            result = self.controller.process_frame(fist((0.5, 0.3 + i * 0.01)), 1000 + i * 30)
            self.assertIsNone(result.event)
        self.assertEqual(len(self.controller.classifier.samples), 0)

    def test_open_hand_without_release_never_fires(self):
        """No anchor means no update call, so buffering stays idle."""
        for i in range(40):
            result = self.controller.process_frame(open_hand((0.5, 0.3 + i * 0.01)), 5000 + i * 30)
            self.assertIsNone(result.event)
        self.assertEqual(len(self.controller.classifier.samples), 0)

    def test_grace_expires_through_controller(self):
        self.release(1000)
        expired = self.controller.process_frame(open_hand((0.5, 0.6)), 3200)

        self.assertIsNone(expired.event)
        self.assertFalse(self.controller.classifier.has_grace_anchor)
        late = self.controller.process_frame(open_hand((0.5, 0.9)), 3300)
        self.assertIsNone(late.event)

    def test_refisting_cancels_grace(self):
        self.release(1000)
        self.controller.process_frame(fist((0.5, 0.6)), 1200)

        self.assertFalse(self.controller.classifier.has_grace_anchor)

    def test_no_hand_resets_downstream_state(self):
        self.release(1000)
        result = self.controller.process_frame(None, 1200)

        self.assertFalse(result.hand_present)
        self.assertIsNone(result.event)
        self.assertIsNone(result.pitch.delta)
        self.assertFalse(result.pose.is_fist)
        self.assertFalse(self.controller.classifier.has_grace_anchor)
        self.assertFalse(self.controller.was_fist)

    def test_apply_config(self):
        self.release(1000)
        cfg = Cfg(mushti=MushtiConfig(required_curled_fingers=5), motion=MotionConfig(downward_threshold=0.2))
        self.controller.apply_config(cfg)

        self.assertFalse(self.controller.classifier.has_grace_anchor)
        self.assertEqual(self.controller.motion_config.downward_threshold, 0.2)
        # Four curled fingers no longer suffice without a thumb config
        self.assertFalse(self.controller.process_frame(fist(), 2000).pose.is_fist)

    def test_works_without_sink(self):
        controller = GestureController.from_config(Cfg())
        controller.process_frame(fist((0.5, 0.6)), 1000)
        controller.process_frame(open_hand((0.5, 0.6)), 1100)
        result = controller.process_frame(open_hand((0.5, 0.7)), 1200)

        self.assertEqual(result.event.label, STEADINESS)


if __name__ == '__main__':
    unittest.main()
