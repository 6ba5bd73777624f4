"""
Temporal gesture recognition: wrist motion after the fist is released.
"""
import logging
from collections import deque
from typing import Any, Deque, Optional, Sequence

from .config import Cfg, MotionConfig, MushtiConfig
from .landmarks import to_frame, wrist_y
from .pitch import evaluate_pitch
from .pose import PoseEvaluator
from .types import (
    COURAGE,
    ClassifierReadiness,
    EventSinkProto,
    FrameResult,
    GestureContext,
    GestureEvent,
    GestureLabel,
    GraceAnchor,
    LandmarkFrame,
    MotionDiagnostics,
    Sample,
)

logger = logging.getLogger(__name__)

_NO_CONTEXT = GestureContext()


class MotionClassifier:
    """
    Converts wrist vertical motion into COURAGE / STEADINESS events.

    Features:
    - Buffering mode: sustained drift over a rolling multi-sample window
    - Grace mode: one decisive move measured against an anchor, right after release
    - Cooldown between events, independent of mode
    - Hysteresis so a sliding window does not relabel the same motion
    - Context gate that can veto COURAGE without touching other bookkeeping
    """

    def __init__(self, config: MotionConfig):
        """Initialize the classifier with resolved motion settings."""
        self.config = config
        self.samples: Deque[Sample] = deque()
        self.last_fired_at: Optional[float] = None  # None: never fired
        self.last_label: Optional[GestureLabel] = None
        self.grace_anchor: Optional[GraceAnchor] = None

    @property
    def has_grace_anchor(self) -> bool:
        """True while an anchor is set, including one that has expired but not been cleared."""
        return self.grace_anchor is not None

    def update(self, frame: Optional[LandmarkFrame], now: float,
               context: Optional[GestureContext] = None) -> Optional[GestureEvent]:
        """
        Feed one frame and return an event if a gesture completed.

        Args:
            frame: Hand landmarks (empty or None if no hand detected)
            now: Monotonic timestamp in milliseconds
            context: External gating signals

        Returns:
            GestureEvent if a gesture fired, None otherwise
        """
        current_y = wrist_y(frame)
        if current_y is None:
            return None
        context = context or _NO_CONTEXT

        if self.grace_anchor is not None:
            return self._update_grace(current_y, now, context)
        return self._update_buffering(current_y, now, context)

    def _update_grace(self, current_y: float, now: float,
                      context: GestureContext) -> Optional[GestureEvent]:
        cfg = self.config
        anchor = self.grace_anchor

        # Expired: drop the anchor, buffering starts on the next call
        if now - anchor.started_at > cfg.grace_window_ms:
            logger.debug("Grace window expired after %.0fms", now - anchor.started_at)
            self.grace_anchor = None
            return None

        displacement = current_y - anchor.y
        if displacement <= -cfg.upward_threshold:
            threshold = cfg.upward_threshold
        elif displacement >= cfg.downward_threshold:
            threshold = cfg.downward_threshold
        else:
            return None

        label = cfg.label_for(displacement)
        if self._vetoed(label, context):
            return None

        self.grace_anchor = None
        return self._fire(label, min(1.0, abs(displacement) / threshold), now)

    def _update_buffering(self, current_y: float, now: float,
                          context: GestureContext) -> Optional[GestureEvent]:
        cfg = self.config
        self.samples.append(Sample(y=current_y, t=now))

        # Clean old samples from buffer
        cutoff_time = now - cfg.buffer_ms
        while self.samples and self.samples[0].t < cutoff_time:
            self.samples.popleft()

        # Need minimum samples for analysis
        if len(self.samples) < cfg.min_samples:
            return None

        # Check cooldown
        if self._cooldown_remaining(now) > 0:
            return None

        displacement = self.samples[-1].y - self.samples[0].y
        magnitude = abs(displacement)
        if magnitude < cfg.displacement_threshold:
            return None

        label = cfg.label_for(displacement)

        # Same label again too soon: the window is still sliding over the last gesture
        if (label == self.last_label and self.last_fired_at is not None and
                now - self.last_fired_at < cfg.cooldown_ms * cfg.hysteresis_multiplier):
            return None

        if self._vetoed(label, context):
            return None

        return self._fire(label, min(1.0, magnitude / (cfg.displacement_threshold * 2)), now)

    def _vetoed(self, label: GestureLabel, context: GestureContext) -> bool:
        return label == COURAGE and context.courage_allowed is False

    def _fire(self, label: GestureLabel, confidence: float, now: float) -> GestureEvent:
        self.last_fired_at = now
        self.last_label = label
        return GestureEvent(label=label, confidence=confidence)

    def _cooldown_remaining(self, now: float) -> float:
        if self.last_fired_at is None:
            return 0.0
        return max(0.0, self.config.cooldown_ms - (now - self.last_fired_at))

    def start_grace(self, anchor_y: float, now: float) -> None:
        """Enter grace mode anchored at the current wrist position."""
        self.grace_anchor = GraceAnchor(y=anchor_y, started_at=now)
        logger.debug("Grace started at y=%.3f", anchor_y)

    def cancel_grace(self) -> None:
        """Leave grace mode. The sample buffer is kept."""
        self.grace_anchor = None

    def reset_samples(self) -> None:
        """Clear the sample buffer only."""
        self.samples.clear()

    def reset(self, config: Optional[MotionConfig] = None) -> None:
        """
        Clear all state. A new config, when given, is applied in the same call
        so the sample window never mixes old and new settings.
        """
        if config is not None:
            self.config = config
        self.samples.clear()
        self.grace_anchor = None
        self.last_fired_at = None
        self.last_label = None

    def get_state(self, now: float) -> ClassifierReadiness:
        """Whether the buffering path could fire on the next sample."""
        has_samples = len(self.samples) >= self.config.min_samples
        remaining = self._cooldown_remaining(now)
        return ClassifierReadiness(
            ready=has_samples and remaining == 0,
            has_samples=has_samples,
            in_cooldown=remaining > 0,
            cooldown_remaining_ms=remaining
        )

    def get_diagnostics(self, now: float) -> MotionDiagnostics:
        """Read-only snapshot, safe to call every frame."""
        cfg = self.config
        displacement = None
        if len(self.samples) >= 2:
            displacement = self.samples[-1].y - self.samples[0].y

        grace_active = False
        grace_remaining = 0.0
        if self.grace_anchor is not None:
            elapsed = now - self.grace_anchor.started_at
            grace_active = elapsed <= cfg.grace_window_ms
            grace_remaining = max(0.0, cfg.grace_window_ms - elapsed)

        return MotionDiagnostics(
            sample_count=len(self.samples),
            displacement=displacement,
            buffer_ms=cfg.buffer_ms,
            min_samples=cfg.min_samples,
            displacement_threshold=cfg.displacement_threshold,
            upward_threshold=cfg.upward_threshold,
            downward_threshold=cfg.downward_threshold,
            pitch_up_threshold=cfg.pitch_up_threshold,
            cooldown_ms=cfg.cooldown_ms,
            cooldown_remaining_ms=self._cooldown_remaining(now),
            grace_window_ms=cfg.grace_window_ms,
            grace_active=grace_active,
            grace_remaining_ms=grace_remaining,
            last_label=self.last_label
        )


def create_motion_classifier(config: Optional[MotionConfig] = None) -> MotionClassifier:
    """Build a classifier with its own state; defaults when no config is given."""
    return MotionClassifier(config if config is not None else MotionConfig())


class GestureController:
    """
    Main per-frame orchestrator for pose, pitch and motion classification.

    The fist arms the classifier. Releasing it opens a grace window; at most
    one event fires per release, and the latch clears on the next fist.
    """

    def __init__(self, mushti: Optional[MushtiConfig], motion: MotionConfig,
                 sink: Optional[EventSinkProto] = None):
        """Initialize the controller with pose and motion settings."""
        self.pose_evaluator = PoseEvaluator(mushti)
        self.classifier = create_motion_classifier(motion)
        self.sink = sink

        self.was_fist = False
        self.action_locked = False

    @classmethod
    def from_config(cls, cfg: Cfg, sink: Optional[EventSinkProto] = None) -> "GestureController":
        return cls(cfg.mushti, cfg.motion, sink)

    @property
    def motion_config(self) -> MotionConfig:
        return self.classifier.config

    def apply_config(self, cfg: Cfg) -> None:
        """Re-apply tuned settings live: full reset, then the new config."""
        self.pose_evaluator = PoseEvaluator(cfg.mushti)
        self.classifier.reset(cfg.motion)
        self.was_fist = False
        self.action_locked = False
        logger.info("Configuration re-applied")

    def reset(self) -> None:
        """Drop all downstream state, e.g. when the hand leaves the frame."""
        self.classifier.reset()
        self.was_fist = False
        self.action_locked = False

    def process_frame(self, landmarks: Optional[Sequence[Any]], now: float) -> FrameResult:
        """
        Process a frame and return the pose, pitch and any gesture event.

        Args:
            landmarks: Hand landmarks (None if no hand detected)
            now: Monotonic timestamp in milliseconds

        Returns:
            FrameResult for logging and rendering
        """
        frame = to_frame(landmarks)
        pose = self.pose_evaluator.evaluate(frame)
        pitch = evaluate_pitch(frame, self.motion_config.pitch_up_threshold)

        if not frame:
            self.reset()
            return self._result(False, pose, pitch, None, now)

        is_fist = pose.is_fist
        if is_fist and not self.was_fist:
            self.classifier.cancel_grace()
            self.action_locked = False
        elif not is_fist and self.was_fist:
            self.classifier.start_grace(wrist_y(frame), now)
        self.was_fist = is_fist

        event = None
        if is_fist:
            # No motion classification while the pose is engaged
            self.classifier.reset_samples()
        elif self.classifier.has_grace_anchor and not self.action_locked:
            event = self.classifier.update(frame, now, GestureContext(courage_allowed=pitch.pitch_up))
            if event is not None:
                self.action_locked = True
                if self.sink is not None:
                    self.sink.log_action(event)
        else:
            self.classifier.reset_samples()

        return self._result(True, pose, pitch, event, now)

    def _result(self, hand_present, pose, pitch, event, now) -> FrameResult:
        return FrameResult(
            hand_present=hand_present,
            pose=pose,
            pitch=pitch,
            event=event,
            diagnostics=self.classifier.get_diagnostics(now),
            action_locked=self.action_locked
        )
