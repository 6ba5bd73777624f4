"""
Type definitions for the mushti pose and motion classifier.
"""
from dataclasses import dataclass, field
from typing import List, Literal, NamedTuple, Optional, Protocol, Tuple, runtime_checkable


GestureLabel = Literal["COURAGE", "STEADINESS"]
COURAGE: GestureLabel = "COURAGE"
STEADINESS: GestureLabel = "STEADINESS"


class Landmark(NamedTuple):
    """One normalized hand landmark (x, y in [0..1], z relative depth)."""
    x: float
    y: float
    z: float = 0.0


# 21 landmarks, wrist first
LandmarkFrame = Tuple[Landmark, ...]


@dataclass(frozen=True)
class GestureEvent:
    """Temporal gesture emitted by the motion classifier."""
    label: GestureLabel
    confidence: float


@dataclass(frozen=True)
class GestureContext:
    """External signals that can veto a label. None means "no opinion"."""
    courage_allowed: Optional[bool] = None


@dataclass
class FingerMetric:
    """Curl diagnostics for a single finger."""
    name: str
    ratio: Optional[float]  # tip-to-wrist / mcp-to-wrist, None when degenerate
    delta: Optional[float]  # ratio - threshold
    curled: bool
    threshold: float


@dataclass
class ThumbMetric:
    """Touch diagnostics for the thumb (absolute distance, not a ratio)."""
    touch_distance: Optional[float]
    delta: Optional[float]  # touch_distance - threshold
    curled: bool
    threshold: float
    name: str = "Thumb"


@dataclass
class PoseResult:
    """Aggregate fist verdict plus per-finger diagnostics."""
    is_fist: bool
    fingers: List[FingerMetric] = field(default_factory=list)
    thumb: Optional[ThumbMetric] = None
    curled_count: int = 0
    threshold: Optional[float] = None  # None means "no data"
    required_curled: Optional[int] = None


@dataclass(frozen=True)
class PitchResult:
    """Wrist tilt relative to the base knuckles."""
    pitch_up: bool
    delta: Optional[float]


@dataclass(frozen=True)
class Sample:
    """One buffered wrist-Y observation."""
    y: float
    t: float


@dataclass(frozen=True)
class GraceAnchor:
    """Wrist position and time at which the grace window began."""
    y: float
    started_at: float


@dataclass
class MotionDiagnostics:
    """Read-only snapshot of the motion classifier."""
    sample_count: int
    displacement: Optional[float]
    buffer_ms: float
    min_samples: int
    displacement_threshold: float
    upward_threshold: float
    downward_threshold: float
    pitch_up_threshold: float
    cooldown_ms: float
    cooldown_remaining_ms: float
    grace_window_ms: float
    grace_active: bool
    grace_remaining_ms: float
    last_label: Optional[GestureLabel]


@dataclass(frozen=True)
class ClassifierReadiness:
    """Whether the buffering path could fire on the next sample."""
    ready: bool
    has_samples: bool
    in_cooldown: bool
    cooldown_remaining_ms: float


@dataclass
class FrameResult:
    """Everything the controller produced for one frame."""
    hand_present: bool
    pose: PoseResult
    pitch: PitchResult
    event: Optional[GestureEvent]
    diagnostics: MotionDiagnostics
    action_locked: bool


@runtime_checkable
class EventSinkProto(Protocol):
    """Abstract protocol for collaborators that consume gesture events."""

    def log_action(self, event: GestureEvent) -> None:
        """Record an emitted gesture event."""
        ...
