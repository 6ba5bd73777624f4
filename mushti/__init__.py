"""
Mushti Gesture Classifier

Turns a per-frame stream of hand landmarks into a fist ("mushti") pose verdict
and COURAGE / STEADINESS gesture events from wrist motion after release.
"""

__version__ = "0.1.0"

from .types import GestureEvent, GestureContext, PoseResult, PitchResult, EventSinkProto
from .config import load_config, Cfg, MushtiConfig, MotionConfig
from .pose import evaluate_pose, PoseEvaluator
from .pitch import evaluate_pitch
from .gestures import MotionClassifier, GestureController, create_motion_classifier
from .action_log import ActionLog

__all__ = [
    "GestureEvent",
    "GestureContext",
    "PoseResult",
    "PitchResult",
    "EventSinkProto",
    "load_config",
    "Cfg",
    "MushtiConfig",
    "MotionConfig",
    "evaluate_pose",
    "PoseEvaluator",
    "evaluate_pitch",
    "MotionClassifier",
    "GestureController",
    "create_motion_classifier",
    "ActionLog",
]
