"""
Human-readable diagnostics for the overlay.
"""
import math
from typing import List, Optional, Sequence, Tuple

from .types import FingerMetric, MotionDiagnostics, PoseResult, ThumbMetric

MET = "is-met"
CLOSE = "is-close"
UNMET = ""

_RANK = {UNMET: 0, CLOSE: 1, MET: 2}


def status_from_progress(progress: float) -> str:
    if progress >= 1:
        return MET
    if progress >= 0.8:
        return CLOSE
    return UNMET


def sort_by_status(items: Sequence[Tuple[str, str]]) -> List[Tuple[str, str]]:
    """Stable sort of (label, status) pairs: unmet first, then close, then met."""
    return sorted(items, key=lambda item: _RANK.get(item[1], 0))


def finger_progress(metric: FingerMetric) -> float:
    """How far a finger is toward being curled; 1.0 or more means curled."""
    if metric.ratio is None:
        return 0.0
    if metric.ratio <= 0:
        return math.inf
    return metric.threshold / metric.ratio


def thumb_progress(metric: ThumbMetric) -> float:
    if metric.touch_distance is None:
        return 0.0
    if metric.touch_distance <= 0:
        return math.inf
    return metric.threshold / metric.touch_distance


def format_offset(delta: Optional[float]) -> str:
    if delta is None:
        return "n/a"
    off_by = max(0.0, delta)
    return "ok" if off_by == 0 else f"off by +{off_by:.2f}"


def _fmt(value: Optional[float], digits: int = 2) -> str:
    return "n/a" if value is None else f"{value:.{digits}f}"


def pose_lines(pose: Optional[PoseResult]) -> List[Tuple[str, str]]:
    """Rows describing the fist requirements and each finger's margin."""
    if pose is None or pose.threshold is None:
        return [
            ("Mushti Threshold", "n/a"),
            ("Required Curled", "n/a"),
            ("Mushti", "no data"),
        ]

    lines = [
        ("Mushti Threshold", _fmt(pose.threshold)),
        ("Required Curled", f"{pose.curled_count}/{pose.required_curled}"),
    ]
    if pose.thumb is not None:
        thumb = pose.thumb
        lines.append((thumb.name, f"{format_offset(thumb.delta)} "
                                  f"({_fmt(thumb.touch_distance)} / {thumb.threshold:.2f})"))
    for metric in pose.fingers:
        lines.append((metric.name, f"{format_offset(metric.delta)} ({_fmt(metric.ratio)})"))
    return lines


def motion_lines(diagnostics: Optional[MotionDiagnostics]) -> List[Tuple[str, str]]:
    """Rows describing the motion window, cooldown and grace state."""
    if diagnostics is None:
        return [("Motion", "no data")]

    displacement = diagnostics.displacement
    if displacement is None:
        direction = "n/a"
    else:
        direction = "down" if displacement > 0 else "up"

    # Rounded up to a tenth of a second
    cooldown_s = math.ceil(diagnostics.cooldown_remaining_ms / 100) / 10
    grace = f"{diagnostics.grace_remaining_ms / 1000:.1f}s" if diagnostics.grace_active else "off"
    return [
        ("Motion Window", f"{diagnostics.buffer_ms:.0f}ms"),
        ("Samples", f"{diagnostics.sample_count}/{diagnostics.min_samples}"),
        ("Displacement", f"{_fmt(displacement, 3)} ({direction})"),
        ("Threshold", f"{diagnostics.displacement_threshold:.3f}"),
        ("Cooldown", f"{cooldown_s}s"),
        ("Grace", grace),
    ]


def metric_lines(pose: Optional[PoseResult],
                 diagnostics: Optional[MotionDiagnostics]) -> List[Tuple[str, str]]:
    return pose_lines(pose) + motion_lines(diagnostics)


def finger_statuses(pose: PoseResult) -> List[Tuple[str, str]]:
    """(name, status) per finger and thumb, least satisfied first."""
    items = [(m.name, status_from_progress(finger_progress(m))) for m in pose.fingers]
    if pose.thumb is not None:
        items.append((pose.thumb.name, status_from_progress(thumb_progress(pose.thumb))))
    return sort_by_status(items)
