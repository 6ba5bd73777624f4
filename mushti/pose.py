"""
Static fist ("mushti") pose evaluation from a single landmark frame.
"""
import math
from typing import Optional

from .config import FingerSpec, MushtiConfig, ThumbSpec
from .landmarks import WRIST, distance, get_point
from .types import FingerMetric, LandmarkFrame, PoseResult, ThumbMetric


def no_data_result() -> PoseResult:
    """Neutral result used when there is no frame or no config."""
    return PoseResult(is_fist=False)


def _finger_metric(frame: LandmarkFrame, finger: FingerSpec, threshold: float) -> FingerMetric:
    wrist = frame[WRIST]
    tip = get_point(frame, finger.tip_index)
    mcp = get_point(frame, finger.mcp_index)
    ratio: Optional[float] = None
    if tip is not None and mcp is not None:
        mcp_dist = distance(mcp, wrist)
        if mcp_dist > 0:
            ratio = distance(tip, wrist) / mcp_dist
    if ratio is None or not math.isfinite(ratio):
        return FingerMetric(name=finger.name, ratio=None, delta=None, curled=False, threshold=threshold)
    return FingerMetric(
        name=finger.name,
        ratio=ratio,
        delta=ratio - threshold,
        curled=ratio < threshold,
        threshold=threshold
    )


def _thumb_metric(frame: LandmarkFrame, thumb: ThumbSpec, config: MushtiConfig) -> ThumbMetric:
    tip = get_point(frame, thumb.tip_index)
    touch_distance: Optional[float] = None
    if tip is not None:
        # Nearest base knuckle; the wrist stands in when no fingers are configured
        targets = [get_point(frame, f.mcp_index) for f in config.fingers] or [frame[WRIST]]
        distances = [distance(tip, p) for p in targets if p is not None]
        if distances:
            touch_distance = min(distances)
    if touch_distance is None or not math.isfinite(touch_distance):
        return ThumbMetric(touch_distance=None, delta=None, curled=False, threshold=thumb.threshold)
    return ThumbMetric(
        touch_distance=touch_distance,
        delta=touch_distance - thumb.threshold,
        curled=touch_distance <= thumb.threshold,
        threshold=thumb.threshold
    )


def evaluate_pose(frame: Optional[LandmarkFrame], config: Optional[MushtiConfig]) -> PoseResult:
    """
    Decide whether the hand forms a fist.

    A finger is curled when its tip-to-wrist distance, relative to its
    knuckle-to-wrist distance, drops below the finger's threshold. The thumb
    counts as curled when its tip touches (comes within an absolute distance
    of) any configured finger knuckle.

    Args:
        frame: Hand landmarks, empty or None if no hand was detected
        config: Pose requirements; None yields the "no data" result

    Returns:
        PoseResult with the verdict and per-finger diagnostics
    """
    if config is None or not frame:
        return no_data_result()

    fingers = [_finger_metric(frame, f, config.threshold_for(f.name)) for f in config.fingers]
    curled = sum(1 for m in fingers if m.curled)

    thumb = None
    if config.thumb is not None:
        thumb = _thumb_metric(frame, config.thumb, config)
        if thumb.curled:
            curled += 1

    return PoseResult(
        is_fist=curled >= config.required_curled_fingers,
        fingers=fingers,
        thumb=thumb,
        curled_count=curled,
        threshold=config.finger_threshold,
        required_curled=config.required_curled_fingers
    )


class PoseEvaluator:
    """Binds a MushtiConfig so callers can evaluate frames one at a time."""

    def __init__(self, config: Optional[MushtiConfig]):
        self.config = config

    def evaluate(self, frame: Optional[LandmarkFrame]) -> PoseResult:
        return evaluate_pose(frame, self.config)
