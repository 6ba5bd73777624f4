"""
Wrist pitch: is the wrist tilted toward the camera relative to the knuckles?
"""
from typing import Optional

from .landmarks import FINGER_MCP_INDICES, WRIST
from .types import LandmarkFrame, PitchResult


def evaluate_pitch(frame: Optional[LandmarkFrame], pitch_up_threshold: float) -> PitchResult:
    """
    Compare wrist depth with the mean depth of the four base knuckles.

    Args:
        frame: Hand landmarks, empty or None if no hand was detected
        pitch_up_threshold: Minimum wrist-minus-knuckle z delta for "pitch up"

    Returns:
        PitchResult; (False, None) when there are no landmarks
    """
    if not frame or len(frame) <= max(FINGER_MCP_INDICES):
        return PitchResult(pitch_up=False, delta=None)

    knuckle_z = sum(frame[i].z for i in FINGER_MCP_INDICES) / len(FINGER_MCP_INDICES)
    delta = frame[WRIST].z - knuckle_z
    return PitchResult(pitch_up=delta >= pitch_up_threshold, delta=delta)
