"""
Hand landmark indices and geometry helpers.
"""
import math
from typing import Any, Optional, Sequence

from .types import Landmark, LandmarkFrame


NUM_LANDMARKS = 21

WRIST = 0
THUMB_MCP = 2
THUMB_TIP = 4
INDEX_MCP, INDEX_TIP = 5, 8
MIDDLE_MCP, MIDDLE_TIP = 9, 12
RING_MCP, RING_TIP = 13, 16
PINKY_MCP, PINKY_TIP = 17, 20

# Base knuckles of the four fingers (thumb excluded)
FINGER_MCP_INDICES = (INDEX_MCP, MIDDLE_MCP, RING_MCP, PINKY_MCP)

HAND_CONNECTIONS = (
    (0, 1), (1, 2), (2, 3), (3, 4),
    (0, 5), (5, 6), (6, 7), (7, 8),
    (5, 9), (9, 10), (10, 11), (11, 12),
    (9, 13), (13, 14), (14, 15), (15, 16),
    (13, 17), (17, 18), (18, 19), (19, 20),
    (0, 17),
)


def _to_landmark(point: Any) -> Landmark:
    if isinstance(point, Landmark):
        return point
    if hasattr(point, "x") and hasattr(point, "y"):
        z = getattr(point, "z", None)
        return Landmark(float(point.x), float(point.y), float(z) if z is not None else 0.0)
    if len(point) == 2:
        return Landmark(float(point[0]), float(point[1]))
    return Landmark(float(point[0]), float(point[1]), float(point[2]))


def to_frame(points: Optional[Sequence[Any]]) -> LandmarkFrame:
    """
    Coerce detector output into a LandmarkFrame.

    Accepts MediaPipe landmark objects (anything with x/y and optional z
    attributes), (x, y) pairs or (x, y, z) triples.

    Args:
        points: Sequence of landmarks, or None if no hand was detected

    Returns:
        Tuple of Landmark, empty when no hand is present
    """
    if not points:
        return ()
    return tuple(_to_landmark(p) for p in points)


def get_point(frame: LandmarkFrame, index: int) -> Optional[Landmark]:
    """Return the landmark at index, or None if the frame is too short."""
    if 0 <= index < len(frame):
        return frame[index]
    return None


def distance(a: Landmark, b: Landmark) -> float:
    """Euclidean distance over x, y and z."""
    dx = a.x - b.x
    dy = a.y - b.y
    dz = a.z - b.z
    return math.sqrt(dx * dx + dy * dy + dz * dz)


def wrist_y(frame: LandmarkFrame) -> Optional[float]:
    """Vertical position of the wrist, None for an empty frame."""
    if not frame:
        return None
    return frame[WRIST].y
