"""
Hand landmark detection with MediaPipe and overlay drawing with OpenCV.
"""
import logging
import os
import urllib.request
from pathlib import Path
from typing import List, Sequence, Tuple

import cv2
import mediapipe as mp
import numpy as np
from mediapipe.tasks import python as mp_tasks
from mediapipe.tasks.python import vision

from .config import MediaPipeConfig
from .landmarks import HAND_CONNECTIONS, to_frame
from .types import LandmarkFrame

logger = logging.getLogger(__name__)

SKELETON_COLOR = (119, 128, 31)  # BGR
POINT_COLOR = (55, 55, 217)


def ensure_model(path: str, url: str) -> str:
    """Download the hand landmarker model if it is not already on disk."""
    if not os.path.exists(path):
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        logger.info("Downloading hand landmarker model to %s...", path)
        partial = path + ".part"
        try:
            urllib.request.urlretrieve(url, partial)
        except BaseException:
            if os.path.exists(partial):
                os.remove(partial)
            raise
        os.replace(partial, path)
        logger.info("Model downloaded")
    return path


class HandsTracker:
    """Single-hand landmark tracker using the MediaPipe Hand Landmarker task."""

    def __init__(self, config: MediaPipeConfig):
        """
        Initialize the hands tracker.

        Args:
            config: Model location and detection/tracking confidences
        """
        model_path = ensure_model(config.model_path, config.model_url)
        self.landmarker = vision.HandLandmarker.create_from_options(
            vision.HandLandmarkerOptions(
                base_options=mp_tasks.BaseOptions(model_asset_path=model_path),
                running_mode=vision.RunningMode.VIDEO,
                num_hands=config.max_num_hands,
                min_hand_detection_confidence=config.min_detection_confidence,
                min_tracking_confidence=config.min_tracking_confidence
            )
        )
        self._last_timestamp_ms = -1

    def process(self, frame_bgr: np.ndarray, timestamp_ms: int) -> LandmarkFrame:
        """
        Process a frame and return hand landmarks.

        Args:
            frame_bgr: Input frame in BGR format
            timestamp_ms: Monotonic frame timestamp

        Returns:
            21 landmarks of the first detected hand, or an empty frame
        """
        # The VIDEO running mode rejects non-increasing timestamps
        timestamp_ms = max(int(timestamp_ms), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = timestamp_ms

        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=frame_rgb)
        results = self.landmarker.detect_for_video(mp_image, timestamp_ms)

        if results.hand_landmarks:
            return to_frame(results.hand_landmarks[0])
        return ()

    def close(self) -> None:
        self.landmarker.close()


def draw_landmarks(frame: np.ndarray, landmarks: LandmarkFrame) -> np.ndarray:
    """
    Draw the hand skeleton on the frame.

    Args:
        frame: Input frame
        landmarks: Hand landmarks in [0..1] range

    Returns:
        Frame with landmarks drawn
    """
    height, width = frame.shape[:2]
    points: List[Tuple[int, int]] = [(int(p.x * width), int(p.y * height)) for p in landmarks]

    for start, end in HAND_CONNECTIONS:
        if start < len(points) and end < len(points):
            cv2.line(frame, points[start], points[end], SKELETON_COLOR, 2)
    for px, py in points:
        cv2.circle(frame, (px, py), 3, POINT_COLOR, -1)

    return frame


def draw_lines(frame: np.ndarray, lines: Sequence[str], origin: Tuple[int, int],
               color: Tuple[int, int, int] = (255, 255, 255), scale: float = 0.5,
               spacing: int = 20) -> np.ndarray:
    """Draw a column of text lines starting at origin."""
    x, y = origin
    for i, text in enumerate(lines):
        cv2.putText(frame, text, (x, y + i * spacing), cv2.FONT_HERSHEY_SIMPLEX, scale, color, 1)
    return frame
