"""
Webcam application for mushti pose and motion classification.
"""
import argparse
import logging
import time
from typing import Optional

import cv2

from .action_log import ActionLog
from .config import Cfg, load_config
from .feedback import MET, CLOSE, finger_statuses, metric_lines
from .gestures import GestureController
from .tracker import HandsTracker, draw_landmarks, draw_lines

logger = logging.getLogger(__name__)

STATUS_COLORS = {MET: (0, 200, 0), CLOSE: (0, 200, 255)}
EVENT_COLORS = {"COURAGE": (0, 140, 255), "STEADINESS": (255, 160, 0)}


class GestureRecognitionApp:
    """Main application class for mushti gesture recognition."""

    def __init__(self, config_path: Optional[str] = None, camera_index: Optional[int] = None,
                 config: Optional[Cfg] = None):
        """Initialize the application with configuration."""
        self.config_path = config_path
        self.config = config if config is not None else load_config(config_path)
        if camera_index is not None:
            self.config.camera.index = camera_index

        self.tracker = HandsTracker(self.config.mediapipe)
        self.action_log = ActionLog(max_entries=self.config.display.log_size)
        self.controller = GestureController.from_config(self.config, sink=self.action_log)

        # Initialize camera
        self.cap = cv2.VideoCapture(self.config.camera.index)
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.camera.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.camera.height)
        self.cap.set(cv2.CAP_PROP_FPS, self.config.camera.fps)

        if not self.cap.isOpened():
            self.tracker.close()
            raise RuntimeError(f"Failed to open camera {self.config.camera.index}")

    def reload_config(self) -> None:
        """Reload the config file and re-apply it without restarting."""
        try:
            config = load_config(self.config_path)
        except (OSError, ValueError) as e:
            logger.error("❌ Config reload failed: %s", e)
            return
        config.camera = self.config.camera
        self.config = config
        self.controller.apply_config(config)
        logger.info("🔄 Reloaded configuration")

    def run(self):
        """Run the main application loop."""
        logger.info("Starting %s", self.config.display.window_name)
        logger.info("Make a fist, release it, then move the wrist up (COURAGE) or down (STEADINESS)")
        logger.info("Press 'q' to quit, 'c' to clear the log, 'r' to reload the config")

        while True:
            ret, frame = self.cap.read()
            if not ret:
                logger.error("Failed to read frame from camera")
                break

            now_ms = time.monotonic() * 1000
            landmarks = self.tracker.process(frame, int(now_ms))
            result = self.controller.process_frame(landmarks, now_ms)

            if landmarks and self.config.display.show_landmarks:
                frame = draw_landmarks(frame, landmarks)

            if not result.hand_present:
                status_text, status_color = "No hand detected", (255, 255, 255)
            elif result.pose.is_fist:
                status_text, status_color = "Mushti: Yes", (0, 200, 0)
            else:
                status_text, status_color = "Mushti: No", (0, 0, 255)
            pitch_text = "n/a" if result.pitch.delta is None else f"{result.pitch.delta:+.3f}"
            cv2.putText(frame, status_text, (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.7, status_color, 2)
            cv2.putText(frame, f"Pitch: {pitch_text} ({'up' if result.pitch.pitch_up else 'level'})",
                        (10, 55), cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255, 255, 255), 1)

            if self.config.display.show_metrics:
                pose = result.pose if result.hand_present else None
                rows = [f"{name}: {value}" for name, value in metric_lines(pose, result.diagnostics)]
                draw_lines(frame, rows, (10, 85))
                if pose is not None:
                    for i, (name, status) in enumerate(finger_statuses(pose)):
                        color = STATUS_COLORS.get(status, (0, 0, 255))
                        cv2.putText(frame, name, (frame.shape[1] - 90, 30 + i * 20),
                                    cv2.FONT_HERSHEY_SIMPLEX, 0.5, color, 1)

            if result.event is not None:
                cv2.putText(frame, result.event.label, (10, frame.shape[0] - 50),
                            cv2.FONT_HERSHEY_SIMPLEX, 1.0, EVENT_COLORS[result.event.label], 2)

            draw_lines(frame, self.action_log.lines(limit=3), (frame.shape[1] - 260, frame.shape[0] - 60),
                       scale=0.45, spacing=18)
            cv2.putText(frame, "q: quit  c: clear log  r: reload config", (10, frame.shape[0] - 15),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.45, (255, 255, 255), 1)

            cv2.imshow(self.config.display.window_name, frame)

            key = cv2.waitKey(1) & 0xFF
            if key == ord('q'):
                break
            if key == ord('c'):
                self.action_log.clear()
            elif key == ord('r'):
                self.reload_config()

    def close(self):
        """Cleanup resources."""
        if self.cap.isOpened():
            self.cap.release()
        self.tracker.close()
        cv2.destroyAllWindows()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Mushti pose and wrist-motion gesture classifier")
    parser.add_argument("--config", default=None, help="Path to a YAML or JSON config file")
    parser.add_argument("--camera", type=int, default=None, help="Camera index (overrides the config)")
    parser.add_argument("--log-level", default=None, help="Logging level (overrides the config)")
    return parser


def main(argv=None):
    """Entry point for the application."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as e:
        logging.basicConfig(level=logging.INFO)
        logger.error("❌ Could not load config: %s", e)
        return 1
    level = (args.log_level or config.logging.level).upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    app = None
    try:
        app = GestureRecognitionApp(config_path=args.config, camera_index=args.camera, config=config)
        app.run()
    except KeyboardInterrupt:
        logger.info("Application interrupted by user")
    except (RuntimeError, OSError) as e:
        logger.error("❌ %s", e)
        return 1
    finally:
        if app is not None:
            app.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
