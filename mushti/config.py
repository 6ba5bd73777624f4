"""
Configuration management for the mushti gesture classifier.

Every section and every key is optional. Missing or invalid values fall back
to the defaults below, so partial YAML (or JSON) files load cleanly.
"""
import logging
import math
import yaml
from pathlib import Path
from typing import Optional, Dict, Any, List, Tuple
from dataclasses import dataclass, field

from .types import COURAGE, STEADINESS, GestureLabel
from . import landmarks as lm

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config.default.yaml"

MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/hand_landmarker/"
    "hand_landmarker/float16/latest/hand_landmarker.task"
)

POSITIVE = "positive"
NEGATIVE = "negative"
_POLARITY_SIGN = {POSITIVE: 1, NEGATIVE: -1}
DEFAULT_LABELS: Dict[GestureLabel, str] = {STEADINESS: POSITIVE, COURAGE: NEGATIVE}


@dataclass
class CameraConfig:
    """Camera configuration settings."""
    index: int = 0
    width: int = 640
    height: int = 480
    fps: int = 30


@dataclass
class MediaPipeConfig:
    """MediaPipe Hand Landmarker settings."""
    model_path: str = "models/hand_landmarker.task"
    model_url: str = MODEL_URL
    max_num_hands: int = 1
    min_detection_confidence: float = 0.6
    min_tracking_confidence: float = 0.6


@dataclass(frozen=True)
class FingerSpec:
    """Landmark indices for one finger."""
    name: str
    tip_index: int
    mcp_index: int


@dataclass(frozen=True)
class ThumbSpec:
    """Thumb landmarks and absolute touch-distance threshold."""
    tip_index: int = lm.THUMB_TIP
    mcp_index: int = lm.THUMB_MCP
    threshold: float = 0.08


DEFAULT_FINGERS: Tuple[FingerSpec, ...] = (
    FingerSpec("Index", lm.INDEX_TIP, lm.INDEX_MCP),
    FingerSpec("Middle", lm.MIDDLE_TIP, lm.MIDDLE_MCP),
    FingerSpec("Ring", lm.RING_TIP, lm.RING_MCP),
    FingerSpec("Pinky", lm.PINKY_TIP, lm.PINKY_MCP),
)


@dataclass
class MushtiConfig:
    """Fist ("mushti") pose requirements."""
    finger_threshold: float = 0.92
    finger_thresholds: Dict[str, float] = field(default_factory=dict)
    fingers: List[FingerSpec] = field(default_factory=lambda: list(DEFAULT_FINGERS))
    thumb: Optional[ThumbSpec] = None
    required_curled_fingers: int = 4

    def threshold_for(self, name: str) -> float:
        """Per-finger override when finite, else the global threshold."""
        override = self.finger_thresholds.get(name)
        if isinstance(override, (int, float)) and math.isfinite(override):
            return float(override)
        return self.finger_threshold


@dataclass
class MotionConfig:
    """Temporal motion classifier settings. Times are in milliseconds."""
    buffer_ms: float = 1000
    min_samples: int = 20
    displacement_threshold: float = 0.08
    cooldown_ms: float = 2000
    grace_window_ms: float = 2000
    upward_threshold: float = 0.06
    downward_threshold: float = 0.06
    pitch_up_threshold: float = 0.02
    hysteresis_multiplier: float = 1.5
    labels: Dict[GestureLabel, str] = field(default_factory=lambda: dict(DEFAULT_LABELS))
    sign_to_label: Dict[int, GestureLabel] = field(init=False)

    def __post_init__(self):
        self.sign_to_label = _resolve_polarity(self.labels)

    def label_for(self, displacement: float) -> GestureLabel:
        """Map the sign of a displacement to its configured label."""
        return self.sign_to_label[1 if displacement > 0 else -1]


@dataclass
class DisplayConfig:
    """Display configuration settings."""
    show_landmarks: bool = True
    show_metrics: bool = True
    window_name: str = "Mushti Classifier"
    log_size: int = 8


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"


@dataclass
class Cfg:
    """Main configuration class."""
    camera: CameraConfig = field(default_factory=CameraConfig)
    mediapipe: MediaPipeConfig = field(default_factory=MediaPipeConfig)
    mushti: MushtiConfig = field(default_factory=MushtiConfig)
    motion: MotionConfig = field(default_factory=MotionConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: Optional[str] = None) -> Cfg:
    """
    Load configuration from a YAML (or JSON) file.

    Args:
        path: Path to config file. If None, uses config.default.yaml and
              falls back to built-in defaults when that file is absent

    Returns:
        Configuration object with all settings resolved
    """
    if path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            logger.warning("Default config %s not found, using built-in defaults", DEFAULT_CONFIG_PATH)
            return builtin_defaults()
        path = DEFAULT_CONFIG_PATH

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Malformed config file {config_path}: {e}") from e

    logger.debug("Loaded configuration from %s", config_path)
    return config_from_dict(data)


def builtin_defaults() -> Cfg:
    """Same settings as the shipped config.default.yaml, thumb included."""
    return Cfg(mushti=MushtiConfig(thumb=ThumbSpec()))


def config_from_dict(data: Optional[Dict[str, Any]]) -> Cfg:
    """Convert a (possibly partial) dictionary to a configuration object."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Config must be a mapping, got {type(data).__name__}")

    camera_data = _section(data, 'camera')
    defaults = CameraConfig()
    camera = CameraConfig(
        index=_int(camera_data, 'index', defaults.index),
        width=_int(camera_data, 'width', defaults.width),
        height=_int(camera_data, 'height', defaults.height),
        fps=_int(camera_data, 'fps', defaults.fps)
    )

    mp_data = _section(data, 'mediapipe')
    mp_defaults = MediaPipeConfig()
    mediapipe = MediaPipeConfig(
        model_path=str(mp_data.get('model_path', mp_defaults.model_path)),
        model_url=str(mp_data.get('model_url', mp_defaults.model_url)),
        max_num_hands=_int(mp_data, 'max_num_hands', mp_defaults.max_num_hands),
        min_detection_confidence=_number(mp_data, 'min_detection_confidence', mp_defaults.min_detection_confidence),
        min_tracking_confidence=_number(mp_data, 'min_tracking_confidence', mp_defaults.min_tracking_confidence)
    )

    display_data = _section(data, 'display')
    display_defaults = DisplayConfig()
    display = DisplayConfig(
        show_landmarks=bool(display_data.get('show_landmarks', display_defaults.show_landmarks)),
        show_metrics=bool(display_data.get('show_metrics', display_defaults.show_metrics)),
        window_name=str(display_data.get('window_name', display_defaults.window_name)),
        log_size=_int(display_data, 'log_size', display_defaults.log_size)
    )

    logging_data = _section(data, 'logging')
    log_cfg = LoggingConfig(level=str(logging_data.get('level', LoggingConfig.level)).upper())

    return Cfg(
        camera=camera,
        mediapipe=mediapipe,
        mushti=mushti_from_dict(_section(data, 'mushti')),
        motion=motion_from_dict(_section(data, 'motion')),
        display=display,
        logging=log_cfg
    )


def mushti_from_dict(data: Optional[Dict[str, Any]]) -> MushtiConfig:
    """
    Resolve mushti requirements with layered defaults.

    The finger list falls back to the four standard fingers. The thumb is
    only evaluated when a thumb entry is present.
    """
    data = data or {}
    defaults = MushtiConfig()

    overrides: Dict[str, float] = {}
    raw_overrides = _get(data, 'finger_thresholds', 'fingerThresholds')
    if isinstance(raw_overrides, dict):
        for name, value in raw_overrides.items():
            if _is_number(value):
                overrides[str(name)] = float(value)
            else:
                logger.warning("Ignoring non-numeric threshold for finger %r: %r", name, value)

    fingers = list(DEFAULT_FINGERS)
    raw_fingers = _get(data, 'fingers')
    if isinstance(raw_fingers, list):
        fingers = []
        for entry in raw_fingers:
            finger = _finger_from_dict(entry)
            if finger is not None:
                fingers.append(finger)
    elif raw_fingers is not None:
        logger.warning("'fingers' must be a list, using the default fingers")

    thumb = None
    raw_thumb = _get(data, 'thumb')
    if isinstance(raw_thumb, dict):
        thumb_defaults = ThumbSpec()
        thumb = ThumbSpec(
            tip_index=_int(raw_thumb, 'tip_index', thumb_defaults.tip_index, 'tipIndex'),
            mcp_index=_int(raw_thumb, 'mcp_index', thumb_defaults.mcp_index, 'mcpIndex'),
            threshold=_number(raw_thumb, 'threshold', thumb_defaults.threshold)
        )

    return MushtiConfig(
        finger_threshold=_number(data, 'finger_threshold', defaults.finger_threshold, 'fingerThreshold'),
        finger_thresholds=overrides,
        fingers=fingers,
        thumb=thumb,
        required_curled_fingers=_int(
            data, 'required_curled_fingers', defaults.required_curled_fingers, 'requiredCurledFingers'
        )
    )


def motion_from_dict(data: Optional[Dict[str, Any]]) -> MotionConfig:
    """Resolve motion classifier settings with layered defaults."""
    data = data or {}
    d = MotionConfig()

    labels = dict(DEFAULT_LABELS)
    raw_labels = _get(data, 'labels')
    if isinstance(raw_labels, dict):
        candidate = dict(labels)
        for label, polarity in raw_labels.items():
            if label in DEFAULT_LABELS and polarity in _POLARITY_SIGN:
                candidate[label] = polarity
            else:
                logger.warning("Ignoring label polarity %r: %r", label, polarity)
        if len(set(candidate.values())) == len(candidate):
            labels = candidate
        else:
            logger.warning("Both labels share a polarity, using the default label map")

    return MotionConfig(
        buffer_ms=_number(data, 'buffer_ms', d.buffer_ms, 'bufferMs'),
        min_samples=_int(data, 'min_samples', d.min_samples, 'minSamples'),
        displacement_threshold=_number(data, 'displacement_threshold', d.displacement_threshold, 'displacementThreshold'),
        cooldown_ms=_number(data, 'cooldown_ms', d.cooldown_ms, 'cooldownMs'),
        grace_window_ms=_number(data, 'grace_window_ms', d.grace_window_ms, 'graceWindowMs'),
        upward_threshold=_number(data, 'upward_threshold', d.upward_threshold, 'upwardThreshold'),
        downward_threshold=_number(data, 'downward_threshold', d.downward_threshold, 'downwardThreshold'),
        pitch_up_threshold=_number(data, 'pitch_up_threshold', d.pitch_up_threshold, 'pitchUpThreshold'),
        hysteresis_multiplier=_number(data, 'hysteresis_multiplier', d.hysteresis_multiplier, 'hysteresisMultiplier'),
        labels=labels
    )


def _resolve_polarity(labels: Dict[GestureLabel, str]) -> Dict[int, GestureLabel]:
    sign_to_label: Dict[int, GestureLabel] = {}
    for label, polarity in labels.items():
        sign_to_label[_POLARITY_SIGN[polarity]] = label
    if set(sign_to_label) != {1, -1}:
        raise ValueError(f"Label map must assign one label to each polarity: {labels}")
    return sign_to_label


def _finger_from_dict(entry: Any) -> Optional[FingerSpec]:
    if not isinstance(entry, dict):
        logger.warning("Ignoring malformed finger entry: %r", entry)
        return None
    tip = _get(entry, 'tip_index', 'tipIndex')
    mcp = _get(entry, 'mcp_index', 'mcpIndex')
    if not (_is_int(tip) and _is_int(mcp)):
        logger.warning("Ignoring finger entry without integer indices: %r", entry)
        return None
    name = str(entry.get('name', f"finger{tip}"))
    return FingerSpec(name=name, tip_index=int(tip), mcp_index=int(mcp))


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        logger.warning("Config section %r is not a mapping, using defaults", key)
        return {}
    return value


def _get(data: Dict[str, Any], key: str, alias: Optional[str] = None) -> Any:
    if key in data:
        return data[key]
    if alias is not None:
        return data.get(alias)
    return None


def _is_number(value: Any) -> bool:
    return (isinstance(value, (int, float)) and not isinstance(value, bool)
            and math.isfinite(value))


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _number(data: Dict[str, Any], key: str, default: float, alias: Optional[str] = None) -> float:
    value = _get(data, key, alias)
    if value is None:
        return default
    if not _is_number(value):
        logger.warning("Invalid value for %r: %r, using default %r", key, value, default)
        return default
    return float(value)


def _int(data: Dict[str, Any], key: str, default: int, alias: Optional[str] = None) -> int:
    value = _get(data, key, alias)
    if value is None:
        return default
    if not _is_int(value):
        logger.warning("Invalid value for %r: %r, using default %r", key, value, default)
        return default
    return int(value)
