"""
Single-image object detection helpers for box/score detectors.

Framework-agnostic post-processing: works with NumPy arrays emitted by ONNX
Runtime or torch tensors (moved to host before NMS). No external dependencies
beyond NumPy and OpenCV for padding/resizing; inference runtimes live in
`detect_kit.backends` and are imported lazily.
"""

from .types import DetectedObject, DetectionTiming, PreprocessResult, RawModelOutput
from .errors import ClassIndexError, ConfigurationError, DetectKitError, InferenceError, ModelOutputError
from .preprocess import pad_to_square, preprocess
from .scores import decode_scores
from .nms import NMSConfig, box_iou, nms
from .mapping import map_boxes
from .execution import ExecutionContext, ExecutionState, TensorScope, cpu_scope, to_host
from .config import DEFAULT_MIN_SCORE, DetectorConfig, load_detector_config
from .metadata import load_class_names
from .runtime import DetectionPipeline, find_project_root, load, load_pipeline, resolve_path
from .visualize import draw_detections, format_predictions

__all__ = [
    "DetectedObject",
    "DetectionTiming",
    "PreprocessResult",
    "RawModelOutput",
    "ClassIndexError",
    "ConfigurationError",
    "DetectKitError",
    "InferenceError",
    "ModelOutputError",
    "pad_to_square",
    "preprocess",
    "decode_scores",
    "NMSConfig",
    "box_iou",
    "nms",
    "map_boxes",
    "ExecutionContext",
    "ExecutionState",
    "TensorScope",
    "cpu_scope",
    "to_host",
    "DEFAULT_MIN_SCORE",
    "DetectorConfig",
    "load_detector_config",
    "load_class_names",
    "DetectionPipeline",
    "find_project_root",
    "load",
    "load_pipeline",
    "resolve_path",
    "draw_detections",
    "format_predictions",
]
