from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple

import numpy as np

from .errors import ModelOutputError


@dataclass(frozen=True)
class DetectedObject:
    """
    One detection in original-image pixel coordinates.

    `x`, `y` is the top-left corner; `width` and `height` are never negative.
    """

    x: float
    y: float
    width: float
    height: float
    score: float
    class_id: int
    class_name: str

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.x + self.width, self.y + self.height

    def to_dict(self) -> Dict[str, Any]:
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "score": self.score,
            "classId": self.class_id,
            "class": self.class_name,
        }


@dataclass(frozen=True)
class PreprocessResult:
    tensor: np.ndarray
    orig_width: int
    orig_height: int
    x_ratio: float
    y_ratio: float


@dataclass(frozen=True)
class RawModelOutput:
    """
    Boxes `[1, N, 4]` as `[minY, minX, maxY, maxX]` normalized to the padded
    square, and per-class scores `[1, N, C]`.

    The tensors may be NumPy arrays or device tensors; only `.shape` is read here.
    """

    boxes: Any
    scores: Any

    def __post_init__(self) -> None:
        boxes_shape = tuple(int(d) for d in self.boxes.shape)
        scores_shape = tuple(int(d) for d in self.scores.shape)
        if len(boxes_shape) != 3 or boxes_shape[0] != 1 or boxes_shape[2] != 4:
            raise ModelOutputError(f"Expected boxes shaped (1, N, 4), got {boxes_shape}")
        if len(scores_shape) != 3 or scores_shape[0] != 1:
            raise ModelOutputError(f"Expected scores shaped (1, N, C), got {scores_shape}")
        if boxes_shape[1] != scores_shape[1]:
            raise ModelOutputError(
                f"Boxes and scores disagree on the number of candidates: {boxes_shape} vs {scores_shape}"
            )

    @property
    def num_boxes(self) -> int:
        return int(self.boxes.shape[1])

    @property
    def num_classes(self) -> int:
        return int(self.scores.shape[2])


@dataclass(frozen=True)
class DetectionTiming:
    preprocess_ms: float
    inference_ms: float
    postprocess_ms: float

    @property
    def total_ms(self) -> float:
        return self.preprocess_ms + self.inference_ms + self.postprocess_ms
