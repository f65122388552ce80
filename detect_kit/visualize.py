from __future__ import annotations

from typing import Iterable, List, Tuple

import numpy as np

from .types import DetectedObject


RED_BGR: Tuple[int, int, int] = (0, 0, 255)


def format_label(det: DetectedObject) -> str:
    return f"Class {det.class_id} ({det.score * 100:.2f}%)"


def format_predictions(detections: Iterable[DetectedObject]) -> List[str]:
    """
    One human-readable line per detection, e.g. "Class: tyre, Score: 87.12%".
    """

    return [f"Class: {det.class_name}, Score: {det.score * 100:.2f}%" for det in detections]


def draw_detections(
    image_bgr: np.ndarray,
    detections: Iterable[DetectedObject],
    *,
    color: Tuple[int, int, int] = RED_BGR,
    box_thickness: int = 2,
    font_scale: float = 0.5,
    font_thickness: int = 1,
) -> np.ndarray:
    """
    Draw bounding boxes + labels on an OpenCV BGR image and return a copy.

    Labels sit 10 px above the box, or 20 px below its top edge when the box
    starts within 10 px of the image top.

    Args:
        image_bgr: input image in BGR (H, W, 3).
        detections: DetectedObject in original image coordinates.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for draw_detections(). Install with `pip install opencv-python`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    out = image_bgr.copy()
    h, w = out.shape[:2]

    for det in detections:
        x1, y1, x2, y2 = det.as_xyxy()
        x1i = int(np.clip(round(x1), 0, w - 1))
        y1i = int(np.clip(round(y1), 0, h - 1))
        x2i = int(np.clip(round(x2), 0, w - 1))
        y2i = int(np.clip(round(y2), 0, h - 1))

        cv2.rectangle(out, (x1i, y1i), (x2i, y2i), color, thickness=box_thickness)

        y_text = y1i - 10 if y1i > 10 else y1i + 20
        cv2.putText(
            out,
            format_label(det),
            (x1i, min(y_text, h - 1)),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            color,
            thickness=font_thickness,
            lineType=cv2.LINE_AA,
        )

    return out
