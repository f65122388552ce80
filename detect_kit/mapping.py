from typing import Iterable, List, Sequence

import numpy as np

from .errors import ClassIndexError
from .types import DetectedObject


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def map_boxes(
    indices: Iterable[int],
    boxes: np.ndarray,
    max_scores: np.ndarray,
    class_ids: np.ndarray,
    class_names: Sequence[str],
    orig_width: float,
    orig_height: float,
    x_ratio: float,
    y_ratio: float,
) -> List[DetectedObject]:
    """
    Map surviving boxes from the padded square back to original-image pixels.

    Boxes are [minY, minX, maxY, maxX] in [0, 1] relative to the padded square.
    Padding only ever extends the bottom/right edge, so scaling by
    `dimension * ratio` (= the padded size) lands directly in original pixel
    coordinates; the result is clamped to the image.

    Output order follows `indices`.
    """

    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    width = float(orig_width)
    height = float(orig_height)
    x_ratio = float(x_ratio)
    y_ratio = float(y_ratio)

    objects: List[DetectedObject] = []
    for idx in indices:
        idx = int(idx)
        class_id = int(class_ids[idx])
        if not 0 <= class_id < len(class_names):
            raise ClassIndexError(class_id, len(class_names))

        min_y, min_x, max_y, max_x = (float(v) for v in boxes[idx])
        min_y = _clamp(min_y * height * y_ratio, 0.0, height)
        min_x = _clamp(min_x * width * x_ratio, 0.0, width)
        max_y = _clamp(max_y * height * y_ratio, 0.0, height)
        max_x = _clamp(max_x * width * x_ratio, 0.0, width)

        objects.append(
            DetectedObject(
                x=min_x,
                y=min_y,
                width=max(0.0, max_x - min_x),
                height=max(0.0, max_y - min_y),
                score=float(max_scores[idx]),
                class_id=class_id,
                class_name=class_names[class_id],
            )
        )
    return objects
