from typing import Tuple

import numpy as np

from .errors import ModelOutputError


def decode_scores(scores, num_boxes: int, num_classes: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Pick the best class for every candidate box.

    `scores` is a flat (or reshapeable) buffer laid out box-major: the score of
    class `j` for box `i` lives at `i * num_classes + j`. When several classes
    share the maximum, the lowest class index wins. NaN scores are skipped.

    Returns:
        max_scores: float64 (N,)
        class_ids: int64 (N,); -1 for every box when there are no classes
    """

    flat = np.asarray(scores).reshape(-1)
    if flat.size != num_boxes * num_classes:
        raise ModelOutputError(
            f"Score buffer has {flat.size} values, expected {num_boxes} boxes x {num_classes} classes."
        )

    if num_classes == 0:
        return np.full((num_boxes,), -np.inf, dtype=np.float64), np.full((num_boxes,), -1, dtype=np.int64)

    table = flat.reshape(num_boxes, num_classes).astype(np.float64, copy=False)
    # NaN never wins the scan; a row that is all NaN keeps NaN as its score.
    ranked = np.where(np.isnan(table), -np.inf, table)
    class_ids = np.argmax(ranked, axis=1).astype(np.int64)
    max_scores = table[np.arange(num_boxes), class_ids]
    return max_scores, class_ids
