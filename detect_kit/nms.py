from dataclasses import dataclass
import numpy as np


@dataclass(frozen=True)
class NMSConfig:
    iou_threshold: float = 0.6
    max_detections: int = 100
    score_threshold: float = 0.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in [0, 1]")
        if self.max_detections < 0:
            raise ValueError("max_detections must be >= 0")


def _ordered_corners(boxes: np.ndarray) -> np.ndarray:
    # Boxes are [y1, x1, y2, x2]; either pair of opposite corners is accepted.
    return np.stack(
        [
            np.minimum(boxes[:, 0], boxes[:, 2]),
            np.minimum(boxes[:, 1], boxes[:, 3]),
            np.maximum(boxes[:, 0], boxes[:, 2]),
            np.maximum(boxes[:, 1], boxes[:, 3]),
        ],
        axis=1,
    )


def box_iou(box: np.ndarray, boxes: np.ndarray) -> np.ndarray:
    """
    IoU of one box against many, all as [minY, minX, maxY, maxX] in the same units.

    A pair whose union has no area gets IoU 0.
    """

    box = _ordered_corners(np.asarray(box, dtype=np.float64).reshape(1, 4))[0]
    boxes = _ordered_corners(np.asarray(boxes, dtype=np.float64).reshape(-1, 4))

    yy1 = np.maximum(box[0], boxes[:, 0])
    xx1 = np.maximum(box[1], boxes[:, 1])
    yy2 = np.minimum(box[2], boxes[:, 2])
    xx2 = np.minimum(box[3], boxes[:, 3])

    inter = np.maximum(0.0, yy2 - yy1) * np.maximum(0.0, xx2 - xx1)
    area = (box[2] - box[0]) * (box[3] - box[1])
    areas = (boxes[:, 2] - boxes[:, 0]) * (boxes[:, 3] - boxes[:, 1])
    union = area + areas - inter

    iou = np.zeros_like(inter)
    np.divide(inter, union, out=iou, where=union > 0)
    return iou


def nms(boxes: np.ndarray, scores: np.ndarray, cfg: NMSConfig = NMSConfig()) -> np.ndarray:
    """
    Greedy NumPy NMS. Expects boxes shape (N,4) as [minY, minX, maxY, maxX] and scores shape (N,).

    Boxes scoring below `cfg.score_threshold` are dropped first. Equal scores keep
    their original index order, so the result is deterministic.

    Returns indices of boxes to keep, highest score first.
    """

    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    scores = np.asarray(scores, dtype=np.float64).reshape(-1)
    if boxes.shape[0] != scores.shape[0]:
        raise ValueError(f"boxes and scores disagree: {boxes.shape[0]} vs {scores.shape[0]}")

    if boxes.size == 0 or cfg.max_detections == 0:
        return np.empty((0,), dtype=np.int64)

    candidates = np.nonzero(scores >= cfg.score_threshold)[0]
    order = candidates[np.argsort(-scores[candidates], kind="stable")]
    keep = []

    while order.size > 0 and len(keep) < cfg.max_detections:
        i = order[0]
        keep.append(i)

        iou = box_iou(boxes[i], boxes[order[1:]])
        order = order[1:][iou <= cfg.iou_threshold]

    return np.array(keep, dtype=np.int64)
