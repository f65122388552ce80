from typing import Tuple

import numpy as np

from .types import PreprocessResult


DEFAULT_INPUT_SIZE: Tuple[int, int] = (320, 320)


def _cv2():
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for preprocessing. Install with `pip install opencv-python`.") from e
    return cv2


def _check_image(image: np.ndarray) -> None:
    if image is None or not hasattr(image, "shape"):
        raise TypeError("image must be a NumPy array (RGB).")
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image, 'shape', None)}")
    if image.shape[0] < 1 or image.shape[1] < 1:
        raise ValueError(f"Image must be non-empty, got shape {image.shape}")


def pad_to_square(image: np.ndarray) -> np.ndarray:
    """
    Zero-pad an (H, W, 3) image on the bottom/right so both sides equal max(H, W).

    Nothing is added on the top/left, so pixel (x, y) keeps its position in the
    padded square.
    """

    _check_image(image)
    h, w = image.shape[:2]
    max_size = max(h, w)
    if h == w:
        return image

    if image.dtype not in (np.uint8, np.float32, np.float64):
        image = image.astype(np.float32)

    cv2 = _cv2()
    return cv2.copyMakeBorder(image, 0, max_size - h, 0, max_size - w, cv2.BORDER_CONSTANT, value=(0, 0, 0))


def preprocess(image: np.ndarray, input_size: Tuple[int, int] = DEFAULT_INPUT_SIZE) -> PreprocessResult:
    """
    Turn an RGB image into the `[1, H, W, 3]` float tensor a detector expects.

    Steps: pad to a square (bottom/right), nearest-neighbour resize to
    `input_size` (height, width), scale to [0, 1], add a batch axis.

    Returns:
        PreprocessResult with the tensor, the original width/height and the
        ratios `max_size / width`, `max_size / height` needed to map boxes back.
    """

    _check_image(image)
    in_h, in_w = int(input_size[0]), int(input_size[1])
    if in_h < 1 or in_w < 1:
        raise ValueError(f"input_size must be positive, got {input_size}")

    orig_h, orig_w = image.shape[:2]
    max_size = max(orig_h, orig_w)

    padded = pad_to_square(image)
    if padded.dtype not in (np.uint8, np.float32, np.float64):
        padded = padded.astype(np.float32)

    if (max_size, max_size) != (in_h, in_w):
        cv2 = _cv2()
        # cv2 takes dsize as (width, height)
        padded = cv2.resize(padded, (in_w, in_h), interpolation=cv2.INTER_NEAREST)

    tensor = padded.astype(np.float32) / 255.0
    tensor = tensor[None, ...]

    return PreprocessResult(
        tensor=tensor,
        orig_width=int(orig_w),
        orig_height=int(orig_h),
        x_ratio=max_size / orig_w,
        y_ratio=max_size / orig_h,
    )
