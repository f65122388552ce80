from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence, Tuple, Union

import numpy as np

from ..errors import ConfigurationError
from ..execution import ExecutionContext
from ..preprocess import DEFAULT_INPUT_SIZE


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_GPU_PROVIDERS = ("CUDAExecutionProvider", "TensorrtExecutionProvider", "ROCMExecutionProvider", "DmlExecutionProvider")


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"])
    - input_name: override the auto-selected input
    - boxes_output/scores_output: output names; by default the output whose
      last axis is 4 is taken as boxes and another output as scores
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    boxes_output: Optional[str] = None
    scores_output: Optional[str] = None


def _dim(value: Any, axis: str, default: int) -> int:
    if isinstance(value, int) and value > 0:
        return value
    logger.warning("model input %s is dynamic (%r); using %d", axis, value, default)
    return default


def _last_dim(shape: Optional[Sequence[Any]]) -> Optional[int]:
    if shape and isinstance(shape[-1], int):
        return shape[-1]
    return None


class OnnxRuntimeBackend:
    """
    Minimal ONNX Runtime backend for box/score detectors.

    Expects an NHWC float32 tensor shaped (1, H, W, 3).
    Returns (boxes, scores) as NumPy arrays.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self._ort = ort
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        sess_opts = ort.SessionOptions()
        providers = list(cfg.providers) if cfg.providers is not None else None
        self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=providers)

        model_input = self.session.get_inputs()[0]
        self.input_name = cfg.input_name or model_input.name
        self._input_shape = self._resolve_input_shape(model_input.shape)

        outputs = [(o.name, o.shape) for o in self.session.get_outputs()]
        self.boxes_output, self.scores_output = self._select_outputs(outputs, cfg.boxes_output, cfg.scores_output)

    @staticmethod
    def _resolve_input_shape(shape: Optional[Sequence[Any]]) -> Tuple[int, int, int, int]:
        if not shape or len(shape) != 4:
            raise ConfigurationError(f"Input shape is undefined (got {shape!r}); expected [1, H, W, 3].")
        if shape[3] != 3:
            raise ConfigurationError(f"Expected an NHWC input with 3 channels last, got {list(shape)!r}.")
        return 1, _dim(shape[1], "height", DEFAULT_INPUT_SIZE[0]), _dim(shape[2], "width", DEFAULT_INPUT_SIZE[1]), 3

    @staticmethod
    def _select_outputs(
        outputs: Sequence[Tuple[str, Optional[Sequence[Any]]]],
        boxes_output: Optional[str] = None,
        scores_output: Optional[str] = None,
    ) -> Tuple[str, str]:
        """
        Pick the (boxes, scores) output names.

        Configured names win. Otherwise boxes is the first output whose last axis
        is 4 (the first output when no shape says so) and scores is the first
        remaining output.
        """

        names = [name for name, _ in outputs]
        if boxes_output and scores_output:
            return boxes_output, scores_output
        if len(names) < 2:
            raise ConfigurationError(f"Expected a boxes output and a scores output, model has {names}")

        if not boxes_output:
            candidates = [n for n, shape in outputs if n != scores_output and _last_dim(shape) == 4]
            boxes_output = candidates[0] if candidates else next(n for n in names if n != scores_output)
        if not scores_output:
            scores_output = next(n for n in names if n != boxes_output)
        logger.debug("using outputs boxes=%s scores=%s", boxes_output, scores_output)
        return boxes_output, scores_output

    @property
    def input_shape(self) -> Tuple[int, int, int, int]:
        return self._input_shape

    @property
    def providers_in_use(self) -> Sequence[str]:
        # ORT returns providers in priority order for this session.
        return tuple(self.session.get_providers())

    @property
    def available_providers(self) -> Sequence[str]:
        return tuple(self._ort.get_available_providers())

    @property
    def execution(self) -> ExecutionContext:
        providers = self.providers_in_use
        if providers and providers[0] in _GPU_PROVIDERS:
            return ExecutionContext("cuda")
        return ExecutionContext("cpu")

    def infer(self, tensor: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        boxes, scores = self.session.run([self.boxes_output, self.scores_output], {self.input_name: tensor})
        return boxes, scores
