from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Tuple, Union

import numpy as np

from ..errors import ModelOutputError
from ..execution import ExecutionContext
from ..preprocess import DEFAULT_INPUT_SIZE


PathLike = Union[str, Path]


@dataclass(frozen=True)
class TorchScriptBackendConfig:
    """
    Configuration for TorchScript inference.

    - device: "cpu" or "cuda" (if available)
    - half: cast input to float16 (only if the model expects it)
    - input_size: (height, width) of the NHWC input; TorchScript carries no input metadata
    """

    device: str = "cpu"
    half: bool = False
    input_size: Tuple[int, int] = DEFAULT_INPUT_SIZE


class TorchScriptBackend:
    """
    Minimal TorchScript backend using `torch.jit.load`.

    The model must return a (boxes, scores) pair. Outputs are detached but left
    on `device`; the pipeline copies them to host before post-processing.
    """

    def __init__(self, model_path: PathLike, cfg: TorchScriptBackendConfig = TorchScriptBackendConfig()):
        try:
            import torch  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError("torch is required for the TorchScript backend. Install with `pip install torch`.") from e

        self._torch = torch
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        self.device = torch.device(cfg.device)
        self.half = cfg.half
        self._input_shape = (1, int(cfg.input_size[0]), int(cfg.input_size[1]), 3)

        model = torch.jit.load(str(self.model_path), map_location=self.device)
        model.eval()
        self.model = model

    @property
    def input_shape(self) -> Tuple[int, int, int, int]:
        return self._input_shape

    @property
    def execution(self) -> ExecutionContext:
        return ExecutionContext(str(self.device))

    def infer(self, tensor: np.ndarray) -> Tuple[Any, Any]:
        torch = self._torch
        x = torch.as_tensor(tensor, device=self.device)
        if self.half:
            x = x.half()
        else:
            x = x.float()
        x = x.contiguous()

        with torch.no_grad():
            y = self.model(x)

        if not isinstance(y, (tuple, list)) or len(y) < 2:
            raise ModelOutputError("TorchScript model must return (boxes, scores)")

        boxes, scores = y[0], y[1]
        if hasattr(boxes, "detach"):
            boxes = boxes.detach()
        if hasattr(scores, "detach"):
            scores = scores.detach()
        return boxes, scores
