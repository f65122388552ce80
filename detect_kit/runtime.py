from __future__ import annotations

import logging
import threading
import time
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .config import DetectorConfig
from .errors import ConfigurationError, DetectKitError, InferenceError, ModelOutputError
from .execution import CPU, ExecutionContext, ExecutionState, TensorScope, cpu_scope, to_host
from .mapping import map_boxes
from .nms import NMSConfig, nms
from .preprocess import DEFAULT_INPUT_SIZE, preprocess
from .scores import decode_scores
from .types import DetectedObject, DetectionTiming, PreprocessResult, RawModelOutput


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
InferFn = Callable[[np.ndarray], Sequence[Any]]


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", "setup.py", ".git", "requirements.txt"),
) -> Path:
    """
    Best-effort project root discovery.

    Useful when models live next to the project (e.g. `Models/`) and the
    caller runs from a subdirectory.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()

    # If a file is provided, start from its directory.
    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Resolve `path` to an absolute Path.

    - Absolute paths are returned as-is.
    - Relative paths are resolved against:
      - `root` if provided
      - project root (auto) otherwise
    """

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


def _ms(start: float, end: float) -> float:
    return (end - start) * 1000.0


class DetectionPipeline:
    """
    Single-image detector: preprocess -> model -> score decode -> NMS -> pixel boxes.

    `infer_fn` takes the `[1, H, W, 3]` float tensor and returns `(boxes, scores)`
    shaped `[1, N, 4]` and `[1, N, C]`. Images are RGB `np.ndarray` (H, W, 3);
    results are `DetectedObject` in original image coordinates.

    Calls on one pipeline are serialized. Transient tensors are owned by a
    `TensorScope` per call and released on every exit path.
    """

    scope_factory: Callable[[], TensorScope] = TensorScope

    def __init__(
        self,
        infer_fn: InferFn,
        class_names: Sequence[str],
        *,
        input_size: Tuple[int, int] = DEFAULT_INPUT_SIZE,
        backend: Optional[object] = None,
        backend_name: Optional[str] = None,
        execution: Optional[ExecutionContext] = None,
        nms_cfg: NMSConfig = NMSConfig(),
        min_score: float = 0.0,
    ):
        if not class_names:
            raise ConfigurationError("class_names must not be empty")
        self._infer_fn = infer_fn
        self.class_names: Tuple[str, ...] = tuple(class_names)
        self.input_size = (int(input_size[0]), int(input_size[1]))
        self.backend = backend
        self.backend_name = backend_name
        if execution is None:
            execution = getattr(backend, "execution", CPU)
        self.execution = ExecutionState(execution)
        self.nms_cfg = nms_cfg
        self.min_score = float(min_score)
        self.last_timing: Optional[DetectionTiming] = None
        self._lock = threading.Lock()

    def preprocess(self, image: np.ndarray) -> PreprocessResult:
        return preprocess(image, self.input_size)

    def infer(self, tensor: np.ndarray, scope: Optional[TensorScope] = None) -> RawModelOutput:
        try:
            outputs = self._infer_fn(tensor)
        except DetectKitError:
            raise
        except Exception as exc:
            raise InferenceError(f"Model execution failed: {exc}") from exc

        if scope is not None and isinstance(outputs, (tuple, list)):
            for output in outputs:
                scope.track(output)
        if not isinstance(outputs, (tuple, list)) or len(outputs) < 2:
            raise ModelOutputError("Model must return (boxes, scores)")
        return RawModelOutput(boxes=outputs[0], scores=outputs[1])

    def warmup(self) -> None:
        """
        Run one all-zeros input and check the model's class count against the class table.
        """

        h, w = self.input_size
        with self._lock, self.scope_factory() as scope:
            tensor = scope.track(np.zeros((1, h, w, 3), dtype=np.float32))
            raw = self.infer(tensor, scope)
            if raw.num_classes != len(self.class_names):
                raise ConfigurationError(
                    f"Model predicts {raw.num_classes} classes but {len(self.class_names)} class names are configured."
                )
        logger.debug("warm-up done: %d candidate boxes, %d classes", raw.num_boxes, raw.num_classes)

    def detect(self, image: np.ndarray, min_score: Optional[float] = None) -> List[DetectedObject]:
        """
        Detect objects in one RGB image.

        Args:
            image: (H, W, 3) RGB array
            min_score: boxes scoring below this are dropped before NMS;
                defaults to the pipeline's `min_score` (0 unless configured)
        """

        threshold = self.min_score if min_score is None else float(min_score)
        nms_cfg = replace(self.nms_cfg, score_threshold=threshold)

        with self._lock, self.scope_factory() as scope:
            t0 = time.perf_counter()
            prep = self.preprocess(image)
            scope.track(prep.tensor)

            t1 = time.perf_counter()
            raw = self.infer(prep.tensor, scope)
            t2 = time.perf_counter()

            # Decoding and NMS run on CPU whatever device the model executes on.
            with cpu_scope(self.execution) as ctx:
                boxes = to_host(raw.boxes, ctx).reshape(raw.num_boxes, 4)
                scores = to_host(raw.scores, ctx)
                max_scores, class_ids = decode_scores(scores, raw.num_boxes, raw.num_classes)
                keep = nms(boxes, max_scores, nms_cfg)

            detections = map_boxes(
                keep,
                boxes,
                max_scores,
                class_ids,
                self.class_names,
                prep.orig_width,
                prep.orig_height,
                prep.x_ratio,
                prep.y_ratio,
            )
            t3 = time.perf_counter()

        self.last_timing = DetectionTiming(
            preprocess_ms=_ms(t0, t1),
            inference_ms=_ms(t1, t2),
            postprocess_ms=_ms(t2, t3),
        )
        logger.debug(
            "detected %d/%d boxes (min_score=%.3f) in %.1f ms (inference %.1f ms)",
            len(detections),
            raw.num_boxes,
            threshold,
            self.last_timing.total_ms,
            self.last_timing.inference_ms,
        )
        return detections

    def __call__(self, image: np.ndarray, min_score: Optional[float] = None) -> List[DetectedObject]:
        return self.detect(image, min_score)


def _infer_backend(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix == ".onnx":
        return "onnxruntime"
    if suffix in {".torchscript", ".ts", ".pt"}:
        return "torchscript"
    raise ConfigurationError(f"Could not infer backend from extension '{suffix}'. Pass backend=... explicitly.")


def load_pipeline(
    model_path: PathLike,
    class_names: Sequence[str],
    *,
    backend: Optional[str] = None,
    root: Optional[PathLike] = "auto",
    input_size: Optional[Tuple[int, int]] = None,
    nms_cfg: NMSConfig = NMSConfig(),
    min_score: float = 0.0,
    onnx_providers: Optional[Sequence[str]] = None,
    onnx_input_name: Optional[str] = None,
    onnx_boxes_output: Optional[str] = None,
    onnx_scores_output: Optional[str] = None,
    torch_device: str = "cpu",
    torch_half: bool = False,
    warmup: bool = True,
) -> DetectionPipeline:
    """
    Create a detection pipeline for a model on disk.

    Typical usage:
        pipe = load_pipeline("Models/carparts.onnx", class_names)  # resolves from project root by default

    Args:
        model_path: path to the model file; relative paths resolve against project root by default
        backend: "onnxruntime" / "torchscript", or None to infer from extension
        input_size: (height, width); None reads it from the model (ONNX) or uses 320x320
        warmup: run one zeros input and validate the class count before returning
    """

    resolved = resolve_path(model_path, root=root)
    chosen = (backend or _infer_backend(resolved)).lower()

    if chosen == "onnxruntime":
        from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

        model = OnnxRuntimeBackend(
            resolved,
            OnnxRuntimeBackendConfig(
                providers=onnx_providers,
                input_name=onnx_input_name,
                boxes_output=onnx_boxes_output,
                scores_output=onnx_scores_output,
            ),
        )
    elif chosen == "torchscript":
        from .backends.torchscript_backend import TorchScriptBackend, TorchScriptBackendConfig

        model = TorchScriptBackend(
            resolved,
            TorchScriptBackendConfig(
                device=torch_device,
                half=torch_half,
                input_size=tuple(input_size) if input_size is not None else DEFAULT_INPUT_SIZE,
            ),
        )
    else:
        raise ConfigurationError(f"Unsupported backend: {backend!r}")

    size = tuple(input_size) if input_size is not None else model.input_shape[1:3]
    pipeline = DetectionPipeline(
        model.infer,
        class_names,
        input_size=size,
        backend=model,
        backend_name=chosen,
        nms_cfg=nms_cfg,
        min_score=min_score,
    )
    if warmup:
        pipeline.warmup()

    logger.info(
        "loaded %s with %s (input %dx%d, %d classes, execution=%s)",
        resolved,
        chosen,
        pipeline.input_size[0],
        pipeline.input_size[1],
        len(pipeline.class_names),
        pipeline.execution.current.device,
    )
    return pipeline


def load(config: Union[DetectorConfig, Mapping[str, Any]]) -> DetectionPipeline:
    """
    Load a model from `config.source` with the class table `config.class_names`, warm it up and return the pipeline.

    `config` may be a `DetectorConfig` or a plain mapping with the same keys
    (`classNames` is accepted as an alias of `class_names`).
    """

    cfg = config if isinstance(config, DetectorConfig) else DetectorConfig.from_mapping(config)
    return load_pipeline(
        cfg.source,
        cfg.class_names,
        backend=cfg.backend,
        input_size=cfg.input_size,
        nms_cfg=NMSConfig(iou_threshold=cfg.iou_threshold, max_detections=cfg.max_detections),
        min_score=cfg.min_score,
        onnx_providers=cfg.providers,
        torch_device=cfg.device,
        warmup=cfg.warmup,
    )
