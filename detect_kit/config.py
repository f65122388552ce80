from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence, Tuple, Union

from .errors import ConfigurationError
from .metadata import load_class_names


# Minimum confidence used by interactive callers; `detect()` itself defaults to 0.
DEFAULT_MIN_SCORE = 0.3


@dataclass(frozen=True)
class DetectorConfig:
    """
    Everything `load()` needs to build a detection pipeline.

    - source: model location (.onnx / .pt / .ts / .torchscript); relative paths
      resolve against the project root
    - class_names: ordered class table, index = class id
    - input_size: (height, width) override; None reads it from the model
    """

    source: str
    class_names: Tuple[str, ...]
    input_size: Optional[Tuple[int, int]] = None
    min_score: float = 0.0
    iou_threshold: float = 0.6
    max_detections: int = 100
    backend: Optional[str] = None
    providers: Optional[Tuple[str, ...]] = None
    device: str = "cpu"
    warmup: bool = True

    def __post_init__(self) -> None:
        if not self.source:
            raise ConfigurationError("source must be a non-empty model location")
        if not self.class_names:
            raise ConfigurationError("class_names must not be empty")
        if any(not isinstance(n, str) for n in self.class_names):
            raise ConfigurationError("class_names must be strings")
        object.__setattr__(self, "class_names", tuple(self.class_names))
        if self.input_size is not None:
            if len(self.input_size) != 2 or any(int(d) < 1 for d in self.input_size):
                raise ConfigurationError("input_size must be (height, width) with positive values")
        if not 0.0 <= self.min_score <= 1.0:
            raise ConfigurationError("min_score must be in [0, 1]")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ConfigurationError("iou_threshold must be in [0, 1]")
        if self.max_detections < 1:
            raise ConfigurationError("max_detections must be >= 1")

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any], base_dir: Optional[Path] = None) -> "DetectorConfig":
        allowed = {
            "source",
            "class_names",
            "classNames",
            "input_size",
            "min_score",
            "iou_threshold",
            "max_detections",
            "backend",
            "providers",
            "device",
            "warmup",
        }
        unknown = sorted(set(payload.keys()) - allowed)
        if unknown:
            raise ConfigurationError(f"Unknown detector config keys: {unknown}")

        source = payload.get("source")
        if not isinstance(source, str):
            raise ConfigurationError("source must be a string")

        names = payload.get("class_names", payload.get("classNames"))
        class_names = _resolve_class_names(names, base_dir)

        input_size = payload.get("input_size")
        if input_size is not None:
            if isinstance(input_size, int) and not isinstance(input_size, bool):
                input_size = (input_size, input_size)
            elif isinstance(input_size, (list, tuple)) and all(isinstance(d, int) for d in input_size):
                input_size = tuple(input_size)
            else:
                raise ConfigurationError("input_size must be an integer or [height, width]")

        providers = payload.get("providers")
        if providers is not None:
            if not isinstance(providers, (list, tuple)) or not all(isinstance(p, str) for p in providers):
                raise ConfigurationError("providers must be a list of strings")
            providers = tuple(providers)

        return cls(
            source=source,
            class_names=class_names,
            input_size=input_size,
            min_score=_number(payload, "min_score", 0.0),
            iou_threshold=_number(payload, "iou_threshold", 0.6),
            max_detections=_integer(payload, "max_detections", 100),
            backend=payload.get("backend"),
            providers=providers,
            device=str(payload.get("device", "cpu")),
            warmup=bool(payload.get("warmup", True)),
        )


def _number(payload: Mapping[str, Any], key: str, default: float) -> float:
    value = payload.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{key} must be a number")
    return float(value)


def _integer(payload: Mapping[str, Any], key: str, default: int) -> int:
    value = payload.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{key} must be an integer")
    return int(value)


def _resolve_class_names(names: Union[None, str, Sequence[str]], base_dir: Optional[Path]) -> Tuple[str, ...]:
    if isinstance(names, str):
        path = Path(names)
        if not path.is_absolute() and base_dir is not None:
            path = base_dir / path
        return tuple(load_class_names(path))
    if isinstance(names, (list, tuple)) and all(isinstance(n, str) for n in names):
        return tuple(names)
    raise ConfigurationError("class_names must be a list of strings or a path to class metadata")


def load_detector_config(path: Path) -> DetectorConfig:
    """
    Read a detector config JSON object. A `class_names` path is resolved relative to the config file.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Detector config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid detector config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError("Detector config must be a JSON object")
    return DetectorConfig.from_mapping(payload, base_dir=path.parent)
