from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Union

from .errors import ConfigurationError


def _parse_names_mapping(metadata_path: Path) -> Dict[int, str]:
    names: Dict[int, str] = {}
    in_names = False

    with open(metadata_path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if line == "names:":
                in_names = True
                continue
            if not in_names:
                continue

            # Parse "id: label"
            if ":" not in line:
                continue
            left, right = line.split(":", 1)
            left = left.strip()
            right = right.strip().strip("'").strip('"')
            if not left.isdigit():
                continue
            names[int(left)] = right

    return names


def _names_from_mapping(names: Dict[int, str], source: Path) -> List[str]:
    expected = list(range(len(names)))
    if sorted(names) != expected:
        raise ConfigurationError(f"Class ids in {source} must be contiguous from 0, got {sorted(names)}")
    return [names[i] for i in expected]


def load_class_names(metadata_path: Union[str, Path]) -> List[str]:
    """
    Load the ordered class-name table (index = class id).

    Two formats are accepted:

    - JSON: either a list of names, or an object with a "names" list/mapping.
    - The lightweight `metadata.yaml` format exported next to YOLO models:

        names:
          0: person
          1: bicycle
          ...

    The YAML variant is parsed line by line, so PyYAML is not needed.
    """

    path = Path(metadata_path)
    if not path.exists():
        raise FileNotFoundError(f"Class metadata not found: {path}")

    if path.suffix.lower() == ".json":
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Invalid class metadata JSON: {path}") from exc
        if isinstance(payload, dict):
            payload = payload.get("names")
        if isinstance(payload, dict):
            try:
                mapping = {int(k): str(v) for k, v in payload.items()}
            except ValueError as exc:
                raise ConfigurationError(f"Class ids in {path} must be integers") from exc
            return _names_from_mapping(mapping, path)
        if not isinstance(payload, list) or not all(isinstance(n, str) for n in payload):
            raise ConfigurationError(f"{path} must hold a list of class names")
        names = list(payload)
    else:
        names = _names_from_mapping(_parse_names_mapping(path), path)

    if not names:
        raise ConfigurationError(f"No class names found in {path}")
    return names
