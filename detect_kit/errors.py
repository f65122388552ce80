"""
Error types raised by detect_kit.

Configuration problems are fatal and surface to the caller; executor failures
are per-call and may be retried by the caller. Nothing here retries.
"""

from __future__ import annotations


class DetectKitError(Exception):
    """Base class for all detect_kit errors."""


class ConfigurationError(DetectKitError, ValueError):
    """The model and its configuration disagree (input shape, class table, thresholds)."""


class ClassIndexError(ConfigurationError):
    def __init__(self, class_id: int, num_classes: int):
        super().__init__(
            f"class id {class_id} is outside the class-name table (size {num_classes}); "
            "the class table and the model must agree on the number of classes."
        )
        self.class_id = class_id
        self.num_classes = num_classes


class ModelOutputError(DetectKitError, ValueError):
    """The executor returned tensors that do not match the boxes/scores contract."""


class InferenceError(DetectKitError, RuntimeError):
    """The external executor failed while running the model."""
