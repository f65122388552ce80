"""
Execution context and buffer ownership for a detection call.

- `ExecutionContext` names where tensors live ("cpu", "cuda", "cuda:1", ...).
- `ExecutionState` is the one mutable "current backend" slot a pipeline owns;
  `cpu_scope()` switches it to CPU for host-side work and always restores it.
- `TensorScope` owns the transient buffers of one call and releases them on
  every exit path.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, List, TypeVar

import numpy as np


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ExecutionContext:
    device: str = "cpu"

    @property
    def is_accelerated(self) -> bool:
        return self.device.split(":", 1)[0].lower() != "cpu"


CPU = ExecutionContext("cpu")


class ExecutionState:
    """
    Holds the currently selected execution context of one pipeline.

    Not thread-safe on its own; the pipeline serializes access with its lock.
    """

    def __init__(self, context: ExecutionContext = CPU):
        self.current = context

    def switch(self, context: ExecutionContext) -> ExecutionContext:
        previous = self.current
        self.current = context
        return previous


@contextmanager
def cpu_scope(state: ExecutionState) -> Iterator[ExecutionContext]:
    """
    Run the enclosed block with the state switched to CPU.

    A no-op when the state is already on CPU. The previous context is restored
    on exit, including when the block raises.
    """

    previous = state.current
    if not previous.is_accelerated:
        yield previous
        return

    logger.debug("switching execution from %s to cpu", previous.device)
    state.switch(CPU)
    try:
        yield CPU
    finally:
        state.switch(previous)
        logger.debug("restored execution to %s", previous.device)


def to_host(array: Any, context: ExecutionContext = CPU) -> np.ndarray:
    """
    Copy a tensor to a host NumPy array (torch tensors are detached and moved to CPU).

    `context` is the execution context the copy runs under; it must be CPU, so
    accelerated pipelines call this inside `cpu_scope()`.
    """

    if context.is_accelerated:
        raise ValueError(f"Host transfer needs a CPU execution context, current is {context.device!r}.")
    if isinstance(array, np.ndarray):
        return array
    if hasattr(array, "detach"):
        array = array.detach()
    if hasattr(array, "cpu"):
        array = array.cpu()
    if hasattr(array, "numpy"):
        return np.asarray(array.numpy())
    return np.asarray(array)


class TensorScope:
    """
    Tracks buffers allocated during one detection call.

    Used as a context manager: everything tracked is released on exit, whether
    the block returns normally or raises. Buffers exposing `release()` or
    `dispose()` have it called; the scope drops its reference to all of them.
    """

    def __init__(self) -> None:
        self._buffers: List[Any] = []
        self.released = 0

    def track(self, buffer: T) -> T:
        self._buffers.append(buffer)
        return buffer

    @property
    def live(self) -> int:
        return len(self._buffers)

    def release(self) -> None:
        """
        Release every tracked buffer, newest first.

        A failing hook does not stop the loop; the first failure is re-raised
        once all buffers have been dropped.
        """

        failures: List[Exception] = []
        while self._buffers:
            buffer = self._buffers.pop()
            for name in ("release", "dispose"):
                hook = getattr(buffer, name, None)
                if callable(hook):
                    try:
                        hook()
                    except Exception as exc:
                        failures.append(exc)
                    break
            self.released += 1

        for exc in failures[1:]:
            logger.warning("buffer release failed: %r", exc)
        if failures:
            raise failures[0]

    def __enter__(self) -> "TensorScope":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.release()
        except Exception:
            if exc_type is None:
                raise
            # Keep the error that ended the block.
            logger.warning("buffer release failed while handling %s", exc_type.__name__, exc_info=True)
