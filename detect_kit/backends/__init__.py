"""
Optional inference backends for detect_kit.

Backends are kept in a separate module so core functionality (pre/post-processing)
stays lightweight and can be used without installing inference runtimes.

Every backend follows the same model contract:

- `input_shape`: (1, H, W, 3)
- `execution`: the ExecutionContext its outputs live on
- `infer(tensor)`: (boxes [1, N, 4], scores [1, N, C])
"""

from __future__ import annotations

__all__ = []
