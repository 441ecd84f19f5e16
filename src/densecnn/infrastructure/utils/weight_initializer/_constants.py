"""
Constant and plain Gaussian initializers.

- ``zeros`` / ``ones``: constant buffers (biases are usually zero-initialized).
- ``gaussian``: standard normal draws, with an optional ``std`` keyword.
"""

import numpy as np

from ._base import WeightInitializer
from ...tensor._tensor import Tensor


@WeightInitializer.register_initializer("zeros")
def zeros(
    shape: tuple[int, int], rng: np.random.Generator, dtype: np.dtype
) -> Tensor:
    return Tensor._from_buffer(np.zeros(shape, dtype=dtype))


@WeightInitializer.register_initializer("ones")
def ones(
    shape: tuple[int, int], rng: np.random.Generator, dtype: np.dtype
) -> Tensor:
    return Tensor._from_buffer(np.ones(shape, dtype=dtype))


@WeightInitializer.register_initializer("gaussian")
def gaussian(
    shape: tuple[int, int],
    rng: np.random.Generator,
    dtype: np.dtype,
    std: float = 1.0,
) -> Tensor:
    """Zero-mean normal draws with standard deviation `std`."""
    w = rng.standard_normal(shape) * float(std)
    return Tensor._from_buffer(w.astype(dtype, copy=False))
