"""
Xavier/Glorot weight initializers.

Implemented variants
--------------------
- ``xavier``:
    Xavier normal initialization using ``std = sqrt(2 / (fan_in + fan_out))``.
- ``xavier_uniform``:
    Xavier uniform initialization using
    ``U(-sqrt(6/(fan_in+fan_out)), +sqrt(6/(fan_in+fan_out)))``.

Notes
-----
- Fan-in and fan-out are computed from the `(input_size, output_size)` shape
  via ``_calculate_fan_in_and_fan_out``.
"""

import math

import numpy as np

from ._base import WeightInitializer
from ...tensor._tensor import Tensor
from ....domain.utils._weight_initialization import _calculate_fan_in_and_fan_out


def _fans(shape: tuple[int, int]) -> tuple[int, int]:
    fan_in, fan_out = _calculate_fan_in_and_fan_out(shape)
    return max(1, int(fan_in)), max(1, int(fan_out))


@WeightInitializer.register_initializer("xavier")
def xavier(
    shape: tuple[int, int], rng: np.random.Generator, dtype: np.dtype
) -> Tensor:
    """
    Xavier (Glorot) normal initialization.

    Draws from a zero-mean normal distribution with

        std = sqrt(2 / (fan_in + fan_out))
    """
    fan_in, fan_out = _fans(shape)
    std = math.sqrt(2.0 / float(fan_in + fan_out))
    w = rng.standard_normal(shape) * std
    return Tensor._from_buffer(w.astype(dtype, copy=False))


@WeightInitializer.register_initializer("xavier_uniform")
def xavier_uniform(
    shape: tuple[int, int], rng: np.random.Generator, dtype: np.dtype
) -> Tensor:
    """
    Xavier (Glorot) uniform initialization.

    Draws from U(-bound, +bound), where bound = sqrt(6 / (fan_in + fan_out)).
    """
    fan_in, fan_out = _fans(shape)
    bound = math.sqrt(6.0 / float(fan_in + fan_out))
    w = rng.uniform(-bound, bound, size=shape)
    return Tensor._from_buffer(w.astype(dtype, copy=False))
