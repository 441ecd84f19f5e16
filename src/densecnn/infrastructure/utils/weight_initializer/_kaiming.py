"""
Kaiming (He) weight initializer.

``kaiming`` draws from a zero-mean normal distribution with
``std = sqrt(2 / fan_in)``, the usual choice for ReLU layers.
"""

import math

import numpy as np

from ._base import WeightInitializer
from ...tensor._tensor import Tensor
from ....domain.utils._weight_initialization import _calculate_fan_in


@WeightInitializer.register_initializer("kaiming")
def kaiming(
    shape: tuple[int, int], rng: np.random.Generator, dtype: np.dtype
) -> Tensor:
    fan_in = max(1, int(_calculate_fan_in(shape)))
    std = math.sqrt(2.0 / float(fan_in))
    w = rng.standard_normal(shape) * std
    return Tensor._from_buffer(w.astype(dtype, copy=False))
