"""
CPU elementwise and reduction kernels (NumPy backend).

Every kernel in this module is a pure function of its input: it allocates a
fresh output tensor and never touches the input buffer. Tensors are fanned out
over contiguous blocks of the flat row-major buffer; volumes are fanned out
channel by channel.

Implemented kernels
-------------------
- normalize      : divide every element by the tensor's maximum
- relu           : max(0, x)
- sigmoid        : 1 / (1 + e^{-x})
- sigmoid_prime  : e^{-x} / (1 + e^{-x})^2

Design notes
------------
- Degenerate inputs are not guarded. `normalize` on a tensor without a
  positive element divides by zero and yields NaN/Inf values; NumPy's
  floating point warnings are silenced for these cases.
- `sigmoid_prime` is evaluated through `e^{-|x|}`, which is algebraically
  identical (the derivative is an even function) and cannot overflow.
"""

from __future__ import annotations

from typing import List, Optional, Union, overload

import numpy as np

from ..parallel._worker_pool import Partition, WorkerPool, resolve_pool
from ..tensor._tensor import Tensor
from ..tensor._volume import Volume
from ._kernel_utils import (
    element_span,
    element_units,
    map_channels,
    map_elementwise,
    require_tensor,
)

TensorOrVolume = Union[Tensor, Volume]


def _max_scan(x: Tensor, pool: WorkerPool) -> float:
    """
    Parallel maximum of `x`, seeded with 0.0.

    NaN elements never win the comparison (`np.fmax` semantics).
    """
    src = x.flat
    n_units = element_units(x.size)
    partials: List[float] = [0.0] * len(pool.partition(n_units))

    def task(part: Partition) -> None:
        start, stop = element_span(part, x.size)
        partials[part.index] = float(np.fmax.reduce(src[start:stop], initial=0.0))

    pool.run("normalize", n_units, task)
    return max(partials)


def _normalize_tensor(x: Tensor, pool: Optional[WorkerPool]) -> Tensor:
    x = require_tensor("normalize", x)
    pool = resolve_pool(pool)
    peak = x.dtype.type(_max_scan(x, pool))

    def fn(chunk: np.ndarray) -> np.ndarray:
        with np.errstate(divide="ignore", invalid="ignore"):
            return chunk / peak

    return map_elementwise("normalize", x, fn, pool)


def _relu_chunk(chunk: np.ndarray) -> np.ndarray:
    return np.where(chunk >= 0, chunk, chunk.dtype.type(0))


def _sigmoid_chunk(chunk: np.ndarray) -> np.ndarray:
    with np.errstate(over="ignore"):
        return 1.0 / (1.0 + np.exp(-chunk))


def _sigmoid_prime_chunk(chunk: np.ndarray) -> np.ndarray:
    e = np.exp(-np.abs(chunk))
    return e / ((1.0 + e) * (1.0 + e))


@overload
def normalize(x: Tensor, *, pool: Optional[WorkerPool] = None) -> Tensor: ...


@overload
def normalize(x: Volume, *, pool: Optional[WorkerPool] = None) -> Volume: ...


def normalize(x, *, pool=None):
    """
    Divide every element by the maximum element.

    The maximum scan starts at 0.0, so a tensor whose elements are all
    non-positive is divided by zero and yields NaN/Inf values. Volumes are
    normalized channel by channel, each by its own maximum.

    Parameters
    ----------
    x : Tensor or Volume
        Input data.
    pool : Optional[WorkerPool], optional
        Pool to fan out on. Defaults to the process-wide pool.

    Returns
    -------
    Tensor or Volume
        Fresh normalized output with the same extents as `x`.
    """
    if isinstance(x, Volume):
        return map_channels(
            "normalize", x, lambda ch: _normalize_tensor(ch, pool), pool
        )
    return _normalize_tensor(x, pool)


def relu(x: TensorOrVolume, *, pool: Optional[WorkerPool] = None) -> TensorOrVolume:
    """
    Rectified linear unit, `max(0, x)` elementwise.

    NaN inputs map to 0.
    """
    if isinstance(x, Volume):
        return map_channels("relu", x, lambda ch: relu(ch, pool=pool), pool)
    return map_elementwise("relu", require_tensor("relu", x), _relu_chunk, pool)


def sigmoid(
    x: TensorOrVolume, *, pool: Optional[WorkerPool] = None
) -> TensorOrVolume:
    """
    Logistic sigmoid, `1 / (1 + e^{-x})` elementwise.

    Accepts vectors and matrices alike (a vector is a `1 x n` tensor).
    """
    if isinstance(x, Volume):
        return map_channels("sigmoid", x, lambda ch: sigmoid(ch, pool=pool), pool)
    return map_elementwise(
        "sigmoid", require_tensor("sigmoid", x), _sigmoid_chunk, pool
    )


def sigmoid_prime(
    x: TensorOrVolume, *, pool: Optional[WorkerPool] = None
) -> TensorOrVolume:
    """
    Derivative of the sigmoid, `e^{-x} / (1 + e^{-x})^2` elementwise.

    Used by the backward pass, which lives outside the engine.
    """
    if isinstance(x, Volume):
        return map_channels(
            "sigmoid_prime", x, lambda ch: sigmoid_prime(ch, pool=pool), pool
        )
    return map_elementwise(
        "sigmoid_prime",
        require_tensor("sigmoid_prime", x),
        _sigmoid_prime_chunk,
        pool,
    )


def identity(x: Tensor, *, pool: Optional[WorkerPool] = None) -> Tensor:
    """Return `x` itself; tensors are immutable so no copy is needed."""
    return require_tensor("identity", x)


__all__ = [
    "normalize",
    "relu",
    "sigmoid",
    "sigmoid_prime",
    "identity",
]
