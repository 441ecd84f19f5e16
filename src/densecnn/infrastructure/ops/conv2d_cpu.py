"""
CPU 3x3 normalized convolution kernel (NumPy backend).

`convolute3x3` cross-correlates a tensor with a fixed 3x3 kernel and divides
every output cell by the kernel's L1 norm (the sum of its absolute weights).

Design notes
------------
- No padding and stride 1: output extents are `(rows - 2) x (cols - 2)`.
- Work is fanned out over output rows. Each task accumulates the nine kernel
  taps in a fixed row-major order over its own block of rows, so every output
  cell is computed by exactly the same sequence of operations no matter how
  the rows are partitioned.
- An all-zero kernel has a zero normalization factor; the result is NaN/Inf
  in every cell and no error is raised.
"""

from __future__ import annotations

from typing import Optional, Union, overload

import numpy as np

from ...domain._errors import InputTooSmallError, KernelSizeError
from ..parallel._worker_pool import Partition, WorkerPool, resolve_pool
from ..tensor._tensor import Tensor
from ..tensor._volume import Volume
from ._kernel_utils import empty_output, map_channels, require_tensor

KERNEL_SIZE = 3


def _check_kernel(kernel: Tensor) -> None:
    kernel = require_tensor("convolute3x3", kernel, "kernel")
    if kernel.shape != (KERNEL_SIZE, KERNEL_SIZE):
        raise KernelSizeError(
            "convolute3x3", "3x3", f"{kernel.rows}x{kernel.cols}"
        )


def conv3x3_out_hw(rows: int, cols: int) -> tuple[int, int]:
    """
    Output extents of a 3x3 valid convolution over a `rows x cols` input.

    Raises
    ------
    InputTooSmallError
        If the input is smaller than 3x3.
    """
    if rows < KERNEL_SIZE or cols < KERNEL_SIZE:
        raise InputTooSmallError("convolute3x3", "3x3", f"{rows}x{cols}")
    return rows - (KERNEL_SIZE - 1), cols - (KERNEL_SIZE - 1)


def l1_norm(kernel: Tensor) -> float:
    """Sum of the absolute values of `kernel`, accumulated in row-major order."""
    total = kernel.dtype.type(0)
    for v in kernel.flat:
        total = total + abs(v)
    return total


def _convolute3x3_tensor(
    m: Tensor, kernel: Tensor, pool: Optional[WorkerPool]
) -> Tensor:
    m = require_tensor("convolute3x3", m, "m")
    _check_kernel(kernel)
    h_out, w_out = conv3x3_out_hw(m.rows, m.cols)
    pool = resolve_pool(pool)

    dtype = np.result_type(m.dtype, kernel.dtype)
    src = m.data
    taps = kernel.data.astype(dtype)
    factor = dtype.type(l1_norm(kernel))
    out = empty_output(h_out, w_out, dtype)

    def task(part: Partition) -> None:
        r0, r1 = part.start, part.stop
        acc = np.zeros((part.size, w_out), dtype=dtype)
        for a in range(KERNEL_SIZE):
            for b in range(KERNEL_SIZE):
                acc += taps[a, b] * src[r0 + a : r1 + a, b : b + w_out]
        with np.errstate(divide="ignore", invalid="ignore"):
            out[r0:r1] = acc / factor

    pool.run("convolute3x3", h_out, task)
    return Tensor._from_buffer(out)


@overload
def convolute3x3(
    m: Tensor, kernel: Tensor, *, pool: Optional[WorkerPool] = None
) -> Tensor: ...


@overload
def convolute3x3(
    m: Volume, kernel: Tensor, *, pool: Optional[WorkerPool] = None
) -> Volume: ...


def convolute3x3(
    m: Union[Tensor, Volume],
    kernel: Tensor,
    *,
    pool: Optional[WorkerPool] = None,
) -> Union[Tensor, Volume]:
    """
    Normalized 3x3 cross-correlation without padding.

    Each output cell is

        out[i, j] = sum_{a,b} kernel[a, b] * m[i + a, j + b] / sum |kernel|

    Parameters
    ----------
    m : Tensor or Volume
        Input of extents at least 3x3. Volumes are convolved channel by
        channel with the same kernel.
    kernel : Tensor
        A 3x3 weight tensor, used read-only.
    pool : Optional[WorkerPool], optional
        Pool to fan out on. Defaults to the process-wide pool.

    Returns
    -------
    Tensor or Volume
        Output of extents `(rows - 2) x (cols - 2)`.

    Raises
    ------
    KernelSizeError
        If `kernel` is not 3x3.
    InputTooSmallError
        If `m` is smaller than 3x3.
    """
    if isinstance(m, Volume):
        _check_kernel(kernel)
        conv3x3_out_hw(m.rows, m.cols)
        return map_channels(
            "convolute3x3",
            m,
            lambda ch: _convolute3x3_tensor(ch, kernel, pool),
            pool,
        )
    return _convolute3x3_tensor(m, kernel, pool)


__all__ = ["convolute3x3", "conv3x3_out_hw", "l1_norm", "KERNEL_SIZE"]
