"""
CPU 2x2 max-pooling kernel (NumPy backend).

`pool2x2` slides a non-overlapping 2x2 window with stride 2 over a tensor and
keeps the maximum of each window.

Design notes
------------
- No padding: output extents are `floor(rows / 2) x floor(cols / 2)`, and a
  trailing odd row or column is dropped.
- Work is fanned out over output rows; each task reads the two input rows that
  feed its output rows and writes only those output rows.
- Ties need no special handling since the maximum is order-independent.
"""

from __future__ import annotations

from typing import Optional, Union, overload

import numpy as np

from ...domain._errors import InputTooSmallError
from ..parallel._worker_pool import Partition, WorkerPool, resolve_pool
from ..tensor._tensor import Tensor
from ..tensor._volume import Volume
from ._kernel_utils import empty_output, map_channels, require_tensor


def pool2x2_out_hw(rows: int, cols: int) -> tuple[int, int]:
    """
    Output extents of a 2x2/stride-2 max pool over a `rows x cols` input.

    Raises
    ------
    InputTooSmallError
        If either output extent would be zero.
    """
    h_out, w_out = int(rows) // 2, int(cols) // 2
    if h_out == 0 or w_out == 0:
        raise InputTooSmallError("pool2x2", "2x2", f"{rows}x{cols}")
    return h_out, w_out


def _pool2x2_tensor(m: Tensor, pool: Optional[WorkerPool]) -> Tensor:
    m = require_tensor("pool2x2", m)
    h_out, w_out = pool2x2_out_hw(m.rows, m.cols)
    pool = resolve_pool(pool)

    src = m.data
    out = empty_output(h_out, w_out, m.dtype)

    def task(part: Partition) -> None:
        n = part.size
        window = src[2 * part.start : 2 * part.stop, : 2 * w_out]
        out[part.start : part.stop] = window.reshape(n, 2, w_out, 2).max(axis=(1, 3))

    pool.run("pool2x2", h_out, task)
    return Tensor._from_buffer(out)


@overload
def pool2x2(m: Tensor, *, pool: Optional[WorkerPool] = None) -> Tensor: ...


@overload
def pool2x2(m: Volume, *, pool: Optional[WorkerPool] = None) -> Volume: ...


def pool2x2(
    m: Union[Tensor, Volume], *, pool: Optional[WorkerPool] = None
) -> Union[Tensor, Volume]:
    """
    2x2 max pooling with stride 2.

    Parameters
    ----------
    m : Tensor or Volume
        Input of extents `rows x cols`, with `rows >= 2` and `cols >= 2`.
        Volumes are pooled channel by channel.
    pool : Optional[WorkerPool], optional
        Pool to fan out on. Defaults to the process-wide pool.

    Returns
    -------
    Tensor or Volume
        Output of extents `floor(rows / 2) x floor(cols / 2)`.

    Raises
    ------
    InputTooSmallError
        If `rows < 2` or `cols < 2`.
    """
    if isinstance(m, Volume):
        pool2x2_out_hw(m.rows, m.cols)
        return map_channels("pool2x2", m, lambda ch: _pool2x2_tensor(ch, pool), pool)
    return _pool2x2_tensor(m, pool)


__all__ = ["pool2x2", "pool2x2_out_hw"]
