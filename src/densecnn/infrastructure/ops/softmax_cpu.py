"""
CPU row-wise softmax kernel (NumPy backend).
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..parallel._worker_pool import Partition, WorkerPool, resolve_pool
from ..tensor._tensor import Tensor
from ._kernel_utils import empty_output, require_tensor


def softmax(z: Tensor, *, pool: Optional[WorkerPool] = None) -> Tensor:
    """
    Row-wise softmax.

    Each row is shifted by its maximum before exponentiation, which leaves
    the result unchanged mathematically but keeps `exp` from overflowing.
    Every output row sums to 1.

    Parameters
    ----------
    z : Tensor
        Pre-activation scores, one distribution per row.
    pool : Optional[WorkerPool], optional
        Pool to fan out on (over rows).

    Returns
    -------
    Tensor
        Probabilities with the same extents as `z`.
    """
    z = require_tensor("softmax", z, "z")
    pool = resolve_pool(pool)

    src = z.data
    out = empty_output(z.rows, z.cols, z.dtype)

    def task(part: Partition) -> None:
        for i in range(part.start, part.stop):
            e = np.exp(src[i] - src[i].max())
            out[i] = e / e.sum()

    pool.run("softmax", z.rows, task)
    return Tensor._from_buffer(out)


__all__ = ["softmax"]
