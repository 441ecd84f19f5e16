"""
CPU fully-connected (affine) forward kernel (NumPy backend).

Computes `z = x @ W + b`, with the bias broadcast across the rows of `x`.
The product goes through `matmul` (fanned out over rows of `x`); the bias is
then added row by row on the same pool, so results do not depend on the
number of workers.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ...domain._errors import DimensionMismatchError
from ..parallel._worker_pool import Partition, WorkerPool, resolve_pool
from ..tensor._tensor import Tensor
from ._kernel_utils import empty_output, require_tensor
from .matmul_cpu import matmul


def fully_connected_forward(
    x: Tensor,
    weights: Tensor,
    biases: Tensor,
    *,
    pool: Optional[WorkerPool] = None,
) -> Tensor:
    """
    Affine transform of a batch of row vectors.

    Parameters
    ----------
    x : Tensor
        Input of extents `n x input_size` (a vector is `1 x input_size`).
    weights : Tensor
        Weights of extents `input_size x output_size`.
    biases : Tensor
        Bias vector of length `output_size`.
    pool : Optional[WorkerPool], optional
        Pool to fan out on (over rows of `x`).

    Returns
    -------
    Tensor
        Pre-activation output of extents `n x output_size`.

    Raises
    ------
    DimensionMismatchError
        If `x.cols != weights.rows`, or `biases` is not a vector of length
        `weights.cols`.
    """
    x = require_tensor("fully_connected", x, "x")
    weights = require_tensor("fully_connected", weights, "weights")
    biases = require_tensor("fully_connected", biases, "biases")

    if x.cols != weights.rows:
        raise DimensionMismatchError(
            "fully_connected",
            weights.rows,
            x.cols,
            message=(
                f"fully_connected: input has {x.cols} features, "
                f"weights expect {weights.rows}."
            ),
        )
    if not biases.is_vector or biases.size != weights.cols:
        raise DimensionMismatchError(
            "fully_connected", (1, weights.cols), biases.shape
        )
    pool = resolve_pool(pool)

    product = matmul(x, weights, pool=pool)
    dtype = np.result_type(product.dtype, biases.dtype)
    xw = product.data
    b = biases.flat.astype(dtype, copy=False)
    out = empty_output(x.rows, weights.cols, dtype)

    def task(part: Partition) -> None:
        np.add(xw[part.start : part.stop], b, out=out[part.start : part.stop])

    pool.run("fully_connected", x.rows, task)
    return Tensor._from_buffer(out)


__all__ = ["fully_connected_forward"]
