"""
CPU dense linear-algebra kernels (NumPy backend).

Implemented kernels
-------------------
- vector_matrix_multiply : `1 x k` vector times `k x w` matrix
- matmul                 : `h x k` matrix times `k x w` matrix
- multiply               : dispatches to one of the above
- transpose              : `h x w` -> `w x h`

Determinism
-----------
Results are bit-identical for any number of workers. Every output element is
produced by exactly one logical unit of work, and a unit's arithmetic never
depends on which partition it landed in:

- `vector_matrix_multiply` computes one dot product per output column against
  a contiguous copy of the matrix's transpose.
- `matmul` computes one vector-matrix product per output row.
- `transpose` only copies values.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ...domain._errors import DimensionMismatchError
from ..parallel._worker_pool import Partition, WorkerPool, resolve_pool
from ..tensor._tensor import Tensor
from ._kernel_utils import empty_output, require_tensor


def vector_matrix_multiply(
    v: Tensor, m: Tensor, *, pool: Optional[WorkerPool] = None
) -> Tensor:
    """
    Multiply a `1 x k` vector by a `k x w` matrix.

    Parameters
    ----------
    v : Tensor
        Row vector of length `k`.
    m : Tensor
        Matrix with `k` rows.
    pool : Optional[WorkerPool], optional
        Pool to fan out on (over output columns).

    Returns
    -------
    Tensor
        Row vector of length `m.cols`.

    Raises
    ------
    DimensionMismatchError
        If `v` is not a vector or `v.size != m.rows`.
    """
    v = require_tensor("multiply", v, "v")
    m = require_tensor("multiply", m, "m")
    if not v.is_vector:
        raise DimensionMismatchError("multiply", "a 1 x k vector", v.shape)
    if v.size != m.rows:
        raise DimensionMismatchError(
            "multiply",
            m.rows,
            v.size,
            message=(
                f"multiply: vector length {v.size} does not match "
                f"matrix rows {m.rows}."
            ),
        )
    pool = resolve_pool(pool)

    dtype = np.result_type(v.dtype, m.dtype)
    vec = v.flat.astype(dtype, copy=False)
    columns = np.ascontiguousarray(m.data.T, dtype=dtype)
    out = empty_output(1, m.cols, dtype)
    row = out[0]

    def task(part: Partition) -> None:
        for j in range(part.start, part.stop):
            row[j] = np.dot(vec, columns[j])

    pool.run("multiply", m.cols, task)
    return Tensor._from_buffer(out)


def matmul(a: Tensor, b: Tensor, *, pool: Optional[WorkerPool] = None) -> Tensor:
    """
    Dense matrix product `a @ b`.

    Parameters
    ----------
    a : Tensor
        Left operand, `h x k`.
    b : Tensor
        Right operand, `k x w`.
    pool : Optional[WorkerPool], optional
        Pool to fan out on (over output rows).

    Returns
    -------
    Tensor
        Product of extents `h x w`.

    Raises
    ------
    DimensionMismatchError
        If `a.cols != b.rows`.
    """
    a = require_tensor("matmul", a, "a")
    b = require_tensor("matmul", b, "b")
    if a.cols != b.rows:
        raise DimensionMismatchError(
            "matmul",
            a.cols,
            b.rows,
            message=(
                f"matmul: inner dimensions differ, {a.rows}x{a.cols} "
                f"@ {b.rows}x{b.cols}."
            ),
        )
    pool = resolve_pool(pool)

    dtype = np.result_type(a.dtype, b.dtype)
    lhs = a.data.astype(dtype, copy=False)
    rhs = b.data.astype(dtype, copy=False)
    out = empty_output(a.rows, b.cols, dtype)

    def task(part: Partition) -> None:
        for i in range(part.start, part.stop):
            out[i] = np.dot(lhs[i], rhs)

    pool.run("matmul", a.rows, task)
    return Tensor._from_buffer(out)


def multiply(a: Tensor, b: Tensor, *, pool: Optional[WorkerPool] = None) -> Tensor:
    """
    Vector-matrix or matrix-matrix product, chosen by the shape of `a`.

    A `1 x k` left operand goes through `vector_matrix_multiply` (which fans
    out over output columns); anything else through `matmul`.
    """
    if isinstance(a, Tensor) and a.is_vector:
        return vector_matrix_multiply(a, b, pool=pool)
    return matmul(a, b, pool=pool)


def transpose(m: Tensor, *, pool: Optional[WorkerPool] = None) -> Tensor:
    """
    Return the `cols x rows` transpose of `m`, fanned out over output rows.
    """
    m = require_tensor("transpose", m, "m")
    pool = resolve_pool(pool)

    src = m.data
    out = empty_output(m.cols, m.rows, m.dtype)

    def task(part: Partition) -> None:
        out[part.start : part.stop] = src[:, part.start : part.stop].T

    pool.run("transpose", m.cols, task)
    return Tensor._from_buffer(out)


__all__ = ["vector_matrix_multiply", "matmul", "multiply", "transpose"]
