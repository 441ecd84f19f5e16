"""
Helpers shared by the CPU kernels.

These helpers keep the "one disjoint output region per task" rule in a single
place: every kernel allocates its output here, describes its work as a number
of logical units, and writes only the slice of the output that belongs to the
partition it is handed.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence, Union

import numpy as np

from ...domain._errors import EmptyInputError
from ..parallel._worker_pool import Partition, WorkerPool, resolve_pool
from ..tensor._tensor import Tensor
from ..tensor._volume import Volume

# Number of scalars handled by one logical unit of an elementwise kernel.
ELEMENT_BLOCK = 4096


def require_tensor(op: str, x: object, name: str = "x") -> Tensor:
    if not isinstance(x, Tensor):
        raise TypeError(f"{op}: '{name}' must be a Tensor, got {type(x).__name__}")
    return x


def as_volume(op: str, x: Union[Volume, Sequence[Tensor]]) -> Volume:
    """
    Accept a `Volume` or a plain sequence of tensors.

    Raises
    ------
    EmptyInputError
        If `x` holds no channels.
    """
    if isinstance(x, Volume):
        return x
    if isinstance(x, Tensor):
        raise TypeError(f"{op}: expected a Volume or a sequence of Tensors")
    channels = list(x)
    if not channels:
        raise EmptyInputError(op)
    return Volume(channels)


def empty_output(rows: int, cols: int, dtype: np.dtype) -> np.ndarray:
    """Allocate a private, writable `(rows, cols)` output buffer."""
    return np.empty((int(rows), int(cols)), dtype=dtype)


def element_units(size: int) -> int:
    """Number of `ELEMENT_BLOCK`-sized units covering `size` scalars."""
    return -(-int(size) // ELEMENT_BLOCK)


def element_span(part: Partition, size: int) -> tuple[int, int]:
    """Flat `[start, stop)` element range covered by a partition of blocks."""
    return part.start * ELEMENT_BLOCK, min(part.stop * ELEMENT_BLOCK, int(size))


def map_elementwise(
    op: str,
    x: Tensor,
    fn: Callable[[np.ndarray], np.ndarray],
    pool: Optional[WorkerPool],
) -> Tensor:
    """
    Apply a pure elementwise `fn` to `x`, fanned out over element blocks.

    `fn` receives a read-only 1D chunk of the input and must return an array
    of the same length; no chunk depends on any other.
    """
    pool = resolve_pool(pool)
    src = x.flat
    out = empty_output(x.rows, x.cols, x.dtype)
    dst = out.reshape(-1)

    def task(part: Partition) -> None:
        start, stop = element_span(part, x.size)
        dst[start:stop] = fn(src[start:stop])

    pool.run(op, element_units(x.size), task)
    return Tensor._from_buffer(out)


def map_channels(
    op: str,
    volume: Volume,
    fn: Callable[[Tensor], Tensor],
    pool: Optional[WorkerPool],
) -> Volume:
    """
    Apply a per-tensor kernel to every channel of `volume`.

    Channels are fanned out across the pool; the per-channel kernel runs
    inline inside its worker.
    """
    pool = resolve_pool(pool)
    results: List[Optional[Tensor]] = [None] * volume.depth

    def task(part: Partition) -> None:
        for i in range(part.start, part.stop):
            results[i] = fn(volume[i])

    pool.run(op, volume.depth, task)
    return Volume(results)  # type: ignore[arg-type]
