"""
CPU volume flatten kernel (NumPy backend).
"""

from __future__ import annotations

from typing import Optional, Sequence, Union

from ..parallel._worker_pool import Partition, WorkerPool, resolve_pool
from ..tensor._tensor import Tensor
from ..tensor._volume import Volume
from ._kernel_utils import as_volume, empty_output


def flatten(
    volume: Union[Volume, Sequence[Tensor]],
    *,
    pool: Optional[WorkerPool] = None,
) -> Tensor:
    """
    Concatenate the channels of a volume into one row vector.

    Layout is channel-major: channel `i` (row-major) occupies the contiguous
    slice `[i * h * w, (i + 1) * h * w)` of the result. Channels are copied
    in parallel since their destination slices are disjoint.

    Parameters
    ----------
    volume : Volume or Sequence[Tensor]
        Non-empty stack of equally-shaped tensors.
    pool : Optional[WorkerPool], optional
        Pool to fan out on (over channels).

    Returns
    -------
    Tensor
        A `1 x (depth * h * w)` vector.

    Raises
    ------
    EmptyInputError
        If `volume` holds no channels.
    DimensionMismatchError
        If a plain sequence mixes channel extents.
    """
    vol = as_volume("flatten", volume)
    pool = resolve_pool(pool)

    hw = vol.rows * vol.cols
    out = empty_output(1, vol.depth * hw, vol.dtype)
    dst = out[0]

    def task(part: Partition) -> None:
        for i in range(part.start, part.stop):
            dst[i * hw : (i + 1) * hw] = vol[i].flat

    pool.run("flatten", vol.depth, task)
    return Tensor._from_buffer(out)


def unflatten(v: Tensor, depth: int, rows: int, cols: int) -> Volume:
    """
    Inverse of `flatten`: split a vector back into `depth` channels.

    Raises
    ------
    DimensionMismatchError
        If `v.size != depth * rows * cols`.
    """
    channels = v.reshape(depth, rows * cols).data
    return Volume.from_numpy(channels.reshape(depth, rows, cols))


__all__ = ["flatten", "unflatten"]
