"""
CPU stochastic perturbation kernel (NumPy backend).

`randomize` replaces each element, with a given probability, by a fresh
uniform draw in `[0, 1)` and copies it unchanged otherwise.

Design notes
------------
- Each partition gets its own `numpy.random.Generator`, spawned from the
  process-wide `RandomSource` for this call only. Generators are never shared
  between workers.
- All generators are spawned on the calling thread before fan-out, in
  channel order for volumes, so a seeded source yields the same output for
  a given pool size regardless of thread scheduling.
- Replacement is decided by a single Bernoulli test `u < probability`, so the
  effective replacement rate is exactly `probability`; with `probability=0`
  the output equals the input and with `probability=1` every element is drawn
  fresh.
- Replacement values are drawn in the tensor's own dtype, which keeps float32
  draws strictly below 1.0.
"""

from __future__ import annotations

import math
from numbers import Real
from typing import List, Optional, Sequence, Union

import numpy as np

from ...domain._errors import RangeViolationError
from ..parallel._random import RandomSource, get_random_source
from ..parallel._worker_pool import Partition, WorkerPool, resolve_pool
from ..tensor._tensor import Tensor
from ..tensor._volume import Volume
from ._kernel_utils import (
    element_span,
    element_units,
    empty_output,
    require_tensor,
)


def _check_probability(probability: object) -> float:
    if isinstance(probability, bool) or not isinstance(probability, Real):
        raise RangeViolationError(
            "probability", probability, "a real number in [0, 1]"
        )
    p = float(probability)
    if math.isnan(p) or not 0.0 <= p <= 1.0:
        raise RangeViolationError("probability", probability, "in [0, 1]")
    return p


def _randomize_tensor(
    x: Tensor,
    p: float,
    pool: WorkerPool,
    generators: Sequence[np.random.Generator],
) -> Tensor:
    n_units = element_units(x.size)

    src = x.flat
    out = empty_output(x.rows, x.cols, x.dtype)
    dst = out.reshape(-1)

    def task(part: Partition) -> None:
        rng = generators[part.index]
        start, stop = element_span(part, x.size)
        n = stop - start
        replace = rng.random(n) < p
        fresh = rng.random(n, dtype=x.dtype)
        dst[start:stop] = np.where(replace, fresh, src[start:stop])

    pool.run("randomize", n_units, task)
    return Tensor._from_buffer(out)


def randomize(
    x: Union[Tensor, Volume],
    probability: float,
    *,
    pool: Optional[WorkerPool] = None,
    source: Optional[RandomSource] = None,
) -> Union[Tensor, Volume]:
    """
    Replace elements by uniform `[0, 1)` draws with the given probability.

    Parameters
    ----------
    x : Tensor or Volume
        Input data (vector, matrix, or volume of matrices).
    probability : float
        Per-element replacement probability, in `[0, 1]`.
    pool : Optional[WorkerPool], optional
        Pool to fan out on. Defaults to the process-wide pool.
    source : Optional[RandomSource], optional
        Source of per-partition generators. Defaults to the process-wide
        source (seeded by ``DENSECNN_SEED`` when set).

    Returns
    -------
    Tensor or Volume
        Fresh output with the same extents and dtype as `x`.

    Raises
    ------
    RangeViolationError
        If `probability` is not a real number in `[0, 1]` (NaN included).
    """
    p = _check_probability(probability)
    pool = resolve_pool(pool)
    source = get_random_source() if source is None else source

    if isinstance(x, Volume):
        per_channel = len(pool.partition(element_units(x.rows * x.cols)))
        generators = source.spawn(x.depth * per_channel)

        outputs: List[Optional[Tensor]] = [None] * x.depth

        def task(part: Partition) -> None:
            for c in range(part.start, part.stop):
                start = c * per_channel
                outputs[c] = _randomize_tensor(
                    x[c], p, pool, generators[start : start + per_channel]
                )

        pool.run("randomize", x.depth, task)
        return Volume(outputs)  # type: ignore[arg-type]

    x = require_tensor("randomize", x)
    n_parts = len(pool.partition(element_units(x.size)))
    return _randomize_tensor(x, p, pool, source.spawn(n_parts))


__all__ = ["randomize"]
