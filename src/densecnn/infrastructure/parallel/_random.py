"""
Independent random generators for parallel partitions.

Random state is never shared between workers. Every stochastic kernel call
asks the process-wide `RandomSource` for one child generator per partition;
children are derived with `numpy.random.SeedSequence.spawn`, which guarantees
statistically independent streams even when the root seed is fixed.

With ``DENSECNN_SEED`` set, a process replays the same sequence of streams for
the same sequence of calls. Without it, the root sequence draws OS entropy.
"""

from __future__ import annotations

import threading
from typing import List, Optional

import numpy as np

from ..config._engine_config import get_config


class RandomSource:
    """
    Thread-safe factory of independent `numpy.random.Generator` objects.

    Parameters
    ----------
    seed : Optional[int], optional
        Root seed. None draws fresh OS entropy.
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        self.seed = seed
        self._root = np.random.SeedSequence(seed)
        self._lock = threading.Lock()

    def spawn(self, count: int) -> List[np.random.Generator]:
        """
        Create `count` generators with independent streams.

        Parameters
        ----------
        count : int
            Number of generators (one per partition).

        Returns
        -------
        List[numpy.random.Generator]
            Fresh generators; consecutive calls never repeat streams.
        """
        if count <= 0:
            raise ValueError("count must be a positive integer")
        with self._lock:
            children = self._root.spawn(int(count))
        return [np.random.default_rng(child) for child in children]

    def generator(self) -> np.random.Generator:
        """Return a single fresh generator."""
        return self.spawn(1)[0]


_SOURCE: Optional[RandomSource] = None
_SOURCE_LOCK = threading.Lock()


def get_random_source() -> RandomSource:
    """
    Return the process-wide random source, seeded from the engine config.
    """
    global _SOURCE
    with _SOURCE_LOCK:
        if _SOURCE is None:
            _SOURCE = RandomSource(get_config().seed)
        return _SOURCE


def reset_random_source(seed: Optional[int] = None) -> None:
    """
    Replace the process-wide random source.

    Parameters
    ----------
    seed : Optional[int], optional
        New root seed. When None, the next `get_random_source()` call reseeds
        from the engine config.
    """
    global _SOURCE
    with _SOURCE_LOCK:
        _SOURCE = None if seed is None else RandomSource(seed)
