"""
Abstract interfaces and utilities for weight initialization.

This module defines the abstract base class for weight initializer
dispatchers, along with shared helpers for computing fan-in and fan-out values
from buffer shapes.

The concrete registry lives in the infrastructure layer. Choosing *which*
initializer a layer uses is a caller policy; this module only defines the
contract an initializer satisfies.

Shape convention
----------------
Weights are stored as `(input_size, output_size)` so that a forward step is
`x @ W`. Fan-in is therefore the number of rows and fan-out the number of
columns, the opposite of the `(out, in)` layout used by some frameworks.
"""

from __future__ import annotations

from abc import ABC
from typing import Callable, Dict, TypeVar

import numpy as np

from .._tensor import ITensor


T = TypeVar("T", bound=Callable[..., ITensor])


class _WeightInitializer(ABC):
    """
    Abstract base class for weight initializer dispatchers.

    Design notes
    ------------
    - Initializers are identified by string names.
    - An initializer is a callable `(shape, rng, dtype) -> ITensor` that
      allocates a freshly initialized buffer. Buffers are immutable, so
      initializers never mutate an existing tensor.
    """

    INITIALIZERS: Dict[str, Callable] = {}

    def __init__(self, initializer_name: str) -> None:
        """
        Construct a weight initializer dispatcher.

        Parameters
        ----------
        initializer_name:
            The string key identifying a registered initializer.
        """
        ...

    @classmethod
    def register_initializer(
        cls, name: str, *, overwrite: bool = False
    ) -> Callable[[T], T]:
        """
        Register a weight initializer under a given name.

        Parameters
        ----------
        name:
            Name used to identify the initializer.
        overwrite:
            Whether to allow overwriting an existing registration.

        Returns
        -------
        Callable
            A decorator that registers the initializer function.
        """
        ...

    @classmethod
    def available(cls) -> tuple[str, ...]:
        """
        Return the names of all registered initializers, sorted.
        """
        ...

    @classmethod
    def get(cls, name: str) -> Callable[..., ITensor]:
        """
        Get a registered initializer callable by name.
        """
        ...

    def __call__(
        self,
        shape: tuple[int, int],
        *,
        rng: np.random.Generator | None = None,
        dtype: np.dtype | type = np.float64,
    ) -> ITensor:
        """
        Allocate and initialize a buffer of the given shape.

        Parameters
        ----------
        shape:
            `(rows, cols)` of the buffer to create.
        rng:
            Random generator. A fresh, OS-seeded generator is used when None.
        dtype:
            Floating point dtype of the result.

        Returns
        -------
        ITensor
            The initialized buffer.
        """
        ...


def _calculate_fan_in_and_fan_out(shape: tuple[int, ...]) -> tuple[int, int]:
    """
    Compute fan-in and fan-out for a buffer shape.

    Parameters
    ----------
    shape:
        `(input_size, output_size)` for weight matrices, or `(1, n)` for bias
        vectors.

    Returns
    -------
    tuple[int, int]
        A tuple of (fan_in, fan_out).
    """
    if len(shape) == 0:
        return 1, 1
    if len(shape) == 1:
        return int(shape[0]), int(shape[0])
    rows, cols = int(shape[0]), int(shape[1])
    if rows == 1:
        # bias-like row vector
        return cols, cols
    return rows, cols


def _calculate_fan_in(shape: tuple[int, ...]) -> int:
    """
    Compute the fan-in (number of inputs feeding one output unit).
    """
    return _calculate_fan_in_and_fan_out(shape)[0]
