"""
Tensor and volume interface definitions.

This module defines the domain-level interfaces for the two buffer types every
kernel consumes and produces, using structural typing so that kernels and
layers can type against the contract rather than the concrete NumPy-backed
implementation.

Notes
-----
- A tensor is always two-dimensional (`rows x cols`) and addressed in
  row-major order. A vector is represented as a `1 x n` tensor.
- Buffers are immutable once produced: a kernel never writes into one of its
  inputs and always returns a freshly allocated result.
"""

from __future__ import annotations

from typing import Iterator, Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class ITensor(Protocol):
    """
    Dense, row-major, two-dimensional buffer of real numbers.

    Notes
    -----
    - `rows > 0` and `cols > 0` always hold for a constructed tensor.
    - `index(row, col)` is the single addressing function: every flat offset
      into the buffer is computed as `row * cols + col`.
    """

    @property
    def rows(self) -> int:
        """Number of rows."""
        ...

    @property
    def cols(self) -> int:
        """Number of columns."""
        ...

    @property
    def shape(self) -> tuple[int, int]:
        """The `(rows, cols)` extents."""
        ...

    @property
    def size(self) -> int:
        """Total number of elements (`rows * cols`)."""
        ...

    @property
    def dtype(self) -> np.dtype:
        """Floating point dtype of the buffer (float32 or float64)."""
        ...

    @property
    def is_vector(self) -> bool:
        """Whether this tensor is a `1 x n` row vector."""
        ...

    def index(self, row: int, col: int) -> int:
        """
        Return the flat, row-major offset of element `(row, col)`.

        Raises
        ------
        IndexError
            If the coordinates fall outside the tensor extents.
        """
        ...

    def to_numpy(self) -> np.ndarray:
        """Return a writable `(rows, cols)` copy of the buffer."""
        ...


@runtime_checkable
class IVolume(Protocol):
    """
    Ordered, non-empty stack of equally-shaped tensors (channels).
    """

    @property
    def depth(self) -> int:
        """Number of channels."""
        ...

    @property
    def rows(self) -> int:
        """Rows shared by every channel."""
        ...

    @property
    def cols(self) -> int:
        """Columns shared by every channel."""
        ...

    def __len__(self) -> int: ...

    def __iter__(self) -> Iterator[ITensor]: ...

    def __getitem__(self, channel: int) -> ITensor: ...

    def to_numpy(self) -> np.ndarray:
        """Return a writable `(depth, rows, cols)` copy of the volume."""
        ...
