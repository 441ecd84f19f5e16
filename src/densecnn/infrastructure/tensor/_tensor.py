"""
NumPy-backed dense tensor buffer.

`Tensor` is the physical substrate every kernel reads and writes: a
two-dimensional, C-contiguous (row-major) NumPy array of `float32` or
`float64` values with explicit `rows x cols` extents.

Design notes
------------
- Tensors are immutable. The backing array is flagged read-only as soon as a
  tensor is constructed, so kernels can share inputs between worker threads
  without copying and cannot accidentally write into them.
- Element addressing goes through `index(row, col)`, which bounds-checks and
  returns the flat row-major offset `row * cols + col`.
- Kernels build their outputs in a private writable array and hand it over
  with `Tensor._from_buffer`, which freezes it without copying.
- A vector is a `1 x n` tensor.
"""

from __future__ import annotations

from typing import Any, Optional, Union

import numpy as np

from ...domain._errors import DimensionMismatchError, RangeViolationError
from ...domain._tensor import ITensor
from ..config._engine_config import get_config

DTypeLike = Union[np.dtype, type, str, None]

_FLOAT_DTYPES = (np.dtype(np.float32), np.dtype(np.float64))


def resolve_dtype(dtype: DTypeLike, data: Any = None) -> np.dtype:
    """
    Resolve the dtype a new tensor should use.

    Resolution order: the explicit `dtype`, then the dtype of `data` when it
    is already a float32/float64 array, then the engine default.

    Raises
    ------
    TypeError
        If the resolved dtype is not float32 or float64.
    """
    if dtype is None:
        data_dtype = getattr(data, "dtype", None)
        if data_dtype is not None and np.dtype(data_dtype) in _FLOAT_DTYPES:
            return np.dtype(data_dtype)
        return np.dtype(get_config().dtype)

    resolved = np.dtype(dtype)
    if resolved not in _FLOAT_DTYPES:
        raise TypeError(f"Tensor dtype must be float32 or float64, got {resolved}")
    return resolved


def _check_extent(name: str, value: Any) -> int:
    try:
        extent = int(value)
    except (TypeError, ValueError):
        raise RangeViolationError(name, value, "a positive integer") from None
    if extent <= 0 or extent != value:
        raise RangeViolationError(name, value, "a positive integer")
    return extent


class Tensor(ITensor):
    """
    Immutable, row-major `rows x cols` buffer of real numbers.

    Parameters
    ----------
    rows : int
        Number of rows (must be positive).
    cols : int
        Number of columns (must be positive).
    data : array-like, optional
        Values to wrap, in row-major order. Any array-like holding exactly
        `rows * cols` numbers is accepted (nested lists, flat lists, NumPy
        arrays of any shape). The values are copied. When omitted, the tensor
        is zero-initialized.
    dtype : dtype-like, optional
        `float32` or `float64`. Defaults to the dtype of `data` when it is a
        float array, otherwise to the engine default.

    Raises
    ------
    RangeViolationError
        If `rows` or `cols` is not a positive integer.
    DimensionMismatchError
        If `data` does not hold exactly `rows * cols` values.
    TypeError
        If `dtype` is not a supported floating point type.
    """

    __slots__ = ("_data",)

    def __init__(
        self,
        rows: int,
        cols: int,
        data: Any = None,
        *,
        dtype: DTypeLike = None,
    ) -> None:
        rows = _check_extent("rows", rows)
        cols = _check_extent("cols", cols)
        dt = resolve_dtype(dtype, data)

        if data is None:
            arr = np.zeros((rows, cols), dtype=dt)
        else:
            arr = np.array(data, dtype=dt, copy=True, order="C")
            if arr.size != rows * cols:
                raise DimensionMismatchError(
                    "tensor",
                    (rows, cols),
                    tuple(arr.shape),
                    message=(
                        f"tensor: {rows}x{cols} requires {rows * cols} values, "
                        f"got {arr.size}."
                    ),
                )
            arr = arr.reshape(rows, cols)

        arr.setflags(write=False)
        self._data = arr

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------
    @classmethod
    def _from_buffer(cls, buffer: np.ndarray) -> "Tensor":
        """
        Adopt a freshly written 2D kernel output without copying.

        The caller must own `buffer` exclusively; it is frozen in place.
        """
        if buffer.ndim != 2 or 0 in buffer.shape:
            raise RangeViolationError("buffer", buffer.shape, "a non-empty 2D shape")
        if not buffer.flags["C_CONTIGUOUS"]:
            buffer = np.ascontiguousarray(buffer)
        buffer.setflags(write=False)
        t = cls.__new__(cls)
        t._data = buffer
        return t

    @classmethod
    def zeros(cls, rows: int, cols: int, *, dtype: DTypeLike = None) -> "Tensor":
        """Create a zero-initialized tensor."""
        return cls(rows, cols, dtype=dtype)

    @classmethod
    def full(
        cls, rows: int, cols: int, value: float, *, dtype: DTypeLike = None
    ) -> "Tensor":
        """Create a tensor with every element set to `value`."""
        rows = _check_extent("rows", rows)
        cols = _check_extent("cols", cols)
        buffer = np.full((rows, cols), value, dtype=resolve_dtype(dtype))
        return cls._from_buffer(buffer)

    @classmethod
    def from_numpy(cls, arr: Any, *, dtype: DTypeLike = None) -> "Tensor":
        """
        Wrap (a copy of) a 1D or 2D array.

        A 1D array becomes a `1 x n` vector.

        Raises
        ------
        DimensionMismatchError
            If `arr` is not 1D or 2D.
        """
        a = np.asarray(arr)
        if a.ndim == 1:
            return cls(1, a.shape[0], a, dtype=dtype)
        if a.ndim == 2:
            return cls(a.shape[0], a.shape[1], a, dtype=dtype)
        raise DimensionMismatchError("tensor", "1D or 2D data", f"{a.ndim}D data")

    @classmethod
    def vector(cls, values: Any, *, dtype: DTypeLike = None) -> "Tensor":
        """Create a `1 x n` vector from a flat sequence of values."""
        a = np.asarray(values).reshape(-1)
        if a.size == 0:
            raise RangeViolationError("cols", 0, "a positive integer")
        return cls(1, a.size, a, dtype=dtype)

    # ------------------------------------------------------------------
    # Extents and addressing
    # ------------------------------------------------------------------
    @property
    def rows(self) -> int:
        return int(self._data.shape[0])

    @property
    def cols(self) -> int:
        return int(self._data.shape[1])

    @property
    def shape(self) -> tuple[int, int]:
        return (self.rows, self.cols)

    @property
    def size(self) -> int:
        return int(self._data.size)

    @property
    def dtype(self) -> np.dtype:
        return self._data.dtype

    @property
    def is_vector(self) -> bool:
        return self.rows == 1

    @property
    def data(self) -> np.ndarray:
        """Read-only `(rows, cols)` view of the buffer."""
        return self._data

    @property
    def flat(self) -> np.ndarray:
        """Read-only 1D row-major view of the buffer."""
        return self._data.reshape(-1)

    def index(self, row: int, col: int) -> int:
        """
        Return the flat row-major offset of element `(row, col)`.

        Raises
        ------
        IndexError
            If `row` or `col` is out of range.
        """
        if not 0 <= row < self.rows:
            raise IndexError(f"row {row} out of range for {self.rows} rows")
        if not 0 <= col < self.cols:
            raise IndexError(f"col {col} out of range for {self.cols} cols")
        return row * self.cols + col

    def __getitem__(self, key: Union[int, tuple[int, int]]) -> float:
        """
        Read one element.

        `t[row, col]` addresses any tensor; `t[i]` addresses the i-th element
        of a vector.
        """
        if isinstance(key, tuple):
            row, col = key
            return float(self.flat[self.index(int(row), int(col))])
        if not self.is_vector:
            raise TypeError("single-integer indexing is only defined for vectors")
        return float(self.flat[self.index(0, int(key))])

    # ------------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------------
    def to_numpy(self) -> np.ndarray:
        """Return a writable `(rows, cols)` copy."""
        return self._data.copy()

    def tolist(self) -> list:
        return self._data.tolist()

    def astype(self, dtype: DTypeLike) -> "Tensor":
        """Return a copy converted to `dtype`."""
        return Tensor._from_buffer(self._data.astype(resolve_dtype(dtype), copy=True))

    def reshape(self, rows: int, cols: int) -> "Tensor":
        """
        Reinterpret the row-major buffer with new extents.

        Raises
        ------
        DimensionMismatchError
            If `rows * cols` differs from `size`.
        """
        return Tensor(rows, cols, self._data, dtype=self.dtype)

    def allclose(
        self, other: "Tensor", *, rtol: float = 1e-7, atol: float = 0.0
    ) -> bool:
        """Whether `other` has the same extents and numerically close values."""
        return self.shape == other.shape and bool(
            np.allclose(self._data, other._data, rtol=rtol, atol=atol)
        )

    # ------------------------------------------------------------------
    # Dunder
    # ------------------------------------------------------------------
    def __eq__(self, other: object) -> bool:
        """Exact equality of extents and values."""
        if not isinstance(other, Tensor):
            return NotImplemented
        return self.shape == other.shape and bool(
            np.array_equal(self._data, other._data)
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Tensor(rows={self.rows}, cols={self.cols}, dtype={self.dtype.name})"
