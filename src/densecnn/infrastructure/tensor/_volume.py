"""
Volume: an ordered stack of equally-shaped tensors.

Convolutional and pooling stages operate on volumes channel by channel; the
flatten kernel turns a volume into the single vector fully-connected layers
consume.
"""

from __future__ import annotations

from typing import Any, Iterable, Iterator, Tuple, Union, overload

import numpy as np

from ...domain._errors import DimensionMismatchError, EmptyInputError
from ...domain._tensor import IVolume
from ._tensor import DTypeLike, Tensor


class Volume(IVolume):
    """
    Immutable, non-empty sequence of tensors sharing the same extents.

    Parameters
    ----------
    channels : Iterable[Tensor]
        Channel tensors, in depth order.

    Raises
    ------
    EmptyInputError
        If no channels are given.
    DimensionMismatchError
        If the channels do not all share the same `rows x cols`.
    TypeError
        If an element is not a `Tensor`, or the channels mix dtypes.
    """

    __slots__ = ("_channels",)

    def __init__(self, channels: Iterable[Tensor]) -> None:
        chans: Tuple[Tensor, ...] = tuple(channels)
        if not chans:
            raise EmptyInputError("volume")

        first = chans[0]
        for i, ch in enumerate(chans):
            if not isinstance(ch, Tensor):
                raise TypeError(
                    f"volume: channel {i} must be a Tensor, got {type(ch).__name__}"
                )
            if ch.shape != first.shape:
                raise DimensionMismatchError(
                    "volume",
                    first.shape,
                    ch.shape,
                    message=(
                        f"volume: channel {i} has extents {ch.shape}, "
                        f"expected {first.shape}."
                    ),
                )
            if ch.dtype != first.dtype:
                raise TypeError(
                    f"volume: channel {i} has dtype {ch.dtype}, expected {first.dtype}"
                )
        self._channels = chans

    @classmethod
    def zeros(
        cls, depth: int, rows: int, cols: int, *, dtype: DTypeLike = None
    ) -> "Volume":
        """Create a zero-initialized volume."""
        if int(depth) <= 0:
            raise EmptyInputError("volume")
        return cls(Tensor.zeros(rows, cols, dtype=dtype) for _ in range(int(depth)))

    @classmethod
    def from_numpy(cls, arr: Any, *, dtype: DTypeLike = None) -> "Volume":
        """
        Wrap (a copy of) a `(depth, rows, cols)` array.

        A 2D array is treated as a single-channel volume.
        """
        a = np.asarray(arr)
        if a.ndim == 2:
            a = a[np.newaxis]
        if a.ndim != 3:
            raise DimensionMismatchError("volume", "2D or 3D data", f"{a.ndim}D data")
        if a.shape[0] == 0:
            raise EmptyInputError("volume")
        return cls(Tensor.from_numpy(a[i], dtype=dtype) for i in range(a.shape[0]))

    @classmethod
    def of(cls, x: Union[Tensor, "Volume"]) -> "Volume":
        """Return `x` itself when it is a volume, else a 1-channel volume."""
        return x if isinstance(x, Volume) else cls((x,))

    @property
    def channels(self) -> Tuple[Tensor, ...]:
        return self._channels

    @property
    def depth(self) -> int:
        return len(self._channels)

    @property
    def rows(self) -> int:
        return self._channels[0].rows

    @property
    def cols(self) -> int:
        return self._channels[0].cols

    @property
    def shape(self) -> tuple[int, int, int]:
        """`(depth, rows, cols)`."""
        return (self.depth, self.rows, self.cols)

    @property
    def dtype(self) -> np.dtype:
        return self._channels[0].dtype

    def __len__(self) -> int:
        return len(self._channels)

    def __iter__(self) -> Iterator[Tensor]:
        return iter(self._channels)

    @overload
    def __getitem__(self, channel: int) -> Tensor: ...

    @overload
    def __getitem__(self, channel: slice) -> "Volume": ...

    def __getitem__(self, channel):
        if isinstance(channel, slice):
            return Volume(self._channels[channel])
        return self._channels[channel]

    def to_numpy(self) -> np.ndarray:
        return np.stack([ch.data for ch in self._channels], axis=0)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Volume):
            return NotImplemented
        return self.depth == other.depth and all(
            a == b for a, b in zip(self._channels, other._channels)
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"Volume(depth={self.depth}, rows={self.rows}, cols={self.cols}, "
            f"dtype={self.dtype.name})"
        )
