"""
Layer forward contract.

This module defines the domain-level vocabulary for network layers:

- `LayerKind`: the closed set of layer variants the engine can run.
- `ActivationType`: the activation applied after a layer's pre-activation.
- `TensorInfo`: a layer's input/output shape descriptor.
- `ForwardResult`: the explicit result of one forward step.
- `ILayer` / `IWeightedLayer`: structural interfaces consumed by external
  collaborators (network graph, backward pass, optimizers).

Design notes
------------
- A forward step *returns* the three buffers a backward pass needs (input,
  pre-activation, post-activation) instead of caching them on the layer, so
  the backward collaborator receives them as an argument.
- Variant behavior is selected by `LayerKind` through a single dispatch
  function in the infrastructure layer rather than by subclassing.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, Union, runtime_checkable

from ._errors import RangeViolationError
from ._tensor import ITensor, IVolume


def _check_extent(name: str, value: object) -> int:
    try:
        extent = int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        raise RangeViolationError(name, value, "a positive integer") from None
    if extent <= 0 or extent != value:
        raise RangeViolationError(name, value, "a positive integer")
    return extent


LayerInput = Union[ITensor, IVolume]


class LayerKind(Enum):
    """
    Enumeration of supported layer variants.

    Attributes
    ----------
    FULLY_CONNECTED : LayerKind
        Affine transform followed by an elementwise activation.
    SOFTMAX : LayerKind
        Affine transform followed by a row-wise softmax (output layer).
    CONVOLUTIONAL : LayerKind
        Fixed 3x3 normalized convolution per channel, followed by ReLU.
    POOLING : LayerKind
        Fixed 2x2 max-pooling per channel.
    """

    FULLY_CONNECTED = "fully_connected"
    SOFTMAX = "softmax"
    CONVOLUTIONAL = "convolutional"
    POOLING = "pooling"


class ActivationType(Enum):
    """
    Activation functions a layer can apply to its pre-activation buffer.
    """

    IDENTITY = "identity"
    SIGMOID = "sigmoid"
    RELU = "relu"
    SOFTMAX = "softmax"


@dataclass(frozen=True)
class TensorInfo:
    """
    Shape descriptor for the data flowing into or out of a layer.

    Parameters
    ----------
    height : int
        Rows of each channel.
    width : int
        Columns of each channel.
    channels : int
        Number of channels.

    Raises
    ------
    RangeViolationError
        If any extent is not a positive integer.
    """

    height: int
    width: int
    channels: int = 1

    def __post_init__(self) -> None:
        for name in ("height", "width", "channels"):
            object.__setattr__(self, name, _check_extent(name, getattr(self, name)))

    @classmethod
    def linear(cls, size: int) -> "TensorInfo":
        """Descriptor for a flat feature vector of length `size`."""
        return cls(1, size, 1)

    @classmethod
    def volume(cls, height: int, width: int, channels: int) -> "TensorInfo":
        """Descriptor for a `channels x height x width` volume."""
        return cls(height, width, channels)

    @property
    def size(self) -> int:
        """Total number of scalars described (`height * width * channels`)."""
        return self.height * self.width * self.channels

    def as_tuple(self) -> tuple[int, int, int]:
        return (self.height, self.width, self.channels)


@dataclass(frozen=True)
class ForwardResult:
    """
    Buffers produced by a single forward step.

    Attributes
    ----------
    inputs : LayerInput
        The input the layer received (unchanged).
    z : LayerInput
        Pre-activation buffer.
    a : LayerInput
        Post-activation buffer; the next layer's input.
    """

    inputs: LayerInput
    z: LayerInput
    a: LayerInput


@runtime_checkable
class ILayer(Protocol):
    """
    Domain-level layer interface.

    Any object exposing a variant tag, shape descriptors and a `forward`
    returning a `ForwardResult` is a valid layer.
    """

    @property
    def kind(self) -> LayerKind: ...

    @property
    def input_info(self) -> TensorInfo: ...

    @property
    def output_info(self) -> TensorInfo: ...

    def forward(self, x: LayerInput) -> ForwardResult:
        """
        Run one forward step.

        Parameters
        ----------
        x : LayerInput
            Input tensor (batch-major rows) or volume.

        Returns
        -------
        ForwardResult
            The input, pre-activation and post-activation buffers.
        """
        ...


@runtime_checkable
class IWeightedLayer(Protocol):
    """
    Read-only access to a layer's trainable buffers.
    """

    @property
    def weights(self) -> Optional[ITensor]: ...

    @property
    def biases(self) -> Optional[ITensor]: ...
