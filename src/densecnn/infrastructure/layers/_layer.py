"""
Layer record and constructors.

A `Layer` is an immutable record: a variant tag (`LayerKind`), input/output
shape descriptors, the activation it applies, and whichever trainable
buffers its variant needs. Behavior lives in the forward rules registered in
`._forward`, not in subclasses.

Variants
--------
- FULLY_CONNECTED : `z = x @ W + b`, `a = activation(z)`.
- SOFTMAX         : `z = x @ W + b`, `a = softmax(z)` row-wise.
- CONVOLUTIONAL   : every input channel convolved with every 3x3 kernel,
  `a = relu(z)`.
- POOLING         : `z = a = pool2x2(x)` per channel.

Fully-connected and softmax layers accept a `Volume` as input and flatten it
first.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Dict, Optional, Union

import numpy as np
from typing_extensions import Self

from ...domain._errors import DimensionMismatchError, KernelSizeError
from ...domain._layer import ActivationType, LayerInput, LayerKind, TensorInfo
from ..ops.conv2d_cpu import KERNEL_SIZE, conv3x3_out_hw
from ..ops.pool2d_cpu import pool2x2_out_hw
from ..tensor._tensor import DTypeLike, Tensor, resolve_dtype
from ..tensor._volume import Volume
from ..utils._logging import get_logger
from ..utils.weight_initializer import WeightInitializer

if TYPE_CHECKING:
    from ...domain._layer import ForwardResult
    from ..parallel._worker_pool import WorkerPool

logger = get_logger(__name__)

ShapeLike = Union[int, TensorInfo]


def _as_info(shape: ShapeLike) -> TensorInfo:
    return shape if isinstance(shape, TensorInfo) else TensorInfo.linear(shape)


def _check_buffer(name: str, t: Tensor, expected: tuple[int, int]) -> Tensor:
    if not isinstance(t, Tensor):
        raise TypeError(f"'{name}' must be a Tensor, got {type(t).__name__}")
    if t.shape != expected:
        raise DimensionMismatchError(
            "layer",
            expected,
            t.shape,
            message=(
                f"layer: {name} must be {expected[0]}x{expected[1]}, "
                f"got {t.rows}x{t.cols}."
            ),
        )
    return t


@dataclass(frozen=True, eq=True, unsafe_hash=False)
class Layer:
    """
    Immutable description of one network layer.

    Use the `fully_connected`, `softmax`, `convolutional` and `pooling`
    constructors rather than instantiating directly.

    Attributes
    ----------
    kind : LayerKind
        Variant tag selecting the forward rule.
    input_info : TensorInfo
        Shape of the data the layer consumes.
    output_info : TensorInfo
        Shape of the data the layer produces.
    activation : ActivationType
        Activation applied to the pre-activation buffer.
    weights : Optional[Tensor]
        `input_size x output_size` weights (fully-connected and softmax).
    biases : Optional[Tensor]
        `1 x output_size` biases (fully-connected and softmax).
    kernels : Optional[Volume]
        Stack of 3x3 kernels (convolutional).

    Notes
    -----
    Equality compares every field exactly, buffers included.
    """

    kind: LayerKind
    input_info: TensorInfo
    output_info: TensorInfo
    activation: ActivationType
    weights: Optional[Tensor] = None
    biases: Optional[Tensor] = None
    kernels: Optional[Volume] = None

    # buffers compare by value, so layers are unhashable like Tensor and Volume
    __hash__ = None  # type: ignore[assignment]

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------
    @classmethod
    def _affine(
        cls,
        kind: LayerKind,
        input_info: ShapeLike,
        output_size: int,
        activation: ActivationType,
        weights: Optional[Tensor],
        biases: Optional[Tensor],
        weight_init: str,
        bias_init: str,
        dtype: DTypeLike,
        rng: Optional[np.random.Generator],
    ) -> "Layer":
        in_info = _as_info(input_info)
        out_info = TensorInfo.linear(output_size)
        shape = (in_info.size, out_info.size)
        dt = resolve_dtype(dtype, weights)

        if weights is None:
            weights = WeightInitializer(weight_init)(shape, rng=rng, dtype=dt)
        if biases is None:
            biases = WeightInitializer(bias_init)(
                (1, out_info.size), rng=rng, dtype=dt
            )

        layer = cls(
            kind=kind,
            input_info=in_info,
            output_info=out_info,
            activation=activation,
            weights=_check_buffer("weights", weights, shape),
            biases=_check_buffer("biases", biases, (1, out_info.size)),
        )
        logger.debug("created %r", layer)
        return layer

    @classmethod
    def fully_connected(
        cls,
        input_info: ShapeLike,
        output_size: int,
        activation: ActivationType = ActivationType.SIGMOID,
        *,
        weights: Optional[Tensor] = None,
        biases: Optional[Tensor] = None,
        weight_init: str = "xavier",
        bias_init: str = "zeros",
        dtype: DTypeLike = None,
        rng: Optional[np.random.Generator] = None,
    ) -> "Layer":
        """
        Build a fully-connected layer.

        Parameters
        ----------
        input_info : int or TensorInfo
            Input size, or the shape of the volume feeding the layer (which
            is flattened before the affine transform).
        output_size : int
            Number of output neurons.
        activation : ActivationType, optional
            Activation applied to `z`. Defaults to sigmoid.
        weights, biases : Optional[Tensor], optional
            Explicit buffers. Missing buffers are created with the named
            initializers.
        weight_init, bias_init : str, optional
            Registered `WeightInitializer` names.
        dtype : dtype-like, optional
            Dtype of generated buffers.
        rng : Optional[numpy.random.Generator], optional
            Generator for random initializers.

        Raises
        ------
        DimensionMismatchError
            If explicit buffers do not match `input_size x output_size` and
            `1 x output_size`.
        ValueError
            If `activation` is SOFTMAX (use `Layer.softmax`), or an
            initializer name is unknown.
        """
        activation = ActivationType(activation)
        if activation is ActivationType.SOFTMAX:
            raise ValueError("use Layer.softmax for a softmax output layer")
        return cls._affine(
            LayerKind.FULLY_CONNECTED,
            input_info,
            output_size,
            activation,
            weights,
            biases,
            weight_init,
            bias_init,
            dtype,
            rng,
        )

    @classmethod
    def softmax(
        cls,
        input_info: ShapeLike,
        output_size: int,
        *,
        weights: Optional[Tensor] = None,
        biases: Optional[Tensor] = None,
        weight_init: str = "xavier",
        bias_init: str = "zeros",
        dtype: DTypeLike = None,
        rng: Optional[np.random.Generator] = None,
    ) -> "Layer":
        """
        Build a softmax output layer.

        Takes the same arguments as `fully_connected`, minus the activation.
        """
        return cls._affine(
            LayerKind.SOFTMAX,
            input_info,
            output_size,
            ActivationType.SOFTMAX,
            weights,
            biases,
            weight_init,
            bias_init,
            dtype,
            rng,
        )

    @classmethod
    def convolutional(
        cls,
        input_info: TensorInfo,
        kernels: Union[Volume, int],
        *,
        weight_init: str = "gaussian",
        dtype: DTypeLike = None,
        rng: Optional[np.random.Generator] = None,
    ) -> "Layer":
        """
        Build a convolutional layer of fixed 3x3 kernels followed by ReLU.

        Output channel `c * n_kernels + k` holds input channel `c` convolved
        with kernel `k`.

        Parameters
        ----------
        input_info : TensorInfo
            Shape of the input volume (at least 3x3 per channel).
        kernels : Volume or int
            Explicit 3x3 kernels, or the number of kernels to generate with
            `weight_init`.

        Raises
        ------
        KernelSizeError
            If explicit kernels are not 3x3.
        InputTooSmallError
            If `input_info` is smaller than 3x3.
        """
        h_out, w_out = conv3x3_out_hw(input_info.height, input_info.width)

        if not isinstance(kernels, Volume):
            count = int(kernels)
            if count <= 0:
                raise ValueError("kernels must be a positive count or a Volume")
            init = WeightInitializer(weight_init)
            dt = resolve_dtype(dtype)
            kernels = Volume(
                init((KERNEL_SIZE, KERNEL_SIZE), rng=rng, dtype=dt)
                for _ in range(count)
            )
        elif (kernels.rows, kernels.cols) != (KERNEL_SIZE, KERNEL_SIZE):
            raise KernelSizeError(
                "convolutional", "3x3", f"{kernels.rows}x{kernels.cols}"
            )

        layer = cls(
            kind=LayerKind.CONVOLUTIONAL,
            input_info=input_info,
            output_info=TensorInfo.volume(
                h_out, w_out, input_info.channels * kernels.depth
            ),
            activation=ActivationType.RELU,
            kernels=kernels,
        )
        logger.debug("created %r", layer)
        return layer

    @classmethod
    def pooling(cls, input_info: TensorInfo) -> "Layer":
        """
        Build a 2x2 max-pooling layer.

        Raises
        ------
        InputTooSmallError
            If `input_info` is smaller than 2x2.
        """
        h_out, w_out = pool2x2_out_hw(input_info.height, input_info.width)
        layer = cls(
            kind=LayerKind.POOLING,
            input_info=input_info,
            output_info=TensorInfo.volume(h_out, w_out, input_info.channels),
            activation=ActivationType.IDENTITY,
        )
        logger.debug("created %r", layer)
        return layer

    # ------------------------------------------------------------------
    # Behavior
    # ------------------------------------------------------------------
    def forward(
        self, x: LayerInput, *, pool: Optional["WorkerPool"] = None
    ) -> "ForwardResult":
        """Run one forward step; see `densecnn.infrastructure.layers.forward`."""
        from ._forward import forward

        return forward(self, x, pool=pool)

    def clone(self) -> "Layer":
        """
        Return an equal, independent layer.

        Buffers are immutable, so the copy shares them safely.
        """
        return replace(self)

    # ------------------------------------------------------------------
    # Reconstruction
    # ------------------------------------------------------------------
    def get_config(self) -> Dict[str, Any]:
        """
        Return a plain-Python description from which `from_config` rebuilds
        an equal layer.

        Keys: ``kind``, ``input_info`` (height, width, channels),
        ``output_size``, ``activation``, ``dtype``, and the variant's buffers
        as nested lists (``weights``/``biases`` or ``kernels``).
        """
        cfg: Dict[str, Any] = {
            "kind": self.kind.value,
            "input_info": {
                "height": self.input_info.height,
                "width": self.input_info.width,
                "channels": self.input_info.channels,
            },
            "output_size": self.output_info.size,
            "activation": self.activation.value,
        }
        if self.weights is not None and self.biases is not None:
            cfg["dtype"] = self.weights.dtype.name
            cfg["weights"] = self.weights.tolist()
            cfg["biases"] = self.biases.flat.tolist()
        if self.kernels is not None:
            cfg["dtype"] = self.kernels.dtype.name
            cfg["kernels"] = self.kernels.to_numpy().tolist()
        return cfg

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> Self:
        """
        Rebuild a layer from `get_config()` output.

        Raises
        ------
        ValueError
            If the kind or activation is unknown.
        DimensionMismatchError
            If the buffers do not match the declared shapes.
        """
        kind = LayerKind(cfg["kind"])
        info = TensorInfo(**cfg["input_info"])
        dtype = cfg.get("dtype")

        if kind is LayerKind.POOLING:
            return cls.pooling(info)
        if kind is LayerKind.CONVOLUTIONAL:
            return cls.convolutional(
                info, Volume.from_numpy(cfg["kernels"], dtype=dtype)
            )

        weights = Tensor.from_numpy(cfg["weights"], dtype=dtype)
        biases = Tensor.vector(cfg["biases"], dtype=dtype)
        if kind is LayerKind.SOFTMAX:
            return cls.softmax(
                info, cfg["output_size"], weights=weights, biases=biases
            )
        return cls.fully_connected(
            info,
            cfg["output_size"],
            ActivationType(cfg["activation"]),
            weights=weights,
            biases=biases,
        )

    def __repr__(self) -> str:
        return (
            f"Layer(kind={self.kind.value}, "
            f"input={self.input_info.as_tuple()}, "
            f"output={self.output_info.as_tuple()}, "
            f"activation={self.activation.value})"
        )
