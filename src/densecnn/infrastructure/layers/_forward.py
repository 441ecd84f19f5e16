"""
Forward-step dispatch for layer variants.

`forward(layer, x)` looks up the rule registered for `layer.kind` and returns
an explicit `ForwardResult(inputs, z, a)`; nothing is cached on the layer.
New variants plug in through `register_forward`:

    @register_forward(LayerKind.POOLING)
    def _pooling_forward(layer, x, pool) -> ForwardResult:
        ...
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, TypeVar

from ...domain._errors import DimensionMismatchError
from ...domain._layer import ActivationType, ForwardResult, LayerInput, LayerKind
from ..ops.conv2d_cpu import convolute3x3
from ..ops.elementwise_cpu import identity, relu, sigmoid
from ..ops.flatten_cpu import flatten
from ..ops.fully_connected_cpu import fully_connected_forward
from ..ops.pool2d_cpu import pool2x2
from ..ops.softmax_cpu import softmax
from ..parallel._worker_pool import Partition, WorkerPool, resolve_pool
from ..tensor._tensor import Tensor
from ..tensor._volume import Volume
from ._layer import Layer

ForwardRule = Callable[[Layer, LayerInput, Optional[WorkerPool]], ForwardResult]
R = TypeVar("R", bound=ForwardRule)

_FORWARD_RULES: Dict[LayerKind, ForwardRule] = {}

_ACTIVATIONS: Dict[ActivationType, Callable[..., Tensor]] = {
    ActivationType.IDENTITY: identity,
    ActivationType.SIGMOID: sigmoid,
    ActivationType.RELU: relu,
    ActivationType.SOFTMAX: softmax,
}


def register_forward(kind: LayerKind) -> Callable[[R], R]:
    """
    Decorator registering the forward rule for a layer variant.
    """

    def deco(fn: R) -> R:
        _FORWARD_RULES[kind] = fn
        return fn

    return deco


def forward(
    layer: Layer, x: LayerInput, *, pool: Optional[WorkerPool] = None
) -> ForwardResult:
    """
    Run one forward step of `layer` on `x`.

    Parameters
    ----------
    layer : Layer
        The layer to evaluate.
    x : Tensor or Volume
        Input. Affine layers take `n x input_size` row batches (or a volume
        matching their input shape); convolutional and pooling layers take a
        volume (or a single tensor when they expect one channel).
    pool : Optional[WorkerPool], optional
        Pool the kernels fan out on.

    Returns
    -------
    ForwardResult
        `inputs` is `x` as received; `z` and `a` are fresh buffers.

    Raises
    ------
    DimensionMismatchError
        If `x` does not match the layer's input shape.
    """
    try:
        rule = _FORWARD_RULES[layer.kind]
    except KeyError:
        raise ValueError(f"No forward rule registered for {layer.kind}") from None
    return rule(layer, x, pool)


def _as_input_volume(layer: Layer, x: LayerInput) -> Volume:
    vol = Volume.of(x)
    info = layer.input_info
    if vol.shape != (info.channels, info.height, info.width):
        raise DimensionMismatchError(
            layer.kind.value,
            (info.channels, info.height, info.width),
            vol.shape,
        )
    return vol


def _as_input_rows(
    layer: Layer, x: LayerInput, pool: Optional[WorkerPool]
) -> Tensor:
    if isinstance(x, Volume):
        return flatten(_as_input_volume(layer, x), pool=pool)
    return x


@register_forward(LayerKind.FULLY_CONNECTED)
@register_forward(LayerKind.SOFTMAX)
def _affine_forward(
    layer: Layer, x: LayerInput, pool: Optional[WorkerPool]
) -> ForwardResult:
    rows = _as_input_rows(layer, x, pool)
    z = fully_connected_forward(rows, layer.weights, layer.biases, pool=pool)
    a = _ACTIVATIONS[layer.activation](z, pool=pool)
    return ForwardResult(inputs=x, z=z, a=a)


@register_forward(LayerKind.CONVOLUTIONAL)
def _convolutional_forward(
    layer: Layer, x: LayerInput, pool: Optional[WorkerPool]
) -> ForwardResult:
    vol = _as_input_volume(layer, x)
    kernels = layer.kernels
    n_kernels = kernels.depth
    pool = resolve_pool(pool)

    outputs: List[Optional[Tensor]] = [None] * (vol.depth * n_kernels)

    def task(part: Partition) -> None:
        for unit in range(part.start, part.stop):
            c, k = divmod(unit, n_kernels)
            outputs[unit] = convolute3x3(vol[c], kernels[k], pool=pool)

    pool.run("convolutional", len(outputs), task)
    z = Volume(outputs)  # type: ignore[arg-type]
    return ForwardResult(inputs=x, z=z, a=relu(z, pool=pool))


@register_forward(LayerKind.POOLING)
def _pooling_forward(
    layer: Layer, x: LayerInput, pool: Optional[WorkerPool]
) -> ForwardResult:
    z = pool2x2(_as_input_volume(layer, x), pool=pool)
    return ForwardResult(inputs=x, z=z, a=z)


__all__ = ["forward", "register_forward"]
