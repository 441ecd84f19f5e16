"""
densecnn: a dense-tensor compute engine for convolutional neural networks.

The public surface re-exported here covers the tensor and volume buffers,
the CPU kernels, the layer variants and the engine configuration. Kernels fan
out over a shared `WorkerPool` unless a pool is passed explicitly.
"""

import logging

from .domain._errors import (
    DimensionMismatchError,
    EmptyInputError,
    InputTooSmallError,
    KernelExecutionError,
    KernelSizeError,
    RangeViolationError,
)
from .domain._layer import ActivationType, ForwardResult, LayerKind, TensorInfo
from .infrastructure.config._engine_config import EngineConfig, get_config, set_config
from .infrastructure.layers import Layer, forward
from .infrastructure.ops.conv2d_cpu import convolute3x3
from .infrastructure.ops.elementwise_cpu import normalize, relu, sigmoid, sigmoid_prime
from .infrastructure.ops.flatten_cpu import flatten, unflatten
from .infrastructure.ops.fully_connected_cpu import fully_connected_forward
from .infrastructure.ops.matmul_cpu import (
    matmul,
    multiply,
    transpose,
    vector_matrix_multiply,
)
from .infrastructure.ops.pool2d_cpu import pool2x2
from .infrastructure.ops.randomize_cpu import randomize
from .infrastructure.ops.softmax_cpu import softmax
from .infrastructure.parallel._random import RandomSource
from .infrastructure.parallel._worker_pool import WorkerPool
from .infrastructure.tensor._tensor import Tensor
from .infrastructure.tensor._volume import Volume
from .infrastructure.utils._logging import configure_logging
from .infrastructure.utils.weight_initializer import WeightInitializer

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "ActivationType",
    "DimensionMismatchError",
    "EmptyInputError",
    "EngineConfig",
    "ForwardResult",
    "InputTooSmallError",
    "KernelExecutionError",
    "KernelSizeError",
    "Layer",
    "LayerKind",
    "RandomSource",
    "RangeViolationError",
    "Tensor",
    "TensorInfo",
    "Volume",
    "WeightInitializer",
    "WorkerPool",
    "configure_logging",
    "convolute3x3",
    "flatten",
    "forward",
    "fully_connected_forward",
    "get_config",
    "matmul",
    "multiply",
    "normalize",
    "pool2x2",
    "randomize",
    "relu",
    "set_config",
    "sigmoid",
    "sigmoid_prime",
    "softmax",
    "transpose",
    "unflatten",
    "vector_matrix_multiply",
]
