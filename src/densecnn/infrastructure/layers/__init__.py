"""
Layer variants and the forward-step dispatcher.

Exports
-------
- Layer:
    Immutable layer record with `fully_connected`, `softmax`,
    `convolutional` and `pooling` constructors.
- forward:
    Runs one forward step and returns a `ForwardResult`.
- register_forward:
    Decorator binding a forward rule to a `LayerKind`.
"""

from ._layer import Layer
from ._forward import forward, register_forward

__all__ = [
    Layer.__name__,
    forward.__name__,
    register_forward.__name__,
]
