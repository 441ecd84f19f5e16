"""
Weight initializer registry and dispatch utilities.

This module defines the concrete `WeightInitializer` used by the layer
constructors to allocate freshly initialized weight and bias buffers.

Design
------
- Initializers are registered by string name via a decorator-based registry.
- Each initializer is a callable `(shape, rng, dtype) -> Tensor`. Tensors are
  immutable, so an initializer allocates a new buffer instead of filling one
  in place.
- The dispatcher resolves an initializer by name at construction time and
  invokes it via `__call__`, supplying a generator from the process-wide
  `RandomSource` when the caller does not pass one.

Usage example
-------------
Registering an initializer:

    @WeightInitializer.register_initializer("kaiming")
    def kaiming(shape, rng, dtype) -> Tensor:
        ...

Applying an initializer:

    init = WeightInitializer("kaiming")
    weights = init((784, 128))

Notes
-----
- Registration keys must be unique unless explicitly overwritten.
- Choosing *which* initializer a layer uses is the caller's policy.
"""

from __future__ import annotations

from typing import Any, Callable, ClassVar, Dict, Optional, TypeVar

import numpy as np

from ....domain.utils._weight_initialization import _WeightInitializer
from ...parallel._random import get_random_source
from ...tensor._tensor import DTypeLike, Tensor, resolve_dtype
from .._logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T", bound=Callable[..., Tensor])


class WeightInitializer(_WeightInitializer):
    """
    Named initializer strategy bound at construction time.

    Constructing `WeightInitializer(name)` looks the strategy up once; calling
    the instance allocates a new `Tensor` of the requested shape. Unknown names
    fail eagerly with the list of registered strategies, so a typo in a layer
    constructor is reported before any buffer is built.
    """

    INITIALIZERS: ClassVar[Dict[str, Callable[..., Tensor]]] = {}

    def __init__(self, initializer_name: str) -> None:
        if initializer_name not in self.INITIALIZERS:
            raise ValueError(
                f"unknown weight initializer {initializer_name!r}. "
                f"Available: {', '.join(self.available()) or '<none>'}"
            )
        self.name = initializer_name
        self._initializer: Callable[..., Tensor] = self.INITIALIZERS[initializer_name]

    def __repr__(self) -> str:
        return f"WeightInitializer({self.name!r})"

    @classmethod
    def register_initializer(
        cls, name: str, *, overwrite: bool = False
    ) -> Callable[[T], T]:
        """
        Decorator adding a `(shape, rng, dtype) -> Tensor` strategy.

        Parameters
        ----------
        name : str
            Key passed to `WeightInitializer(name)` and to the layer
            constructors' `weight_init` / `bias_init` arguments.
        overwrite : bool, optional
            Replace an existing strategy instead of raising.
        """
        if not isinstance(name, str) or not name:
            raise ValueError("initializer name must be a non-empty string")

        def decorator(func: T) -> T:
            if name in cls.INITIALIZERS and not overwrite:
                raise ValueError(f"weight initializer {name!r} is already registered")
            cls.INITIALIZERS[name] = func
            logger.debug("registered weight initializer %r", name)
            return func

        return decorator

    @classmethod
    def available(cls) -> tuple[str, ...]:
        """Return registered initializer names (sorted)."""
        return tuple(sorted(cls.INITIALIZERS))

    @classmethod
    def get(cls, name: str) -> Callable[..., Tensor]:
        """Get a registered initializer callable by name."""
        return cls.INITIALIZERS[name]

    def __call__(
        self,
        shape: tuple[int, int],
        *,
        rng: Optional[np.random.Generator] = None,
        dtype: DTypeLike = None,
        **kwargs: Any,
    ) -> Tensor:
        if rng is None:
            rng = get_random_source().generator()
        rows, cols = (int(s) for s in shape)
        return self._initializer((rows, cols), rng, resolve_dtype(dtype), **kwargs)
