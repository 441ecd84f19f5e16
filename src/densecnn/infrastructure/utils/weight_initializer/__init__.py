"""
Weight initialization public API.

This module aggregates all built-in weight initialization strategies (Xavier,
Kaiming, constants, Gaussian) and registers them into the global
`WeightInitializer` registry via import side effects.

Importing this module ensures that all built-in initializers are available
for lookup and dispatch through `WeightInitializer`.

Exports
-------
- WeightInitializer:
    The registry-backed dispatcher used to allocate initialized buffers.
"""

from ._xavier import *
from ._kaiming import *
from ._constants import *
from ._base import WeightInitializer

__all__ = [
    WeightInitializer.__name__,
]
