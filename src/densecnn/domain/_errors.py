"""
Kernel-related exceptions for densecnn.

This module defines the error taxonomy shared by every kernel and layer in the
engine. Shape and range problems are detected before any work is fanned out
and are reported with their own types; failures that happen *inside* a worker
are folded into a single `KernelExecutionError` for the whole kernel call.

Taxonomy
--------
- Dimension mismatch (`DimensionMismatchError` and its subclasses
  `KernelSizeError`, `InputTooSmallError`): incompatible operand shapes.
- Range violation (`RangeViolationError` and its subclass `EmptyInputError`):
  out-of-range scalars (probabilities, extents) or empty inputs.
- Execution fault (`KernelExecutionError`): a parallel worker raised.

Degenerate numerics (zero normalization factors) are intentionally *not*
represented here: such inputs produce NaN/Inf values instead of raising.
"""

from __future__ import annotations

from typing import Any, Optional


class DimensionMismatchError(ValueError):
    """
    Raised when operand shapes are incompatible for a kernel.

    Attributes
    ----------
    op : str
        The name of the kernel that rejected its operands (e.g., "matmul").
    expected : Any
        Description of the expected extent(s).
    actual : Any
        Description of the extent(s) that were received.
    """

    def __init__(
        self,
        op: str,
        expected: Any,
        actual: Any,
        message: Optional[str] = None,
    ) -> None:
        """
        Initialize the DimensionMismatchError.

        Parameters
        ----------
        op : str
            Kernel name.
        expected : Any
            Expected extent(s).
        actual : Any
            Received extent(s).
        message : Optional[str], optional
            Custom message. A default message is built from the other fields
            when omitted.
        """
        if message is None:
            message = f"{op}: dimension mismatch, expected {expected}, got {actual}."
        super().__init__(message)
        self.op = op
        self.expected = expected
        self.actual = actual


class KernelSizeError(DimensionMismatchError):
    """
    Raised when a convolution kernel does not have the required fixed size.
    """

    def __init__(self, op: str, expected: Any, actual: Any) -> None:
        super().__init__(
            op,
            expected,
            actual,
            message=f"{op}: the kernel must be {expected}, got {actual}.",
        )


class InputTooSmallError(DimensionMismatchError):
    """
    Raised when an input is smaller than the minimum extent a kernel supports.
    """

    def __init__(self, op: str, minimum: Any, actual: Any) -> None:
        super().__init__(
            op,
            minimum,
            actual,
            message=f"{op}: the input must be at least {minimum}, got {actual}.",
        )


class RangeViolationError(ValueError):
    """
    Raised when a scalar argument or an extent lies outside its valid range.

    Attributes
    ----------
    name : str
        Name of the offending argument (e.g., "probability", "rows").
    value : Any
        The rejected value.
    """

    def __init__(
        self, name: str, value: Any, valid: str, message: Optional[str] = None
    ) -> None:
        """
        Initialize the RangeViolationError.

        Parameters
        ----------
        name : str
            Argument name.
        value : Any
            Rejected value.
        valid : str
            Human-readable description of the valid range.
        """
        if message is None:
            message = f"'{name}' must be {valid}, got {value!r}."
        super().__init__(message)
        self.name = name
        self.value = value


class EmptyInputError(RangeViolationError):
    """
    Raised when a kernel receives an empty collection (e.g., a volume with no
    channels).
    """

    def __init__(self, op: str) -> None:
        super().__init__(
            "input", [], "non-empty", message=f"{op}: the input can't be empty."
        )
        self.op = op


class KernelExecutionError(RuntimeError):
    """
    Raised when one or more workers fail while a kernel is fanned out.

    The kernel call is aborted as a whole: its output buffer is discarded and
    never handed back to the caller.

    Attributes
    ----------
    op : str
        Kernel name.
    failed : int
        Number of partitions that raised.
    total : int
        Number of partitions that were dispatched.
    """

    def __init__(self, op: str, failed: int, total: int) -> None:
        super().__init__(
            f"{op}: {failed} of {total} parallel partitions failed to complete."
        )
        self.op = op
        self.failed = failed
        self.total = total
