"""
Process-wide engine configuration.

The engine is configured through environment variables (optionally loaded
from a `.env` file via python-dotenv):

- ``DENSECNN_NUM_WORKERS``: worker threads used by the default pool.
- ``DENSECNN_MIN_UNITS_PER_TASK``: minimum number of logical work units
  (rows, columns, channels or elements) per submitted task.
- ``DENSECNN_DTYPE``: default floating point dtype (``float64`` or
  ``float32``) used when constructing tensors without an explicit dtype.
- ``DENSECNN_SEED``: optional integer seed for the stochastic kernels and
  weight initializers. Unset means OS entropy.

Invalid values never abort start-up: a warning is emitted and the default is
used instead.
"""

from __future__ import annotations

import os
import warnings
from dataclasses import dataclass, replace
from typing import Mapping, Optional

import numpy as np
from dotenv import load_dotenv

_ENV_PREFIX = "DENSECNN_"
_SUPPORTED_DTYPES = {"float32": np.float32, "float64": np.float64}


def _default_num_workers() -> int:
    return max(1, min(8, os.cpu_count() or 1))


def _read_positive_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        value = 0
    if value <= 0:
        warnings.warn(
            f"{key}={raw!r} is not a positive integer; using {default}.",
            RuntimeWarning,
            stacklevel=3,
        )
        return default
    return value


@dataclass(frozen=True)
class EngineConfig:
    """
    Immutable engine settings.

    Attributes
    ----------
    num_workers : int
        Upper bound on concurrently running worker threads.
    min_units_per_task : int
        Smallest partition handed to a single task; small kernels therefore
        run on fewer workers (or inline) instead of paying dispatch overhead.
    dtype : type
        Default dtype for tensors built without an explicit dtype.
    seed : Optional[int]
        Root seed for random generators, or None for OS entropy.
    """

    num_workers: int = _default_num_workers()
    min_units_per_task: int = 1
    dtype: type = np.float64
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if int(self.num_workers) <= 0:
            raise ValueError("num_workers must be a positive integer")
        if int(self.min_units_per_task) <= 0:
            raise ValueError("min_units_per_task must be a positive integer")
        if np.dtype(self.dtype) not in (np.dtype(np.float32), np.dtype(np.float64)):
            raise ValueError(f"Unsupported dtype {self.dtype!r}")

    @classmethod
    def from_env(
        cls,
        env_file: Optional[str] = None,
        *,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "EngineConfig":
        """
        Build a configuration from environment variables.

        Parameters
        ----------
        env_file : Optional[str], optional
            Path to a `.env` file loaded (without overriding variables that
            are already set) before reading the environment.
        environ : Optional[Mapping[str, str]], optional
            Mapping to read instead of `os.environ`.

        Returns
        -------
        EngineConfig
            The resolved configuration.
        """
        if env_file is not None:
            load_dotenv(env_file, override=False)
        env = os.environ if environ is None else environ

        num_workers = _read_positive_int(
            env, _ENV_PREFIX + "NUM_WORKERS", _default_num_workers()
        )
        min_units = _read_positive_int(env, _ENV_PREFIX + "MIN_UNITS_PER_TASK", 1)

        dtype: type = np.float64
        raw_dtype = env.get(_ENV_PREFIX + "DTYPE", "").strip().lower()
        if raw_dtype:
            if raw_dtype in _SUPPORTED_DTYPES:
                dtype = _SUPPORTED_DTYPES[raw_dtype]
            else:
                warnings.warn(
                    f"{_ENV_PREFIX}DTYPE={raw_dtype!r} is not supported "
                    f"(expected one of {sorted(_SUPPORTED_DTYPES)}); using float64.",
                    RuntimeWarning,
                    stacklevel=2,
                )

        seed: Optional[int] = None
        raw_seed = env.get(_ENV_PREFIX + "SEED", "").strip()
        if raw_seed:
            try:
                seed = int(raw_seed)
            except ValueError:
                warnings.warn(
                    f"{_ENV_PREFIX}SEED={raw_seed!r} is not an integer; ignoring it.",
                    RuntimeWarning,
                    stacklevel=2,
                )

        return cls(
            num_workers=num_workers,
            min_units_per_task=min_units,
            dtype=dtype,
            seed=seed,
        )

    def with_overrides(self, **changes) -> "EngineConfig":
        """Return a copy of this configuration with some fields replaced."""
        return replace(self, **changes)


_CONFIG: Optional[EngineConfig] = None


def get_config() -> EngineConfig:
    """
    Return the process-wide configuration, reading the environment on first
    use.
    """
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = EngineConfig.from_env()
    return _CONFIG


def set_config(config: Optional[EngineConfig]) -> None:
    """
    Replace the process-wide configuration.

    Passing None resets it so that the next `get_config()` re-reads the
    environment. The default worker pool and random source are rebuilt lazily
    on their next use.
    """
    global _CONFIG
    _CONFIG = config

    from ..parallel._random import reset_random_source
    from ..parallel._worker_pool import reset_default_pool

    reset_default_pool()
    reset_random_source()
