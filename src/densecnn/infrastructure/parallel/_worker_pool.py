"""
Fork-join worker pool used by every data-parallel kernel.

A kernel describes its work as `n_units` independent logical units (output
rows, output columns, channels or flat element ranges). The pool splits those
units into contiguous, disjoint partitions, submits one task per partition to
a bounded `ThreadPoolExecutor` and blocks until every task has finished.

Contract
--------
- Each partition owns a disjoint slice of the kernel's output buffer; tasks
  never write outside it, so no locking is needed.
- Inputs are shared read-only by all tasks.
- If any task raises, the whole call fails with a single
  `KernelExecutionError` chained to the first failure. The caller discards the
  partially written output.
- Calls made from inside a worker thread run their partitions inline, so a
  kernel used within another kernel's task can never deadlock the pool.

Notes
-----
NumPy releases the GIL inside its vectorized loops, which is what lets
partitioned kernels make progress on several cores from Python threads.
"""

from __future__ import annotations

import threading
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import Callable, List, NamedTuple, Optional

from ...domain._errors import KernelExecutionError
from ..config._engine_config import get_config
from ..utils._logging import get_logger

logger = get_logger(__name__)

_WORKER_STATE = threading.local()


class Partition(NamedTuple):
    """
    A contiguous range `[start, stop)` of logical work units.

    Attributes
    ----------
    index : int
        Position of this partition among its siblings (0-based).
    start : int
        First unit (inclusive).
    stop : int
        Last unit (exclusive).
    """

    index: int
    start: int
    stop: int

    @property
    def size(self) -> int:
        return self.stop - self.start


def split_units(n_units: int, n_parts: int) -> List[Partition]:
    """
    Split `n_units` into `n_parts` contiguous partitions of near-equal size.

    The first `n_units % n_parts` partitions receive one extra unit.

    Parameters
    ----------
    n_units : int
        Number of logical units (must be positive).
    n_parts : int
        Number of partitions (clamped to `[1, n_units]`).

    Returns
    -------
    List[Partition]
        Disjoint partitions covering `[0, n_units)` in order.
    """
    if n_units <= 0:
        raise ValueError("n_units must be a positive integer")
    n_parts = max(1, min(int(n_parts), int(n_units)))
    base, extra = divmod(int(n_units), n_parts)

    parts: List[Partition] = []
    start = 0
    for i in range(n_parts):
        stop = start + base + (1 if i < extra else 0)
        parts.append(Partition(i, start, stop))
        start = stop
    return parts


class WorkerPool:
    """
    Bounded thread pool with a blocking, partitioned `run` primitive.

    Parameters
    ----------
    num_workers : Optional[int], optional
        Maximum number of worker threads. Defaults to the engine config.
    min_units_per_task : Optional[int], optional
        Minimum number of logical units per partition. Defaults to the engine
        config.

    Notes
    -----
    - The underlying executor is created lazily on the first call that needs
      more than one partition.
    - Instances can be used as context managers; leaving the block shuts the
      executor down.
    """

    def __init__(
        self,
        num_workers: Optional[int] = None,
        *,
        min_units_per_task: Optional[int] = None,
    ) -> None:
        cfg = get_config()
        self.num_workers = int(cfg.num_workers if num_workers is None else num_workers)
        self.min_units_per_task = int(
            cfg.min_units_per_task
            if min_units_per_task is None
            else min_units_per_task
        )
        if self.num_workers <= 0:
            raise ValueError("num_workers must be a positive integer")
        if self.min_units_per_task <= 0:
            raise ValueError("min_units_per_task must be a positive integer")

        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return (
            f"WorkerPool(num_workers={self.num_workers}, "
            f"min_units_per_task={self.min_units_per_task})"
        )

    def __enter__(self) -> "WorkerPool":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.num_workers,
                    thread_name_prefix="densecnn-worker",
                    initializer=_mark_worker_thread,
                )
            return self._executor

    def partition(self, n_units: int) -> List[Partition]:
        """
        Compute the partitions `run` would dispatch for `n_units` units.
        """
        by_size = -(-int(n_units) // self.min_units_per_task)
        return split_units(n_units, min(self.num_workers, by_size))

    def run(
        self,
        op: str,
        n_units: int,
        task: Callable[[Partition], None],
    ) -> int:
        """
        Execute `task` once per partition of `n_units` and wait for all.

        Parameters
        ----------
        op : str
            Kernel name, used in logs and in the aggregated error.
        n_units : int
            Number of independent logical work units.
        task : Callable[[Partition], None]
            Callable writing the results of one partition into its disjoint
            output region.

        Returns
        -------
        int
            Number of partitions that were executed.

        Raises
        ------
        KernelExecutionError
            If at least one partition raised.
        """
        parts = self.partition(n_units)

        if len(parts) == 1 or getattr(_WORKER_STATE, "active", False):
            for part in parts:
                try:
                    task(part)
                except Exception as exc:
                    logger.error("%s: partition %d raised %r", op, part.index, exc)
                    raise KernelExecutionError(op, 1, len(parts)) from exc
            return len(parts)

        logger.debug(
            "%s: dispatching %d partitions of %d units", op, len(parts), n_units
        )
        executor = self._get_executor()
        futures: List[Future] = [executor.submit(task, part) for part in parts]

        # On the first failure the remaining queued partitions are cancelled;
        # running ones are still awaited so no worker outlives the call.
        _, not_done = wait(futures, return_when=FIRST_EXCEPTION)
        for f in not_done:
            f.cancel()
        wait(futures)

        failures = [
            f.exception()
            for f in futures
            if not f.cancelled() and f.exception() is not None
        ]
        if failures:
            first = failures[0]
            logger.error(
                "%s: %d of %d partitions failed (first error: %r)",
                op,
                len(failures),
                len(parts),
                first,
            )
            raise KernelExecutionError(op, len(failures), len(parts)) from first

        return len(parts)

    def shutdown(self, wait_for_tasks: bool = True) -> None:
        """Shut down the executor (a new one is created on next use)."""
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait_for_tasks)


def _mark_worker_thread() -> None:
    _WORKER_STATE.active = True


_DEFAULT_POOL: Optional[WorkerPool] = None
_DEFAULT_POOL_LOCK = threading.Lock()


def get_default_pool() -> WorkerPool:
    """
    Return the process-wide pool, building it from the engine config on
    first use.
    """
    global _DEFAULT_POOL
    with _DEFAULT_POOL_LOCK:
        if _DEFAULT_POOL is None:
            _DEFAULT_POOL = WorkerPool()
        return _DEFAULT_POOL


def reset_default_pool() -> None:
    """
    Shut down and forget the process-wide pool.
    """
    global _DEFAULT_POOL
    with _DEFAULT_POOL_LOCK:
        pool, _DEFAULT_POOL = _DEFAULT_POOL, None
    if pool is not None:
        pool.shutdown()


def resolve_pool(pool: Optional[WorkerPool]) -> WorkerPool:
    return get_default_pool() if pool is None else pool
