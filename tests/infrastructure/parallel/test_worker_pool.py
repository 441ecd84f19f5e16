import threading
import unittest

from src.densecnn.domain._errors import KernelExecutionError
from src.densecnn.infrastructure.parallel._worker_pool import (
    Partition,
    WorkerPool,
    resolve_pool,
    split_units,
)


class TestSplitUnits(unittest.TestCase):
    def test_partitions_are_disjoint_and_cover_range(self):
        for n_units in (1, 2, 7, 10, 101):
            for n_parts in (1, 2, 3, 8, 200):
                parts = split_units(n_units, n_parts)
                covered = [u for p in parts for u in range(p.start, p.stop)]
                self.assertEqual(covered, list(range(n_units)))
                self.assertEqual([p.index for p in parts], list(range(len(parts))))

    def test_sizes_differ_by_at_most_one(self):
        parts = split_units(10, 3)
        self.assertEqual([p.size for p in parts], [4, 3, 3])

    def test_parts_clamped_to_units(self):
        self.assertEqual(len(split_units(3, 8)), 3)
        self.assertEqual(len(split_units(5, 0)), 1)

    def test_rejects_empty_work(self):
        with self.assertRaises(ValueError):
            split_units(0, 4)


class TestWorkerPool(unittest.TestCase):
    def setUp(self) -> None:
        self.pool = WorkerPool(4, min_units_per_task=1)

    def tearDown(self) -> None:
        self.pool.shutdown()

    def test_invalid_arguments(self):
        with self.assertRaises(ValueError):
            WorkerPool(0)
        with self.assertRaises(ValueError):
            WorkerPool(2, min_units_per_task=0)

    def test_partition_respects_min_units(self):
        pool = WorkerPool(8, min_units_per_task=10)
        self.assertEqual(len(pool.partition(5)), 1)
        self.assertEqual(len(pool.partition(25)), 3)
        self.assertEqual(len(pool.partition(1000)), 8)

    def test_every_unit_runs_exactly_once(self):
        hits = [0] * 50

        def task(part: Partition) -> None:
            for i in range(part.start, part.stop):
                hits[i] += 1

        n = self.pool.run("test", 50, task)
        self.assertEqual(n, 4)
        self.assertEqual(hits, [1] * 50)

    def test_runs_on_worker_threads(self):
        names = set()
        lock = threading.Lock()

        def task(part: Partition) -> None:
            with lock:
                names.add(threading.current_thread().name)

        self.pool.run("test", 8, task)
        self.assertTrue(all(n.startswith("densecnn-worker") for n in names))

    def test_single_partition_runs_inline(self):
        seen = []

        def task(part: Partition) -> None:
            seen.append(threading.current_thread())

        self.assertEqual(self.pool.run("test", 1, task), 1)
        self.assertIs(seen[0], threading.current_thread())

    def test_failure_raises_aggregated_error(self):
        def task(part: Partition) -> None:
            if part.index == 2:
                raise ZeroDivisionError("boom")

        with self.assertRaises(KernelExecutionError) as cm:
            self.pool.run("failing", 8, task)
        err = cm.exception
        self.assertEqual(err.op, "failing")
        self.assertEqual(err.total, 4)
        self.assertGreaterEqual(err.failed, 1)
        self.assertIsInstance(err.__cause__, ZeroDivisionError)

    def test_inline_failure_raises_aggregated_error(self):
        def task(part: Partition) -> None:
            raise KeyError("x")

        with self.assertRaises(KernelExecutionError) as cm:
            self.pool.run("inline", 1, task)
        self.assertEqual((cm.exception.failed, cm.exception.total), (1, 1))
        self.assertIsInstance(cm.exception.__cause__, KeyError)

    def test_nested_run_does_not_deadlock(self):
        pool = WorkerPool(2)
        totals = [0, 0]

        def inner(part: Partition) -> None:
            pass

        def outer(part: Partition) -> None:
            totals[part.index] = pool.run("inner", 16, inner)

        try:
            pool.run("outer", 2, outer)
        finally:
            pool.shutdown()
        # nested calls run inline, still reporting their partition count
        self.assertEqual(totals, [2, 2])

    def test_pool_is_reusable_after_shutdown(self):
        self.pool.shutdown()
        hits = []
        self.pool.run("again", 4, lambda part: hits.append(part.index))
        self.assertEqual(sorted(hits), [0, 1, 2, 3])

    def test_context_manager(self):
        with WorkerPool(2) as pool:
            self.assertEqual(pool.run("ctx", 4, lambda part: None), 2)
        self.assertIsNone(pool._executor)

    def test_resolve_pool(self):
        self.assertIs(resolve_pool(self.pool), self.pool)
        self.assertIsInstance(resolve_pool(None), WorkerPool)


if __name__ == "__main__":
    unittest.main()
