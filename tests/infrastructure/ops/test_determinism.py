"""
Kernels must be bit-identical regardless of how many workers split the work.
"""

import unittest

import numpy as np

from src.densecnn.infrastructure.ops.conv2d_cpu import convolute3x3
from src.densecnn.infrastructure.ops.elementwise_cpu import normalize, sigmoid
from src.densecnn.infrastructure.ops.flatten_cpu import flatten
from src.densecnn.infrastructure.ops.fully_connected_cpu import (
    fully_connected_forward,
)
from src.densecnn.infrastructure.ops.matmul_cpu import (
    matmul,
    transpose,
    vector_matrix_multiply,
)
from src.densecnn.infrastructure.ops.pool2d_cpu import pool2x2
from src.densecnn.infrastructure.ops.softmax_cpu import softmax
from src.densecnn.infrastructure.parallel._worker_pool import WorkerPool
from src.densecnn.infrastructure.tensor._tensor import Tensor
from src.densecnn.infrastructure.tensor._volume import Volume


class TestWorkerCountDeterminism(unittest.TestCase):
    WORKER_COUNTS = (1, 2, 3, 7)

    @classmethod
    def setUpClass(cls) -> None:
        rng = np.random.default_rng(2024)
        cls.a = Tensor.from_numpy(rng.normal(size=(37, 53)))
        cls.b = Tensor.from_numpy(rng.normal(size=(53, 29)))
        cls.v = Tensor.from_numpy(rng.normal(size=(1, 37)))
        cls.k = Tensor.from_numpy(rng.normal(size=(3, 3)))
        cls.bias = Tensor.from_numpy(rng.normal(size=(1, 29)))
        cls.big = Tensor.from_numpy(rng.normal(size=(90, 200)))
        cls.vol = Volume.from_numpy(rng.normal(size=(5, 8, 8)))

    def _assert_same_for_all_pools(self, fn):
        results = []
        for n in self.WORKER_COUNTS:
            with WorkerPool(n) as pool:
                results.append(fn(pool))
        for r in results[1:]:
            self.assertEqual(r, results[0])

    def test_matmul(self):
        self._assert_same_for_all_pools(lambda p: matmul(self.a, self.b, pool=p))

    def test_vector_matrix_multiply(self):
        self._assert_same_for_all_pools(
            lambda p: vector_matrix_multiply(self.v, self.a, pool=p)
        )

    def test_transpose(self):
        self._assert_same_for_all_pools(lambda p: transpose(self.a, pool=p))

    def test_convolute3x3(self):
        self._assert_same_for_all_pools(lambda p: convolute3x3(self.a, self.k, pool=p))

    def test_pool2x2(self):
        self._assert_same_for_all_pools(lambda p: pool2x2(self.a, pool=p))

    def test_elementwise_over_many_blocks(self):
        self._assert_same_for_all_pools(lambda p: sigmoid(self.big, pool=p))
        self._assert_same_for_all_pools(lambda p: normalize(self.big, pool=p))

    def test_softmax_and_affine(self):
        self._assert_same_for_all_pools(lambda p: softmax(self.a, pool=p))
        self._assert_same_for_all_pools(
            lambda p: fully_connected_forward(self.a, self.b, self.bias, pool=p)
        )

    def test_flatten(self):
        self._assert_same_for_all_pools(lambda p: flatten(self.vol, pool=p))


if __name__ == "__main__":
    unittest.main()
