import unittest

import numpy as np

from src.densecnn.domain._layer import ActivationType, TensorInfo
from src.densecnn.infrastructure.layers import Layer
from src.densecnn.infrastructure.ops.elementwise_cpu import normalize
from src.densecnn.infrastructure.parallel._worker_pool import WorkerPool
from src.densecnn.infrastructure.tensor._tensor import Tensor


class TestCnnChain(unittest.TestCase):
    """
    image -> conv(3x3, 4 kernels) -> pool(2x2) -> fully connected -> softmax
    """

    def setUp(self) -> None:
        rng = np.random.default_rng(12)
        image_info = TensorInfo.volume(12, 12, 1)
        self.conv = Layer.convolutional(image_info, 4, rng=rng)
        self.pool_layer = Layer.pooling(self.conv.output_info)
        self.hidden = Layer.fully_connected(
            self.pool_layer.output_info, 16, ActivationType.RELU, rng=rng
        )
        self.output = Layer.softmax(16, 10, rng=rng)
        self.image = Tensor.from_numpy(rng.uniform(0.0, 255.0, size=(12, 12)))

    def _run(self, pool: WorkerPool):
        x = normalize(self.image, pool=pool)
        results = []
        for layer in (self.conv, self.pool_layer, self.hidden, self.output):
            r = layer.forward(x, pool=pool)
            results.append(r)
            x = r.a
        return results

    def test_shapes_flow_through_chain(self):
        with WorkerPool(4) as pool:
            conv, pooled, hidden, out = self._run(pool)
        self.assertEqual(conv.a.shape, (4, 10, 10))
        self.assertEqual(pooled.a.shape, (4, 5, 5))
        self.assertEqual(hidden.a.shape, (1, 16))
        self.assertEqual(out.a.shape, (1, 10))
        self.assertAlmostEqual(float(out.a.data.sum()), 1.0, places=12)

    def test_each_stage_feeds_the_next(self):
        with WorkerPool(2) as pool:
            results = self._run(pool)
        for prev, nxt in zip(results, results[1:]):
            self.assertIs(nxt.inputs, prev.a)

    def test_chain_is_independent_of_worker_count(self):
        with WorkerPool(1) as one, WorkerPool(5) as five:
            a = self._run(one)[-1].a
            b = self._run(five)[-1].a
        self.assertEqual(a, b)


if __name__ == "__main__":
    unittest.main()
