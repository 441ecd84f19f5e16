import math
import unittest

import numpy as np

from src.densecnn.infrastructure.tensor._tensor import Tensor
from src.densecnn.infrastructure.utils.weight_initializer import WeightInitializer


class TestRegistry(unittest.TestCase):
    def test_builtin_initializers_registered(self):
        names = set(WeightInitializer.available())
        self.assertTrue(
            {"xavier", "xavier_uniform", "kaiming", "zeros", "ones", "gaussian"}
            <= names
        )

    def test_unknown_name_rejected(self):
        with self.assertRaises(ValueError) as cm:
            WeightInitializer("does_not_exist")
        self.assertIn("Available", str(cm.exception))

    def test_duplicate_registration_rejected(self):
        with self.assertRaises(ValueError):
            WeightInitializer.register_initializer("zeros")(lambda s, r, d: None)

    def test_empty_name_rejected(self):
        with self.assertRaises(ValueError):
            WeightInitializer.register_initializer("")

    def test_custom_initializer(self):
        name = "test_sevens"

        @WeightInitializer.register_initializer(name, overwrite=True)
        def sevens(shape, rng, dtype):
            return Tensor.full(shape[0], shape[1], 7.0, dtype=dtype)

        try:
            t = WeightInitializer(name)((2, 2))
            self.assertTrue(np.all(t.data == 7.0))
            self.assertIs(WeightInitializer.get(name), sevens)
        finally:
            WeightInitializer.INITIALIZERS.pop(name, None)


class TestInitializers(unittest.TestCase):
    def setUp(self) -> None:
        self.rng = np.random.default_rng(8)

    def test_constants(self):
        z = WeightInitializer("zeros")((3, 4), rng=self.rng)
        o = WeightInitializer("ones")((1, 5), rng=self.rng, dtype=np.float32)
        self.assertEqual(z.shape, (3, 4))
        self.assertTrue(np.all(z.data == 0.0))
        self.assertEqual(o.dtype, np.float32)
        self.assertTrue(np.all(o.data == 1.0))

    def test_xavier_std(self):
        t = WeightInitializer("xavier")((400, 600), rng=self.rng)
        expected = math.sqrt(2.0 / 1000.0)
        self.assertAlmostEqual(float(t.data.std()), expected, delta=expected * 0.05)
        self.assertAlmostEqual(float(t.data.mean()), 0.0, delta=0.01)

    def test_xavier_uniform_bound(self):
        t = WeightInitializer("xavier_uniform")((30, 70), rng=self.rng)
        bound = math.sqrt(6.0 / 100.0)
        self.assertTrue(np.all(np.abs(t.data) <= bound))

    def test_kaiming_std(self):
        t = WeightInitializer("kaiming")((500, 400), rng=self.rng)
        expected = math.sqrt(2.0 / 500.0)
        self.assertAlmostEqual(float(t.data.std()), expected, delta=expected * 0.05)

    def test_gaussian_std_keyword(self):
        t = WeightInitializer("gaussian")((300, 300), rng=self.rng, std=0.1)
        self.assertAlmostEqual(float(t.data.std()), 0.1, delta=0.005)

    def test_same_generator_seed_reproducible(self):
        a = WeightInitializer("xavier")((4, 4), rng=np.random.default_rng(1))
        b = WeightInitializer("xavier")((4, 4), rng=np.random.default_rng(1))
        self.assertEqual(a, b)

    def test_results_are_frozen_tensors(self):
        t = WeightInitializer("gaussian")((2, 2), rng=self.rng)
        self.assertIsInstance(t, Tensor)
        self.assertFalse(t.data.flags["WRITEABLE"])


if __name__ == "__main__":
    unittest.main()
