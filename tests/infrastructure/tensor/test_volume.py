import unittest

import numpy as np

from src.densecnn.domain._errors import DimensionMismatchError, EmptyInputError
from src.densecnn.domain._tensor import IVolume
from src.densecnn.infrastructure.tensor._tensor import Tensor
from src.densecnn.infrastructure.tensor._volume import Volume


class TestVolume(unittest.TestCase):
    def setUp(self) -> None:
        self.a = Tensor(2, 2, [1, 2, 3, 4])
        self.b = Tensor(2, 2, [5, 6, 7, 8])

    def test_extents(self):
        v = Volume([self.a, self.b])
        self.assertEqual(v.shape, (2, 2, 2))
        self.assertEqual((v.depth, v.rows, v.cols), (2, 2, 2))
        self.assertEqual(len(v), 2)
        self.assertIsInstance(v, IVolume)

    def test_indexing_and_iteration(self):
        v = Volume([self.a, self.b])
        self.assertIs(v[0], self.a)
        self.assertEqual(list(v), [self.a, self.b])
        tail = v[1:]
        self.assertIsInstance(tail, Volume)
        self.assertEqual(tail.depth, 1)

    def test_empty_rejected(self):
        with self.assertRaises(EmptyInputError):
            Volume([])
        with self.assertRaises(EmptyInputError):
            Volume.zeros(0, 2, 2)

    def test_mixed_extents_rejected(self):
        with self.assertRaises(DimensionMismatchError):
            Volume([self.a, Tensor(3, 2)])

    def test_mixed_dtypes_rejected(self):
        with self.assertRaises(TypeError):
            Volume([self.a, self.b.astype(np.float32)])

    def test_non_tensor_rejected(self):
        with self.assertRaises(TypeError):
            Volume([self.a, np.zeros((2, 2))])

    def test_from_numpy_round_trip(self):
        arr = np.arange(12, dtype=np.float64).reshape(3, 2, 2)
        v = Volume.from_numpy(arr)
        self.assertEqual(v.shape, (3, 2, 2))
        self.assertTrue(np.array_equal(v.to_numpy(), arr))

    def test_from_numpy_2d_is_single_channel(self):
        v = Volume.from_numpy(np.ones((4, 5)))
        self.assertEqual(v.shape, (1, 4, 5))

    def test_of_wraps_tensor(self):
        v = Volume.of(self.a)
        self.assertEqual(v.depth, 1)
        self.assertIs(Volume.of(v), v)

    def test_equality(self):
        self.assertEqual(Volume([self.a, self.b]), Volume([self.a, self.b]))
        self.assertNotEqual(Volume([self.a, self.b]), Volume([self.b, self.a]))
        self.assertNotEqual(Volume([self.a]), Volume([self.a, self.b]))


if __name__ == "__main__":
    unittest.main()
