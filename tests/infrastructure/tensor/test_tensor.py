import unittest

import numpy as np

from src.densecnn.domain._errors import DimensionMismatchError, RangeViolationError
from src.densecnn.domain._tensor import ITensor
from src.densecnn.infrastructure.tensor._tensor import Tensor, resolve_dtype


class TestTensorConstruction(unittest.TestCase):
    def test_zero_initialized_by_default(self):
        t = Tensor(2, 3)
        self.assertEqual(t.shape, (2, 3))
        self.assertEqual(t.size, 6)
        self.assertTrue(np.array_equal(t.to_numpy(), np.zeros((2, 3))))

    def test_wraps_flat_and_nested_data_row_major(self):
        flat = Tensor(2, 2, [1.0, 2.0, 3.0, 4.0])
        nested = Tensor(2, 2, [[1.0, 2.0], [3.0, 4.0]])
        self.assertEqual(flat, nested)
        self.assertEqual(flat[1, 0], 3.0)

    def test_copies_input_data(self):
        src = np.arange(6, dtype=np.float64).reshape(2, 3)
        t = Tensor.from_numpy(src)
        src[0, 0] = 100.0
        self.assertEqual(t[0, 0], 0.0)

    def test_wrong_value_count_rejected(self):
        with self.assertRaises(DimensionMismatchError):
            Tensor(2, 2, [1.0, 2.0, 3.0])

    def test_non_positive_extents_rejected(self):
        with self.assertRaises(RangeViolationError):
            Tensor(0, 3)
        with self.assertRaises(RangeViolationError):
            Tensor(3, -1)
        with self.assertRaises(RangeViolationError):
            Tensor(2.5, 3)

    def test_from_numpy_promotes_1d_to_vector(self):
        v = Tensor.from_numpy(np.array([1.0, 2.0, 3.0]))
        self.assertEqual(v.shape, (1, 3))
        self.assertTrue(v.is_vector)

    def test_from_numpy_rejects_3d(self):
        with self.assertRaises(DimensionMismatchError):
            Tensor.from_numpy(np.zeros((2, 2, 2)))

    def test_vector_and_full(self):
        v = Tensor.vector([1, 2, 3])
        self.assertEqual(v.shape, (1, 3))
        self.assertEqual(v[2], 3.0)
        f = Tensor.full(2, 2, 7.5)
        self.assertTrue(np.all(f.data == 7.5))

    def test_empty_vector_rejected(self):
        with self.assertRaises(RangeViolationError):
            Tensor.vector([])

    def test_satisfies_protocol(self):
        self.assertIsInstance(Tensor(1, 1), ITensor)


class TestTensorDtype(unittest.TestCase):
    def test_float32_data_keeps_dtype(self):
        t = Tensor.from_numpy(np.ones((2, 2), dtype=np.float32))
        self.assertEqual(t.dtype, np.float32)

    def test_explicit_dtype_wins(self):
        t = Tensor(1, 2, [1, 2], dtype="float32")
        self.assertEqual(t.dtype, np.float32)

    def test_integer_dtype_rejected(self):
        with self.assertRaises(TypeError):
            Tensor(1, 2, [1, 2], dtype=np.int32)
        with self.assertRaises(TypeError):
            resolve_dtype("int64")

    def test_astype(self):
        t = Tensor.vector([1.5, 2.5]).astype(np.float32)
        self.assertEqual(t.dtype, np.float32)
        self.assertEqual(t[1], 2.5)


class TestTensorImmutabilityAndAddressing(unittest.TestCase):
    def test_data_is_read_only(self):
        t = Tensor(2, 2, [1, 2, 3, 4])
        with self.assertRaises(ValueError):
            t.data[0, 0] = 9.0
        with self.assertRaises(ValueError):
            t.flat[0] = 9.0

    def test_to_numpy_returns_writable_copy(self):
        t = Tensor(2, 2, [1, 2, 3, 4])
        arr = t.to_numpy()
        arr[0, 0] = 9.0
        self.assertEqual(t[0, 0], 1.0)

    def test_row_major_index(self):
        t = Tensor(3, 4)
        self.assertEqual(t.index(0, 0), 0)
        self.assertEqual(t.index(1, 2), 6)
        self.assertEqual(t.index(2, 3), 11)

    def test_index_out_of_range(self):
        t = Tensor(2, 2)
        with self.assertRaises(IndexError):
            t.index(2, 0)
        with self.assertRaises(IndexError):
            t.index(0, -1)
        with self.assertRaises(IndexError):
            t[0, 2]

    def test_single_index_only_for_vectors(self):
        with self.assertRaises(TypeError):
            Tensor(2, 2)[0]

    def test_reshape(self):
        t = Tensor(2, 3, range(6))
        r = t.reshape(3, 2)
        self.assertEqual(r.shape, (3, 2))
        self.assertTrue(np.array_equal(r.flat, t.flat))
        with self.assertRaises(DimensionMismatchError):
            t.reshape(4, 2)


class TestTensorComparison(unittest.TestCase):
    def test_equality_is_exact(self):
        a = Tensor.vector([1.0, 2.0])
        self.assertEqual(a, Tensor.vector([1.0, 2.0]))
        self.assertNotEqual(a, Tensor.vector([1.0, 2.0 + 1e-12]))
        self.assertNotEqual(a, Tensor(2, 1, [1.0, 2.0]))

    def test_allclose(self):
        a = Tensor.vector([1.0, 2.0])
        self.assertTrue(a.allclose(Tensor.vector([1.0, 2.0 + 1e-12])))
        self.assertFalse(a.allclose(Tensor(2, 1, [1.0, 2.0])))

    def test_unhashable(self):
        with self.assertRaises(TypeError):
            hash(Tensor(1, 1))

    def test_repr(self):
        self.assertEqual(repr(Tensor(2, 3)), "Tensor(rows=2, cols=3, dtype=float64)")


if __name__ == "__main__":
    unittest.main()
