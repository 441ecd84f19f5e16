import collections.abc
import unittest

import numpy as np

from src.densecnn.domain._errors import (
    DimensionMismatchError,
    InputTooSmallError,
    KernelSizeError,
)
from src.densecnn.domain._layer import (
    ActivationType,
    ILayer,
    IWeightedLayer,
    LayerKind,
    TensorInfo,
)
from src.densecnn.infrastructure.layers import Layer
from src.densecnn.infrastructure.tensor._tensor import Tensor
from src.densecnn.infrastructure.tensor._volume import Volume


class TestAffineConstruction(unittest.TestCase):
    def setUp(self) -> None:
        self.rng = np.random.default_rng(9)

    def test_random_initialization_shapes(self):
        layer = Layer.fully_connected(4, 3, rng=self.rng)
        self.assertIs(layer.kind, LayerKind.FULLY_CONNECTED)
        self.assertIs(layer.activation, ActivationType.SIGMOID)
        self.assertEqual(layer.weights.shape, (4, 3))
        self.assertEqual(layer.biases.shape, (1, 3))
        self.assertTrue(np.all(layer.biases.data == 0.0))
        self.assertEqual(layer.input_info, TensorInfo.linear(4))
        self.assertEqual(layer.output_info, TensorInfo.linear(3))

    def test_volume_input_uses_flattened_size(self):
        layer = Layer.softmax(TensorInfo.volume(2, 3, 4), 5, rng=self.rng)
        self.assertEqual(layer.weights.shape, (24, 5))

    def test_explicit_buffers(self):
        w = Tensor(2, 2, [1, 2, 3, 4])
        b = Tensor.vector([0.5, -0.5])
        layer = Layer.softmax(2, 2, weights=w, biases=b)
        self.assertIs(layer.weights, w)
        self.assertIs(layer.biases, b)

    def test_explicit_buffer_shape_checked(self):
        with self.assertRaises(DimensionMismatchError):
            Layer.fully_connected(3, 2, weights=Tensor(2, 3))
        with self.assertRaises(DimensionMismatchError):
            Layer.fully_connected(3, 2, weights=Tensor(3, 2), biases=Tensor(1, 3))

    def test_weights_dtype_carries_to_generated_biases(self):
        w = Tensor(2, 2, dtype=np.float32)
        layer = Layer.fully_connected(2, 2, weights=w)
        self.assertEqual(layer.biases.dtype, np.float32)

    def test_softmax_activation_reserved_for_softmax_layer(self):
        with self.assertRaises(ValueError):
            Layer.fully_connected(2, 2, ActivationType.SOFTMAX)

    def test_unknown_initializer(self):
        with self.assertRaises(ValueError):
            Layer.fully_connected(2, 2, weight_init="nope")

    def test_protocols(self):
        layer = Layer.softmax(2, 2, rng=self.rng)
        self.assertIsInstance(layer, ILayer)
        self.assertIsInstance(layer, IWeightedLayer)


class TestSpatialConstruction(unittest.TestCase):
    def test_convolutional_output_shape(self):
        layer = Layer.convolutional(
            TensorInfo.volume(6, 7, 2), 3, rng=np.random.default_rng(0)
        )
        self.assertIs(layer.kind, LayerKind.CONVOLUTIONAL)
        self.assertEqual(layer.kernels.shape, (3, 3, 3))
        self.assertEqual(layer.output_info, TensorInfo.volume(4, 5, 6))
        self.assertIsNone(layer.weights)

    def test_convolutional_rejects_bad_kernels_and_inputs(self):
        with self.assertRaises(KernelSizeError):
            Layer.convolutional(TensorInfo.volume(5, 5, 1), Volume.zeros(1, 2, 2))
        with self.assertRaises(InputTooSmallError):
            Layer.convolutional(TensorInfo.volume(2, 5, 1), 1)
        with self.assertRaises(ValueError):
            Layer.convolutional(TensorInfo.volume(5, 5, 1), 0)

    def test_pooling_output_shape(self):
        layer = Layer.pooling(TensorInfo.volume(5, 8, 3))
        self.assertEqual(layer.output_info, TensorInfo.volume(2, 4, 3))
        with self.assertRaises(InputTooSmallError):
            Layer.pooling(TensorInfo.volume(1, 8, 3))


class TestCloneEqualityAndConfig(unittest.TestCase):
    def setUp(self) -> None:
        rng = np.random.default_rng(10)
        self.layers = [
            Layer.fully_connected(6, 4, ActivationType.RELU, rng=rng),
            Layer.softmax(TensorInfo.volume(2, 2, 2), 3, rng=rng),
            Layer.convolutional(TensorInfo.volume(5, 5, 1), 2, rng=rng),
            Layer.pooling(TensorInfo.volume(4, 4, 2)),
        ]

    def test_clone_is_equal_but_distinct(self):
        for layer in self.layers:
            copy = layer.clone()
            self.assertIsNot(copy, layer)
            self.assertEqual(copy, layer)

    def test_inequality_on_any_field(self):
        a = Layer.fully_connected(2, 2, weights=Tensor(2, 2, [1, 2, 3, 4]))
        b = Layer.fully_connected(2, 2, weights=Tensor(2, 2, [1, 2, 3, 5]))
        c = Layer.fully_connected(
            2, 2, ActivationType.RELU, weights=Tensor(2, 2, [1, 2, 3, 4])
        )
        self.assertNotEqual(a, b)
        self.assertNotEqual(a, c)
        self.assertNotEqual(self.layers[0], self.layers[1])

    def test_config_round_trip(self):
        for layer in self.layers:
            cfg = layer.get_config()
            self.assertEqual(cfg["kind"], layer.kind.value)
            self.assertEqual(cfg["output_size"], layer.output_info.size)
            self.assertEqual(Layer.from_config(cfg), layer)

    def test_config_is_plain_python(self):
        cfg = self.layers[0].get_config()
        self.assertIsInstance(cfg["weights"], list)
        self.assertIsInstance(cfg["weights"][0][0], float)
        self.assertEqual(len(cfg["biases"]), 4)

    def test_config_preserves_float32(self):
        layer = Layer.fully_connected(3, 2, dtype=np.float32, rng=np.random.default_rng(1))
        rebuilt = Layer.from_config(layer.get_config())
        self.assertEqual(rebuilt.weights.dtype, np.float32)
        self.assertEqual(rebuilt, layer)

    def test_from_config_validates(self):
        cfg = self.layers[0].get_config()
        cfg["biases"] = cfg["biases"][:-1]
        with self.assertRaises(DimensionMismatchError):
            Layer.from_config(cfg)
        with self.assertRaises(ValueError):
            Layer.from_config(dict(cfg, kind="recurrent"))

    def test_layers_are_unhashable(self):
        self.assertIsNone(Layer.__hash__)
        for layer in self.layers:
            self.assertNotIsInstance(layer, collections.abc.Hashable)
            with self.assertRaises(TypeError):
                hash(layer)

    def test_repr(self):
        self.assertIn("pooling", repr(self.layers[3]))


if __name__ == "__main__":
    unittest.main()
