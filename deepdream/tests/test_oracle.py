# pylint: disable=missing-docstring

import numpy as np
import tensorflow as tf
from absl.testing import absltest
from tensorflow import keras
from tensorflow.keras import layers

from deepdream import oracle
from deepdream.errors import ConfigError, DreamError


######### HELPER FUNCTIONS #########
def tiny_model():
    # небольшая сверточная сеть вместо InceptionV3, чтобы не скачивать веса
    inputs = keras.Input(shape=(None, None, 3))
    x = layers.Conv2D(4, 3, padding="same", activation="relu", name="conv_a")(inputs)
    x = layers.Conv2D(2, 3, padding="same", name="conv_b")(x)
    return keras.Model(inputs, x, name="tiny")


def random_image(shape=(1, 16, 16, 3), seed=0):
    return np.random.RandomState(seed).uniform(-1, 1, size=shape).astype("float32")


class ComputeLossTest(absltest.TestCase):

    def test_mean_square_without_border(self):
        features = {"a": tf.ones((1, 4, 4, 2))}
        loss = oracle.compute_loss(features, {"a": 2.0}, border=0)
        self.assertAlmostEqual(float(loss), 2.0, places=6)

    def test_border_is_cropped_but_scaling_uses_full_size(self):
        features = {"a": tf.ones((1, 4, 4, 2))}
        loss = oracle.compute_loss(features, {"a": 2.0}, border=1)
        # 2 * (2 * 2 * 2) / 32
        self.assertAlmostEqual(float(loss), 0.5, places=6)

    def test_weighted_sum_over_layers(self):
        features = {"a": tf.fill((1, 2, 2, 1), 3.0), "b": tf.ones((1, 5, 5, 4))}
        loss = oracle.compute_loss(features, {"a": 1.0, "b": 0.5}, border=0)
        self.assertAlmostEqual(float(loss), 9.0 + 0.5, places=5)

    def test_zero_weight_layer_is_ignored(self):
        features = {"a": tf.ones((1, 2, 2, 1)), "b": tf.fill((1, 2, 2, 1), 100.)}
        loss = oracle.compute_loss(features, {"a": 1.0, "b": 0.0}, border=0)
        self.assertAlmostEqual(float(loss), 1.0, places=6)

    def test_unknown_layer(self):
        with self.assertRaises(ConfigError):
            oracle.compute_loss({"a": tf.ones((1, 2, 2, 1))}, {"b": 1.0})


class NormalizeGradientsTest(absltest.TestCase):

    def test_divides_by_mean_abs(self):
        grads = tf.constant([[2., -2., 4., -4.]])
        np.testing.assert_allclose(oracle.normalize_gradients(grads).numpy(),
                                   [[2 / 3, -2 / 3, 4 / 3, -4 / 3]], rtol=1e-6)

    def test_zero_gradient_stays_zero(self):
        grads = tf.zeros((1, 3, 3, 3))
        np.testing.assert_array_equal(oracle.normalize_gradients(grads).numpy(), grads.numpy())


class FeatureExtractorTest(absltest.TestCase):

    def test_outputs_named_layers(self):
        extractor = oracle.build_feature_extractor(["conv_a", "conv_b"], tiny_model())
        features = extractor(random_image())
        self.assertEqual(set(features), {"conv_a", "conv_b"})
        self.assertEqual(tuple(features["conv_a"].shape), (1, 16, 16, 4))

    def test_unknown_layer(self):
        with self.assertRaises(ConfigError):
            oracle.build_feature_extractor(["mixed4"], tiny_model())


class FeatureLossOracleTest(absltest.TestCase):

    def setUp(self):
        super().setUp()
        tf.random.set_seed(0)
        self.model = tiny_model()
        self.settings = {"conv_a": 1.0, "conv_b": 2.0}
        self.oracle = oracle.FeatureLossOracle.from_layer_settings(self.settings, self.model)

    def test_loss_matches_features(self):
        img = random_image()
        loss, _ = self.oracle.evaluate(img)
        features = self.oracle.feature_extractor(img)
        expected = 0.
        for name, coeff in self.settings.items():
            activation = features[name].numpy()
            expected += coeff * np.sum(np.square(activation[:, 2:-2, 2:-2, :])) / activation.size
        self.assertIsInstance(loss, float)
        np.testing.assert_allclose(loss, expected, rtol=1e-4)

    def test_gradient_is_normalized(self):
        img = random_image()
        _, grads = self.oracle(img)
        self.assertEqual(tuple(grads.shape), img.shape)
        self.assertAlmostEqual(float(tf.reduce_mean(tf.abs(grads))), 1.0, places=4)

    def test_unbatched_image(self):
        img = random_image(shape=(12, 10, 3))
        loss, grads = self.oracle(img)
        batched_loss, batched_grads = self.oracle(img[np.newaxis])
        self.assertEqual(tuple(grads.shape), (12, 10, 3))
        self.assertAlmostEqual(loss, batched_loss, places=5)
        np.testing.assert_allclose(grads.numpy(), batched_grads.numpy()[0], rtol=1e-5, atol=1e-6)

    def test_deterministic(self):
        img = random_image()
        loss1, grads1 = self.oracle(img)
        loss2, grads2 = self.oracle(img)
        self.assertEqual(loss1, loss2)
        np.testing.assert_array_equal(grads1.numpy(), grads2.numpy())

    def test_model_weights_unchanged(self):
        before = [w.copy() for w in self.model.get_weights()]
        self.oracle(random_image())
        for old, new in zip(before, self.model.get_weights()):
            np.testing.assert_array_equal(old, new)

    def test_gradient_increases_loss(self):
        img = random_image()
        loss, grads = self.oracle(img)
        new_loss, _ = self.oracle(img + 1e-3 * grads.numpy())
        self.assertGreater(new_loss, loss)

    def test_negative_weight(self):
        with self.assertRaises(ConfigError):
            oracle.FeatureLossOracle(self.oracle.feature_extractor, {"conv_a": -1.0})

    def test_layer_missing_from_extractor(self):
        extractor = oracle.build_feature_extractor(["conv_a"], self.model)
        with self.assertRaisesRegex(ConfigError, "conv_b"):
            oracle.FeatureLossOracle(extractor, {"conv_b": 1.0})

    def test_missing_layer_is_a_dream_error(self):
        extractor = oracle.build_feature_extractor(["conv_a"], self.model)
        self.assertEqual(oracle.feature_output_names(extractor), {"conv_a"})
        with self.assertRaises(DreamError):
            oracle.FeatureLossOracle(extractor, {"conv_a": 1.0, "conv_b": 1.0})

    def test_extractor_without_named_outputs(self):
        # модель возвращает один тензор, а не словарь активаций
        bad = oracle.FeatureLossOracle(self.model, {"conv_b": 1.0})
        with self.assertRaises(ConfigError):
            bad(random_image())


if __name__ == "__main__":
    absltest.main()
