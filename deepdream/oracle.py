"""
Оракул потерь для DeepDream.

1. Используем предварительно обученную сеть для извлечения признаков из разных слоев
2. Взвешиваем вклад каждого слоя, чтобы управлять тем, какие признаки будут усилены
3. Возвращаем значение потерь и нормализованный градиент потерь по входному изображению,
   по которому конвейер октав выполняет градиентное восхождение
"""
from typing import Dict, Iterable, Mapping, Optional, Set, Tuple

import tensorflow as tf
from tensorflow import keras

from deepdream.config import check_layer_settings
from deepdream.errors import ConfigError, ShapeError
from deepdream.images import Image


def build_feature_extractor(layer_names: Iterable[str],
                            model: Optional[keras.Model] = None) -> keras.Model:
    """
    Создает модель, возвращающую словарь {имя слоя: активация} для выбранных слоев.
    По умолчанию используется InceptionV3 с весами imagenet без классификационного слоя
    """
    if model is None:
        from tensorflow.keras.applications import inception_v3
        model = inception_v3.InceptionV3(weights="imagenet", include_top=False)
    outputs_dict = {}
    for name in layer_names:
        try:
            layer = model.get_layer(name)
        except ValueError:
            raise ConfigError(f"model {model.name!r} has no layer named {name!r}") from None
        outputs_dict[name] = layer.output
    if not outputs_dict:
        raise ConfigError("at least one layer is required to build a feature extractor")
    return keras.Model(inputs=model.inputs, outputs=outputs_dict)


def compute_loss(features: Mapping[str, tf.Tensor], layer_settings: Mapping[str, float],
                 border: int = 2) -> tf.Tensor:
    """
    Взвешенная сумма квадратов активаций выбранных слоев.
    Края активации шириной border отбрасываются, чтобы избежать артефактов на границах,
    сумма делится на число элементов всей активации, чтобы слои разного размера были сопоставимы
    """
    loss: tf.Tensor = tf.zeros(shape=())
    for name, coeff in layer_settings.items():
        if name not in features:
            raise ConfigError(f"feature extractor does not output layer {name!r}")
        activation: tf.Tensor = features[name]
        scaling = tf.reduce_prod(tf.cast(tf.shape(activation), "float32"))
        if border > 0:
            activation = activation[:, border:-border, border:-border, :]
        loss += coeff * tf.reduce_sum(tf.square(activation)) / scaling
    return loss


def normalize_gradients(grads: tf.Tensor, epsilon: float = 1e-7) -> tf.Tensor:
    """Делим на средний модуль градиента, чтобы размер шага не зависел от масштаба градиента"""
    return grads / tf.maximum(tf.reduce_mean(tf.abs(grads)), epsilon)


class FeatureLossOracle:
    """
    Вычисляет потери и градиент потерь по изображению.
    Веса feature_extractor не изменяются: модель используется только для прямого прохода
    """
    def __init__(self, feature_extractor: keras.Model, layer_settings: Mapping[str, float],
                 border: int = 2, epsilon: float = 1e-7):
        check_layer_settings(layer_settings)
        if border < 0:
            raise ConfigError(f"border must be >= 0, got {border}")
        # Имена слоев проверяются до трассировки tf.function, внутри нее ошибка пришла бы как StagingError
        output_names = feature_output_names(feature_extractor)
        if output_names is not None:
            check_output_names(layer_settings, output_names)
        self.feature_extractor = feature_extractor
        self.layer_settings: Dict[str, float] = dict(layer_settings)
        self.border = border
        self.epsilon = epsilon
        self._names_checked = output_names is not None

    @classmethod
    def from_layer_settings(cls, layer_settings: Mapping[str, float],
                            model: Optional[keras.Model] = None, **kwargs) -> "FeatureLossOracle":
        return cls(build_feature_extractor(layer_settings.keys(), model), layer_settings, **kwargs)

    @tf.function(reduce_retracing=True) # для ускорения
    def _loss_and_grads(self, image: tf.Tensor) -> Tuple[tf.Tensor, tf.Tensor]:
        with tf.GradientTape() as tape:
            tape.watch(image)
            features = self.feature_extractor(image, training=False)
            loss = compute_loss(features, self.layer_settings, self.border)
        grads = tape.gradient(loss, image) # как нужно изменить пиксели, чтобы увеличить активации
        return loss, normalize_gradients(grads, self.epsilon)

    def evaluate(self, image: Image) -> Tuple[float, tf.Tensor]:
        """
        image: Изображение (1, высота, ширина, 3) или (высота, ширина, 3)
            returns:
        loss: Значение потерь
        grads: Нормализованный градиент той же формы, что и image
        """
        image = tf.cast(image, tf.float32)
        unbatched = image.shape.rank == 3
        if unbatched:
            image = tf.expand_dims(image, axis=0)
        elif image.shape.rank != 4:
            raise ShapeError(f"expected an image of rank 3 or 4, got shape {tuple(image.shape)}")
        if not self._names_checked:
            # имена выходов не удалось узнать из модели, проверяем по первому прямому проходу
            features = self.feature_extractor(image, training=False)
            if not isinstance(features, dict):
                raise ConfigError("feature extractor must return a dict of layer activations")
            check_output_names(self.layer_settings, features)
            self._names_checked = True
        loss, grads = self._loss_and_grads(image)
        if unbatched:
            return float(loss), grads[0]
        return float(loss), grads

    __call__ = evaluate


def feature_output_names(feature_extractor: keras.Model) -> Optional[Set[str]]:
    """
    Имена выходов модели, возвращающей словарь активаций, или None, если их нельзя узнать заранее
    """
    # _outputs_struct в Keras 3, _nested_outputs в tf.keras 2
    for attr in ("_outputs_struct", "_nested_outputs", "output"):
        try:
            outputs = getattr(feature_extractor, attr, None)
        except (AttributeError, ValueError):
            continue
        if isinstance(outputs, dict):
            return set(outputs)
    return None


def check_output_names(layer_settings: Mapping[str, float], output_names: Iterable[str]) -> None:
    missing = sorted(set(layer_settings) - set(output_names))
    if missing:
        raise ConfigError(f"feature extractor does not output layers {missing}")
