"""
Градиентное восхождение на одном масштабе изображения
"""
from typing import Callable, Optional, Tuple

import tensorflow as tf

from deepdream.errors import ShapeError
from deepdream.images import Image

# Оракул: изображение -> (значение потерь, градиент потерь по изображению той же формы)
Oracle = Callable[[Image], Tuple[float, Image]]
StepHook = Callable[[int, float], None]


def print_loss(step: int, loss: float) -> None:
    print(f"... Loss value at step {step}: {loss:.2f}")


def gradient_ascent_loop(image: Image, oracle: Oracle, iterations: int, learning_rate: float,
                         max_loss: Optional[float] = None,
                         on_step: Optional[StepHook] = print_loss) -> tf.Tensor:
    """
    Многократно запрашивает у оракула потери и градиенты и сдвигает изображение в сторону роста потерь.
    Останавливается, если достигнуто максимальное количество итераций или потери превысили max_loss.
    В последнем случае шаг не применяется и возвращается изображение после предыдущего шага
        returns:
    image: Конечное изображение после обработки
    """
    image = tf.cast(image, tf.float32)
    for i in range(iterations):
        loss, grads = oracle(image)
        loss = float(loss)
        if max_loss is not None and loss > max_loss: # нужно, чтобы предотвратить неограниченный рост потерь
            break
        if tuple(grads.shape) != tuple(image.shape):
            raise ShapeError(
                f"gradient shape {tuple(grads.shape)} does not match image shape {tuple(image.shape)}")
        if on_step is not None:
            on_step(i, loss)
        image = image + learning_rate * tf.cast(grads, tf.float32)
    return image
